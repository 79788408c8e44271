__version__ = "0.9.2"
__description__ = "aggrest : schema driven REST resources for SQLAlchemy aggregates"
