import logging
import os
import sys
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from .request import AggrestRequest
from .response import AggrestResponse
from .config import get_config
import aggrest
import flask.app


class AGGREST:
    """This class configures the Flask application to serve aggregate resources
    :param app: a Flask application.
    :param prefix: URL prefix where the resources are exposed
    :param LOGLEVEL: loglevel configuration variable, values from logging module (0: trace, .. 50: critical)
    """

    # Configuration settings are stored as class variables, app.config takes precedence
    MAX_PAGE_LIMIT = 100000
    MAX_PAGE_OFFSET = 2**31
    LOGLEVEL = logging.WARNING
    IDENTIFIER_NAME = "uuid"
    CURSOR_PROPERTY = "__identity"
    IDENTITY_DELIMITER = "_"
    USE_ABSOLUTE_URIS = True
    NORMALIZE_RESOURCE_TYPES = False
    API_VERSION = "1.0"
    CONTENT_SECURITY_POLICY = "default-src 'none'; frame-ancestors 'none'"
    CORS_ALLOW_ORIGIN = "*"
    CORS_ALLOW_METHODS = "HEAD, GET, POST, PUT, PATCH, DELETE, OPTIONS"
    CORS_MAX_AGE = 3600

    # url formats: first argument is the url prefix, second the collection name
    RESOURCE_URL_FMT = "{}/{}/"
    INSTANCE_URL_FMT = "{}/{}/<string:identifier>/"
    # third argument is the action name, eg. /Users/search/
    ACTION_URL_FMT = "{}/{}/{}/"
    ENTRY_URL_FMT = "{}/"
    # endpoint naming
    ENDPOINT_FMT = "{}api.{}"
    INSTANCE_ENDPOINT_FMT = "{}api.{}Id"

    def __init__(self, app: flask.app.Flask, *args, **kwargs) -> None:
        """
        Constructor
        """
        self.app = app
        if app is not None:
            self.init_app(app, *args, **kwargs)

    def init_app(self, app: flask.app.Flask, prefix: str = "", app_db: SQLAlchemy = None, **kwargs) -> None:
        """
        API and application initialization
        """
        if not isinstance(app, Flask):  # pragma: no cover
            raise TypeError("'app' should be Flask.")

        if app_db is None:
            app_db = app.extensions["sqlalchemy"]

        aggrest.DB = self.db = app_db

        app.request_class = AggrestRequest
        app.response_class = AggrestResponse
        app.url_map.strict_slashes = False

        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        # keyword arguments override the app configuration
        for conf_name, conf_val in kwargs.items():
            app.config[conf_name] = conf_val
        get_config.cache_clear()

        @app.after_request
        def add_cors_origin(response):
            response.headers.setdefault("Access-Control-Allow-Origin", get_config("CORS_ALLOW_ORIGIN"))
            return response

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Specify the log format used in the webserver logs
        The webserver will catch stdout so we redirect eveything to sys.stderr
        """
        log = logging.getLogger(__name__)
        if log.level == logging.NOTSET:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            log.setLevel(loglevel)
            log.addHandler(handler)
        return log


#
# DB and logging initialization
#
DB = SQLAlchemy()

try:
    DEBUG = os.getenv("DEBUG", logging.WARNING)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = AGGREST.init_logging(LOGLEVEL)
