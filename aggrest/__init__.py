# flake8: noqa: F401
#
# aggrest: expose SQLAlchemy aggregates as REST resources
#
from .aggrest_init import DB, log, AGGREST
from .errors import (
    ApiError,
    BadRequestError,
    ValidationError,
    ConflictError,
    NotFoundError,
    ApplicationError,
    GenericError,
    SystemValidationError,
    CyclicSchemaError,
    FieldError,
)
from .json_encoder import AggrestJSONProvider
from .request import AggrestRequest
from .arguments import ArgumentNames
from .schema import SchemaCache, reflect_aggregate
from .transient_attr import transient_attr
from .actions import resource_action
from .controller import RestController
from .aggrest_api import AggrestAPI
from .link_header import LinkHeader
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "AggrestAPI",
    "AGGREST",
    "RestController",
    "resource_action",
    # db:
    "DB",
    "transient_attr",
    "reflect_aggregate",
    "SchemaCache",
    "ArgumentNames",
    # json:
    "AggrestJSONProvider",
    "LinkHeader",
    # Errors:
    "ApiError",
    "BadRequestError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "ApplicationError",
    "GenericError",
    "SystemValidationError",
    "CyclicSchemaError",
    "FieldError",
    # request
    "AggrestRequest",
)
