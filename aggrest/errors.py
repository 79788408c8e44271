# Exception Handlers
#
# The application loglevel determines the level of detail shown to the user.
# If set to debug, too much sensitive info might be shown !
#
# The exceptions will be caught in http_method_decorator and formatted, for example:
# {
#      "code": 404,
#      "message": "NotFoundError (debug logging disabled)",
#      "reference": "20260101120000a1b2c3"
# }
#
import datetime
import secrets
import traceback
from flask import has_request_context, request
from werkzeug.exceptions import NotFound
import aggrest
from sqlalchemy.exc import DontWrapMixin
from http import HTTPStatus
from .config import is_debug
from typing import Dict, List, Optional

HIDDEN_LOG = "(debug logging disabled)"


def reference_code() -> str:
    """
    :return: opaque code that ties an error response to the log
    """
    return datetime.datetime.now().strftime("%Y%m%d%H%M%S") + secrets.token_hex(3)


class ApiError(Exception, DontWrapMixin):
    """
    Base class for the errors that are returned to the client
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = ""
    api_code = None
    errors = None
    headers = {}

    def __init__(self, message="", status_code=None, api_code=None):
        Exception.__init__(self, message)
        if status_code is not None:
            self.status_code = status_code
        if api_code is not None:
            self.api_code = api_code
        self.reference = reference_code()


class NotFoundError(ApiError, NotFound):
    """
    This exception is raised when an item was not found
    """

    status_code = HTTPStatus.NOT_FOUND.value
    message = "NotFoundError "

    def __init__(self, message="", status_code=HTTPStatus.NOT_FOUND.value, api_code=None):
        """
        :param message: Message to be returned in the (json) body
        :param status_code: HTTP Status code
        :param api_code: API code
        """
        ApiError.__init__(self, message, status_code, api_code)
        aggrest.log.warning("Not found: %s", message)
        if is_debug():
            self.message += message
        else:
            self.message += HIDDEN_LOG


class BadRequestError(ApiError):
    """
    This exception is raised when a request argument is missing or malformed (client side input)
    Always send back the message to the client in the response
    """

    status_code = HTTPStatus.BAD_REQUEST.value

    def __init__(self, message="", status_code=HTTPStatus.BAD_REQUEST.value, api_code=None):
        ApiError.__init__(self, message, status_code, api_code)
        aggrest.log.warning("BadRequestError: %s", message)
        self.message = message


class ValidationError(ApiError):
    """
    This exception is raised when the properties of a resource fail validation
    The field errors are sent back to the client
    """

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY.value

    def __init__(self, message="", errors: Optional[List[Dict]] = None, status_code=HTTPStatus.UNPROCESSABLE_ENTITY.value, api_code=None):
        ApiError.__init__(self, message, status_code, api_code)
        aggrest.log.warning("ValidationError: %s %s", message, errors)
        self.message = message
        self.errors = errors or []


class ConflictError(ApiError):
    """
    This exception is raised when a resource that should be created already exists
    """

    status_code = HTTPStatus.CONFLICT.value

    def __init__(self, identifier, message="", status_code=HTTPStatus.CONFLICT.value, api_code=None):
        ApiError.__init__(self, message, status_code, api_code)
        aggrest.log.warning("Conflict: resource %s already exists", identifier)
        self.identifier = identifier
        self.message = message or f"The resource {identifier} already exists"
        self.headers = {"X-Resource-Identifier": str(identifier)}


class ApplicationError(ApiError):
    """
    Raised by application code with an explicit status code, the message is returned as is
    """

    def __init__(self, message="", status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value, api_code=None):
        ApiError.__init__(self, message, status_code, api_code)
        aggrest.log.error("ApplicationError (%s): %s", status_code, message)
        self.message = message


class GenericError(ApiError):
    """
    This exception is raised when an error has been detected
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value  # 500
    message = "Generic Error: "

    def __init__(self, message, status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value, api_code=None):
        ApiError.__init__(self, message, status_code, api_code)
        aggrest.log.error("Generic Error: %s (reference %s)", message, self.reference)
        if is_debug():
            if has_request_context():
                aggrest.log.info(f"Error in {request.url}")
            aggrest.log.debug(traceback.format_exc(120))
            self.message += str(message)
        else:
            self.message += HIDDEN_LOG


class SystemValidationError(ApiError):
    """
    This exception is raised when invalid configuration has been detected (server side input)
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = "Validation Error: "

    def __init__(self, message="", status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value, api_code=None):
        ApiError.__init__(self, message, status_code, api_code)
        aggrest.log.error("SystemValidationError: %s", message)
        self.detail = message
        if is_debug():
            self.message += message
        else:
            self.message += HIDDEN_LOG


class CyclicSchemaError(SystemValidationError):
    """
    Raised when a schema is nested too deep to be reflected
    """

    def __init__(self, type_name: str):
        SystemValidationError.__init__(self, f"Cyclic references detected in schema for class {type_name}.")
        self.type_name = type_name


class FieldError(ValueError):
    """
    Raised by model validators (eg. sqlalchemy.orm.validates) to report an invalid property value
    """

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
