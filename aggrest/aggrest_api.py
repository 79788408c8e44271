# AggrestAPI: expose SQLAlchemy models as aggregate resources on a Flask app
from http import HTTPStatus
import inspect
import werkzeug
from flask import current_app
from flask.app import Flask
from functools import wraps
import aggrest
from .actions import HTTP_METHODS, INDEX, OPTIONS, get_actions, get_http_methods, uri_action
from .config import get_config
from .controller import RestController
from .entry import EntryController
from .errors import ApiError, GenericError, SystemValidationError, reference_code
from .json_encoder import AggrestJSONProvider
from .schema import SchemaCache
from typing import Callable, Dict, List, Optional, Type


class AggrestAPI:
    """
    Creates the url rules for the exposed models:

        /{collection}/                  list, create
        /{collection}/{identifier}/     show, create, update, remove
        /{collection}/{action}/         describe, discover, filter, search and custom actions
        /, /discover/                   entry point discovery
    """

    def __init__(
        self,
        app: Flask,
        prefix: str = "",
        app_db=None,
        schema_cache: Optional[SchemaCache] = None,
        json_provider: Type[AggrestJSONProvider] = AggrestJSONProvider,
        **kwargs,
    ) -> None:
        """
        :param app: Flask app
        :param prefix: url prefix of the resources, eg. "/api"
        :param app_db: flask_sqlalchemy SQLAlchemy instance, taken from app.extensions by default
        :param schema_cache: cache for the reflected schemas, shared by all resources of the api
        :param kwargs: configuration, stored in app.config
        """
        aggrest.AGGREST(app, prefix=prefix, app_db=app_db, **kwargs)
        app.json = json_provider(app)
        self.app = app
        self.prefix = prefix
        self.schema_cache = schema_cache if schema_cache is not None else SchemaCache()
        self.resources: Dict[str, Type[RestController]] = {}
        self.expose_entry()

    def expose_object(self, model, url_prefix: str = "", controller: Type[RestController] = RestController, **properties):
        """This method creates the url rules for a model
        :param model: SQLAlchemy model class
        :param url_prefix: url prefix, the api prefix by default
        :param controller: RestController subclass implementing the resource actions
        :param properties: controller class attributes, eg. collection_name, render_fields, default_filter

        creates a class of the form

        @api_decorator
        class Model_API(controller):
            model = model
        """
        url_prefix = url_prefix or self.prefix
        collection_name = properties.get("collection_name") or controller.collection_name or model.__tablename__
        endpoint = get_config("ENDPOINT_FMT").format(url_prefix, collection_name)
        properties.update(
            model=model,
            collection_name=collection_name,
            schema_cache=self.schema_cache,
            api=self,
            url_prefix=url_prefix,
            endpoint=endpoint,
            instance_endpoint=get_config("INSTANCE_ENDPOINT_FMT").format(url_prefix, collection_name),
        )
        properties.setdefault("description", resource_description(model, controller))

        api_class_name = f"{model.__name__}_API"  # name for dynamically generated classes
        api_class = api_decorator(type(api_class_name, (controller,), properties))

        # reflect the schema when exposing the resource, configuration errors show up at startup
        schema = api_class.resource_schema
        api_class.argument_names.validate(schema.keys())

        view = api_class.as_view(api_class_name)
        url = get_config("RESOURCE_URL_FMT").format(url_prefix, collection_name)
        aggrest.log.info(f"Exposing {collection_name} on {url}, endpoint: {endpoint}")
        self.add_resource(view, url, endpoint, HTTP_METHODS, defaults={"action": INDEX})

        url = get_config("INSTANCE_URL_FMT").format(url_prefix, collection_name)
        aggrest.log.info(f"Exposing {collection_name} instances on {url}, endpoint: {api_class.instance_endpoint}")
        self.add_resource(view, url, api_class.instance_endpoint, HTTP_METHODS, defaults={"action": INDEX})

        for action_name, method in get_actions(api_class).items():
            if uri_action(action_name) == INDEX or action_name == OPTIONS:
                continue
            url = get_config("ACTION_URL_FMT").format(url_prefix, collection_name, action_name)
            action_endpoint = f"{endpoint}.{action_name}"
            aggrest.log.info(f"Exposing action {api_class_name}.{action_name} on {url}, endpoint: {action_endpoint}")
            self.add_resource(view, url, action_endpoint, get_http_methods(method) + [OPTIONS.upper()], defaults={"action": action_name})

        self.resources[collection_name] = api_class
        return api_class

    def expose_entry(self) -> None:
        """
        Expose the entry point discovery on {prefix}/ and {prefix}/discover/
        """
        entry_class = api_decorator(type("Entry_API", (EntryController,), {"api": self}))
        view = entry_class.as_view("Entry_API")
        entry_url = get_config("ENTRY_URL_FMT").format(self.prefix)
        endpoint = get_config("ENDPOINT_FMT").format(self.prefix, "entry")
        aggrest.log.info(f"Exposing entry points on {entry_url}, endpoint: {endpoint}")
        self.add_resource(view, entry_url, endpoint, ["GET"])
        self.add_resource(view, f"{entry_url}discover/", f"{endpoint}.discover", ["GET"], defaults={"action": "discover"})

    def add_resource(self, view: Callable, url: str, endpoint: str, methods: List[str], defaults: Optional[Dict] = None) -> None:
        """
        :param view: view function
        :param url: url rule
        :param endpoint: endpoint name
        :param methods: HTTP methods
        :param defaults: url rule defaults passed to the view
        """
        if not url.startswith("/"):  # pragma: no cover
            raise SystemValidationError("paths must start with a /")
        self.app.add_url_rule(
            url,
            endpoint=endpoint,
            view_func=view,
            methods=methods,
            defaults=defaults,
            provide_automatic_options=OPTIONS.upper() not in methods,
        )


def resource_description(model, controller: Type[RestController]) -> str:
    """
    :return: the docstring of the controller subclass, or of the model
    """
    doc = controller.__doc__ if controller is not RestController else None
    return inspect.cleandoc(doc or model.__doc__ or "")


def api_decorator(cls):
    """Decorate the dispatch_request of the generated view class
    - translate the exceptions to the error envelope
    - apply the custom decorators

    :param cls: View class
    :return: decorated class
    """
    decorated_method = http_method_decorator(cls.dispatch_request)
    # The user can add custom decorators
    # Apply the custom decorators, specified as class variable list
    for custom_decorator in getattr(cls, "custom_decorators", []):
        decorated_method = custom_decorator(decorated_method)
    cls.dispatch_request = decorated_method
    return cls


def http_method_decorator(fun: Callable) -> Callable:
    """Decorator for the view dispatching
    - commit the database
    - convert all exceptions to a JSON serializable error envelope

    This method will be called for all requests
    :param fun:
    :return: wrapped fun
    """

    @wraps(fun)
    def method_wrapper(*args, **kwargs):
        """Wrap the method and perform error handling
        :param *args:
        :param **kwargs:
        :return: result of the wrapped method
        """
        api_exception = None
        status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
        message = ""
        headers = {}
        try:
            result = fun(*args, **kwargs)
            aggrest.DB.session.commit()
            return result

        except werkzeug.exceptions.NotFound as exc:
            # this also catches aggrest.errors.NotFoundError
            status_code = HTTPStatus.NOT_FOUND.value
            api_exception = exc
            message = HTTPStatus.NOT_FOUND.description

        except ApiError as exc:
            if exc.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
                aggrest.log.exception(exc)
            api_exception = exc

        except werkzeug.exceptions.HTTPException as exc:
            status_code = exc.code
            message = exc.description
            headers = dict(exc.get_headers())
            aggrest.log.warning(message)

        except Exception as exc:
            aggrest.log.exception(exc)
            api_exception = GenericError(exc)

        aggrest.DB.session.rollback()
        status_code = getattr(api_exception, "status_code", status_code)
        api_code = getattr(api_exception, "api_code", None) or status_code
        error_object = {
            "code": api_code,
            "message": getattr(api_exception, "message", None) or message,
            "reference": getattr(api_exception, "reference", None) or reference_code(),
        }
        errors = getattr(api_exception, "errors", None)
        if errors is not None:
            error_object["errors"] = errors
        headers.update(getattr(api_exception, "headers", None) or {})
        headers.pop("Content-Type", None)

        response = current_app.json.response(error_object)
        response.status_code = status_code
        response.headers["Content-Security-Policy"] = get_config("CONTENT_SECURITY_POLICY")
        for name, value in headers.items():
            response.headers[name] = value
        return response

    return method_wrapper
