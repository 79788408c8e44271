"""
RestController: the actions of one exposed resource

A controller class is created for every exposed model by AggrestAPI.expose_object, eg.

    class AggregateController(RestController):
        '''Aggregates of the shop'''
        render_fields = ["title", "email"]
        default_filter = {"email": "%@example.com"}

    api.expose_object(AggregateRoot, controller=AggregateController, collection_name="aggregate")

All requests to /aggregate/ and /aggregate/{identifier}/ are dispatched to the "index" action,
which is resolved to show, list, create, update or remove. The other actions are exposed on
/aggregate/{action}/.
"""
import datetime
import inspect
from dataclasses import replace
from http import HTTPStatus
from urllib.parse import unquote
from flask import current_app, request, url_for
from flask.views import View
import aggrest
from .actions import (
    CREATE,
    INDEX,
    OPTIONS,
    UNDISCOVERABLE_ACTIONS,
    get_actions,
    get_doc,
    get_http_methods,
    resolve_action,
    resource_action,
    uri_action,
)
from .arguments import ArgumentNames
from .config import get_config
from .descriptor import PYTHON_TYPE_NAMES
from .errors import BadRequestError, ConflictError, NotFoundError, ValidationError
from .identity import ResourceIdentity
from .mapping import PropertyMapper
from .projection import ProjectionConfig, apply_embed_overrides, apply_field_overrides, build_default_projection
from .query import ASC, DESC, DIRECTIONS, parse_orderings, tokenize_search
from .repository import ResourceRepository
from .resource_type import normalize_type, type_name
from .schema import (
    IDENTITY,
    SchemaCache,
    describe_schema,
    is_in_persistence_schema,
    persistence_property_paths,
    reflect_aggregate,
)
from .util import classproperty
from .view import JsonView
from werkzeug.exceptions import MethodNotAllowed
from typing import Any, Dict, List, Optional

PAYLOAD_METHODS = ("POST", "PUT", "PATCH")
# actions that need the identifier of an existing resource
INSTANCE_ACTIONS = ("show", "update", "remove")


class RestController(View):
    """
    Generic resource controller, the class attributes configure the exposed resource
    """

    model = None
    collection_name: str = None
    # key under which the identifier is rendered and queried, IDENTIFIER_NAME by default
    identifier_name: Optional[str] = None
    # unique, steadily increasing property used for cursor pagination, CURSOR_PROPERTY by default
    cursor_property: Optional[str] = None
    # top level properties rendered by default, all when None
    render_fields: Optional[List[str]] = None
    # property filters applied to list, filter and search
    default_filter: Dict[str, Any] = {}
    argument_names = ArgumentNames()
    schema_cache = SchemaCache()
    description = ""

    # set by AggrestAPI.expose_object
    api = None
    url_prefix = ""
    endpoint: str = None
    instance_endpoint: str = None

    provide_automatic_options = False

    def __init__(self) -> None:
        self.repository = ResourceRepository(self.model, self.resource_identifier_name)
        self.identity = ResourceIdentity.for_model(self.model)
        self.action_name = None

    @classproperty
    def resource_identifier_name(cls) -> str:
        return cls.identifier_name or get_config("IDENTIFIER_NAME")

    @classproperty
    def resource_type(cls) -> str:
        return type_name(cls.model)

    @classproperty
    def resource_schema(cls):
        """
        :return: ResourceSchema of the model, reflected once per process
        """
        key = (cls.resource_type, cls.resource_identifier_name, "schema")
        return cls.schema_cache.get(key, lambda: reflect_aggregate(cls.model, cls.resource_identifier_name))

    @classproperty
    def default_projection(cls) -> ProjectionConfig:
        key = (cls.resource_type, cls.resource_identifier_name, "projection")
        return cls.schema_cache.get(key, lambda: build_default_projection(cls.resource_schema, cls.resource_identifier_name))

    #
    # Dispatching
    #
    def dispatch_request(self, action: str = INDEX, identifier: str = None):
        """
        :param action: action name from the url rule defaults
        :param identifier: resource identifier from the url
        :return: response
        """
        action_name = resolve_action(action, request.method, identifier is not None)
        method = get_actions(type(self)).get(action_name)
        if method is None:
            raise NotFoundError(f'No action "{action_name}" for {self.collection_name}')
        http_methods = get_http_methods(method)
        if "GET" in http_methods:
            http_methods = http_methods + ["HEAD"]
        if action_name != OPTIONS and request.method not in http_methods:
            raise MethodNotAllowed(valid_methods=http_methods)
        if action_name in INSTANCE_ACTIONS and identifier is None:
            raise BadRequestError("No resource specified")
        self.action_name = action_name
        kwargs = self.bind_arguments(action_name, identifier)
        aggrest.log.debug(f"{type(self).__name__}.{action_name}({kwargs})")
        return getattr(self, action_name)(**kwargs)

    def bind_arguments(self, action_name: str, identifier: Optional[str]) -> Dict[str, Any]:
        """
        Map the request arguments onto the parameters of the action method.
        The arguments are taken from the json payload (POST, PUT, PATCH) or the query string.

        :param action_name: action method name
        :param identifier: resource identifier from the url
        :return: keyword arguments for the action
        """
        payload = request.get_payload() if request.method in PAYLOAD_METHODS else {}
        kwargs = {}
        for name, param in inspect.signature(getattr(self, action_name)).parameters.items():
            if name == "identifier":
                kwargs[name] = identifier
                continue
            arg_name = self.argument_names.get(name)
            value = self._get_argument(arg_name, param.annotation, payload)
            if value is None:
                if param.default is param.empty:
                    raise BadRequestError(f'Missing argument "{arg_name}"')
                continue
            kwargs[name] = value
        return kwargs

    @staticmethod
    def _get_argument(arg_name: str, annotation, payload: Dict[str, Any]):
        if arg_name in payload:
            value = payload[arg_name]
        elif annotation is list:
            value = request.get_list_arg(arg_name)
        else:
            value = request.args.get(arg_name)
        if value is None:
            return None
        if annotation is int:
            try:
                return int(value)
            except (TypeError, ValueError):
                raise BadRequestError(f'Invalid value for "{arg_name}": {value}')
        if annotation is list and not isinstance(value, list):
            return [value]
        if annotation is dict and not isinstance(value, dict):
            raise BadRequestError(f'Invalid resource "{arg_name}": {value}')
        return value

    def transform_error_object(self, error_object: Dict[str, Any]) -> Dict[str, Any]:
        """
        Override this method to transform an error object (eg. translate messages) before it is returned
        :param error_object: {"message": ..., "errors": [{"code": ..., "field": ..., "message": ...}]}
        :return: error object
        """
        return error_object

    #
    # Helpers
    #
    def make_response(self, data: Any = None, status: int = HTTPStatus.OK, headers: Optional[Dict[str, str]] = None):
        """
        :param data: json serializable body, the body is empty when None
        :param status: HTTP status
        :param headers: additional headers
        :return: response
        """
        if data is None:
            response = current_app.response_class(status=status)
        else:
            response = current_app.json.response(data)
            response.status_code = status
        response.headers["Content-Security-Policy"] = get_config("CONTENT_SECURITY_POLICY")
        for name, value in (headers or {}).items():
            response.headers[name] = value
        return response

    def projection(self, fields: str = None, embed: str = None) -> ProjectionConfig:
        """
        :param fields: comma separated properties to include, "!" prefixed to exclude
        :param embed: comma separated property paths to embed
        :return: ProjectionConfig of the rendered resources
        """
        config = self.default_projection
        if self.render_fields is not None:
            config = replace(config, only=list(self.render_fields))
        if embed:
            config = apply_embed_overrides(config, embed)
        if fields:
            config = apply_field_overrides(config, fields)
        return config

    def render(self, instance, fields: str = None, embed: str = None):
        return JsonView(self.resource_identifier_name).render(instance, self.projection(fields, embed))

    def render_collection(self, instances, fields: str = None, embed: str = None):
        config = ProjectionConfig(descend_all=self.projection(fields, embed))
        return JsonView(self.resource_identifier_name).render(instances, config)

    def get_resource(self, identifier: str):
        """
        :param identifier: resource identifier
        :return: the resource entity
        :raises NotFoundError: when there is no entity with this identifier
        """
        instance = self.repository.get(identifier)
        if instance is None:
            raise NotFoundError(f"{self.collection_name} {identifier} not found")
        return instance

    def check_field_errors(self, mapper: PropertyMapper) -> None:
        if not mapper.errors:
            return
        error_object = {
            "message": f"Validation failed while trying to call {type(self).__name__}.{self.action_name}().",
            "errors": mapper.errors,
        }
        error_object = self.transform_error_object(error_object)
        raise ValidationError(error_object.get("message", ""), error_object.get("errors"))

    def property_path(self, name: str) -> str:
        """
        :param name: property path from the request, the identifier name may be used as last segment
        :return: property path with the identifier name replaced by __identity
        """
        *parts, last = name.split(".")
        if last == self.resource_identifier_name:
            last = IDENTITY
        return ".".join(parts + [last])

    def property_filters(self) -> Dict[str, Any]:
        """
        :return: the default filter, updated with the request arguments that are persisted properties
        """
        schema = self.resource_schema
        filters = {self.property_path(path): value for path, value in self.default_filter.items()}
        for name, value in request.property_filters.items():
            path = self.property_path(name)
            if is_in_persistence_schema(path, schema):
                filters[path] = value
        return filters

    def property_orderings(self, sort: Optional[str]) -> Dict[str, str]:
        """
        :param sort: comma separated property paths, "-" prefixed for descending order
        :return: property path => ASC/DESC, unknown properties are ignored
        """
        schema = self.resource_schema
        orderings = {}
        for path, direction in parse_orderings(sort).items():
            path = self.property_path(path)
            if is_in_persistence_schema(path, schema):
                orderings[path] = direction
        return orderings

    def search_fields(self, search: Optional[str]) -> List[str]:
        """
        :param search: comma separated property paths to search in, all searchable paths when None
        :return: searchable property paths
        """
        schema = self.resource_schema
        if search is None:
            return persistence_property_paths(schema, only_searchable=True)
        paths = [self.property_path(path.strip()) for path in search.split(",") if path.strip()]
        return [path for path in paths if is_in_persistence_schema(path, schema, only_searchable=True)]

    def cursor_name(self, cursor: Optional[str]) -> str:
        cursor_property = cursor or self.cursor_property or get_config("CURSOR_PROPERTY")
        if cursor_property == self.resource_identifier_name:
            return IDENTITY
        return cursor_property

    def add_pagination_links(self, response, values: List, cursor: Optional[str], direction: str, limit: Optional[int], last_id) -> None:
        """
        Add the "next" and "prev" Link headers, the links keep the other query arguments
        """
        if not values:
            return
        names = self.argument_names
        paging_args = {names.cursor, names.last, names.last_id, f"{names.last_id}[]", names.direction, names.limit}
        query_args = {name: values_ for name, values_ in request.args.lists() if name not in paging_args}

        def link(instance, link_direction):
            cursor_value = self.repository.cursor_value(instance, self.cursor_name(cursor))
            if isinstance(cursor_value, (datetime.datetime, datetime.date, datetime.time)):
                cursor_value = cursor_value.isoformat()
            args = dict(query_args)
            args.update({names.cursor: cursor, names.limit: limit, names.direction: link_direction, names.last: cursor_value})
            if last_id is not None:
                args[f"{names.last_id}[]"] = [str(value) for value in self.identity.values(instance)]
            args = {name: value for name, value in args.items() if value is not None}
            return url_for(self.endpoint, _external=True, **args)

        if limit is None or len(values) >= limit:
            next_uri = link(values[-1], None if direction == ASC else direction)
            response.headers.add("Link", f'<{next_uri}>; rel="next"')
        prev_uri = link(values[0], DESC if direction == ASC else None)
        response.headers.add("Link", f'<{prev_uri}>; rel="prev"')

    def describe_action(self, action_name: str) -> Dict[str, Any]:
        """
        :param action_name: action method name
        :return: uri, parameters, description and return description of the action
        """
        method = getattr(self, action_name)
        doc = get_doc(method)
        param_docs = doc.get("parameters") or {}
        normalize = normalize_type if get_config("NORMALIZE_RESOURCE_TYPES") else str
        signature = inspect.signature(method).parameters

        if action_name in INSTANCE_ACTIONS:
            uri = url_for(self.instance_endpoint, identifier="{identifier}", _external=get_config("USE_ABSOLUTE_URIS"))
        elif action_name == CREATE:
            uri = url_for(self.instance_endpoint, identifier="({identifier})", _external=get_config("USE_ABSOLUTE_URIS"))
        elif uri_action(action_name) == INDEX:
            uri = url_for(self.endpoint, _external=get_config("USE_ABSOLUTE_URIS"))
        else:
            uri = url_for(f"{self.endpoint}.{action_name}", _external=get_config("USE_ABSOLUTE_URIS"))

        parameters = {}
        for name, param in signature.items():
            if name == "identifier":
                if "resource" in signature:
                    continue
                name = "resource"
            if name == "resource":
                param_type = normalize(self.resource_type)
            elif name == "resources":
                param_type = f"array<{normalize(self.resource_type)}>"
            else:
                param_type = PYTHON_TYPE_NAMES.get(param.annotation, "string")
            parameters[self.argument_names.get(name)] = {
                "required": param.default is param.empty,
                "type": param_type,
                "default": None if param.default is param.empty else param.default,
                "description": param_docs.get(name, ""),
            }

        return {
            "uri": unquote(uri),
            "parameters": parameters,
            "description": doc.get("description", ""),
            "return": doc.get("return", ""),
        }

    #
    # Actions
    #
    @resource_action(http_methods=["OPTIONS"])
    def options(self):
        """
        description: CORS preflight request
        return: An empty body
        """
        headers = {
            "Access-Control-Allow-Methods": get_config("CORS_ALLOW_METHODS"),
            "Access-Control-Max-Age": str(get_config("CORS_MAX_AGE")),
        }
        requested_headers = request.headers.get("Access-Control-Request-Headers")
        if requested_headers:
            headers["Access-Control-Allow-Headers"] = requested_headers
        return self.make_response(headers=headers)

    @resource_action(http_methods=["GET"])
    def describe(self):
        """
        description: Get a description of the resource entity and its properties
        return: An object of property names and their descriptions
        """
        return self.make_response(describe_schema(self.resource_schema, bool(get_config("NORMALIZE_RESOURCE_TYPES"))))

    @resource_action(http_methods=["GET"])
    def discover(self):
        """
        description: Get a description of all action entrypoints of this resource
        return: An object of action names and their uri, parameters and description
        """
        manifest = {}
        for action_name in get_actions(type(self)):
            if action_name in UNDISCOVERABLE_ACTIONS:
                continue
            manifest[action_name] = self.describe_action(action_name)
        return self.make_response(manifest)

    @resource_action(http_methods=["GET", "HEAD"])
    def show(self, identifier: str, fields: str = None, embed: str = None):
        """
        description: Get one single resource entity
        parameters:
            resource: The identifier of the resource entity
            fields: A comma separated list of resource properties to include in the results
            embed: A comma separated list of related resource properties to embed into the results
        return: The resource entity
        ---
        GET /{resource}/{identifier}/
        """
        instance = self.get_resource(identifier)
        return self.make_response(self.render(instance, fields, embed))

    @resource_action(http_methods=["POST"])
    def create(self, identifier: str = None, resource: dict = None, resources: list = None):
        """
        description: Create a new resource entity, or multiple entities at once
        parameters:
            resource: The resource entity to create
            resources: An array of resource entities to create
        return: The created entity together with a Location header pointing to the new resource
        ---
        The identifier can be supplied with the request:
            POST /{resource}/{identifier}/ {"resource": {"title": "Foo"}}
        This makes create requests idempotent.
        """
        if resource is None and resources is None:
            raise BadRequestError("No resource specified")
        schema = self.resource_schema
        mapper = PropertyMapper(self.resource_identifier_name)

        if resource is not None:
            instance = mapper.create(self.model, schema, resource, identifier)
            self.check_field_errors(mapper)
            if not self.repository.is_new(instance):
                raise ConflictError(self.identity.get_id(instance))
            self.repository.add(instance)
            resource_id = self.identity.get_id(instance)
            headers = {
                "Location": url_for(self.instance_endpoint, identifier=resource_id, _external=True),
                "X-Resource-Identifier": str(resource_id),
            }
            return self.make_response(self.render(instance), HTTPStatus.CREATED, headers)

        instances = []
        for position, data in enumerate(resources):
            instances.append(mapper.create(self.model, schema, data, path=f"{self.argument_names.resources}.{position}"))
        self.check_field_errors(mapper)
        for instance in instances:
            if not self.repository.is_new(instance):
                raise ConflictError(self.identity.get_id(instance))
            self.repository.add(instance)
        headers = {"Location": url_for(self.endpoint, _external=True)}
        return self.make_response(self.render_collection(instances), HTTPStatus.CREATED, headers)

    @resource_action(http_methods=["PUT", "PATCH"])
    def update(self, identifier: str, resource: dict):
        """
        description: Update an existing resource entity
        parameters:
            resource: The properties to update
        return: An empty body
        ---
        PUT|PATCH /{resource}/{identifier}/ {"resource": {"title": "Bar"}}
        """
        instance = self.get_resource(identifier)
        mapper = PropertyMapper(self.resource_identifier_name)
        mapper.update(instance, self.resource_schema, resource)
        self.check_field_errors(mapper)
        self.repository.update(instance)
        return self.make_response()

    @resource_action(http_methods=["DELETE"])
    def remove(self, identifier: str):
        """
        description: Delete an existing resource entity
        parameters:
            resource: The identifier of the resource entity
        return: An empty body with status 204
        """
        instance = self.get_resource(identifier)
        self.repository.remove(instance)
        return self.make_response(status=HTTPStatus.NO_CONTENT)

    # list and filter shadow the builtins in the class body, they're defined after the other actions
    @resource_action(http_methods=["GET", "HEAD"])
    def list(
        self,
        cursor: str = None,
        last: str = None,
        last_id: list = None,
        direction: str = ASC,
        limit: int = None,
        fields: str = None,
        embed: str = None,
    ):
        """
        description: Get a possibly paginated list of resource entities
        parameters:
            cursor: The property to use as pagination cursor, the results are ordered by this property
            last: The cursor value of the last visible item
            last_id: The identity of the last visible item. Only needed if the cursor property is not unique
            direction: The direction to paginate, ASC for forward, DESC for backward from last
            limit: The number of items to load
            fields: A comma separated list of resource properties to include in the results
            embed: A comma separated list of related resource properties to embed into the results
        return: An array of resource entities matching the given cursor pagination
        ---
        GET /{resource}/?limit=50&last={lastSeenCursor}
            returns up to 50 resources after the entity with the cursor value {lastSeenCursor}
        GET /{resource}/?limit=20&last={lastSeenCursor}&lastId[]={identifier}&dir=DESC
            returns up to 20 resources before the entity with identity {identifier}

        The pagination is stable when entities are added or removed between requests.
        A DESC page requested with lastId is returned in ascending order and its "next" link starts
        from the last row of that page, so following it repeats rows. To continue backwards request
        dir=DESC again with the first row of the page as last and lastId.
        """
        direction = direction.upper()
        if direction not in DIRECTIONS:
            raise BadRequestError(f'Invalid direction "{direction}"')
        values = self.repository.find_by_cursor_pagination(
            self.cursor_name(cursor), limit, direction, last, last_id, self.property_filters()
        )
        response = self.make_response(self.render_collection(values, fields, embed))
        self.add_pagination_links(response, values, cursor, direction, limit, last_id)
        return response

    @resource_action(http_methods=["GET"])
    def search(
        self,
        query: str,
        search: str = None,
        sort: str = None,
        limit: int = None,
        offset: int = None,
        fields: str = None,
        embed: str = None,
    ):
        """
        description: Search entities by a search query with simplified boolean logic
        parameters:
            query: A search query that will be tokenized and searched for. Terms prefixed with "+" are required, "-" are excluded
            search: A comma separated list of resource properties to search in
            sort: A comma separated list of resource properties to sort by, prefixed with "-" to denote descending order
            limit: A number limiting the amount of resources returned at once
            offset: A number describing how many resources to skip at the start from the results
            fields: A comma separated list of resource properties to include in the results
            embed: A comma separated list of related resource properties to embed into the results
        return: An object containing the tokenized terms, the searched fields and an array of matching resource entities
        """
        terms = tokenize_search(query)
        search_fields = self.search_fields(search)
        default_filter = {self.property_path(path): value for path, value in self.default_filter.items()}
        values = self.repository.find_by_search(terms, search_fields, self.property_orderings(sort), limit, offset, default_filter)
        result = {
            "terms": terms.to_dict(),
            "fields": search_fields,
            "results": self.render_collection(values, fields, embed),
        }
        return self.make_response(result)

    @resource_action(http_methods=["GET"])
    def filter(self, sort: str = None, limit: int = None, offset: int = None, fields: str = None, embed: str = None):
        """
        description: Find entities by property filters, possibly ordered by one or more properties
        parameters:
            sort: A comma separated list of resource properties to sort by, prefixed with "-" to denote descending order
            limit: A number limiting the amount of resources returned at once
            offset: A number describing how many resources to skip at the start from the results
            fields: A comma separated list of resource properties to include in the results
            embed: A comma separated list of related resource properties to embed into the results
        return: An array of resource entities matching the given property filters and sorting
        ---
        GET /{resource}/filter/?title=F%&sort=-position&limit=40&offset=120
        """
        values = self.repository.find_by_filter(self.property_filters(), self.property_orderings(sort), limit, offset)
        return self.make_response(self.render_collection(values, fields, embed))
