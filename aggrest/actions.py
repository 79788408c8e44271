#
# Resource actions
#
# All requests to a resource url are dispatched to the "index" action, which is resolved
# to a CRUD action depending on the HTTP method and whether an identifier was given.
# Other actions are exposed on /{resource}/{action}/ and documented with a yaml header:
#
#    @resource_action(http_methods=["GET"])
#    def count(self):
#        """
#        description: Count the resource entities
#        parameters:
#            email: Only count entities with this email address
#        return: The number of entities
#        ---
#        Regular documentation
#        """
#
import inspect
import yaml
from werkzeug.exceptions import MethodNotAllowed
import aggrest
from .errors import SystemValidationError
from typing import Any, Callable, Dict, List, Optional

INDEX = "index"
SHOW = "show"
LIST = "list"
CREATE = "create"
UPDATE = "update"
REMOVE = "remove"
OPTIONS = "options"
DISCOVER = "discover"
# actions that are reached through the resource url instead of /{resource}/{action}
CRUD_ACTIONS = (SHOW, LIST, CREATE, UPDATE, REMOVE)
UNDISCOVERABLE_ACTIONS = (DISCOVER, OPTIONS)

HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
INDEX_ACTIONS = {
    "GET": (SHOW, LIST),
    "HEAD": (SHOW, LIST),
    "POST": (CREATE, CREATE),
    "PUT": (UPDATE, UPDATE),
    "PATCH": (UPDATE, UPDATE),
    "DELETE": (REMOVE, REMOVE),
}

ACTION_DOC = "__action_doc"  # parsed yaml doc attribute name. If this attribute is set
# the method is exposed as resource action
ACTION_HTTP_METHODS = "__action_http_methods"
DOC_DELIMITER = "---"  # used as delimiter between the yaml header and regular documentation


def resolve_action(action: str, http_method: str, has_identifier: bool) -> str:
    """
    :param action: action name from the route, "index" for the resource urls
    :param http_method: request method
    :param has_identifier: whether the url contains a resource identifier
    :return: the action to call
    """
    http_method = http_method.upper()
    if http_method == "OPTIONS":
        return OPTIONS
    if action != INDEX:
        return action
    try:
        with_identifier, without_identifier = INDEX_ACTIONS[http_method]
    except KeyError:
        raise MethodNotAllowed(valid_methods=list(INDEX_ACTIONS))
    return with_identifier if has_identifier else without_identifier


def uri_action(action: str) -> str:
    """
    :param action: action name
    :return: the action name used in the url of the action
    """
    return INDEX if action in CRUD_ACTIONS else action


def parse_object_doc(object: Callable) -> Dict[str, Any]:
    """
    Parse the yaml description from the documented methods
    """
    api_doc = {}
    obj_doc = str(inspect.getdoc(object))
    raw_doc = obj_doc.split(DOC_DELIMITER)[0]
    yaml_doc = None

    try:
        yaml_doc = yaml.safe_load(raw_doc)
    except (SyntaxError, yaml.YAMLError) as exc:
        aggrest.log.error(f"Failed to parse documentation {raw_doc} ({exc})")
        yaml_doc = {"description": raw_doc}
    except Exception:
        raise SystemValidationError("Failed to parse api doc")

    if isinstance(yaml_doc, dict):
        api_doc.update(yaml_doc)

    return api_doc


def resource_action(http_methods: Optional[List[str]] = None) -> Callable:
    """
    Decorator to expose controller methods as resource actions

    :param http_methods: the HTTP methods used to call the action, GET by default
    :return: function
    """
    if http_methods is None:
        http_methods = ["GET"]

    def _documented_action(method):
        """
        add metadata to the method:
            ACTION_DOC: parsed yaml documentation
            ACTION_HTTP_METHODS: the http methods (GET/POST/..) used to call this method
        """
        setattr(method, ACTION_DOC, parse_object_doc(method))
        setattr(method, ACTION_HTTP_METHODS, [http_method.upper() for http_method in http_methods])
        return method

    return _documented_action


def is_action(method) -> bool:
    """
    :param method: controller method
    :return: True or False, whether the method is to be exposed
    """
    return hasattr(method, ACTION_DOC)


def get_doc(method) -> Dict[str, Any]:
    """
    :param method: controller method
    :return: parsed action documentation
    """
    return getattr(method, ACTION_DOC, {})


def get_http_methods(method) -> List[str]:
    """
    :param method: controller method
    :return: list of HTTP methods used to call this method
    """
    return getattr(method, ACTION_HTTP_METHODS, ["GET"])


def get_actions(cls) -> Dict[str, Callable]:
    """
    :param cls: controller class
    :return: action name => method, in definition order
    """
    names = []
    for klass in reversed(cls.__mro__):
        names += [name for name, member in vars(klass).items() if is_action(member) and name not in names]
    return {name: getattr(cls, name) for name in names}
