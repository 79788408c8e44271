import pytest
from werkzeug.exceptions import MethodNotAllowed

from aggrest import RestController, resource_action
from aggrest.actions import (
    get_actions,
    get_doc,
    get_http_methods,
    is_action,
    parse_object_doc,
    resolve_action,
    uri_action,
)


@pytest.mark.parametrize(
    "action, http_method, has_identifier, expected",
    [
        ("index", "GET", False, "list"),
        ("index", "GET", True, "show"),
        ("index", "head", True, "show"),
        ("index", "POST", False, "create"),
        ("index", "POST", True, "create"),
        ("index", "PUT", True, "update"),
        ("index", "PATCH", True, "update"),
        ("index", "DELETE", True, "remove"),
        ("index", "OPTIONS", True, "options"),
        ("search", "OPTIONS", False, "options"),
        ("search", "GET", False, "search"),
        ("describe", "GET", False, "describe"),
    ],
)
def test_resolve_action(action: str, http_method: str, has_identifier: bool, expected: str) -> None:
    assert resolve_action(action, http_method, has_identifier) == expected


def test_resolve_unsupported_method() -> None:
    with pytest.raises(MethodNotAllowed):
        resolve_action("index", "TRACE", False)


@pytest.mark.parametrize("action, expected", [("show", "index"), ("list", "index"), ("remove", "index"), ("search", "search"), ("describe", "describe")])
def test_uri_action(action: str, expected: str) -> None:
    assert uri_action(action) == expected


def test_parse_object_doc() -> None:
    def documented():
        """
        description: Count the entities
        parameters:
            email: Only count entities with this email address
        ---
        Regular documentation: not part of the action description
        """

    assert parse_object_doc(documented) == {
        "description": "Count the entities",
        "parameters": {"email": "Only count entities with this email address"},
    }


def test_parse_invalid_object_doc() -> None:
    def invalid():
        """
        description: a: b
        """

    assert parse_object_doc(invalid) == {"description": "description: a: b"}


def test_parse_missing_object_doc() -> None:
    def undocumented():
        pass

    def plain():
        """Just text"""

    assert parse_object_doc(undocumented) == {}
    assert parse_object_doc(plain) == {}


def test_resource_action() -> None:
    @resource_action(http_methods=["post", "Put"])
    def archive(self):
        """
        description: Archive the entity
        """

    @resource_action()
    def count(self):
        pass

    def helper(self):
        pass

    assert is_action(archive)
    assert get_http_methods(archive) == ["POST", "PUT"]
    assert get_doc(archive) == {"description": "Archive the entity"}
    assert get_http_methods(count) == ["GET"]
    assert not is_action(helper)
    assert get_http_methods(helper) == ["GET"]
    assert get_doc(helper) == {}


def test_get_actions_order() -> None:
    class ParentController(RestController):
        @resource_action()
        def count(self):
            pass

    class ChildController(ParentController):
        @resource_action(http_methods=["POST"])
        def archive(self):
            pass

        @resource_action()
        def show(self, identifier: str, fields: str = None, embed: str = None):
            pass

        def helper(self):
            pass

    base_actions = list(get_actions(RestController))
    actions = get_actions(ChildController)
    # overridden actions keep their position
    assert list(actions) == base_actions + ["count", "archive"]
    assert actions["show"] is ChildController.show
    assert "helper" not in actions
