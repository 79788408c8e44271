"""
Request argument naming per resource
"""
from dataclasses import dataclass, fields
import aggrest
from .errors import SystemValidationError
from typing import Iterable


@dataclass(frozen=True)
class ArgumentNames:
    """
    Names of the request arguments a resource understands.
    Property filters share the query string with these arguments, so a resource
    whose entities have a property called eg. "sort" should rename the argument.

    Action parameters named after a field are bound to the request argument with the configured name,
    eg. the `last_id` parameter of the list action is read from `lastId[]`.
    """

    embed: str = "embed"
    fields: str = "fields"
    search: str = "search"
    sort: str = "sort"
    limit: str = "limit"
    offset: str = "offset"
    resource: str = "resource"
    resources: str = "resources"
    query: str = "query"
    cursor: str = "cursor"
    last: str = "last"
    last_id: str = "lastId"
    direction: str = "dir"

    def get(self, parameter: str) -> str:
        """
        :param parameter: action parameter name
        :return: the request argument name of the parameter
        """
        return getattr(self, parameter) if parameter in self.names() else parameter

    @classmethod
    def names(cls):
        return [field.name for field in fields(cls)]

    def validate(self, property_names: Iterable[str] = ()) -> "ArgumentNames":
        """
        Check the argument names when a resource is exposed
        :param property_names: top level property names of the resource schema
        :return: self
        """
        names = [getattr(self, field.name) for field in fields(self)]
        for field in fields(self):
            value = getattr(self, field.name)
            if not isinstance(value, str) or not value:
                raise SystemValidationError(f"Invalid name for the {field.name} argument: {value!r}")
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise SystemValidationError(f"Duplicate argument names: {', '.join(duplicates)}")
        for name in set(names).intersection(property_names):
            aggrest.log.warning(f'Argument "{name}" shadows the property filter with the same name')
        return self
