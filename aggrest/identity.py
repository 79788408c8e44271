"""
Resource identifiers

The identifier of a resource is derived from the primary key of its model.
In case of a composite primary key, the values are joined with the delimiter
eg. pkA = 1, pkB = 2, delimiter = '_' => identifier = '1_2'
"""
from functools import lru_cache
import sqlalchemy
from .attr_parse import parse_value
from .config import get_config
from .errors import BadRequestError, NotFoundError
from typing import Any, Dict, List, Mapping, Optional


class ResourceIdentity:
    """
    Maps between the primary key of a model and the identifier used in urls and payloads
    """

    def __init__(self, model, delimiter: Optional[str] = None) -> None:
        mapper = sqlalchemy.inspect(model)
        self.model = model
        self.columns = list(mapper.primary_key)
        self.names = [mapper.get_property_by_column(column).key for column in self.columns]
        self._delimiter = delimiter

    @classmethod
    @lru_cache(maxsize=256)
    def for_model(cls, model) -> "ResourceIdentity":
        return cls(model)

    @property
    def delimiter(self) -> str:
        """
        :return: the delimiter given to the constructor, IDENTITY_DELIMITER of the current app otherwise
        """
        return self._delimiter or get_config("IDENTITY_DELIMITER")

    @property
    def is_compound(self) -> bool:
        return len(self.columns) > 1

    @property
    def attributes(self) -> List[Any]:
        """
        :return: the instrumented primary key attributes, usable in queries
        """
        return [getattr(self.model, name) for name in self.names]

    def values(self, instance) -> List[Any]:
        return [getattr(instance, name) for name in self.names]

    def get_id(self, instance) -> Any:
        """
        :param instance: model instance
        :return: the identifier derived from the pks of the instance
        """
        values = self.values(instance)
        if self.is_compound:
            return self.delimiter.join(str(value) for value in values)
        return values[0]

    def get_pks(self, identifier) -> Dict[str, Any]:
        """
        Convert an identifier string to a pk dict
        :param identifier: identifier from the url or payload
        :return: primary key dict
        :raises NotFoundError: when the identifier can't be a valid primary key
        """
        if isinstance(identifier, Mapping):
            values = [identifier.get(name) for name in self.names]
        elif self.is_compound:
            values = str(identifier).split(self.delimiter)
        else:
            values = [identifier]
        if len(values) != len(self.columns) or any(value is None for value in values):
            raise NotFoundError(f"Invalid identifier: '{identifier}'.")
        result = {}
        for name, column, value in zip(self.names, self.columns, values):
            try:
                result[name] = parse_value(column, value)
            except (ValueError, TypeError):
                raise NotFoundError(f"Invalid identifier: '{identifier}'.")
        return result

    def match(self, last_identity) -> Dict[str, Any]:
        """
        Map an identity given as request argument onto the identity properties
        :param last_identity: scalar, list (positional) or mapping
        :return: primary key dict
        """
        if isinstance(last_identity, Mapping):
            values = [last_identity.get(name) for name in self.names]
        elif isinstance(last_identity, (list, tuple)):
            if not self.is_compound:
                values = list(last_identity[:1])
            else:
                values = list(last_identity)
        elif self.is_compound:
            raise BadRequestError(f"The resource {self.model.__name__} has a compound identity, but the given identity is a scalar")
        else:
            values = [last_identity]
        if len(values) != len(self.columns) or any(value is None for value in values):
            raise BadRequestError(f"The identity {last_identity} doesn't match the identity of {self.model.__name__} ({', '.join(self.names)})")
        try:
            return {name: parse_value(column, value) for name, column, value in zip(self.names, self.columns, values)}
        except (ValueError, TypeError):
            raise BadRequestError(f"Invalid identity: {last_identity}")
