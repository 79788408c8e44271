"""
Resource schema reflection

The schema of a resource describes the properties of its entity and, recursively, of the
entities inside its aggregate. The walk stops at aggregate boundaries: related aggregate
roots and types already visited on the current path are only referenced by type name.

    {
        "title": {"type": "string", "elementType": None, "transient": False, "identity": False, "multiValued": False},
        "entities": {"type": "Collection", "elementType": "Entity", ..., "multiValued": True, "schema": {...}},
        "other_aggregate": {"type": "AggregateRoot", ..., "schema": "AggregateRoot"},
        "uuid": {"type": "string", ..., "identity": True},
    }
"""
import threading
from dataclasses import dataclass
import aggrest
from .descriptor import EntityDescriptor, model_descriptor
from .errors import CyclicSchemaError
from .resource_type import normalize_type
from typing import Any, Callable, Dict, Hashable, Optional, Set, Union

MAX_REFLECTION_DEPTH = 100
# distinguished path segment that matches the identity of an entity
IDENTITY = "__identity"


@dataclass(frozen=True)
class PropertyDescriptor:
    type: str
    element_type: Optional[str] = None
    transient: bool = False
    identity: bool = False
    multi_valued: bool = False
    # absent, an inline sub schema or the name of the referenced type
    schema: Union[None, Dict[str, "PropertyDescriptor"], str] = None

    @property
    def is_reference(self) -> bool:
        return isinstance(self.schema, str)

    @property
    def is_inline(self) -> bool:
        return isinstance(self.schema, dict)

    def to_dict(self, normalize: bool = False) -> Dict[str, Any]:
        convert = normalize_type if normalize else str
        result = {
            "type": convert(self.type),
            "elementType": convert(self.element_type) if self.element_type is not None else None,
            "transient": self.transient,
            "identity": self.identity,
            "multiValued": self.multi_valued,
        }
        if self.is_reference:
            result["schema"] = convert(self.schema)
        elif self.is_inline:
            result["schema"] = describe_schema(self.schema, normalize)
        return result


ResourceSchema = Dict[str, PropertyDescriptor]
Resolver = Callable[[Any], Optional[EntityDescriptor]]


def reflect_aggregate(entity, identifier_name: str = "uuid", resolve: Resolver = model_descriptor) -> ResourceSchema:
    """
    :param entity: the entity (model class) to reflect
    :param identifier_name: name under which a single identity property is exposed
    :param resolve: returns the EntityDescriptor of an entity
    :return: ResourceSchema
    :raises CyclicSchemaError: when the schema nests deeper than MAX_REFLECTION_DEPTH
    """
    descriptor = resolve(entity)
    if descriptor is None:
        return {}
    return _reflect(descriptor, 0, {descriptor.entity}, identifier_name, resolve)


def _reflect(descriptor: EntityDescriptor, depth: int, visited: Set, identifier_name: str, resolve: Resolver) -> ResourceSchema:
    depth += 1
    if depth >= MAX_REFLECTION_DEPTH:
        raise CyclicSchemaError(descriptor.type_name)

    single_identity = len(descriptor.identity_properties) == 1
    schema = {}
    for prop in descriptor.properties:
        name = identifier_name if prop.identity and single_identity else prop.name
        sub_schema = None
        target = resolve(prop.target) if prop.target is not None else None
        if target is not None:
            if target.entity in visited or target.aggregate_root:
                sub_schema = target.type_name
            else:
                # the visited set only holds the types on the current path
                visited.add(target.entity)
                try:
                    sub_schema = _reflect(target, depth, visited, identifier_name, resolve)
                finally:
                    visited.discard(target.entity)
        schema[name] = PropertyDescriptor(
            type=prop.type,
            element_type=prop.element_type,
            transient=prop.transient,
            identity=prop.identity,
            multi_valued=prop.multi_valued,
            schema=sub_schema,
        )
    return schema


def describe_schema(schema: ResourceSchema, normalize: bool = False) -> Dict[str, Dict[str, Any]]:
    """
    :param schema: ResourceSchema
    :param normalize: normalize the type names
    :return: json serializable schema description
    """
    return {name: prop.to_dict(normalize) for name, prop in schema.items()}


class SchemaCache:
    """
    Process wide cache for derived resource metadata (schemas, default projections).
    The first caller of a key builds the value while holding the lock, later callers
    read it without locking. Cached values must not be mutated.
    """

    def __init__(self) -> None:
        self._entries: Dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, factory: Callable[[], Any]) -> Any:
        try:
            return self._entries[key]
        except KeyError:
            pass
        with self._lock:
            if key not in self._entries:
                aggrest.log.debug(f"Building {key}")
                self._entries[key] = factory()
            return self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def is_in_persistence_schema(path: str, schema: ResourceSchema, only_searchable: bool = False) -> bool:
    """
    Check whether a dot separated property path can be used in a query

    :param path: property path, eg. "entities.title" or "other_aggregate.__identity"
    :param schema: ResourceSchema
    :param only_searchable: only accept string typed, non identity leafs
    :return: True if the path ends in a persisted, single valued property
    """
    if not path:
        return False
    parts = path.split(".")
    current = schema
    for position, part in enumerate(parts[:-1]):
        prop = current.get(part)
        if prop is None or prop.transient:
            return False
        if prop.is_inline:
            current = prop.schema
        elif not (prop.is_reference and parts[position + 1] == IDENTITY):
            # a reference can only be followed by its identity
            return False
    last = parts[-1]
    if last == IDENTITY:
        return not only_searchable
    prop = current.get(last)
    if prop is None or prop.transient or prop.is_inline:
        return False
    if only_searchable and (prop.type != "string" or prop.identity):
        return False
    return not prop.multi_valued


def persistence_property_paths(schema: ResourceSchema, only_searchable: bool = False):
    """
    :param schema: ResourceSchema
    :param only_searchable: only return string typed, non identity leafs
    :return: list of property paths inside the persisted part of the schema
    """
    paths = []
    for name, prop in schema.items():
        if prop.transient:
            continue
        if prop.is_inline:
            paths.extend(f"{name}.{sub_path}" for sub_path in persistence_property_paths(prop.schema, only_searchable))
        elif not prop.multi_valued:
            if only_searchable and (prop.type != "string" or prop.identity):
                continue
            paths.append(name)
    return paths
