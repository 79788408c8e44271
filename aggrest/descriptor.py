"""
Entity descriptors: the metadata the schema reflector needs about a model

A descriptor is derived once per model from the SQLAlchemy mapper:
- columns become scalar properties (foreign key columns are represented by their relationship)
- relationships become entity typed properties, collections are multi valued
- `transient_attr` attributes become transient properties
- `__aggregate_root__ = True` on the model marks an aggregate boundary
"""
import datetime
import decimal
import uuid
from dataclasses import dataclass
from functools import lru_cache
import sqlalchemy
import aggrest
from .resource_type import COLLECTION_TYPE, type_name
from .transient_attr import is_transient_attr
from typing import Any, Optional, Tuple

AGGREGATE_ROOT_ATTR = "__aggregate_root__"

PYTHON_TYPE_NAMES = {
    str: "string",
    int: "integer",
    float: "float",
    decimal.Decimal: "float",
    bool: "boolean",
    datetime.datetime: "DateTime",
    datetime.date: "date",
    datetime.time: "time",
    datetime.timedelta: "interval",
    uuid.UUID: "string",
    bytes: "binary",
    dict: "array",
    list: "array",
}


@dataclass(frozen=True)
class PropertyInfo:
    name: str
    type: str
    element_type: Optional[str] = None
    transient: bool = False
    identity: bool = False
    multi_valued: bool = False
    # the related entity (eg. model class) for entity typed properties
    target: Any = None


@dataclass(frozen=True)
class EntityDescriptor:
    entity: Any
    type_name: str
    properties: Tuple[PropertyInfo, ...]
    aggregate_root: bool = False

    @property
    def identity_properties(self) -> Tuple[PropertyInfo, ...]:
        return tuple(prop for prop in self.properties if prop.identity)

    def get(self, name: str) -> Optional[PropertyInfo]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


def column_type_name(column) -> str:
    """
    :param column: SQLAlchemy column
    :return: property type name
    """
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return type(column.type).__name__
    return PYTHON_TYPE_NAMES.get(python_type, python_type.__name__)


@lru_cache(maxsize=256)
def model_descriptor(model) -> Optional[EntityDescriptor]:
    """
    :param model: SQLAlchemy model class
    :return: EntityDescriptor or None if model isn't mapped
    """
    mapper = sqlalchemy.inspect(model, raiseerr=False)
    if mapper is None or not isinstance(mapper, sqlalchemy.orm.Mapper):
        return None

    properties = []
    for attr in mapper.column_attrs:
        column = attr.columns[0]
        if column.foreign_keys and not column.primary_key:
            continue
        properties.append(PropertyInfo(name=attr.key, type=column_type_name(column), identity=bool(column.primary_key)))

    for rel in mapper.relationships:
        target = rel.mapper.class_
        if rel.uselist:
            properties.append(
                PropertyInfo(name=rel.key, type=COLLECTION_TYPE, element_type=type_name(target), multi_valued=True, target=target)
            )
        else:
            properties.append(PropertyInfo(name=rel.key, type=type_name(target), target=target))

    for key, attr in mapper.all_orm_descriptors.items():
        if is_transient_attr(attr):
            properties.append(PropertyInfo(name=key, type=attr.type, transient=True))

    descriptor = EntityDescriptor(
        entity=model,
        type_name=type_name(model),
        properties=tuple(properties),
        aggregate_root=bool(getattr(model, AGGREGATE_ROOT_ATTR, False)),
    )
    aggrest.log.debug(f"Described {descriptor.type_name}: {[prop.name for prop in properties]}")
    return descriptor
