from typing import Optional

import pytest

from aggrest import CyclicSchemaError, SchemaCache
from aggrest.descriptor import EntityDescriptor, PropertyInfo, model_descriptor
from aggrest.resource_type import type_name
from aggrest.schema import (
    IDENTITY,
    MAX_REFLECTION_DEPTH,
    describe_schema,
    is_in_persistence_schema,
    persistence_property_paths,
    reflect_aggregate,
)
from models import AggregateRoot, Entity


def node_resolver(length: Optional[int] = None):
    """
    :return: resolver for a chain of distinct node types 0 -> 1 -> 2 ..., endless when length is None
    """

    def resolve(node: int) -> EntityDescriptor:
        next_node = node + 1 if length is None or node + 1 < length else None
        properties = [PropertyInfo("id", "integer", identity=True)]
        if next_node is not None:
            properties.append(PropertyInfo("next", f"Node{next_node}", target=next_node))
        return EntityDescriptor(entity=node, type_name=f"Node{node}", properties=tuple(properties))

    return resolve


def test_model_descriptor() -> None:
    descriptor = model_descriptor(AggregateRoot)
    assert descriptor.type_name == type_name(AggregateRoot)
    assert descriptor.aggregate_root is True
    assert [prop.name for prop in descriptor.properties] == ["id", "title", "email", "position", "other_aggregate", "entities", "label"]
    assert [prop.name for prop in descriptor.identity_properties] == ["id"]
    # foreign keys are represented by their relationship
    assert descriptor.get("other_aggregate_id") is None
    assert descriptor.get("entities").multi_valued is True
    assert descriptor.get("entities").element_type == type_name(Entity)
    assert descriptor.get("label").transient is True
    assert model_descriptor(Entity).aggregate_root is False
    assert model_descriptor(object) is None


def test_aggregate_boundaries() -> None:
    schema = reflect_aggregate(AggregateRoot)

    assert list(schema) == ["uuid", "title", "email", "position", "other_aggregate", "entities", "label"]
    assert schema["uuid"].identity is True
    # other aggregate roots are referenced by type name
    assert schema["other_aggregate"].schema == type_name(AggregateRoot)
    assert schema["other_aggregate"].is_reference
    # entities are part of the aggregate
    assert schema["entities"].is_inline
    assert schema["entities"].multi_valued
    entity_schema = schema["entities"].schema
    assert list(entity_schema) == ["uuid", "title", "entities"]
    # a type already on the path is referenced
    assert entity_schema["entities"].schema == type_name(Entity)


def test_identifier_alias() -> None:
    schema = reflect_aggregate(AggregateRoot, identifier_name="id")
    assert "uuid" not in schema
    assert schema["id"].identity is True
    assert schema["entities"].schema["id"].identity is True


def test_compound_identities_keep_their_names() -> None:
    def resolve(entity):
        return EntityDescriptor(
            entity=entity,
            type_name="Seat",
            properties=(PropertyInfo("row", "string", identity=True), PropertyInfo("number", "integer", identity=True)),
        )

    schema = reflect_aggregate("seat", resolve=resolve)
    assert list(schema) == ["row", "number"]
    assert all(prop.identity for prop in schema.values())


def test_bounded_chain_is_reflected() -> None:
    schema = reflect_aggregate(0, resolve=node_resolver(10))
    depth = 0
    while "next" in schema:
        schema = schema["next"].schema
        depth += 1
    assert depth == 9


def test_depth_overflow_fails() -> None:
    with pytest.raises(CyclicSchemaError) as exc_info:
        reflect_aggregate(0, resolve=node_resolver())
    assert exc_info.value.type_name == f"Node{MAX_REFLECTION_DEPTH - 1}"


def test_visited_types_are_scoped_to_the_path() -> None:
    def resolve(entity):
        properties = {
            "root": (PropertyInfo("first", "Part", target="part"), PropertyInfo("second", "Part", target="part")),
            "part": (PropertyInfo("title", "string"), PropertyInfo("root", "Root", target="root")),
        }[entity]
        return EntityDescriptor(entity=entity, type_name=entity.title(), properties=properties)

    schema = reflect_aggregate("root", resolve=resolve)
    # siblings of the same type are both inlined
    assert schema["first"].is_inline
    assert schema["second"].is_inline
    assert schema["second"].schema["root"].schema == "Root"


def test_unknown_entities_have_an_empty_schema() -> None:
    assert reflect_aggregate(object) == {}


def test_describe_schema() -> None:
    description = describe_schema(reflect_aggregate(AggregateRoot), normalize=True)
    assert description["title"] == {"type": "string", "elementType": None, "transient": False, "identity": False, "multiValued": False}
    assert description["other_aggregate"]["schema"] == "AggregateRoot"
    assert description["entities"]["elementType"] == "Entity"
    assert description["entities"]["schema"]["entities"]["schema"] == "Entity"
    assert description["label"]["transient"] is True


def test_schema_cache_builds_once() -> None:
    cache = SchemaCache()
    calls = []

    def factory():
        calls.append(1)
        return {"title": None}

    assert cache.get("key", factory) is cache.get("key", factory)
    assert len(calls) == 1
    assert "key" in cache
    assert len(cache) == 1
    cache.clear()
    assert "key" not in cache


@pytest.mark.parametrize(
    "path, expected",
    [
        ("title", True),
        ("entities.title", True),
        (IDENTITY, True),
        ("entities.__identity", True),
        ("other_aggregate", True),
        ("other_aggregate.__identity", True),
        # references can only be followed by their identity
        ("other_aggregate.title", False),
        ("entities", False),
        ("label", False),
        ("nonExisting", False),
        ("entities.nonExisting", False),
        ("", False),
    ],
)
def test_is_in_persistence_schema(path: str, expected: bool) -> None:
    assert is_in_persistence_schema(path, reflect_aggregate(AggregateRoot)) is expected


def test_searchable_paths() -> None:
    schema = reflect_aggregate(AggregateRoot)
    assert persistence_property_paths(schema, only_searchable=True) == ["title", "email", "entities.title"]
    assert persistence_property_paths(schema) == ["uuid", "title", "email", "position", "other_aggregate", "entities.uuid", "entities.title"]
    assert not is_in_persistence_schema("position", schema, only_searchable=True)
    assert not is_in_persistence_schema("uuid", schema, only_searchable=True)
    assert not is_in_persistence_schema(IDENTITY, schema, only_searchable=True)
