import pytest
from sqlalchemy import select

from aggrest import BadRequestError
from aggrest.query import (
    ASC,
    DESC,
    build_cursor_predicate,
    build_filter_predicate,
    build_orderings,
    build_search_predicate,
    identity_predicate,
    parse_orderings,
    tokenize_search,
)
from models import AggregateRoot, Seat


def sql(clause) -> str:
    return str(clause.compile(compile_kwargs={"literal_binds": True}))


def test_tokenize_search() -> None:
    terms = tokenize_search('Foo +Bar -Baz +"Some phrase" Foo')
    assert terms.any == ["Foo"]
    assert terms.required == ["Bar", "Some phrase"]
    assert terms.excluded == ["Baz"]
    assert terms.to_dict() == {"*": ["Foo"], "+": ["Bar", "Some phrase"], "-": ["Baz"]}


@pytest.mark.parametrize("query", ["", "   ", None, "+ -", '""'])
def test_tokenize_empty_search(query) -> None:
    terms = tokenize_search(query)
    assert not terms
    assert terms.to_dict() == {}


def test_parse_orderings() -> None:
    assert parse_orderings("title, -position,entities.title") == {"title": ASC, "position": DESC, "entities.title": ASC}
    assert parse_orderings("") == {}
    assert parse_orderings(None) == {}


def test_search_predicate() -> None:
    predicate = build_search_predicate(AggregateRoot, tokenize_search("Foo -Bar"), ["title", "entities.title"])
    compiled = sql(predicate)
    assert "'%Foo%'" in compiled
    # excluded terms also match empty properties
    assert "aggregate_roots.title IS NULL" in compiled
    assert "NOT" in compiled.replace("IS NULL", "") and "EXISTS" in compiled


def test_search_without_terms_or_properties() -> None:
    assert build_search_predicate(AggregateRoot, tokenize_search(""), ["title"]) is None
    # terms that can't be found anywhere match nothing
    for query in ("Foo", "+Foo", "Foo -Bar"):
        assert sql(build_search_predicate(AggregateRoot, tokenize_search(query), [])) == "false"
    assert sql(build_search_predicate(AggregateRoot, tokenize_search("Foo"), ["__identity"])) == "false"
    # excluded terms hold when there is nothing to search
    assert build_search_predicate(AggregateRoot, tokenize_search("-Foo"), []) is None


def test_cursor_predicate() -> None:
    assert sql(build_cursor_predicate(AggregateRoot.title, ASC, "Foo")) == "aggregate_roots.title > 'Foo'"
    assert sql(build_cursor_predicate(AggregateRoot.title, DESC, "Foo")) == "aggregate_roots.title < 'Foo'"


def test_cursor_predicate_with_identity() -> None:
    compiled = sql(build_cursor_predicate(AggregateRoot.title, ASC, "Foo", [AggregateRoot.id], {"id": "c1"}))
    assert "aggregate_roots.title >= 'Foo'" in compiled
    assert "aggregate_roots.title > 'Foo'" in compiled
    assert "aggregate_roots.id > 'c1'" in compiled

    compiled = sql(build_cursor_predicate(Seat.number, DESC, 3, [Seat.row, Seat.number], {"row": "B", "number": 3}))
    assert "seats.number <= 3" in compiled
    assert "seats.row < 'B'" in compiled
    assert "seats.number < 3" in compiled


def test_filter_predicates() -> None:
    predicates = build_filter_predicate(AggregateRoot, {"title": "F%", "position": "2", "entities.title": "Bar"}, "uuid")
    title, position, entity_title = (sql(predicate) for predicate in predicates)
    assert "LIKE" in title and "'F%'" in title
    assert position == "aggregate_roots.position = 2"
    assert "EXISTS" in entity_title and "'Bar'" in entity_title


def test_filter_on_identities() -> None:
    for path in ("uuid", "__identity"):
        (predicate,) = build_filter_predicate(AggregateRoot, {path: "a1"}, "uuid")
        assert sql(predicate) == "aggregate_roots.id = 'a1'"

    # references are matched on the identity of the referenced entity
    for path in ("other_aggregate", "other_aggregate.uuid"):
        (predicate,) = build_filter_predicate(AggregateRoot, {path: "a2"}, "uuid")
        compiled = sql(predicate)
        assert "EXISTS" in compiled
        assert "'a2'" in compiled


def test_filter_invalid_number() -> None:
    with pytest.raises(BadRequestError):
        build_filter_predicate(AggregateRoot, {"position": "first"}, "uuid")


def test_compound_identity_predicate() -> None:
    compiled = sql(identity_predicate(Seat, {"row": "B", "number": "3"}))
    assert compiled == "seats.row = 'B' AND seats.number = 3"
    assert sql(identity_predicate(Seat, ["B", 3])) == compiled

    with pytest.raises(BadRequestError):
        identity_predicate(Seat, "B")
    with pytest.raises(BadRequestError):
        identity_predicate(Seat, {"row": "B"})


def test_orderings() -> None:
    query = build_orderings(select(AggregateRoot), AggregateRoot, {"other_aggregate.title": DESC, "uuid": ASC}, "uuid")
    compiled = sql(query)
    assert "LEFT OUTER JOIN aggregate_roots AS aggregate_roots_1" in compiled
    assert "ORDER BY aggregate_roots_1.title DESC, aggregate_roots.id ASC" in compiled


@pytest.mark.parametrize("path", ["entities.title", "entities", "other_aggregate"])
def test_invalid_orderings(path: str) -> None:
    with pytest.raises(BadRequestError):
        build_orderings(select(AggregateRoot), AggregateRoot, {path: ASC}, "uuid")
