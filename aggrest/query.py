"""
Query predicates for property filters, search terms and cursor pagination

Property paths are dot separated and may traverse relationships, eg. "entities.title".
Predicates on related entities are expressed with `any()` (collections) and `has()`,
so no joins are needed and every predicate applies to the root entity.
"""
import operator
import re
from dataclasses import dataclass, field
from sqlalchemy import and_, false, not_, or_
from sqlalchemy.orm import RelationshipProperty, aliased
import aggrest
from .attr_parse import is_numeric, parse_value
from .errors import BadRequestError
from .identity import ResourceIdentity
from .schema import IDENTITY
from typing import Any, Callable, Dict, List, Mapping, Optional

ASC = "ASC"
DESC = "DESC"
DIRECTIONS = (ASC, DESC)

SEARCH_TOKEN_RE = re.compile(r'([-+]?"[^"]+"|[^\s]+)\s*')
ANY = "*"
REQUIRED = "+"
EXCLUDED = "-"


@dataclass
class SearchTerms:
    any: List[str] = field(default_factory=list)
    required: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.any or self.required or self.excluded)

    def to_dict(self) -> Dict[str, List[str]]:
        """
        :return: the non empty buckets keyed by their prefix
        """
        buckets = {ANY: self.any, REQUIRED: self.required, EXCLUDED: self.excluded}
        return {prefix: terms for prefix, terms in buckets.items() if terms}


def tokenize_search(query: str) -> SearchTerms:
    """
    Split a search query into terms: `+term` is required, `-term` is excluded, other terms are optional.
    Quoted terms may contain whitespace: +"some phrase"

    :param query: search query
    :return: SearchTerms
    """
    terms = SearchTerms()
    buckets = {ANY: terms.any, REQUIRED: terms.required, EXCLUDED: terms.excluded}
    for token in SEARCH_TOKEN_RE.findall(query or ""):
        prefix = token[0] if token[0] in (REQUIRED, EXCLUDED) else ANY
        term = token.lstrip("+-").strip('"')
        if term and term not in buckets[prefix]:
            buckets[prefix].append(term)
    return terms


def _identity_name(model, name: str, identifier_name: str) -> bool:
    if name == IDENTITY:
        return True
    return name == identifier_name and not ResourceIdentity.for_model(model).is_compound


def path_predicate(model, path: str, leaf: Callable):
    """
    Build a predicate on a property path

    :param model: the model the path starts from
    :param path: dot separated property path
    :param leaf: callback(model, attribute_name) returning the predicate for the last path segment
    :return: predicate
    """
    name, _, rest = path.partition(".")
    if not rest:
        return leaf(model, name)
    relationship = getattr(model, name)
    target = relationship.property.mapper.class_
    inner = path_predicate(target, rest, leaf)
    if relationship.property.uselist:
        return relationship.any(inner)
    return relationship.has(inner)


def identity_predicate(model, value):
    """
    :param model: model to match
    :param value: scalar or list for single identities, mapping or list for compound identities
    :return: predicate matching the identity of the model
    """
    identity = ResourceIdentity.for_model(model)
    pks = identity.match(value)
    return and_(*(getattr(model, name) == pk for name, pk in pks.items()))


def build_filter_predicate(model, filters: Mapping[str, Any], identifier_name: str):
    """
    Numbers and booleans are compared with equality, strings with a case insensitive LIKE.
    The caller is expected to add the wildcards to LIKE values, eg. "%@example.com".
    Paths ending in __identity (or the identifier alias) match the identity of the entity.

    :param model: model class
    :param filters: property path => value
    :param identifier_name: alias of the identity property
    :return: list of predicates that should all hold
    """
    predicates = []
    for path, value in filters.items():

        def leaf(leaf_model, name, value=value):
            if _identity_name(leaf_model, name, identifier_name):
                return identity_predicate(leaf_model, value)
            prop = getattr(leaf_model, name)
            if isinstance(prop.property, RelationshipProperty):
                # the value of a reference is the identity of the referenced entity
                target = prop.property.mapper.class_
                inner = identity_predicate(target, value)
                return prop.any(inner) if prop.property.uselist else prop.has(inner)
            return _value_predicate(prop, value)

        predicates.append(path_predicate(model, path, leaf))
    return predicates


def _value_predicate(attribute, value):
    if isinstance(value, (list, Mapping)):
        raise BadRequestError(f"Invalid value {value} for {attribute.key}, only identities can be matched by a list")
    column = attribute.property.columns[0]
    is_string_column = _python_type(column) is str
    if isinstance(value, bool) or is_numeric(value) or not is_string_column or not isinstance(value, str):
        try:
            return attribute == parse_value(column, value)
        except (ValueError, TypeError):
            raise BadRequestError(f'Invalid value "{value}" for {attribute.key}')
    return attribute.ilike(value)


def _python_type(column):
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def build_search_predicate(model, terms: SearchTerms, properties: List[str]):
    """
    - optional terms: the entity matches if any term is found in any property
    - required terms: every term must be found in at least one property
    - excluded terms: no term may be found in any property, empty (NULL) properties don't match

    Without properties optional and required terms can't be found, so nothing matches,
    excluded terms alone hold for every entity.

    :param model: model class
    :param terms: SearchTerms
    :param properties: property paths to search
    :return: predicate or None if every entity matches
    """
    properties = [path for path in properties if path.split(".")[-1] != IDENTITY]
    if not terms:
        return None
    if not properties:
        return false() if terms.any or terms.required else None

    def like(term):
        pattern = f"%{term}%"
        return [path_predicate(model, path, lambda m, name: getattr(m, name).ilike(pattern)) for path in properties]

    def not_like(term):
        pattern = f"%{term}%"
        constraints = []
        for path in properties:
            if "." in path:
                # NOT any()/has() also holds when the related value is NULL
                constraints.append(not_(path_predicate(model, path, lambda m, name: getattr(m, name).ilike(pattern))))
            else:
                attribute = getattr(model, path)
                constraints.append(or_(attribute.is_(None), not_(attribute.ilike(pattern))))
        return and_(*constraints)

    required = [or_(*like(term)) for term in terms.required]
    required += [not_like(term) for term in terms.excluded]
    if terms.any:
        required.append(or_(*(or_(*like(term)) for term in terms.any)))
    return and_(*required)


def build_cursor_predicate(cursor_attribute, direction: str, last_value, identity_attributes: List = None, last_identity=None):
    """
    Keyset pagination: select the entities after the last one the client has seen

    Without identity: C > V (ASC) or C < V (DESC)
    With identity: C >= V AND (C > V OR identity > I), this handles non unique cursor properties.
    For compound identities every identity component must be greater.

    :param cursor_attribute: the attribute used as cursor
    :param direction: ASC or DESC
    :param last_value: cursor value of the last seen entity
    :param identity_attributes: identity attributes
    :param last_identity: identity of the last seen entity, pk dict
    :return: predicate
    """
    strict = operator.gt if direction == ASC else operator.lt
    loose = operator.ge if direction == ASC else operator.le
    if not last_identity:
        return strict(cursor_attribute, last_value)
    tie_break = and_(*(strict(attribute, last_identity[attribute.key]) for attribute in identity_attributes))
    return and_(loose(cursor_attribute, last_value), or_(strict(cursor_attribute, last_value), tie_break))


def build_orderings(query, model, orderings: Mapping[str, str], identifier_name: str):
    """
    Add order by clauses, related properties are joined

    :param query: the query to order
    :param model: model class
    :param orderings: property path => ASC/DESC
    :param identifier_name: alias of the identity property
    :return: ordered query
    """
    for path, direction in orderings.items():
        # current is the model or an alias of a joined model, current_class the mapped class
        current = current_class = model
        *relationships, name = path.split(".")
        for rel_name in relationships:
            relationship = getattr(current, rel_name)
            if relationship.property.uselist:
                raise BadRequestError(f"Can't sort by {path}, {rel_name} is a collection")
            current_class = relationship.property.mapper.class_
            current = aliased(current_class)
            query = query.outerjoin(current, relationship)
        if _identity_name(current_class, name, identifier_name):
            columns = [getattr(current, attr) for attr in ResourceIdentity.for_model(current_class).names]
        else:
            attribute = getattr(current, name)
            if isinstance(attribute.property, RelationshipProperty):
                raise BadRequestError(f"Can't sort by {path}")
            columns = [attribute]
        aggrest.log.debug(f"Sorting by {path} {direction}")
        query = query.order_by(*(column.desc() if direction == DESC else column.asc() for column in columns))
    return query


def parse_orderings(sort: Optional[str]) -> Dict[str, str]:
    """
    :param sort: comma separated property paths, a "-" prefix sorts descending
    :return: property path => ASC/DESC
    """
    orderings = {}
    for path in (sort or "").split(","):
        path = path.strip()
        if not path:
            continue
        if path.startswith("-"):
            orderings[path[1:]] = DESC
        else:
            orderings[path] = ASC
    return orderings
