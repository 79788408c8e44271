"""
Resource repository: load and store the entities of one model
"""
import aggrest
from .attr_parse import parse_value
from .config import get_config
from .errors import BadRequestError
from .identity import ResourceIdentity
from .query import (
    ASC,
    DESC,
    SearchTerms,
    build_cursor_predicate,
    build_filter_predicate,
    build_orderings,
    build_search_predicate,
)
from .schema import IDENTITY
from typing import Any, List, Mapping, Optional


class ResourceRepository:
    """
    Query helper bound to a model class and the identifier alias of its resource
    """

    def __init__(self, model, identifier_name: str) -> None:
        self.model = model
        self.identifier_name = identifier_name
        self.identity = ResourceIdentity.for_model(model)

    @property
    def session(self):
        return aggrest.DB.session

    def create_query(self):
        return self.session.query(self.model)

    def get(self, identifier) -> Optional[Any]:
        """
        :param identifier: identifier string or pk dict
        :return: instance or None
        :raises NotFoundError: when the identifier isn't valid for this model
        """
        pks = self.identity.get_pks(identifier)
        return self.session.get(self.model, pks)

    def is_new(self, instance) -> bool:
        """
        :return: True if the instance hasn't been persisted yet
        """
        pks = self.identity.values(instance)
        if any(pk is None for pk in pks):
            return True
        return self.session.get(self.model, dict(zip(self.identity.names, pks))) is None

    def add(self, instance) -> None:
        self.session.add(instance)
        # generate the identity
        self.session.flush()

    def update(self, instance) -> None:
        self.session.add(instance)
        self.session.flush()

    def remove(self, instance) -> None:
        self.session.delete(instance)
        self.session.flush()

    def apply_filters(self, query, filters: Optional[Mapping[str, Any]]):
        if filters:
            query = query.filter(*build_filter_predicate(self.model, filters, self.identifier_name))
        return query

    @staticmethod
    def apply_pagination(query, limit: Optional[int] = None, offset: Optional[int] = None):
        """
        :param limit: applied when > 0
        :param offset: applied when >= 0
        """
        max_limit = get_config("MAX_PAGE_LIMIT")
        if limit is not None and limit > 0:
            if limit > max_limit:
                aggrest.log.warning(f"Limit {limit} exceeds the maximum, using {max_limit}")
                limit = max_limit
            query = query.limit(limit)
        if offset is not None and offset >= 0:
            query = query.offset(min(offset, get_config("MAX_PAGE_OFFSET")))
        return query

    def cursor_attribute(self, cursor_property: str):
        """
        :param cursor_property: a column of the model or __identity
        :return: instrumented attribute used as cursor
        """
        if cursor_property == IDENTITY or (cursor_property == self.identifier_name and not self.identity.is_compound):
            return self.identity.attributes[0]
        attribute = getattr(self.model, cursor_property, None)
        if attribute is None or not hasattr(attribute, "property") or not hasattr(attribute.property, "columns"):
            raise BadRequestError(f"Invalid cursor property {cursor_property}")
        return attribute

    def cursor_value(self, instance, cursor_property: str):
        return getattr(instance, self.cursor_attribute(cursor_property).key)

    def find_by_cursor_pagination(
        self,
        cursor_property: str = IDENTITY,
        limit: Optional[int] = None,
        direction: str = ASC,
        last_value=None,
        last_identity=None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Any]:
        """
        Keyset pagination, stable when entities are added or removed between requests

        :param cursor_property: property to paginate on, __identity for the (first) identity property
        :param limit: maximum number of entities
        :param direction: ASC or DESC
        :param last_value: cursor value of the last entity the client has seen
        :param last_identity: identity of the last entity, needed when the cursor property isn't unique
        :param filters: property filters
        :return: list of entities
        """
        cursor = self.cursor_attribute(cursor_property)
        identity_attributes = self.identity.attributes
        query = self.apply_filters(self.create_query(), filters)

        last_pks = self.identity.match(last_identity) if last_identity is not None else None
        if last_value is not None:
            try:
                last_value = parse_value(cursor.property.columns[0], last_value)
            except (ValueError, TypeError):
                raise BadRequestError(f'Invalid cursor value "{last_value}"')
            query = query.filter(build_cursor_predicate(cursor, direction, last_value, identity_attributes, last_pks))

        order = [cursor] + [attribute for attribute in identity_attributes if attribute is not cursor]
        query = query.order_by(*(attribute.desc() if direction == DESC else attribute.asc() for attribute in order))
        query = self.apply_pagination(query, limit)
        result = query.all()
        if last_pks is not None and direction != ASC:
            result.reverse()
        return result

    def find_by_filter(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        orderings: Optional[Mapping[str, str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Any]:
        """
        :param filters: property path => value
        :param orderings: property path => ASC/DESC
        :return: list of entities
        """
        query = self.apply_filters(self.create_query(), filters)
        if orderings:
            query = build_orderings(query, self.model, orderings, self.identifier_name)
        query = self.apply_pagination(query, limit, offset)
        return query.all()

    def find_by_search(
        self,
        terms: SearchTerms,
        properties: List[str],
        orderings: Optional[Mapping[str, str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Any]:
        """
        :param terms: SearchTerms
        :param properties: property paths to search in
        :return: list of entities
        """
        query = self.apply_filters(self.create_query(), filters)
        predicate = build_search_predicate(self.model, terms, properties)
        if predicate is not None:
            query = query.filter(predicate)
        if orderings:
            query = build_orderings(query, self.model, orderings, self.identifier_name)
        query = self.apply_pagination(query, limit, offset)
        return query.all()
