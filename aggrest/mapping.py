"""
Map request payloads onto entities

Inside the aggregate boundary (inline schemas) related entities may be created and modified,
entities of other aggregates (referenced schemas) can only be looked up by their identity:

    {
        "title": "Foo",
        "entities": [{"title": "Bar"}],
        "other_aggregate": "6f9619ff-8b86-d011-b42d-00cf4fc964ff"
    }
"""
import sqlalchemy
import aggrest
from .attr_parse import parse_value
from .descriptor import model_descriptor
from .errors import BadRequestError, FieldError, NotFoundError
from .identity import ResourceIdentity
from .schema import IDENTITY, ResourceSchema
from typing import Any, Dict, List, Mapping, Optional
from http import HTTPStatus


class PropertyMapper:
    """
    Collects the field errors of one mapping run, the caller decides how to report them
    """

    def __init__(self, identifier_name: str) -> None:
        self.identifier_name = identifier_name
        self.errors: List[Dict[str, Any]] = []

    @property
    def session(self):
        return aggrest.DB.session

    def add_error(self, field: str, exc: Exception) -> None:
        code = getattr(exc, "code", None) or HTTPStatus.UNPROCESSABLE_ENTITY.value
        message = getattr(exc, "message", None) or str(exc)
        self.errors.append({"code": code, "field": field, "message": message})

    def identity_of(self, model, data: Mapping) -> Optional[Dict[str, Any]]:
        """
        :return: pk dict if the payload contains the identity of the entity
        """
        identity = ResourceIdentity.for_model(model)
        for key in (IDENTITY, self.identifier_name):
            if data.get(key) is not None and (key == IDENTITY or not identity.is_compound):
                return identity.get_pks(data[key])
        if identity.is_compound and all(data.get(name) is not None for name in identity.names):
            return identity.get_pks({name: data[name] for name in identity.names})
        return None

    def create(self, model, schema: ResourceSchema, data: Mapping, identifier=None, path: str = ""):
        """
        Create a new entity, or return the persisted entity with the same identity

        :param model: model class
        :param schema: ResourceSchema of the model
        :param data: payload
        :param identifier: identity from the url, takes precedence over the payload
        :return: entity
        """
        if not isinstance(data, Mapping):
            raise BadRequestError(f"Invalid resource {path or model.__name__}: {data}")
        identity = ResourceIdentity.for_model(model)
        pks = identity.get_pks(identifier) if identifier is not None else self.identity_of(model, data)
        if pks is not None:
            existing = self.session.get(model, pks)
            if existing is not None:
                return existing
        instance = model()
        for name, value in (pks or {}).items():
            setattr(instance, name, value)
        return self.update(instance, schema, data, path)

    def update(self, instance, schema: ResourceSchema, data: Mapping, path: str = ""):
        """
        :param instance: entity to modify
        :param schema: ResourceSchema of the entity
        :param data: payload
        :return: entity
        """
        if not isinstance(data, Mapping):
            raise BadRequestError(f"Invalid resource {path or type(instance).__name__}: {data}")
        model = type(instance)
        descriptor = model_descriptor(model)
        identity = ResourceIdentity.for_model(model)
        for key, value in data.items():
            field = f"{path}.{key}" if path else key
            if key == IDENTITY or (key == self.identifier_name and not identity.is_compound):
                self._check_identity(instance, identity, value, field)
                continue
            prop = schema.get(key)
            info = descriptor.get(key)
            if prop is None or info is None:
                raise BadRequestError(f'Property "{field}" is not part of the resource {model.__name__}')
            if prop.identity and sqlalchemy.inspect(instance).persistent:
                if str(getattr(instance, key)) != str(value):
                    raise BadRequestError(f'The identity of "{field}" can\'t be changed')
                continue
            try:
                if info.target is None:
                    self._set_scalar(instance, key, info, value)
                elif prop.multi_valued:
                    if not isinstance(value, list):
                        raise BadRequestError(f'Property "{field}" should be a list')
                    items = [self._related(info.target, prop, item, f"{field}.{position}") for position, item in enumerate(value)]
                    setattr(instance, key, items)
                else:
                    setattr(instance, key, self._related(info.target, prop, value, field) if value is not None else None)
            except ValueError as exc:
                # FieldError raised by model validators is a ValueError too
                self.add_error(field, exc)
        return instance

    def _set_scalar(self, instance, key: str, info, value) -> None:
        if info.transient:
            try:
                setattr(instance, key, value)
            except AttributeError:
                raise BadRequestError(f'Property "{key}" is read only')
            return
        column = sqlalchemy.inspect(type(instance)).attrs[key].columns[0]
        try:
            value = parse_value(column, value)
        except TypeError as exc:
            raise ValueError(str(exc))
        setattr(instance, key, value)

    def _related(self, target, prop, value, field: str):
        """
        :return: the related entity for a payload value
        """
        if prop.is_inline and isinstance(value, Mapping):
            return self.create(target, prop.schema, value, path=field)
        try:
            if isinstance(value, Mapping):
                pks = self.identity_of(target, value)
            else:
                pks = ResourceIdentity.for_model(target).get_pks(value)
        except NotFoundError:
            raise FieldError(f"Invalid identity {value}")
        related = self.session.get(target, pks) if pks is not None else None
        if related is None:
            raise FieldError(f"Object with identity {value} not found")
        return related

    @staticmethod
    def _check_identity(instance, identity: ResourceIdentity, value, field: str) -> None:
        current = identity.get_id(instance)
        if current is not None and str(current) != str(value):
            raise BadRequestError(f'The identity of "{field}" can\'t be changed')
