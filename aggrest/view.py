"""
JsonView: render resources into json serializable values according to a ProjectionConfig
"""
import sqlalchemy
from sqlalchemy.orm.state import InstanceState
from .descriptor import model_descriptor
from .identity import ResourceIdentity
from .projection import ProjectionConfig
from typing import Any


def is_entity(value) -> bool:
    """
    :return: True if value is an instance of a mapped class
    """
    return isinstance(sqlalchemy.inspect(value, raiseerr=False), InstanceState)


class JsonView:
    """
    Render entities, collections and scalars.
    Scalars are returned as they are, the json provider encodes dates, decimals etc.
    """

    def __init__(self, identifier_name: str) -> None:
        self.identifier_name = identifier_name

    def render(self, value, config: ProjectionConfig) -> Any:
        if value is None:
            return None
        if is_entity(value):
            return self.render_entity(value, config)
        if isinstance(value, (str, bytes, dict)):
            return value
        try:
            elements = iter(value)
        except TypeError:
            return value
        element_config = config.element_config()
        return [self.render(element, element_config) for element in elements]

    def render_entity(self, instance, config: ProjectionConfig) -> dict:
        descriptor = model_descriptor(type(instance))
        identity = ResourceIdentity.for_model(type(instance))
        single_identity = not identity.is_compound
        result = {}
        for prop in descriptor.properties:
            name = self.identifier_name if prop.identity and single_identity else prop.name
            if config.only is not None and name not in config.only:
                continue
            if name in config.exclude:
                continue
            if prop.target is None:
                result[name] = self.render(getattr(instance, prop.name), ProjectionConfig())
            elif name in config.descend:
                result[name] = self.render(getattr(instance, prop.name), config.descend[name])
        if config.expose_identifier_as:
            result[config.expose_identifier_as] = identity.get_id(instance)
        return result
