"""
    transient_attr: computed resource properties

    A transient attribute is rendered and described like any other property,
    but it isn't persisted so it can't be used to filter, sort or search.

    class Person(db.Model):
        first_name = db.Column(db.String)
        last_name = db.Column(db.String)

        @transient_attr
        def full_name(self):
            '''
            type: string
            '''
            return f"{self.first_name} {self.last_name}"
"""

from sqlalchemy.ext.hybrid import hybrid_property
from .actions import parse_object_doc
from typing import Any

TRANSIENT_ATTR_TAG = "_a_is_transient_attr"
DEFAULT_TYPE = "string"


class transient_attr(hybrid_property):
    """
    hybrid_property type: sqlalchemy.orm.attributes.create_proxied_attribute.<locals>.Proxy
    """

    def __init__(self, *args, **kwargs):
        """
        :param attr: model attribute that should be exposed as a resource property
        :return: transient attribute decorator

        set `type` in the yaml docstring to describe the property type
        """
        setattr(self, TRANSIENT_ATTR_TAG, True)  # checked by is_transient_attr()
        # copies made by getter/setter receive the type as a keyword argument
        self.type = kwargs.pop("type", DEFAULT_TYPE)

        if args:
            # called when the app starts
            attr = args[0]
            obj_doc = parse_object_doc(attr)
            if isinstance(obj_doc.get("type"), str):
                self.type = obj_doc["type"]
        super().__init__(*args, **kwargs)

    def getter(self, fget):
        """
        Provide a decorator that defines a getter method.
        """

        return self._copy(fget=fget)

    def setter(self, fset):
        """
        Provide a decorator that defines a setter method.
        """

        return self._copy(fset=fset)


def is_transient_attr(attr: Any) -> bool:
    """
    :param attr: `transient_attr` decorated attribute
    :return: boolean
    """
    return getattr(attr, TRANSIENT_ATTR_TAG, False) is True
