#
# Small helpers
#
from typing import Callable


class ClassPropertyDescriptor:
    """
    Read only property evaluated on the class, used for controller settings
    that are derived from other class attributes (eg. the resource schema)
    """

    def __init__(self, fget: classmethod) -> None:
        self.fget = fget

    def __get__(self, obj, klass=None):
        if klass is None:
            klass = type(obj)
        return self.fget.__get__(obj, klass)()


def classproperty(func: Callable) -> ClassPropertyDescriptor:
    """
    :param func: function taking the class as argument
    :return: descriptor
    """
    if not isinstance(func, (classmethod, staticmethod)):
        func = classmethod(func)
    return ClassPropertyDescriptor(func)
