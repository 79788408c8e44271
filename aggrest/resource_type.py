"""
Resource type names

Types are named after the model class including its module, eg. "shop.models.orders.Order".
Normalization strips the module path up to the models package so clients see "orders.Order".
Generic types keep their container: "Collection<shop.models.Order>" => "Collection<Order>"
"""
import re

COLLECTION_TYPE = "Collection"
MODEL_NAMESPACE_RE = re.compile(r"(?:^|[.<])models\.")


def type_name(model) -> str:
    """
    :param model: model class
    :return: qualified type name
    """
    return f"{model.__module__}.{model.__qualname__}"


def normalize_type(name: str) -> str:
    """
    :param name: qualified type name, optionally wrapped in a generic container
    :return: type name relative to the models package, unchanged if there is none
    """
    match = MODEL_NAMESPACE_RE.search(name)
    if not match:
        return name
    container = name.find("<")
    prefix = name[: container + 1] if -1 < container < match.start() + 1 else ""
    return prefix + name[match.end() :]
