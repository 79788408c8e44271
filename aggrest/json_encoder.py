# aggrest to json encoding

import datetime
import decimal
from flask.json.provider import DefaultJSONProvider
from uuid import UUID
import aggrest
from .config import is_debug


class _AggrestJSONEncoder:
    """
    JSON encoding for the values found in rendered resources
    """

    # pylint: disable=too-many-return-statements,arguments-differ,method-hidden
    def default(self, obj, **kwargs):
        """
        override the default json encoding
        :param obj: object to be encoded
        :return: encoded/serialized object
        """
        if obj is None:
            return None
        if isinstance(obj, datetime.timedelta):
            return str(obj)
        if isinstance(obj, (datetime.datetime, datetime.date, datetime.time)):
            return obj.isoformat()
        if isinstance(obj, (set, frozenset)):
            return list(obj)
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, decimal.Decimal):
            return float(obj)
        if isinstance(obj, bytes):
            if obj == b"":
                return ""
            aggrest.log.debug("AggrestJSONEncoder: serializing bytes obj")
            return obj.hex()

        # resources are rendered by the JsonView before encoding, getting here means
        # a model returned a type we don't know about
        if not is_debug():
            aggrest.log.warning(f'JSON Encoding Error: Unknown object type "{type(obj)}" for {obj}')
            return {"error": "AggrestJSONEncoder invalid object"}

        return str(obj)


class AggrestJSONProvider(_AggrestJSONEncoder, DefaultJSONProvider):
    """
    Flask JSON encoding: pretty printed, keys in rendering order
    """

    mimetype = "application/json"
    compact = False
    sort_keys = False
