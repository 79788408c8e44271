"""
Request class: parse the arguments shared by the resource actions

- query args: limit, offset, repeatable arguments (lastId[]), raw property filters
- body: a json object holding the resource argument(s)
"""

import re
from flask import Request
from werkzeug.exceptions import BadRequest
import aggrest
from .errors import BadRequestError
from typing import Any, Dict, List, Optional

STRUCTURED_ARG_RE = re.compile(r"^(?P<name>[^\[\]]+)\[(?P<key>[^\[\]]*)\]$")


# pylint: disable=too-many-ancestors
class AggrestRequest(Request):
    """
    Parse the resource request arguments
    """

    json_content_types = ["application/json"]

    def get_list_arg(self, name: str) -> Optional[List[str]]:
        """
        Repeatable arguments may be passed as `name[]=a&name[]=b` or `name=a`
        :param name: argument name
        :return: list of values or None if the argument is missing
        """
        values = self.args.getlist(f"{name}[]") or self.args.getlist(name)
        return values or None

    def get_payload(self) -> Dict[str, Any]:
        """
        :return: request body, an empty dict when there is none
        """
        if not self.get_data(cache=True):
            return {}
        content_type = (self.content_type or "").split(";")[0]
        if content_type not in self.json_content_types:
            aggrest.log.warning(f'Invalid Media Type! "{self.content_type}"')
        try:
            result = self.get_json(force=True)
        except BadRequest:
            raise BadRequestError("Invalid JSON Payload")
        if not isinstance(result, dict):
            raise BadRequestError(f"Invalid JSON Payload : {result}")
        return result

    @property
    def property_filters(self) -> Dict[str, Any]:
        """
        Structured values are used to match compound identities:
            name[key]=value => {"name": {"key": value}}
            name[]=a&name[]=b => {"name": ["a", "b"]}

        :return: query arguments in request order, first value wins
        """
        result = {}
        for arg, val in self.args.items(multi=True):
            match = STRUCTURED_ARG_RE.match(arg)
            if match is None:
                result.setdefault(arg, val)
                continue
            name, key = match.group("name", "key")
            if key:
                values = result.setdefault(name, {})
                if isinstance(values, dict):
                    values.setdefault(key, val)
            else:
                values = result.setdefault(name, [])
                if isinstance(values, list):
                    values.append(val)
        return result
