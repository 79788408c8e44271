# Response class
from flask import Response


class AggrestResponse(Response):
    """
    Response class
    """

    default_mimetype = "application/json"
