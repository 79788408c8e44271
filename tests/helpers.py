"""
Request helpers for the functional tests
"""
from typing import Any, Dict, List, Optional

from flask.testing import FlaskClient


def create_resource(client: FlaskClient, identifier: Optional[str] = None, collection: str = "aggregate", **properties: Any):
    """
    POST a resource, the identifier is put in the url when given
    """
    url = f"/{collection}/{identifier}/" if identifier else f"/{collection}/"
    return client.post(url, json={"resource": properties})


def create_resources(client: FlaskClient, *resources: Dict[str, Any]):
    return client.post("/aggregate/", json={"resources": list(resources)})


def titles(results: List[Dict[str, Any]]) -> List[str]:
    return [result["title"] for result in results]
