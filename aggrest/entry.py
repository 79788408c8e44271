"""
Entry point discovery: the list of resources an api provides, served on {prefix}/ and {prefix}/discover/

    {
        "apiVersion": "1.0",
        "entrypoints": {
            "aggregate": {"uri": "http://localhost/aggregate/discover/", "resourceType": "tests.models.AggregateRoot", "description": "..."}
        }
    }
"""
from flask import current_app, url_for
from flask.views import View
from .config import get_config
from .resource_type import normalize_type


class EntryController(View):
    """
    Lists the resources exposed by `api`
    """

    api = None

    def dispatch_request(self, action: str = "index"):
        normalize = get_config("NORMALIZE_RESOURCE_TYPES")
        entrypoints = {}
        for collection_name, controller in self.api.resources.items():
            resource_type = controller.resource_type
            entrypoints[collection_name] = {
                "uri": url_for(f"{controller.endpoint}.discover", _external=get_config("USE_ABSOLUTE_URIS")),
                "resourceType": normalize_type(resource_type) if normalize else resource_type,
                "description": controller.description,
            }
        api_version = get_config("API_VERSION")
        response = current_app.json.response({"apiVersion": api_version, "entrypoints": entrypoints})
        response.headers["X-API-Version"] = str(api_version)
        return response
