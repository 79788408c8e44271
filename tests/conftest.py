from http import HTTPStatus

import pytest
from flask import Flask
from flask.testing import FlaskClient

from aggrest import AggrestAPI, ApplicationError, RestController, resource_action
from models import AggregateRoot, Seat, db


class AggregateController(RestController):
    """
    Aggregates for the functional tests
    """

    @resource_action(http_methods=["GET"])
    def exceptional(self):
        """
        description: An action that fails with a custom status code
        return: An error envelope
        """
        raise ApplicationError("This is an exception thrown in the application. It's over 9000!", HTTPStatus.IM_A_TEAPOT.value, api_code=9001)


class FilteredAggregateController(AggregateController):
    """
    Aggregates with an example.com email address
    """

    default_filter = {"email": "%@example.com"}
    render_fields = ["title", "email"]


@pytest.fixture
def app() -> Flask:
    app = Flask("aggrest_tests")
    app.config.update(TESTING=True, SQLALCHEMY_DATABASE_URI="sqlite://")
    db.init_app(app)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def api(app: Flask) -> AggrestAPI:
    with app.app_context():
        api = AggrestAPI(app, app_db=db)
        api.expose_object(AggregateRoot, controller=AggregateController, collection_name="aggregate")
        api.expose_object(AggregateRoot, controller=FilteredAggregateController, collection_name="filteredaggregate")
        api.expose_object(Seat, collection_name="seat")
    return api


@pytest.fixture
def client(app: Flask, api: AggrestAPI) -> FlaskClient:
    return app.test_client()
