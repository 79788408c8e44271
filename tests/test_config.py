import datetime
import decimal
import logging
import uuid
from types import SimpleNamespace

import pytest
from flask import Flask

import aggrest
from aggrest import AggrestJSONProvider
from aggrest.config import get_config, is_debug


@pytest.fixture(autouse=True)
def clear_config():
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_config_defaults() -> None:
    assert get_config("IDENTIFIER_NAME") == "uuid"
    assert get_config("MAX_PAGE_LIMIT") == aggrest.AGGREST.MAX_PAGE_LIMIT


def test_config_environment_fallback(monkeypatch) -> None:
    monkeypatch.setenv("AGGREST_TEST_OPTION", "from-env")
    assert get_config("AGGREST_TEST_OPTION") == "from-env"


def test_app_config_takes_precedence(monkeypatch) -> None:
    monkeypatch.setenv("IDENTIFIER_NAME", "from-env")
    app = Flask("config_test")
    app.config["IDENTIFIER_NAME"] = "id"
    with app.app_context():
        assert get_config("IDENTIFIER_NAME") == "id"


def test_is_debug(monkeypatch) -> None:
    monkeypatch.setattr(aggrest, "log", SimpleNamespace(getEffectiveLevel=lambda: logging.DEBUG))
    assert is_debug()
    monkeypatch.setattr(aggrest, "log", SimpleNamespace(getEffectiveLevel=lambda: logging.WARNING))
    assert not is_debug()


def test_json_provider() -> None:
    app = Flask("json_test")
    provider = AggrestJSONProvider(app)
    value = {
        "b_datetime": datetime.datetime(2020, 1, 2, 3, 4, 5),
        "a_date": datetime.date(2020, 1, 2),
        "delta": datetime.timedelta(hours=1),
        "uuid": uuid.UUID("e413ed09-bd63-4a4e-9e0a-026f9179a2c1"),
        "decimal": decimal.Decimal("1.5"),
        "bytes": b"\x01\x02",
        "set": {"Foo"},
        "url": "http://localhost/aggregate/",
    }
    encoded = provider.response(value).get_data(as_text=True)
    assert provider.loads(encoded) == {
        "b_datetime": "2020-01-02T03:04:05",
        "a_date": "2020-01-02",
        "delta": "1:00:00",
        "uuid": "e413ed09-bd63-4a4e-9e0a-026f9179a2c1",
        "decimal": 1.5,
        "bytes": "0102",
        "set": ["Foo"],
        "url": "http://localhost/aggregate/",
    }
    # pretty printed, in rendering order, slashes are not escaped
    assert encoded.index("b_datetime") < encoded.index("a_date")
    assert "\n" in encoded
    assert "http://localhost/aggregate/" in encoded


def test_json_provider_unknown_type(monkeypatch) -> None:
    provider = AggrestJSONProvider(Flask("json_test"))
    monkeypatch.setattr(aggrest.json_encoder, "is_debug", lambda: False)
    assert provider.loads(provider.dumps({"value": object()})) == {"value": {"error": "AggrestJSONEncoder invalid object"}}
    monkeypatch.setattr(aggrest.json_encoder, "is_debug", lambda: True)
    assert provider.loads(provider.dumps({"value": SimpleNamespace()})) == {"value": "namespace()"}
