import pytest

from aggrest import AggrestAPI, BadRequestError, NotFoundError
from aggrest.config import get_config
from aggrest.identity import ResourceIdentity
from models import AggregateRoot, Entity, Seat, db


def test_single_identity() -> None:
    identity = ResourceIdentity.for_model(Entity)
    assert not identity.is_compound
    assert identity.names == ["id"]
    assert identity.get_id(Entity(id=3)) == 3
    assert identity.get_pks("3") == {"id": 3}
    assert identity.match("3") == {"id": 3}
    assert identity.match(["3"]) == {"id": 3}
    assert ResourceIdentity.for_model(Entity) is identity


def test_compound_identity() -> None:
    identity = ResourceIdentity(Seat, delimiter="_")
    assert identity.is_compound
    assert identity.get_id(Seat(row="A", number=3)) == "A_3"
    assert identity.get_pks("A_3") == {"row": "A", "number": 3}
    assert identity.get_pks({"row": "A", "number": "3"}) == {"row": "A", "number": 3}
    assert identity.match({"number": 3, "row": "A"}) == {"row": "A", "number": 3}


@pytest.mark.parametrize("identifier", ["A", "A_3_1", "A_third", {"row": "A"}])
def test_invalid_identifiers(identifier) -> None:
    with pytest.raises(NotFoundError):
        ResourceIdentity(Seat, delimiter="_").get_pks(identifier)


def test_invalid_single_identifier() -> None:
    with pytest.raises(NotFoundError):
        ResourceIdentity.for_model(Entity).get_pks("third")
    with pytest.raises(BadRequestError):
        ResourceIdentity.for_model(Entity).match("third")


def test_identity_attributes() -> None:
    (attribute,) = ResourceIdentity.for_model(AggregateRoot).attributes
    assert attribute is AggregateRoot.id


def test_delimiter_follows_the_app_configuration(app) -> None:
    identity = ResourceIdentity.for_model(Seat)
    with app.app_context():
        AggrestAPI(app, app_db=db, IDENTITY_DELIMITER="-")
        assert identity.get_id(Seat(row="A", number=3)) == "A-3"
        assert identity.get_pks("A-3") == {"row": "A", "number": 3}
    app.config.pop("IDENTITY_DELIMITER")
    get_config.cache_clear()
    with app.app_context():
        assert identity.get_id(Seat(row="A", number=3)) == "A_3"
    get_config.cache_clear()
