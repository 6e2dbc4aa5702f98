# tests/test_purchases.py
from decimal import Decimal

import pytest

from sweetshop import crud, errors, models, validators
from tests.conftest import create_sweet, purchase_count, stock_of


def purchase(client, account, sweet_id, quantity):
    return client.post(f"/api/sweets/{sweet_id}/purchase", json={"quantity": quantity}, headers=account["headers"])


def restock(client, account, sweet_id, quantity):
    return client.post(f"/api/sweets/{sweet_id}/restock", json={"quantity": quantity}, headers=account["headers"])


# --- Purchase ---

def test_purchase_decrements_stock_and_records_history(client, user, sweet, db_session):
    response = purchase(client, user, sweet["id"], 3)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["remainingStock"] == 7
    assert data["purchase"]["sweet_id"] == sweet["id"]
    assert data["purchase"]["user_id"] == user["id"]
    assert data["purchase"]["quantity"] == 3
    assert Decimal(data["purchase"]["total_price"]) == Decimal("7.50")

    assert stock_of(db_session, sweet["id"]) == 7
    assert purchase_count(db_session, sweet["id"]) == 1


def test_purchase_entire_stock(client, user, sweet, db_session):
    response = purchase(client, user, sweet["id"], 10)
    assert response.status_code == 200
    assert response.json()["data"]["remainingStock"] == 0
    assert stock_of(db_session, sweet["id"]) == 0


def test_purchase_more_than_stock_changes_nothing(client, user, sweet, db_session):
    response = purchase(client, user, sweet["id"], 11)
    assert response.status_code == 400
    assert response.json() == {
        "status": "error",
        "message": "Insufficient stock. Available: 10, Requested: 11",
    }
    assert stock_of(db_session, sweet["id"]) == 10
    assert purchase_count(db_session) == 0


def test_purchase_from_empty_stock(client, user, db_session):
    empty = create_sweet(client, user["headers"], quantity=0)
    response = purchase(client, user, empty["id"], 1)
    assert response.status_code == 400
    assert purchase_count(db_session) == 0


def test_sequential_purchases_cannot_oversell(client, user, other_user, db_session):
    limited = create_sweet(client, user["headers"], quantity=5)

    first = purchase(client, user, limited["id"], 3)
    second = purchase(client, other_user, limited["id"], 3)

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["message"] == "Insufficient stock. Available: 2, Requested: 3"
    assert stock_of(db_session, limited["id"]) == 2
    assert purchase_count(db_session, limited["id"]) == 1


def test_guarded_update_rejects_purchase_based_on_stale_stock(app, client, user, other_user):
    """
    A purchase whose session read the stock before another sale committed must not oversell.

    Both sessions share the single in-memory SQLite connection, so the calls run one
    after the other. This covers the guarded UPDATE rejecting a stale read; it does not
    exercise truly parallel transactions.
    """
    limited = create_sweet(client, user["headers"], quantity=5)

    session = app.state.session_factory()
    try:
        caller = crud.get_profile(session, user["id"])
        stale = crud.get_sweet(session, limited["id"])
        assert stale.quantity == 5

        # Another replica sells 4 units in between
        assert purchase(client, other_user, limited["id"], 4).status_code == 200

        with pytest.raises(errors.InsufficientStock) as excinfo:
            crud.purchase_sweet(session, limited["id"], 3, caller)
        assert excinfo.value.available == 1
        assert excinfo.value.requested == 3

        session.expire_all()
        assert crud.get_sweet(session, limited["id"]).quantity == 1
        assert session.query(models.Purchase).filter(models.Purchase.sweet_id == limited["id"]).count() == 1
    finally:
        session.close()


@pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", None, True, 2**63, validators.MAX_QUANTITY + 1])
def test_purchase_requires_positive_integer(client, user, sweet, db_session, quantity):
    response = purchase(client, user, sweet["id"], quantity)
    assert response.status_code == 400
    assert response.json()["status"] == "error"
    assert stock_of(db_session, sweet["id"]) == 10


def test_purchase_not_found(client, user):
    response = purchase(client, user, 999, 1)
    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "Sweet not found"}


def test_purchase_with_out_of_range_id_is_not_found(client, user):
    response = purchase(client, user, 2**63, 1)
    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "Sweet not found"}


def test_purchase_unauthenticated(client, sweet):
    response = client.post(f"/api/sweets/{sweet['id']}/purchase", json={"quantity": 1})
    assert response.status_code == 401


@pytest.mark.parametrize("quantity", [0, -3, True, 2.0])
def test_purchase_service_validates_quantity(db_session, client, user, sweet, quantity):
    caller = crud.get_profile(db_session, user["id"])
    with pytest.raises(errors.ValidationError):
        crud.purchase_sweet(db_session, sweet["id"], quantity, caller)


def test_total_price_uses_price_at_purchase_time(client, user, sweet):
    purchase(client, user, sweet["id"], 2)
    client.put(f"/api/sweets/{sweet['id']}", json={"price": 4}, headers=user["headers"])
    response = purchase(client, user, sweet["id"], 2)
    assert Decimal(response.json()["data"]["purchase"]["total_price"]) == Decimal("8.00")


def test_purchase_total_at_maximum_price_and_quantity(client, user, db_session):
    bulk = create_sweet(client, user["headers"], price="999999.99", quantity=validators.MAX_QUANTITY)

    response = purchase(client, user, bulk["id"], validators.MAX_QUANTITY)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["remainingStock"] == 0
    assert Decimal(data["purchase"]["total_price"]) == Decimal("999999990000.00")

    db_purchase = db_session.query(models.Purchase).filter(models.Purchase.sweet_id == bulk["id"]).one()
    assert db_purchase.total_price == Decimal("999999990000.00")


# --- Restock ---

def test_restock_as_admin(client, admin, sweet, db_session):
    response = restock(client, admin, sweet["id"], 5)
    assert response.status_code == 200
    assert response.json()["data"]["quantity"] == 15
    assert stock_of(db_session, sweet["id"]) == 15
    assert purchase_count(db_session) == 0


def test_restocks_are_additive(client, admin, user, db_session):
    first = create_sweet(client, user["headers"], name="Fudge", quantity=2)
    second = create_sweet(client, user["headers"], name="Nougat", quantity=2)

    restock(client, admin, first["id"], 3)
    restock(client, admin, first["id"], 4)
    restock(client, admin, second["id"], 7)

    assert stock_of(db_session, first["id"]) == stock_of(db_session, second["id"]) == 9
    assert purchase_count(db_session) == 0


def test_restock_as_owner_is_forbidden(client, user, sweet, db_session):
    response = restock(client, user, sweet["id"], 5)
    assert response.status_code == 403
    assert stock_of(db_session, sweet["id"]) == 10


def test_restock_unauthenticated(client, sweet):
    response = client.post(f"/api/sweets/{sweet['id']}/restock", json={"quantity": 5})
    assert response.status_code == 401


@pytest.mark.parametrize("quantity", [0, -2, "many", 2**63, validators.MAX_QUANTITY + 1])
def test_restock_requires_positive_integer(client, admin, sweet, db_session, quantity):
    response = restock(client, admin, sweet["id"], quantity)
    assert response.status_code == 400
    assert response.json()["status"] == "error"
    assert stock_of(db_session, sweet["id"]) == 10


def test_restock_not_found(client, admin):
    response = restock(client, admin, 999, 5)
    assert response.status_code == 404


def test_restock_past_maximum_stock_is_rejected(client, admin, user, db_session):
    stocked = create_sweet(client, user["headers"], quantity=validators.MAX_QUANTITY - 10)

    response = restock(client, admin, stocked["id"], 11)
    assert response.status_code == 400
    assert response.json() == {
        "status": "error",
        "message": "Restock would exceed maximum stock (1,000,000); 999990 already in stock",
    }
    assert stock_of(db_session, stocked["id"]) == validators.MAX_QUANTITY - 10

    response = restock(client, admin, stocked["id"], 10)
    assert response.status_code == 200
    assert response.json()["data"]["quantity"] == validators.MAX_QUANTITY


def test_restock_service_rejects_overflowing_stock(db_session, client, admin, user):
    stocked = create_sweet(client, user["headers"], quantity=validators.MAX_QUANTITY)
    caller = crud.get_profile(db_session, admin["id"])
    with pytest.raises(errors.ValidationError):
        crud.restock_sweet(db_session, stocked["id"], 1, caller)
    assert stock_of(db_session, stocked["id"]) == validators.MAX_QUANTITY


def test_restock_service_checks_role(db_session, client, user, sweet):
    caller = crud.get_profile(db_session, user["id"])
    with pytest.raises(errors.Forbidden):
        crud.restock_sweet(db_session, sweet["id"], 5, caller)


def test_purchase_after_restock(client, admin, user, sweet, db_session):
    assert purchase(client, user, sweet["id"], 12).status_code == 400
    restock(client, admin, sweet["id"], 2)
    response = purchase(client, user, sweet["id"], 12)
    assert response.status_code == 200
    assert response.json()["data"]["remainingStock"] == 0


# --- Purchase history ---

def test_purchase_history_lists_only_own_purchases(client, user, other_user, sweet):
    purchase(client, user, sweet["id"], 1)
    purchase(client, other_user, sweet["id"], 2)
    purchase(client, user, sweet["id"], 3)

    response = client.get("/api/sweets/purchases", headers=user["headers"])
    assert response.status_code == 200
    history = response.json()["data"]
    assert [entry["quantity"] for entry in history] == [3, 1]
    assert all(entry["sweet"]["id"] == sweet["id"] for entry in history)

    other = client.get("/api/sweets/purchases", headers=other_user["headers"]).json()["data"]
    assert [entry["quantity"] for entry in other] == [2]


def test_purchase_history_shows_current_sweet_and_historical_total(client, user, sweet):
    purchase(client, user, sweet["id"], 2)
    client.put(f"/api/sweets/{sweet['id']}", json={"price": "9.99", "name": "Milk Chocolate Bar XL"}, headers=user["headers"])

    entry = client.get("/api/sweets/purchases", headers=user["headers"]).json()["data"][0]
    assert entry["sweet"]["name"] == "Milk Chocolate Bar XL"
    assert entry["sweet"]["category"] == "Chocolate"
    assert Decimal(entry["sweet"]["price"]) == Decimal("9.99")
    assert Decimal(entry["total_price"]) == Decimal("5.00")


def test_purchase_history_empty(client, user):
    response = client.get("/api/sweets/purchases", headers=user["headers"])
    assert response.json() == {"status": "success", "data": []}


def test_purchase_history_unauthenticated(client):
    response = client.get("/api/sweets/purchases")
    assert response.status_code == 401
