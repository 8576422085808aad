from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

CUSTOMER = {"X-Actor-Id": "c-1", "X-Actor-Role": "customer"}
ADMIN = {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}


def _seed_menu() -> None:
    from services.api.app.db.database import db_session
    from services.api.app.db.models import MenuItem, Restaurant

    db = db_session()
    try:
        db.add(
            Restaurant(
                id="r-1",
                name="Burger Barn",
                delivery_fee=Decimal("3.00"),
                minimum_order=Decimal("20.00"),
                estimated_delivery_time="30-45 mins",
            )
        )
        db.flush()
        db.add_all(
            [
                MenuItem(id="burger", restaurant_id="r-1", name="Classic Burger", price=Decimal("12.00")),
                MenuItem(id="fries", restaurant_id="r-1", name="Fries", price=Decimal("4.50")),
                MenuItem(
                    id="soup",
                    restaurant_id="r-1",
                    name="Soup",
                    price=Decimal("6.00"),
                    is_available=False,
                ),
            ]
        )
        db.commit()
    finally:
        db.close()


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "platter_cart.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("PLATTER_DB_AUTO_CREATE", "true")
    monkeypatch.delenv("PLATTER_TAX_RATE", raising=False)
    monkeypatch.delenv("PLATTER_CLOCK", raising=False)

    from services.api.app.main import app

    with TestClient(app) as c:
        _seed_menu()
        yield c


def _add(client: TestClient, menu_item_id: str = "burger", quantity: int = 2):
    return client.post(
        "/v1/cart/items",
        json={"menu_item_id": menu_item_id, "quantity": quantity},
        headers=CUSTOMER,
    )


def test_missing_actor_headers_are_rejected(client: TestClient) -> None:
    assert client.get("/v1/cart").status_code == 401


def test_unknown_role_is_rejected(client: TestClient) -> None:
    r = client.get("/v1/cart", headers={"X-Actor-Id": "c-1", "X-Actor-Role": "chef"})
    assert r.status_code == 401


def test_admin_has_no_cart(client: TestClient) -> None:
    assert client.get("/v1/cart", headers=ADMIN).status_code == 403


def test_empty_cart_view(client: TestClient) -> None:
    r = client.get("/v1/cart", headers=CUSTOMER)
    assert r.status_code == 200

    data = r.json()
    assert data["customer_id"] == "c-1"
    assert data["items"] == []
    assert Decimal(data["total"]) == Decimal("0")


def test_add_item_returns_priced_cart(client: TestClient) -> None:
    r = _add(client)
    assert r.status_code == 200

    data = r.json()
    assert data["restaurant_id"] == "r-1"
    assert data["total_items"] == 2
    assert data["items"][0]["total_price"] == "24.00"
    assert data["subtotal"] == "24.00"
    assert data["tax"] == "1.92"
    assert data["total"] == "28.92"

    again = client.get("/v1/cart", headers=CUSTOMER).json()
    assert again["id"] == data["id"]
    assert again["total"] == "28.92"


def test_add_item_errors(client: TestClient) -> None:
    assert _add(client, "missing").status_code == 404
    assert _add(client, "soup").status_code == 409
    assert _add(client, quantity=0).status_code == 422


def test_update_and_remove_by_index(client: TestClient) -> None:
    _add(client)
    _add(client, "fries", 1)

    r = client.put("/v1/cart/items/1", json={"quantity": 3}, headers=CUSTOMER)
    assert r.status_code == 200
    assert r.json()["items"][1]["total_price"] == "13.50"

    assert client.put("/v1/cart/items/7", json={"quantity": 1}, headers=CUSTOMER).status_code == 400

    r = client.delete("/v1/cart/items/0", headers=CUSTOMER)
    assert r.status_code == 200
    assert [i["menu_item_id"] for i in r.json()["items"]] == ["fries"]


def test_update_without_cart_is_not_found(client: TestClient) -> None:
    r = client.put("/v1/cart/items/0", json={"quantity": 1}, headers=CUSTOMER)
    assert r.status_code == 404


def test_coupon_flow(client: TestClient) -> None:
    _add(client)

    r = client.post("/v1/cart/coupon", json={"coupon_code": "save10"}, headers=CUSTOMER)
    assert r.status_code == 200
    data = r.json()
    assert data["applied_coupon"]["code"] == "SAVE10"
    assert data["discount"] == "2.40"
    assert data["total"] == "26.52"

    bad = client.post("/v1/cart/coupon", json={"coupon_code": "NOPE"}, headers=CUSTOMER)
    assert bad.status_code == 400
    assert bad.json()["detail"] == "Invalid coupon code"

    r = client.delete("/v1/cart/coupon", headers=CUSTOMER)
    assert r.status_code == 200
    assert r.json()["applied_coupon"] is None
    assert r.json()["total"] == "28.92"


def test_validate_reports_minimum(client: TestClient) -> None:
    _add(client, "fries", 1)

    r = client.post("/v1/cart/validate", headers=CUSTOMER)
    assert r.status_code == 200
    data = r.json()
    assert data["valid"] is False
    assert data["errors"] == ["Minimum order amount is $20.00"]


def test_clear_cart(client: TestClient) -> None:
    _add(client)

    r = client.delete("/v1/cart", headers=CUSTOMER)
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    after = client.get("/v1/cart", headers=CUSTOMER).json()
    assert after["id"] is None
    assert after["items"] == []
