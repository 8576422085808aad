from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest
from services.api.app.services.clock import FixedClock
from sqlalchemy.orm import Session


@pytest.fixture()
def db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Session]:
    db_path = tmp_path / "platter_test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("PLATTER_DB_AUTO_CREATE", "true")
    monkeypatch.delenv("PLATTER_TAX_RATE", raising=False)
    monkeypatch.delenv("PLATTER_DEFAULT_DELIVERY_MINUTES", raising=False)

    from services.api.app.db.database import db_session
    from services.api.app.db.init_db import init_db

    init_db()

    session = db_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 5, 1, 12, 0, 0))


@pytest.fixture()
def catalog(db: Session) -> SimpleNamespace:
    """Two restaurants: r-1 (fee 3.00, minimum 20.00) and r-2 (fee 5.00, no minimum)."""

    from services.api.app.db.models import MenuItem, Restaurant

    r1 = Restaurant(
        id="r-1",
        name="Burger Barn",
        owner_id="owner-1",
        is_active=True,
        delivery_fee=Decimal("3.00"),
        minimum_order=Decimal("20.00"),
        estimated_delivery_time="30-45 mins",
    )
    r2 = Restaurant(
        id="r-2",
        name="Pizza Place",
        owner_id="owner-2",
        is_active=True,
        delivery_fee=Decimal("5.00"),
        minimum_order=Decimal("0"),
        estimated_delivery_time="1 hour",
    )
    burger = MenuItem(id="burger", restaurant_id="r-1", name="Classic Burger", price=Decimal("12.00"))
    fries = MenuItem(id="fries", restaurant_id="r-1", name="Fries", price=Decimal("4.50"))
    salad = MenuItem(
        id="salad",
        restaurant_id="r-1",
        name="Garden Salad",
        price=Decimal("9.00"),
        discount_percentage=Decimal("10"),
    )
    soup = MenuItem(
        id="soup", restaurant_id="r-1", name="Soup", price=Decimal("6.00"), is_available=False
    )
    pizza = MenuItem(id="pizza", restaurant_id="r-2", name="Margherita", price=Decimal("15.00"))

    db.add_all([r1, r2])
    db.flush()
    db.add_all([burger, fries, salad, soup, pizza])
    db.commit()

    return SimpleNamespace(
        restaurant=r1,
        other_restaurant=r2,
        burger=burger,
        fries=fries,
        salad=salad,
        soup=soup,
        pizza=pizza,
    )
