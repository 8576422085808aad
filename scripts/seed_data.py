from __future__ import annotations

import argparse
from decimal import Decimal

from services.api.app.db.database import db_session
from services.api.app.db.init_db import init_db
from services.api.app.db.models import MenuItem, Restaurant


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a demo restaurant and menu for Platter")
    parser.add_argument("--restaurant-id", default="r-1")
    parser.add_argument("--restaurant-name", default="Platter Kitchen")
    parser.add_argument("--owner-id", default="owner-1")
    parser.add_argument("--delivery-fee", default="3.00")
    parser.add_argument("--minimum-order", default="20.00")
    parser.add_argument("--delivery-time", default="30-45 mins")
    args = parser.parse_args()

    init_db()

    db = db_session()
    try:
        if db.get(Restaurant, args.restaurant_id) is None:
            db.add(
                Restaurant(
                    id=args.restaurant_id,
                    name=args.restaurant_name,
                    owner_id=args.owner_id,
                    is_active=True,
                    delivery_fee=Decimal(args.delivery_fee),
                    minimum_order=Decimal(args.minimum_order),
                    estimated_delivery_time=args.delivery_time,
                )
            )

        # Menu
        existing_menu = (
            db.query(MenuItem).filter(MenuItem.restaurant_id == args.restaurant_id).limit(1).count()
        )
        if existing_menu == 0:
            for suffix, name, price, discount in (
                ("burger", "Classic Burger", "12.00", "0"),
                ("fries", "Fries", "4.50", "0"),
                ("salad", "Garden Salad", "9.00", "10"),
            ):
                db.add(
                    MenuItem(
                        id=f"{args.restaurant_id}-{suffix}",
                        restaurant_id=args.restaurant_id,
                        name=name,
                        price=Decimal(price),
                        discount_percentage=Decimal(discount),
                        is_available=True,
                    )
                )

        db.commit()
        print(f"Seeded restaurant={args.restaurant_id}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
