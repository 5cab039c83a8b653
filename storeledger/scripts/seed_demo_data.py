"""
Seed a small demo dataset.

This will:
- CREATE base units g / ml / piece with kg, L and dozen on top
- CREATE a main store with one branch
- CREATE a manager user (manager@example.com / manager-password) at the main store
- CREATE a few items and receive opening stock for them through the ledger,
  so every quantity has a matching transaction

Skips everything if the unit "g" already exists.

Run:
  python -m storeledger.scripts.seed_demo_data
"""

from __future__ import annotations

import asyncio
import logging

from fastapi_users.password import PasswordHelper
from sqlalchemy import select

from storeledger.core.config import settings
from storeledger.core.enums import ItemType, Role, TransactionSource, UnitFamily
from storeledger.core.logging_config import configure_logging
from storeledger.db.database import Database, transaction_scope
from storeledger.db.item import Item
from storeledger.db.store import Store
from storeledger.db.unit_of_measurement import UnitOfMeasurement
from storeledger.db.users import User
from storeledger.services import stock_ledger
from storeledger.services.unit_conversion import price_to_base, to_base

logger = logging.getLogger("storeledger.scripts.seed_demo_data")

UNITS = [
    # (name, symbol, family, factor, is_base)
    ("Gram", "g", UnitFamily.WEIGHT, 1.0, True),
    ("Kilogram", "kg", UnitFamily.WEIGHT, 1000.0, False),
    ("Millilitre", "ml", UnitFamily.VOLUME, 1.0, True),
    ("Litre", "L", UnitFamily.VOLUME, 1000.0, False),
    ("Piece", "piece", UnitFamily.COUNT, 1.0, True),
    ("Dozen", "dozen", UnitFamily.COUNT, 12.0, False),
]

ITEMS = [
    # (name, type, unit symbol, price per unit, opening stock, min level) in that unit
    ("Flour", ItemType.RAW_MATERIAL, "kg", 1.8, 25.0, 5.0),
    ("Milk", ItemType.RAW_MATERIAL, "L", 1.2, 12.0, 4.0),
    ("Eggs", ItemType.RAW_MATERIAL, "dozen", 3.5, 10.0, 2.0),
    ("Croissant", ItemType.MENU_ITEM, "piece", 2.5, 40.0, 10.0),
]


async def main() -> None:
    configure_logging(settings.log_level)
    db = Database(settings.database_url, sqlite_busy_timeout=settings.sqlite_busy_timeout)
    await db.create_all()

    try:
        async with db.session() as session:
            res = await session.execute(select(UnitOfMeasurement).where(UnitOfMeasurement.symbol == "g"))
            if res.scalars().first():
                logger.info("Demo data already present, nothing to do.")
                return

            async with transaction_scope(session):
                units = {}
                for name, symbol, family, factor, is_base in UNITS:
                    u = UnitOfMeasurement(
                        name=name,
                        symbol=symbol,
                        unit_family=family,
                        conversion_factor_to_base=factor,
                        is_base_unit=is_base,
                    )
                    session.add(u)
                    units[symbol] = u
                await session.flush()
                base_units = {u.unit_family: u for u in units.values() if u.is_base_unit}

                main_store = Store(name="Main Store", location="Downtown")
                session.add(main_store)
                await session.flush()
                branch = Store(name="Harbour Branch", location="Harbour", parent_store_id=main_store.id)
                session.add(branch)

                manager = User(
                    email="manager@example.com",
                    hashed_password=PasswordHelper().hash("manager-password"),
                    is_active=True,
                    is_verified=True,
                    first_name="Demo",
                    last_name="Manager",
                    role=Role.MANAGER,
                    store_id=main_store.id,
                )
                session.add(manager)
                await session.flush()

                for name, item_type, symbol, price, opening, min_level in ITEMS:
                    unit = units[symbol]
                    item = Item(
                        name=name,
                        item_type=item_type,
                        unit_id=unit.id,
                        base_unit_id=base_units[unit.unit_family].id,
                        price_per_base_unit=price_to_base(price, unit),
                    )
                    session.add(item)
                    await session.flush()

                    for store in (main_store, branch):
                        await stock_ledger.upsert_record(session, item.id, store.id, to_base(min_level, unit))
                        await stock_ledger.adjust(
                            session,
                            item.id,
                            store.id,
                            to_base(opening, unit),
                            TransactionSource.PURCHASE_RECEIPT,
                            performed_by=manager.id,
                            notes="Opening stock",
                        )

            logger.info(
                "Done. Units: %s. Stores: 2. Items: %s. Manager: manager@example.com",
                len(UNITS), len(ITEMS),
            )
    finally:
        await db.dispose()


if __name__ == "__main__":
    asyncio.run(main())
