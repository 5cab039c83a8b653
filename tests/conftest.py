import uuid
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from storeledger.core.auth import current_active_user
from storeledger.core.config import Settings
from storeledger.core.enums import ItemType, Role, TransactionSource, UnitFamily
from storeledger.core.permissions import Principal
from storeledger.db.database import Database, transaction_scope
from storeledger.db.inventory.movement import StockTransaction
from storeledger.db.inventory.stock import InventoryRecord
from storeledger.db.item import Item
from storeledger.db.store import Store
from storeledger.db.unit_of_measurement import UnitOfMeasurement
from storeledger.db.users import User
from storeledger.main import create_app
from storeledger.services import stock_ledger
from storeledger.services.activity import ActivityLogger


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", sqlite_busy_timeout=30)
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
async def session(db):
    async with db.session() as s:
        yield s


@pytest.fixture
def activity(db):
    return ActivityLogger(db)


def _unit(name, symbol, family, factor, is_base=False):
    return UnitOfMeasurement(
        name=name,
        symbol=symbol,
        unit_family=family,
        conversion_factor_to_base=factor,
        is_base_unit=is_base,
    )


def _user(email, role, store):
    return User(
        id=uuid.uuid4(),
        email=email,
        hashed_password="not-a-real-hash",
        is_active=True,
        is_superuser=False,
        is_verified=True,
        role=role,
        store_id=store.id,
    )


def principal_of(user: User) -> Principal:
    return Principal(id=user.id, role=Role(user.role), store_id=user.store_id)


@pytest.fixture
async def world(db):
    """Units, a main store with one branch, an unrelated store, users and items."""
    async with db.session() as s:
        g = _unit("Gram", "g", UnitFamily.WEIGHT, 1.0, True)
        kg = _unit("Kilogram", "kg", UnitFamily.WEIGHT, 1000.0)
        ml = _unit("Millilitre", "ml", UnitFamily.VOLUME, 1.0, True)
        litre = _unit("Litre", "L", UnitFamily.VOLUME, 1000.0)
        piece = _unit("Piece", "piece", UnitFamily.COUNT, 1.0, True)
        s.add_all([g, kg, ml, litre, piece])

        main = Store(name="Main")
        other = Store(name="Elsewhere")
        s.add_all([main, other])
        await s.flush()
        branch = Store(name="Branch", parent_store_id=main.id)
        s.add(branch)
        await s.flush()

        manager = _user("manager@example.com", Role.MANAGER, main)
        admin = _user("admin@example.com", Role.ADMIN, main)
        staff = _user("staff@example.com", Role.USER, branch)
        guest = _user("guest@example.com", Role.GUEST, main)
        outsider = _user("outsider@example.com", Role.MANAGER, other)
        s.add_all([manager, admin, staff, guest, outsider])

        flour = Item(
            name="Flour",
            item_type=ItemType.RAW_MATERIAL,
            unit_id=kg.id,
            base_unit_id=g.id,
            price_per_base_unit=0.002,
        )
        milk = Item(
            name="Milk",
            item_type=ItemType.RAW_MATERIAL,
            unit_id=litre.id,
            base_unit_id=ml.id,
            price_per_base_unit=0.0015,
        )
        croissant = Item(
            name="Croissant",
            item_type=ItemType.MENU_ITEM,
            unit_id=piece.id,
            base_unit_id=piece.id,
            price_per_base_unit=2.5,
        )
        retired = Item(
            name="Old Bagel",
            item_type=ItemType.MENU_ITEM,
            unit_id=piece.id,
            base_unit_id=piece.id,
            price_per_base_unit=1.0,
            is_active=False,
        )
        s.add_all([flour, milk, croissant, retired])
        await s.commit()

    return SimpleNamespace(
        g=g, kg=kg, ml=ml, litre=litre, piece=piece,
        main=main, branch=branch, other=other,
        manager=manager, admin=admin, staff=staff, guest=guest, outsider=outsider,
        flour=flour, milk=milk, croissant=croissant, retired=retired,
        as_manager=principal_of(manager),
        as_admin=principal_of(admin),
        as_staff=principal_of(staff),
        as_guest=principal_of(guest),
        as_outsider=principal_of(outsider),
    )


@pytest.fixture
def receive(db):
    """Put base-unit stock on the books through the ledger, committed."""

    async def _receive(item_id, store_id, quantity_base, min_stock_level=None):
        async with db.session() as s:
            async with transaction_scope(s):
                if min_stock_level is not None:
                    await stock_ledger.upsert_record(s, item_id, store_id, min_stock_level)
                entry = await stock_ledger.adjust(
                    s, item_id, store_id, quantity_base, TransactionSource.PURCHASE_RECEIPT
                )
        return entry

    return _receive


@pytest.fixture
def ledger_state(db):
    """(quantity or None, transaction count) for an (item, store), read fresh."""

    async def _state(item_id, store_id):
        async with db.session() as s:
            quantity = await s.scalar(
                select(InventoryRecord.quantity).where(
                    InventoryRecord.item_id == item_id,
                    InventoryRecord.store_id == store_id,
                )
            )
            count = await s.scalar(
                select(func.count(StockTransaction.id)).where(
                    StockTransaction.item_id == item_id,
                    StockTransaction.store_id == store_id,
                )
            )
        return quantity, count

    return _state


@pytest.fixture
async def client_for(db):
    clients = []

    async def _make(user):
        app = create_app(Settings(database_url=str(db.url), log_level="WARNING"), database=db)
        app.dependency_overrides[current_active_user] = lambda: user
        client = AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()
