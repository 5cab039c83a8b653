import uuid

import pytest
from sqlalchemy import func, select

from storeledger.core.enums import OrderStatus, TransactionSource
from storeledger.core.exceptions import InsufficientStockError, NotFoundError, ScopeForbiddenError, ValidationError
from storeledger.db.database import transaction_scope
from storeledger.db.inventory.movement import StockTransaction
from storeledger.db.order import Order, OrderLine
from storeledger.services import orders, stock_adjustments
from storeledger.services.stock_adjustments import SaleLine


async def _order_counts(db):
    async with db.session() as s:
        return (
            await s.scalar(select(func.count(Order.id))),
            await s.scalar(select(func.count(OrderLine.id))),
        )


async def test_order_decrements_stock(session, world, receive, ledger_state):
    await receive(world.croissant.id, world.main.id, 10)
    await receive(world.flour.id, world.main.id, 5000)

    order = await orders.create_order(
        session,
        world.as_manager,
        [
            {"item_id": world.croissant.id, "quantity": 4},
            {"item_id": world.flour.id, "quantity": 1.5},
        ],
    )

    assert not session.in_transaction()
    assert order.order_status == OrderStatus.COMPLETED
    assert order.reference.startswith("ORD-")
    assert order.total_amount == pytest.approx(4 * 2.5 + 1.5 * 2.0)
    assert {line.item_id: line.quantity_base for line in order.lines} == {
        world.croissant.id: 4,
        world.flour.id: 1500,
    }
    assert await ledger_state(world.croissant.id, world.main.id) == (6, 2)
    assert await ledger_state(world.flour.id, world.main.id) == (3500, 2)

    res = await session.execute(
        select(StockTransaction).where(StockTransaction.source == TransactionSource.SALE)
    )
    sales = res.scalars().all()
    assert {t.source_document_id for t in sales} == {order.id}
    assert all(t.quantity_change < 0 for t in sales)


async def test_short_second_line_rolls_back_everything(db, session, world, receive, ledger_state):
    await receive(world.croissant.id, world.main.id, 10)
    await receive(world.flour.id, world.main.id, 1000)

    with pytest.raises(InsufficientStockError):
        await orders.create_order(
            session,
            world.as_manager,
            [
                {"item_id": world.croissant.id, "quantity": 3},
                {"item_id": world.flour.id, "quantity": 2},
            ],
        )

    assert await _order_counts(db) == (0, 0)
    assert await ledger_state(world.croissant.id, world.main.id) == (10, 1)
    assert await ledger_state(world.flour.id, world.main.id) == (1000, 1)


async def test_decrement_for_order_does_not_commit(db, world, receive, ledger_state):
    await receive(world.croissant.id, world.main.id, 10)

    async with db.session() as s:
        entries = await stock_adjustments.decrement_for_order(
            s, "ORD-TEST", uuid.uuid4(), [SaleLine(world.croissant.id, 2)], None, world.main.id,
        )
        assert entries[0].record.quantity == 8
        await s.rollback()

    assert await ledger_state(world.croissant.id, world.main.id) == (10, 1)


async def test_decrement_for_order_inside_callers_transaction(db, world, receive, ledger_state):
    await receive(world.croissant.id, world.main.id, 10)

    async with db.session() as s:
        async with transaction_scope(s):
            await stock_adjustments.decrement_for_order(
                s,
                "ORD-TEST",
                uuid.uuid4(),
                [SaleLine(world.croissant.id, 2), SaleLine(world.croissant.id, 3)],
                None,
                world.main.id,
            )

    assert await ledger_state(world.croissant.id, world.main.id) == (5, 3)


async def test_decrement_for_order_validates_lines(session, world):
    with pytest.raises(ValidationError):
        await stock_adjustments.decrement_for_order(session, "ORD-X", uuid.uuid4(), [], None, world.main.id)
    with pytest.raises(ValidationError):
        await stock_adjustments.decrement_for_order(
            session, "ORD-X", uuid.uuid4(), [SaleLine(world.croissant.id, 0)], None, world.main.id,
        )


async def test_discontinued_item_rejected_before_write(db, session, world, receive):
    await receive(world.retired.id, world.main.id, 10)
    with pytest.raises(ValidationError) as exc:
        await orders.create_order(session, world.as_manager, [{"item_id": world.retired.id, "quantity": 1}])
    assert exc.value.code == "ITEM_INACTIVE"
    assert not session.in_transaction()
    assert await _order_counts(db) == (0, 0)


async def test_unknown_item(session, world):
    with pytest.raises(NotFoundError):
        await orders.create_order(session, world.as_manager, [{"item_id": uuid.uuid4(), "quantity": 1}])


async def test_order_for_store_outside_scope(session, world):
    with pytest.raises(ScopeForbiddenError):
        await orders.create_order(
            session, world.as_staff, [{"item_id": world.croissant.id, "quantity": 1}], store_id=world.main.id,
        )


async def test_read_and_list_orders(session, world, receive):
    await receive(world.croissant.id, world.branch.id, 5)
    order = await orders.create_order(session, world.as_staff, [{"item_id": world.croissant.id, "quantity": 1}])
    assert order.store_id == world.branch.id

    # manager sees the branch's order; the unrelated store's manager does not
    found = await orders.get_order(session, world.as_manager, order.id)
    assert found.reference == order.reference
    with pytest.raises(ScopeForbiddenError):
        await orders.get_order(session, world.as_outsider, order.id)

    listed = await orders.list_orders(session, world.as_manager)
    assert [o.id for o in listed] == [order.id]
    view = orders.order_view(listed[0])
    assert view.lines[0].item_name == "Croissant"
