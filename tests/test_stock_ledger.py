import pytest
from sqlalchemy import select

from storeledger.core.enums import InventoryStatus, TransactionSource, TransactionType
from storeledger.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from storeledger.db.database import transaction_scope
from storeledger.db.inventory.movement import StockTransaction
from storeledger.services import inventory_reports, stock_ledger


def test_calculate_status():
    assert stock_ledger.calculate_status(0, 10) == InventoryStatus.OUT_OF_STOCK
    assert stock_ledger.calculate_status(10, 10) == InventoryStatus.LOW_STOCK
    assert stock_ledger.calculate_status(0.5, 10) == InventoryStatus.LOW_STOCK
    assert stock_ledger.calculate_status(11, 10) == InventoryStatus.IN_STOCK
    assert stock_ledger.calculate_status(1, 0) == InventoryStatus.IN_STOCK


async def test_adjust_creates_record_on_first_use(world, receive, ledger_state):
    entry = await receive(world.flour.id, world.main.id, 1500)

    assert entry.record.quantity == 1500
    assert entry.record.status == InventoryStatus.IN_STOCK
    assert entry.transaction.type == TransactionType.COMING_IN
    assert entry.transaction.quantity_change == 1500
    assert entry.transaction.resulting_quantity == 1500
    assert entry.transaction.sequence == 1
    assert await ledger_state(world.flour.id, world.main.id) == (1500, 1)


async def test_each_result_chains_from_the_previous(db, world, receive):
    await receive(world.flour.id, world.main.id, 1000, min_stock_level=200)

    deltas = [-300, 250, -750, -40]
    async with db.session() as s:
        for delta in deltas:
            async with transaction_scope(s):
                before = (await stock_ledger.get_record(s, world.flour.id, world.main.id, refresh=True)).quantity
                entry = await stock_ledger.adjust(s, world.flour.id, world.main.id, delta, TransactionSource.INVENTORY_ADJUSTMENT)
            assert entry.transaction.resulting_quantity == before + delta
            assert entry.record.quantity == entry.transaction.resulting_quantity

        res = await s.execute(
            select(StockTransaction)
            .where(StockTransaction.item_id == world.flour.id, StockTransaction.store_id == world.main.id)
            .order_by(StockTransaction.sequence)
        )
        log = res.scalars().all()

    assert [t.sequence for t in log] == [1, 2, 3, 4, 5]
    for prev, cur in zip(log, log[1:]):
        assert cur.resulting_quantity == prev.resulting_quantity + cur.quantity_change
    assert log[-1].resulting_quantity == 160
    assert entry.record.status == InventoryStatus.LOW_STOCK


async def test_going_to_zero_is_out_of_stock(db, world, receive):
    await receive(world.milk.id, world.main.id, 500)
    async with db.session() as s:
        async with transaction_scope(s):
            entry = await stock_ledger.adjust(s, world.milk.id, world.main.id, -500, TransactionSource.WASTAGE)
    assert entry.record.quantity == 0
    assert entry.record.status == InventoryStatus.OUT_OF_STOCK
    assert entry.transaction.type == TransactionType.GOING_OUT


async def test_rejected_decrement_leaves_no_trace(db, world, receive, ledger_state):
    await receive(world.flour.id, world.main.id, 100)

    async with db.session() as s:
        with pytest.raises(InsufficientStockError) as exc:
            async with transaction_scope(s):
                await stock_ledger.adjust(s, world.flour.id, world.main.id, -101, TransactionSource.PRODUCTION_USAGE)

    assert exc.value.available == 100
    assert exc.value.requested == 101
    assert exc.value.status_code == 409
    assert await ledger_state(world.flour.id, world.main.id) == (100, 1)


async def test_decrement_without_record_creates_nothing(db, world, ledger_state):
    async with db.session() as s:
        with pytest.raises(InsufficientStockError):
            async with transaction_scope(s):
                await stock_ledger.adjust(s, world.flour.id, world.branch.id, -1, TransactionSource.SALE)

    assert await ledger_state(world.flour.id, world.branch.id) == (None, 0)


async def test_zero_delta_rejected(session, world):
    with pytest.raises(ValidationError):
        await stock_ledger.adjust(session, world.flour.id, world.main.id, 0, TransactionSource.INVENTORY_ADJUSTMENT)


async def test_upsert_record_is_idempotent_and_keeps_quantity(db, world, receive):
    await receive(world.flour.id, world.main.id, 300)

    async with db.session() as s:
        async with transaction_scope(s):
            first = await stock_ledger.upsert_record(s, world.flour.id, world.main.id, 500)
        assert first.quantity == 300
        assert first.min_stock_level == 500
        assert first.status == InventoryStatus.LOW_STOCK

        async with transaction_scope(s):
            second = await stock_ledger.upsert_record(s, world.flour.id, world.main.id, 100)
        assert second.id == first.id
        assert second.quantity == 300
        assert second.status == InventoryStatus.IN_STOCK


async def test_new_record_starts_out_of_stock(session, world):
    async with transaction_scope(session):
        record = await stock_ledger.upsert_record(session, world.milk.id, world.branch.id, 1000)
    assert record.quantity == 0
    assert record.version == 0
    assert record.status == InventoryStatus.OUT_OF_STOCK


async def test_reconcile_replays_log(db, world, receive):
    await receive(world.flour.id, world.main.id, 1000)
    async with db.session() as s:
        async with transaction_scope(s):
            await stock_ledger.adjust(s, world.flour.id, world.main.id, -400, TransactionSource.PRODUCTION_USAGE)
        result = await inventory_reports.reconcile(s, world.flour.id, world.main.id)

    assert result.consistent
    assert result.chain_intact
    assert result.transaction_count == 2
    assert result.replayed_quantity == result.recorded_quantity == 600


async def test_reconcile_flags_a_broken_chain(db, world, receive):
    await receive(world.flour.id, world.main.id, 1000)
    async with db.session() as s:
        row = (await s.execute(select(StockTransaction).where(StockTransaction.item_id == world.flour.id))).scalars().one()
        row.resulting_quantity = 900
        await s.commit()

        result = await inventory_reports.reconcile(s, world.flour.id, world.main.id)
    assert not result.consistent
    assert result.broken_sequences == [1]


async def test_reconcile_without_record(session, world):
    with pytest.raises(NotFoundError):
        await inventory_reports.reconcile(session, world.milk.id, world.main.id)
