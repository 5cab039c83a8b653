import pytest
from sqlalchemy import select

from storeledger.core.enums import TransactionSource
from storeledger.db.activity_log import ActivityLog
from storeledger.db.database import Database
from storeledger.services import stock_adjustments
from storeledger.services.activity import ActivityLogger, adjustment_action


def test_adjustment_action_names():
    assert adjustment_action(TransactionSource.PURCHASE_RECEIPT) == "STOCK_ADJUSTED_PURCHASE_RECEIPT"
    assert adjustment_action(TransactionSource.WASTAGE) == "STOCK_ADJUSTED_WASTAGE"
    assert adjustment_action(TransactionSource.TRANSFER_OUT) == "STOCK_ADJUSTED_TRANSFER_OUT"


async def test_entry_written_after_adjustment(db, session, world, activity):
    await stock_adjustments.add_stock(
        session, world.as_manager, world.flour.id, 2, world.kg.id, activity=activity,
    )

    async with db.session() as s:
        entries = (await s.execute(select(ActivityLog))).scalars().all()
    assert [e.action for e in entries] == ["STOCK_ADJUSTED_PURCHASE_RECEIPT"]
    assert entries[0].user_id == world.manager.id
    assert entries[0].store_id == world.main.id
    assert entries[0].entity_id == str(world.flour.id)


@pytest.fixture
async def unreachable_activity(tmp_path):
    # the directory does not exist, so every write fails
    dead = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'activity.db'}")
    yield ActivityLogger(dead)
    await dead.dispose()


async def test_failed_write_is_reported_not_raised(unreachable_activity):
    assert await unreachable_activity.record(action="ORDER_CREATED", details="x") is False


async def test_log_failure_does_not_undo_the_mutation(session, world, ledger_state, unreachable_activity):
    result = await stock_adjustments.add_stock(
        session, world.as_manager, world.flour.id, 1, world.kg.id, activity=unreachable_activity,
    )

    assert result.quantity_base == 1000
    assert await ledger_state(world.flour.id, world.main.id) == (1000, 1)
