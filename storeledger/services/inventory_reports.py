"""Read-side views over the transaction log: history, movement totals, replay."""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.enums import TransactionSource
from storeledger.core.exceptions import NotFoundError, ValidationError
from storeledger.core.permissions import Principal, require
from storeledger.db.database import transaction_scope
from storeledger.db.inventory.movement import StockTransaction
from storeledger.schemas.inventory import MovementReport, MovementSummaryRow, ReconciliationOut, StockTransactionOut
from storeledger.services import stock_ledger
from storeledger.services.catalog import fetch_item
from storeledger.services.stock_views import transaction_view
from storeledger.services.store_scope import authorize_store, narrow_scope

logger = logging.getLogger(__name__)

# replayed totals are sums of floats
TOLERANCE = 1e-6

SOURCE_LABELS = {
    TransactionSource.PURCHASE_RECEIPT: "Purchase receipts",
    TransactionSource.PRODUCTION_USAGE: "Production usage",
    TransactionSource.INVENTORY_ADJUSTMENT: "Inventory adjustments",
    TransactionSource.WASTAGE: "Wastage",
    TransactionSource.SALE: "Sales",
    TransactionSource.TRANSFER_IN: "Transfers in",
    TransactionSource.TRANSFER_OUT: "Transfers out",
}


@dataclass
class Reconciliation:
    item_id: UUID
    store_id: UUID
    recorded_quantity: float
    replayed_quantity: float
    transaction_count: int
    chain_intact: bool
    broken_sequences: List[int] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return self.chain_intact and abs(self.recorded_quantity - self.replayed_quantity) <= TOLERANCE


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def period_bounds(
    period: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """[start, end) in UTC for a named period or an inclusive date range."""
    if start_date or end_date:
        if not (start_date and end_date):
            raise ValidationError("start_date and end_date must be given together", code="INVALID_RANGE")
        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date", code="INVALID_RANGE")
        return _day_start(start_date), _day_start(end_date + timedelta(days=1))

    if period is None:
        return None, None

    now = now or datetime.now(timezone.utc)
    today = now.date()
    if period == "day":
        start = today
    elif period == "week":
        start = today - timedelta(days=today.weekday())
    elif period == "month":
        start = today.replace(day=1)
    else:
        raise ValidationError(f"Unknown period: {period}", code="INVALID_PERIOD")
    return _day_start(start), now


async def list_transactions(
    session: AsyncSession,
    item_id: UUID,
    store_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = None,
) -> List[StockTransaction]:
    """Newest first."""
    start, end = period_bounds(start_date=start_date, end_date=end_date)
    stmt = select(StockTransaction).where(
        StockTransaction.item_id == item_id,
        StockTransaction.store_id == store_id,
    )
    if start is not None:
        stmt = stmt.where(StockTransaction.created_at >= start, StockTransaction.created_at < end)
    stmt = stmt.order_by(StockTransaction.sequence.desc())
    if limit:
        stmt = stmt.limit(limit)
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def movement_summary(
    session: AsyncSession,
    store_ids: Iterable[UUID],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Tuple[TransactionSource, float, int]]:
    stmt = (
        select(
            StockTransaction.source,
            func.sum(StockTransaction.quantity_change),
            func.count(StockTransaction.id),
        )
        .where(StockTransaction.store_id.in_(list(store_ids)))
        .group_by(StockTransaction.source)
        .order_by(StockTransaction.source)
    )
    if start is not None:
        stmt = stmt.where(StockTransaction.created_at >= start)
    if end is not None:
        stmt = stmt.where(StockTransaction.created_at < end)

    res = await session.execute(stmt)
    return [(TransactionSource(src), float(total or 0.0), int(count)) for src, total, count in res.all()]


async def reconcile(session: AsyncSession, item_id: UUID, store_id: UUID) -> Reconciliation:
    """Replay the log for (item, store) and compare it with the stored quantity."""
    record = await stock_ledger.get_record(session, item_id, store_id, refresh=True)
    if not record:
        raise NotFoundError(
            "Inventory record not found",
            code="INVENTORY_NOT_FOUND",
            details={"item_id": str(item_id), "store_id": str(store_id)},
        )

    res = await session.execute(
        select(StockTransaction)
        .where(StockTransaction.item_id == item_id, StockTransaction.store_id == store_id)
        .order_by(StockTransaction.sequence)
    )
    transactions = res.scalars().all()

    running = 0.0
    broken = []
    for t in transactions:
        running += t.quantity_change
        if abs(running - t.resulting_quantity) > TOLERANCE:
            broken.append(t.sequence)
            # continue from what was recorded so one bad row is reported once
            running = t.resulting_quantity

    result = Reconciliation(
        item_id=item_id,
        store_id=store_id,
        recorded_quantity=record.quantity,
        replayed_quantity=running,
        transaction_count=len(transactions),
        chain_intact=not broken,
        broken_sequences=broken,
    )
    if not result.consistent:
        logger.warning(
            "Ledger mismatch item=%s store=%s recorded=%s replayed=%s broken=%s",
            item_id, store_id, record.quantity, running, broken,
        )
    return result


async def transaction_history(
    session: AsyncSession,
    principal: Principal,
    item_id: UUID,
    store_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = None,
) -> List[StockTransactionOut]:
    require(principal, "inventory.read")
    async with transaction_scope(session):
        store_id = await authorize_store(session, principal, store_id)
        item = await fetch_item(session, item_id)
        transactions = await list_transactions(session, item.id, store_id, start_date, end_date, limit)
    return [transaction_view(t, item.unit) for t in transactions]


async def reconcile_stock(
    session: AsyncSession,
    principal: Principal,
    item_id: UUID,
    store_id: Optional[UUID] = None,
) -> ReconciliationOut:
    require(principal, "inventory.read")
    async with transaction_scope(session):
        store_id = await authorize_store(session, principal, store_id)
        item = await fetch_item(session, item_id)
        result = await reconcile(session, item.id, store_id)
    return ReconciliationOut(
        item_id=result.item_id,
        store_id=result.store_id,
        recorded_quantity=result.recorded_quantity,
        replayed_quantity=result.replayed_quantity,
        transaction_count=result.transaction_count,
        chain_intact=result.chain_intact,
        consistent=result.consistent,
        broken_sequences=result.broken_sequences,
    )


async def movement_report(
    session: AsyncSession,
    principal: Principal,
    target_store_ids: Optional[Iterable[UUID]] = None,
    period: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> MovementReport:
    """Base-unit totals per transaction source across the stores in scope."""
    start, end = period_bounds(period, start_date, end_date)
    require(principal, "inventory.read")
    async with transaction_scope(session):
        scope = await narrow_scope(session, principal, target_store_ids)
        rows = await movement_summary(session, scope, start, end)
    return MovementReport(
        period=None if start_date else period,
        period_start=start,
        period_end=end,
        store_ids=sorted(scope, key=str),
        summary=[
            MovementSummaryRow(source=src, label=SOURCE_LABELS[src], total_change_base=total, transaction_count=count)
            for src, total, count in rows
        ],
    )
