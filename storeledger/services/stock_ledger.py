"""Per-(item, store) stock ledger.

Every quantity change goes through `adjust`: one conditional UPDATE that only
succeeds while the result stays non-negative, followed by an append-only
StockTransaction carrying the new record version as its sequence number.
Nothing here commits; callers own the unit of work.
"""
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.enums import InventoryStatus, TransactionSource, TransactionType
from storeledger.core.exceptions import InsufficientStockError, InternalError, ValidationError
from storeledger.db.inventory.movement import StockTransaction
from storeledger.db.inventory.stock import InventoryRecord

logger = logging.getLogger(__name__)

records = InventoryRecord.__table__


@dataclass
class LedgerEntry:
    record: InventoryRecord
    transaction: StockTransaction


def calculate_status(quantity: float, min_stock_level: float) -> InventoryStatus:
    if quantity <= 0:
        return InventoryStatus.OUT_OF_STOCK
    if quantity <= min_stock_level:
        return InventoryStatus.LOW_STOCK
    return InventoryStatus.IN_STOCK


def status_expression(quantity, min_stock_level):
    """SQL twin of calculate_status, evaluated against the row being written."""
    return case(
        (quantity <= 0, InventoryStatus.OUT_OF_STOCK.value),
        (quantity <= min_stock_level, InventoryStatus.LOW_STOCK.value),
        else_=InventoryStatus.IN_STOCK.value,
    )


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise InternalError(f"Unsupported database dialect: {dialect}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_record(session: AsyncSession, item_id: UUID, store_id: UUID, refresh: bool = False) -> Optional[InventoryRecord]:
    stmt = select(InventoryRecord).where(
        InventoryRecord.item_id == item_id,
        InventoryRecord.store_id == store_id,
    )
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    res = await session.execute(stmt)
    return res.scalars().first()


async def list_records(session: AsyncSession, store_ids: Iterable[UUID]) -> List[InventoryRecord]:
    res = await session.execute(
        select(InventoryRecord)
        .where(InventoryRecord.store_id.in_(list(store_ids)))
        .order_by(InventoryRecord.store_id, InventoryRecord.item_id)
    )
    return list(res.scalars().unique().all())


async def ensure_record(session: AsyncSession, item_id: UUID, store_id: UUID) -> None:
    """Create an empty record for (item, store) unless one exists already.

    Concurrent callers race on the unique index; the loser's insert is a no-op.
    """
    now = _utcnow()
    stmt = _insert_for(session)(records).values(
        id=uuid.uuid4(),
        item_id=item_id,
        store_id=store_id,
        quantity=0.0,
        min_stock_level=0.0,
        status=InventoryStatus.OUT_OF_STOCK,
        version=0,
        last_count_date=now,
        created_at=now,
        last_modified=now,
    ).on_conflict_do_nothing(index_elements=["item_id", "store_id"])
    await session.execute(stmt)


async def upsert_record(session: AsyncSession, item_id: UUID, store_id: UUID, min_stock_level: float) -> InventoryRecord:
    """Create the record or update its min stock level; quantity is never touched here."""
    if not math.isfinite(min_stock_level) or min_stock_level < 0:
        raise ValidationError("min_stock_level must be >= 0", code="INVALID_MIN_STOCK_LEVEL")

    now = _utcnow()
    insert = _insert_for(session)(records).values(
        id=uuid.uuid4(),
        item_id=item_id,
        store_id=store_id,
        quantity=0.0,
        min_stock_level=min_stock_level,
        status=InventoryStatus.OUT_OF_STOCK,
        version=0,
        last_count_date=now,
        created_at=now,
        last_modified=now,
    )
    stmt = insert.on_conflict_do_update(
        index_elements=["item_id", "store_id"],
        set_={
            "min_stock_level": insert.excluded.min_stock_level,
            "status": status_expression(records.c.quantity, insert.excluded.min_stock_level),
            "last_modified": now,
        },
    )
    await session.execute(stmt)
    return await get_record(session, item_id, store_id, refresh=True)


async def adjust(
    session: AsyncSession,
    item_id: UUID,
    store_id: UUID,
    delta: float,
    source: TransactionSource,
    performed_by: Optional[UUID] = None,
    source_document_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """Apply a signed base-unit delta to (item, store) and record it.

    Raises InsufficientStockError when the result would go negative; in that
    case nothing the caller has not already written is left behind once the
    caller rolls back.
    """
    delta = float(delta)
    if not math.isfinite(delta) or delta == 0:
        raise ValidationError("Adjustment must be a non-zero number", code="INVALID_DELTA")

    await ensure_record(session, item_id, store_id)

    now = _utcnow()
    new_quantity = records.c.quantity + delta
    stmt = (
        update(records)
        .where(
            records.c.item_id == item_id,
            records.c.store_id == store_id,
            new_quantity >= 0,
        )
        .values(
            quantity=new_quantity,
            status=status_expression(new_quantity, records.c.min_stock_level),
            version=records.c.version + 1,
            last_modified=now,
            last_count_date=now,
        )
        .returning(records.c.id, records.c.quantity, records.c.version)
    )
    row = (await session.execute(stmt)).first()

    if row is None:
        available = await session.scalar(
            select(records.c.quantity).where(
                records.c.item_id == item_id,
                records.c.store_id == store_id,
            )
        )
        logger.warning(
            "Rejected adjustment item=%s store=%s delta=%s available=%s",
            item_id, store_id, delta, available,
        )
        raise InsufficientStockError(item_id, store_id, available or 0.0, abs(delta))

    transaction = StockTransaction(
        item_id=item_id,
        store_id=store_id,
        performed_by=performed_by,
        type=TransactionType.COMING_IN if delta > 0 else TransactionType.GOING_OUT,
        source=source,
        quantity_change=delta,
        resulting_quantity=row.quantity,
        sequence=row.version,
        source_document_id=source_document_id,
        notes=notes,
        created_at=now,
    )
    session.add(transaction)
    await session.flush()

    record = await get_record(session, item_id, store_id, refresh=True)
    logger.debug(
        "Adjusted item=%s store=%s delta=%s -> %s (seq %s)",
        item_id, store_id, delta, row.quantity, row.version,
    )
    return LedgerEntry(record=record, transaction=transaction)
