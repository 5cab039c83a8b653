"""Public stock use cases: unit conversion in, ledger adjust, both views out.

Self-contained operations (manual adjustment, stock-in, stock-out, record
setup) own their transaction and commit it. `decrement_for_order` instead runs
inside the caller's transaction and never commits or rolls back itself. Lookups
and reads run inside a transaction scope as well, so no call returns with a
transaction still open on the session.
"""
import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.enums import (
    MANUAL_ADJUSTMENT_RULES,
    STOCK_IN_SOURCES,
    STOCK_OUT_SOURCES,
    ManualAdjustmentType,
    TransactionSource,
)
from storeledger.core.exceptions import NotFoundError, ValidationError
from storeledger.core.permissions import Principal, require
from storeledger.db.database import transaction_scope
from storeledger.db.unit_of_measurement import UnitOfMeasurement
from storeledger.schemas.inventory import AdjustmentResult, StockView
from storeledger.services import stock_ledger
from storeledger.services.activity import ActivityLogger, adjustment_action, log_activity
from storeledger.services.catalog import fetch_item
from storeledger.services.stock_ledger import LedgerEntry
from storeledger.services.stock_views import adjustment_view, stock_view
from storeledger.services.store_scope import authorize_store, narrow_scope
from storeledger.services.unit_conversion import ensure_same_family, fetch_unit, to_base

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleLine:
    item_id: UUID
    quantity_base: float


def _number(value, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", code="INVALID_QUANTITY")
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", code="INVALID_QUANTITY")
    if not math.isfinite(value):
        raise ValidationError(f"{field} must be a finite number", code="INVALID_QUANTITY")
    return value


def _positive(value, field: str = "quantity") -> float:
    value = _number(value, field)
    if value <= 0:
        raise ValidationError(f"{field} must be > 0", code="INVALID_QUANTITY")
    return value


def _source(value: Union[str, TransactionSource], allowed: Iterable[TransactionSource]) -> TransactionSource:
    try:
        source = TransactionSource(value)
    except ValueError:
        raise ValidationError(f"Unknown transaction source: {value}", code="INVALID_SOURCE")
    if source not in allowed:
        raise ValidationError(f"Source '{source.value}' is not valid here", code="INVALID_SOURCE")
    return source


def _adjustment_type(value: Union[str, ManualAdjustmentType]) -> ManualAdjustmentType:
    try:
        return ManualAdjustmentType(value)
    except ValueError:
        raise ValidationError(f"Unknown transaction type: {value}", code="INVALID_TRANSACTION_TYPE")


def _log_committed(entry: LedgerEntry) -> None:
    t = entry.transaction
    logger.info(
        "Stock %s item=%s store=%s delta=%s -> %s (seq %s)",
        t.source.value, t.item_id, t.store_id, t.quantity_change, t.resulting_quantity, t.sequence,
    )


async def _record_adjustment(activity: Optional[ActivityLogger], principal: Principal, entry: LedgerEntry, item) -> None:
    t = entry.transaction
    await log_activity(
        activity,
        action=adjustment_action(t.source),
        details=f"{item.name}: {t.quantity_change:+g} {item.base_unit.symbol} -> {t.resulting_quantity:g}",
        user_id=principal.id,
        store_id=t.store_id,
        entity_id=item.id,
        entity_type="inventory",
    )


async def _adjust_and_commit(
    session: AsyncSession,
    principal: Principal,
    item_id: UUID,
    store_id: Optional[UUID],
    quantity: float,
    source: TransactionSource,
    unit_id: Optional[UUID] = None,
    source_document_id: Optional[UUID] = None,
    notes: Optional[str] = None,
    activity: Optional[ActivityLogger] = None,
) -> Tuple[LedgerEntry, UnitOfMeasurement]:
    """Resolve store, item and unit, then apply a signed `quantity` and commit.

    `quantity` is measured in `unit_id`, or in the item's own unit when no unit
    is given. Lookups share the write's transaction so a rejected request
    releases it too.
    """
    async with transaction_scope(session):
        store_id = await authorize_store(session, principal, store_id)
        item = await fetch_item(session, item_id)
        unit = item.unit
        if unit_id is not None:
            unit = await fetch_unit(session, unit_id)
            ensure_same_family(unit, item.unit)
        entry = await stock_ledger.adjust(
            session,
            item.id,
            store_id,
            to_base(quantity, unit),
            source,
            performed_by=principal.id,
            source_document_id=source_document_id,
            notes=notes,
        )
    _log_committed(entry)
    await _record_adjustment(activity, principal, entry, item)
    return entry, unit


async def manual_adjust(
    session: AsyncSession,
    principal: Principal,
    item_id: UUID,
    quantity_adjustment,
    transaction_type,
    store_id: Optional[UUID] = None,
    notes: Optional[str] = None,
    activity: Optional[ActivityLogger] = None,
) -> AdjustmentResult:
    """Signed adjustment in the item's own unit.

    The transaction type fixes both the ledger source and the sign the
    quantity must carry (adjustmentOut and wastage remove stock).
    """
    kind = _adjustment_type(transaction_type)
    quantity = _number(quantity_adjustment, "quantity_adjustment")
    if quantity == 0:
        raise ValidationError("quantity_adjustment must be non-zero", code="INVALID_QUANTITY")
    source, sign = MANUAL_ADJUSTMENT_RULES[kind]
    if (quantity > 0) != (sign > 0):
        raise ValidationError(
            f"{kind.value} requires a {'positive' if sign > 0 else 'negative'} quantity",
            code="SIGN_MISMATCH",
        )

    require(principal, "inventory.adjust")
    entry, unit = await _adjust_and_commit(
        session, principal, item_id, store_id, quantity, source,
        notes=notes, activity=activity,
    )
    return adjustment_view(entry, unit, principal)


async def add_stock(
    session: AsyncSession,
    principal: Principal,
    item_id: UUID,
    quantity,
    unit_id: UUID,
    source=TransactionSource.PURCHASE_RECEIPT,
    store_id: Optional[UUID] = None,
    document_ref: Optional[UUID] = None,
    notes: Optional[str] = None,
    activity: Optional[ActivityLogger] = None,
) -> AdjustmentResult:
    """Stock-in measured in `unit_id`, which may differ from the item's unit."""
    quantity = _positive(quantity)
    source = _source(source, STOCK_IN_SOURCES)

    require(principal, "inventory.adjust")
    entry, unit = await _adjust_and_commit(
        session, principal, item_id, store_id, quantity, source, unit_id=unit_id,
        source_document_id=document_ref, notes=notes, activity=activity,
    )
    return adjustment_view(entry, unit, principal)


async def receive_purchase(session: AsyncSession, principal: Principal, item_id: UUID, quantity, unit_id: UUID, **kwargs) -> AdjustmentResult:
    return await add_stock(session, principal, item_id, quantity, unit_id, source=TransactionSource.PURCHASE_RECEIPT, **kwargs)


async def consume_stock(
    session: AsyncSession,
    principal: Principal,
    item_id: UUID,
    quantity,
    unit_id: UUID,
    source=TransactionSource.PRODUCTION_USAGE,
    store_id: Optional[UUID] = None,
    document_ref: Optional[UUID] = None,
    notes: Optional[str] = None,
    activity: Optional[ActivityLogger] = None,
) -> AdjustmentResult:
    """Stock-out of a positive quantity (production usage, wastage)."""
    quantity = _positive(quantity)
    source = _source(source, STOCK_OUT_SOURCES)

    require(principal, "inventory.adjust")
    entry, unit = await _adjust_and_commit(
        session, principal, item_id, store_id, -quantity, source, unit_id=unit_id,
        source_document_id=document_ref, notes=notes, activity=activity,
    )
    return adjustment_view(entry, unit, principal)


async def record_sale(
    session: AsyncSession,
    item_id: UUID,
    store_id: UUID,
    quantity_base,
    performed_by: Optional[UUID] = None,
    order_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """Sell a positive base-unit quantity. Does not commit."""
    quantity_base = _positive(quantity_base, "quantity_base")
    return await stock_ledger.adjust(
        session,
        item_id,
        store_id,
        -quantity_base,
        TransactionSource.SALE,
        performed_by=performed_by,
        source_document_id=order_id,
        notes=notes,
    )


async def decrement_for_order(
    session: AsyncSession,
    order_ref: str,
    order_id: UUID,
    lines: Sequence[SaleLine],
    performed_by: Optional[UUID],
    store_id: UUID,
) -> List[LedgerEntry]:
    """Decrement stock for every order line inside the caller's transaction.

    InsufficientStockError propagates untouched; the caller rolls back the
    order together with any decrement already applied here.
    """
    if not lines:
        raise ValidationError("Order has no lines", code="EMPTY_ORDER")
    for line in lines:
        _positive(line.quantity_base, "quantity")

    entries = []
    # stable lock order across concurrent orders
    for line in sorted(lines, key=lambda l: str(l.item_id)):
        entries.append(await record_sale(
            session,
            line.item_id,
            store_id,
            line.quantity_base,
            performed_by=performed_by,
            order_id=order_id,
            notes=f"Sale, order {order_ref}",
        ))
    return entries


async def setup_inventory(
    session: AsyncSession,
    principal: Principal,
    item_id: UUID,
    min_stock_level=0.0,
    store_id: Optional[UUID] = None,
    activity: Optional[ActivityLogger] = None,
) -> StockView:
    """Create the (item, store) record, or update its min level. Idempotent."""
    min_level = _number(min_stock_level, "min_stock_level")
    if min_level < 0:
        raise ValidationError("min_stock_level must be >= 0", code="INVALID_MIN_STOCK_LEVEL")

    require(principal, "inventory.setup")
    async with transaction_scope(session):
        store_id = await authorize_store(session, principal, store_id)
        item = await fetch_item(session, item_id)
        record = await stock_ledger.upsert_record(session, item.id, store_id, to_base(min_level, item.unit))

    logger.info("Inventory record item=%s store=%s min=%s", item.id, store_id, record.min_stock_level)
    await log_activity(
        activity,
        action="INVENTORY_RECORD_UPSERTED",
        details=f"{item.name}: min stock level {min_level:g} {item.unit.symbol}",
        user_id=principal.id,
        store_id=store_id,
        entity_id=record.id,
        entity_type="inventory",
    )
    return stock_view(record, item.unit, principal)


async def get_stock(
    session: AsyncSession,
    principal: Principal,
    item_id: UUID,
    store_id: Optional[UUID] = None,
) -> StockView:
    require(principal, "inventory.read")
    async with transaction_scope(session):
        store_id = await authorize_store(session, principal, store_id)
        item = await fetch_item(session, item_id)
        record = await stock_ledger.get_record(session, item.id, store_id)
        if not record:
            raise NotFoundError(
                "Inventory record not found",
                code="INVENTORY_NOT_FOUND",
                details={"item_id": str(item_id), "store_id": str(store_id)},
            )
    return stock_view(record, item.unit, principal)


async def list_stock(
    session: AsyncSession,
    principal: Principal,
    target_store_ids: Optional[Iterable[UUID]] = None,
) -> List[StockView]:
    require(principal, "inventory.read")
    async with transaction_scope(session):
        scope = await narrow_scope(session, principal, target_store_ids)
        records = await stock_ledger.list_records(session, scope)
    return [stock_view(r, principal=principal) for r in records]
