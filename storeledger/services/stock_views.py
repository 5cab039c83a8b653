"""Base-unit ledger rows -> response models carrying both unit views."""
from typing import Optional

from storeledger.core.permissions import Principal, visible_fields
from storeledger.schemas.inventory import AdjustmentResult, StockTransactionOut, StockView, UnitBrief
from storeledger.services.unit_conversion import price_to_presentation, to_presentation


def unit_brief(unit) -> UnitBrief:
    return UnitBrief.model_validate(unit)


def transaction_view(txn, unit) -> StockTransactionOut:
    return StockTransactionOut(
        id=txn.id,
        item_id=txn.item_id,
        store_id=txn.store_id,
        type=txn.type,
        source=txn.source,
        sequence=txn.sequence,
        quantity_change_base=txn.quantity_change,
        quantity_change_presentation=to_presentation(txn.quantity_change, unit),
        resulting_quantity_base=txn.resulting_quantity,
        resulting_quantity_presentation=to_presentation(txn.resulting_quantity, unit),
        source_document_id=txn.source_document_id,
        performed_by=txn.performed_by,
        notes=txn.notes,
        created_at=txn.created_at,
    )


def _stock_fields(record, unit, principal: Optional[Principal]) -> dict:
    item = record.item
    show_price = principal is None or "price" in visible_fields(principal.role)
    return dict(
        inventory_id=record.id,
        item_id=record.item_id,
        item_name=item.name,
        store_id=record.store_id,
        unit=unit_brief(unit),
        quantity_presentation=to_presentation(record.quantity, unit),
        min_stock_level_presentation=to_presentation(record.min_stock_level, unit),
        status=record.status,
        quantity_base=record.quantity,
        min_stock_level_base=record.min_stock_level,
        price_presentation=price_to_presentation(item.price_per_base_unit, unit) if show_price else None,
        last_modified=record.last_modified,
    )


def stock_view(record, unit=None, principal: Optional[Principal] = None) -> StockView:
    unit = unit or record.item.unit
    return StockView(**_stock_fields(record, unit, principal))


def adjustment_view(entry, unit, principal: Optional[Principal] = None) -> AdjustmentResult:
    return AdjustmentResult(
        **_stock_fields(entry.record, unit, principal),
        transaction=transaction_view(entry.transaction, unit),
    )
