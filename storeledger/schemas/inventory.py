import math
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from storeledger.core.enums import (
    STOCK_IN_SOURCES,
    STOCK_OUT_SOURCES,
    InventoryStatus,
    ManualAdjustmentType,
    TransactionSource,
    TransactionType,
)

ReportPeriod = Literal["day", "week", "month"]


def _finite(v: float) -> float:
    v = float(v)
    if not math.isfinite(v):
        raise ValueError("must be a finite number")
    return v


def _strip_nullable(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class UnitBrief(BaseModel):
    id: UUID
    name: str
    symbol: str
    conversion_factor_to_base: float

    class Config:
        from_attributes = True


class StockTransactionOut(BaseModel):
    id: UUID
    item_id: UUID
    store_id: UUID
    type: TransactionType
    source: TransactionSource
    sequence: int
    quantity_change_base: float
    quantity_change_presentation: float
    resulting_quantity_base: float
    resulting_quantity_presentation: float
    source_document_id: Optional[UUID] = None
    performed_by: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: datetime


class StockView(BaseModel):
    inventory_id: UUID
    item_id: UUID
    item_name: str
    store_id: UUID
    unit: UnitBrief
    quantity_presentation: float
    min_stock_level_presentation: float
    status: InventoryStatus
    # Internal base-unit figures
    quantity_base: float
    min_stock_level_base: float
    price_presentation: Optional[float] = None
    last_modified: Optional[datetime] = None


class AdjustmentResult(StockView):
    transaction: StockTransactionOut


class InventoryRecordCreate(BaseModel):
    item_id: UUID
    store_id: Optional[UUID] = None
    # in the item's presentation unit
    min_stock_level: float = 0.0

    @field_validator("min_stock_level")
    @classmethod
    def _min_level(cls, v: float) -> float:
        v = _finite(v)
        if v < 0:
            raise ValueError("min_stock_level must be >= 0")
        return v


class StockInRequest(BaseModel):
    store_id: Optional[UUID] = None
    quantity: float
    unit_id: UUID
    source: TransactionSource = TransactionSource.PURCHASE_RECEIPT
    document_ref: Optional[UUID] = None
    notes: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: float) -> float:
        v = _finite(v)
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v

    @field_validator("source")
    @classmethod
    def _inbound_source(cls, v: TransactionSource) -> TransactionSource:
        if v not in STOCK_IN_SOURCES:
            raise ValueError(f"source '{v.value}' cannot add stock")
        return v

    @field_validator("notes")
    @classmethod
    def _notes(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class StockOutRequest(BaseModel):
    store_id: Optional[UUID] = None
    quantity: float
    unit_id: UUID
    source: TransactionSource = TransactionSource.PRODUCTION_USAGE
    document_ref: Optional[UUID] = None
    notes: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: float) -> float:
        v = _finite(v)
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v

    @field_validator("source")
    @classmethod
    def _outbound_source(cls, v: TransactionSource) -> TransactionSource:
        if v not in STOCK_OUT_SOURCES:
            raise ValueError(f"source '{v.value}' cannot remove stock")
        return v

    @field_validator("notes")
    @classmethod
    def _notes(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class ManualAdjustmentRequest(BaseModel):
    store_id: Optional[UUID] = None
    # signed, in the item's presentation unit
    quantity_adjustment: float
    transaction_type: ManualAdjustmentType
    notes: Optional[str] = None

    @field_validator("quantity_adjustment")
    @classmethod
    def _non_zero(cls, v: float) -> float:
        v = _finite(v)
        if v == 0:
            raise ValueError("quantity_adjustment must be a non-zero number")
        return v

    @field_validator("notes")
    @classmethod
    def _notes(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class ReconciliationOut(BaseModel):
    item_id: UUID
    store_id: UUID
    recorded_quantity: float
    replayed_quantity: float
    transaction_count: int
    chain_intact: bool
    consistent: bool
    broken_sequences: List[int] = []


class MovementSummaryRow(BaseModel):
    source: TransactionSource
    label: str
    total_change_base: float
    transaction_count: int


class MovementReport(BaseModel):
    period: Optional[ReportPeriod] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    store_ids: List[UUID]
    summary: List[MovementSummaryRow]

