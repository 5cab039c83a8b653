from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from storeledger.core.enums import OrderStatus, PaymentMethod


class OrderLineCreate(BaseModel):
    item_id: UUID
    # in the item's own unit
    quantity: float

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: float) -> float:
        if not v > 0:
            raise ValueError("quantity must be > 0")
        return v


class OrderCreate(BaseModel):
    store_id: Optional[UUID] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    lines: List[OrderLineCreate]

    @field_validator("lines")
    @classmethod
    def _lines_required(cls, v: List[OrderLineCreate]) -> List[OrderLineCreate]:
        if not v:
            raise ValueError("an order needs at least one line")
        return v


class OrderLineRead(BaseModel):
    id: UUID
    item_id: UUID
    item_name: Optional[str] = None
    quantity: float
    quantity_base: float
    price_at_order: float
    sub_total: float


class OrderRead(BaseModel):
    id: UUID
    reference: str
    store_id: UUID
    seller_id: Optional[UUID] = None
    total_amount: float
    payment_method: PaymentMethod
    order_status: OrderStatus
    order_date: Optional[datetime] = None
    lines: List[OrderLineRead]
