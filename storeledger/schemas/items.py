from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from storeledger.core.enums import ItemType
from storeledger.schemas.inventory import UnitBrief


class ItemCreate(BaseModel):
    name: str
    item_type: ItemType
    unit_id: UUID
    description: Optional[str] = None
    # per presentation unit (e.g. per kg)
    price: float = 0.0

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("description")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("price")
    @classmethod
    def _price(cls, v: float) -> float:
        if v < 0:
            raise ValueError("price must be >= 0")
        return v


class ItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    unit_id: Optional[UUID] = None
    price: Optional[float] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("price")
    @classmethod
    def _price_optional(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("price must be >= 0")
        return v


class ItemRead(BaseModel):
    id: UUID
    name: str
    item_type: ItemType
    description: Optional[str] = None
    unit: UnitBrief
    base_unit: UnitBrief
    is_active: bool
    # hidden from roles that may not see prices
    price: Optional[float] = None
    created_at: Optional[datetime] = None
