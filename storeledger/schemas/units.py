from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from storeledger.core.enums import UnitFamily


class UnitCreate(BaseModel):
    name: str
    symbol: str
    unit_family: UnitFamily
    conversion_factor_to_base: float = 1.0
    is_base_unit: bool = False

    @field_validator("name", "symbol")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("conversion_factor_to_base")
    @classmethod
    def _factor_positive(cls, v: float) -> float:
        if not v > 0:
            raise ValueError("conversion_factor_to_base must be > 0")
        return v


class UnitRead(BaseModel):
    id: UUID
    name: str
    symbol: str
    unit_family: UnitFamily
    conversion_factor_to_base: float
    is_base_unit: bool

    class Config:
        from_attributes = True


class UnitQuery(BaseModel):
    unit_family: Optional[UnitFamily] = None
