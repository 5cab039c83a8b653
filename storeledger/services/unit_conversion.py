"""Quantity and price conversion between presentation units and base units.

Base unit = 1 for its family; every other unit carries the factor that turns
one of it into base units (kg -> g is 1000). Stored quantities are always base
units; whatever a person types or reads is a presentation quantity.
"""
import math
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.enums import UnitFamily
from storeledger.core.exceptions import NotFoundError, UnitIntegrityError, ValidationError
from storeledger.db.unit_of_measurement import UnitOfMeasurement


def conversion_factor(unit) -> float:
    factor = getattr(unit, "conversion_factor_to_base", None)
    if factor is None or not math.isfinite(factor) or factor <= 0:
        raise UnitIntegrityError(
            f"Unit '{getattr(unit, 'symbol', '?')}' has an invalid conversion factor: {factor}",
            code="INVALID_CONVERSION_FACTOR",
        )
    return float(factor)


def to_base(quantity: float, unit) -> float:
    """Presentation quantity -> base units. 5 kg -> 5000 g."""
    return float(quantity) * conversion_factor(unit)


def to_presentation(quantity_base: float, unit) -> float:
    """Base units -> presentation quantity. 5000 g -> 5 kg."""
    return float(quantity_base) / conversion_factor(unit)


def price_to_presentation(price_per_base: float, unit) -> float:
    # a kg costs 1000x what a gram does
    return float(price_per_base) * conversion_factor(unit)


def price_to_base(price_per_unit: float, unit) -> float:
    return float(price_per_unit) / conversion_factor(unit)


def ensure_same_family(unit, other) -> None:
    if unit.unit_family != other.unit_family:
        raise ValidationError(
            f"Unit '{unit.symbol}' ({unit.unit_family.value}) is not compatible "
            f"with '{other.symbol}' ({other.unit_family.value})",
            code="UNIT_FAMILY_MISMATCH",
        )


async def fetch_unit(session: AsyncSession, unit_id: UUID) -> UnitOfMeasurement:
    unit = await session.get(UnitOfMeasurement, unit_id)
    if not unit:
        raise NotFoundError("Unit of measurement not found", code="UNIT_NOT_FOUND", details={"unit_id": str(unit_id)})
    return unit


async def fetch_base_unit(session: AsyncSession, family: UnitFamily) -> Optional[UnitOfMeasurement]:
    result = await session.execute(
        select(UnitOfMeasurement).where(
            UnitOfMeasurement.unit_family == family,
            UnitOfMeasurement.is_base_unit.is_(True),
        )
    )
    return result.scalars().first()
