"""Units of measurement and items (menu items, raw materials)."""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.enums import ItemType, UnitFamily
from storeledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from storeledger.core.permissions import Principal, permitted_update, require, visible_fields
from storeledger.db.database import transaction_scope
from storeledger.db.item import Item
from storeledger.db.unit_of_measurement import UnitOfMeasurement
from storeledger.schemas.items import ItemRead
from storeledger.services.activity import ActivityLogger, log_activity
from storeledger.services.stock_views import unit_brief
from storeledger.services.unit_conversion import (
    ensure_same_family,
    fetch_base_unit,
    fetch_unit,
    price_to_base,
    price_to_presentation,
)

logger = logging.getLogger(__name__)


async def list_units(session: AsyncSession, unit_family: Optional[UnitFamily] = None) -> List[UnitOfMeasurement]:
    stmt = select(UnitOfMeasurement)
    if unit_family is not None:
        stmt = stmt.where(UnitOfMeasurement.unit_family == unit_family)
    async with transaction_scope(session):
        res = await session.execute(stmt.order_by(UnitOfMeasurement.unit_family, UnitOfMeasurement.conversion_factor_to_base))
        return list(res.scalars().all())


async def create_unit(
    session: AsyncSession,
    principal: Principal,
    name: str,
    symbol: str,
    unit_family: UnitFamily,
    conversion_factor_to_base: float = 1.0,
    is_base_unit: bool = False,
    activity: Optional[ActivityLogger] = None,
) -> UnitOfMeasurement:
    if not conversion_factor_to_base > 0:
        raise ValidationError("conversion_factor_to_base must be > 0", code="INVALID_CONVERSION_FACTOR")
    if is_base_unit and conversion_factor_to_base != 1:
        raise ValidationError("A base unit must have a conversion factor of 1", code="INVALID_BASE_UNIT")
    require(principal, "catalog.write")

    async with transaction_scope(session):
        dup = await session.execute(
            select(UnitOfMeasurement.id).where(
                or_(UnitOfMeasurement.name == name, UnitOfMeasurement.symbol == symbol)
            )
        )
        if dup.first():
            raise ConflictError("A unit with this name or symbol already exists", code="UNIT_EXISTS")

        base = await fetch_base_unit(session, unit_family)
        if is_base_unit and base is not None:
            raise ConflictError(
                f"Family '{unit_family.value}' already has base unit '{base.symbol}'",
                code="BASE_UNIT_EXISTS",
            )
        if not is_base_unit and base is None:
            raise ValidationError(
                f"Create the base unit for '{unit_family.value}' first",
                code="BASE_UNIT_MISSING",
            )

        unit = UnitOfMeasurement(
            name=name,
            symbol=symbol,
            unit_family=unit_family,
            conversion_factor_to_base=conversion_factor_to_base,
            is_base_unit=is_base_unit,
        )
        session.add(unit)
        await session.flush()

    await log_activity(
        activity,
        action="UNIT_CREATED",
        details=f"Unit {symbol} ({unit_family.value}, x{conversion_factor_to_base}) created",
        user_id=principal.id,
        store_id=principal.store_id,
        entity_id=unit.id,
        entity_type="unit",
    )
    return unit


async def fetch_item(session: AsyncSession, item_id: UUID) -> Item:
    item = await session.get(Item, item_id)
    if not item:
        raise NotFoundError("Item not found", code="ITEM_NOT_FOUND", details={"item_id": str(item_id)})
    return item


def item_view(item: Item, principal: Optional[Principal] = None) -> ItemRead:
    show_price = principal is None or "price" in visible_fields(principal.role)
    return ItemRead(
        id=item.id,
        name=item.name,
        item_type=item.item_type,
        description=item.description,
        unit=unit_brief(item.unit),
        base_unit=unit_brief(item.base_unit),
        is_active=bool(item.is_active),
        price=price_to_presentation(item.price_per_base_unit, item.unit) if show_price else None,
        created_at=item.created_at,
    )


async def list_items(
    session: AsyncSession,
    item_type: Optional[ItemType] = None,
    include_inactive: bool = False,
) -> List[Item]:
    stmt = select(Item)
    if item_type is not None:
        stmt = stmt.where(Item.item_type == item_type)
    if not include_inactive:
        stmt = stmt.where(Item.is_active.is_(True))
    async with transaction_scope(session):
        res = await session.execute(stmt.order_by(Item.name))
        return list(res.scalars().unique().all())


async def _base_unit_for(session: AsyncSession, unit: UnitOfMeasurement) -> UnitOfMeasurement:
    if unit.is_base_unit:
        return unit
    base = await fetch_base_unit(session, unit.unit_family)
    if base is None:
        raise ValidationError(
            f"No base unit defined for family '{unit.unit_family.value}'",
            code="BASE_UNIT_MISSING",
        )
    return base


async def create_item(
    session: AsyncSession,
    principal: Principal,
    name: str,
    item_type: ItemType,
    unit_id: UUID,
    price: float = 0.0,
    description: Optional[str] = None,
    activity: Optional[ActivityLogger] = None,
) -> Item:
    if price < 0:
        raise ValidationError("price must be >= 0", code="INVALID_PRICE")
    require(principal, "catalog.write")

    async with transaction_scope(session):
        unit = await fetch_unit(session, unit_id)
        base = await _base_unit_for(session, unit)

        existing = await session.execute(select(Item.id).where(Item.name == name))
        if existing.first():
            raise ConflictError("An item with this name already exists", code="ITEM_EXISTS")

        item = Item(
            name=name,
            item_type=item_type,
            description=description,
            unit_id=unit.id,
            base_unit_id=base.id,
            price_per_base_unit=price_to_base(price, unit),
        )
        session.add(item)
        await session.flush()
        item_id = item.id

    item = await _reload(session, item_id)
    await log_activity(
        activity,
        action="ITEM_CREATED",
        details=f"Item '{name}' created",
        user_id=principal.id,
        store_id=principal.store_id,
        entity_id=item.id,
        entity_type="item",
    )
    return item


async def update_item(
    session: AsyncSession,
    principal: Principal,
    item_id: UUID,
    changes: dict,
    activity: Optional[ActivityLogger] = None,
) -> Item:
    """Apply `changes` (only the fields actually sent) under the field policy.

    `price` is per unit of the item's unit after the update.
    """
    require(principal, "catalog.write")
    changes = permitted_update(principal.role, changes)
    if not changes:
        raise ValidationError("Nothing to update", code="EMPTY_UPDATE")

    async with transaction_scope(session):
        item = await fetch_item(session, item_id)

        unit = item.unit
        if changes.get("unit_id") is not None and changes["unit_id"] != item.unit_id:
            unit = await fetch_unit(session, changes["unit_id"])
            # stored quantities stay in base units of the same family
            ensure_same_family(unit, item.unit)

        if "name" in changes and changes["name"] != item.name:
            dup = await session.execute(select(Item.id).where(Item.name == changes["name"], Item.id != item.id))
            if dup.first():
                raise ConflictError("An item with this name already exists", code="ITEM_EXISTS")

        if "name" in changes:
            item.name = changes["name"]
        if "description" in changes:
            item.description = changes["description"]
        if "is_active" in changes and changes["is_active"] is not None:
            item.is_active = changes["is_active"]
        if unit is not item.unit:
            item.unit_id = unit.id
        if changes.get("price") is not None:
            item.price_per_base_unit = price_to_base(changes["price"], unit)

    item = await _reload(session, item_id)
    await log_activity(
        activity,
        action="ITEM_UPDATED",
        details=f"Item '{item.name}' updated: {', '.join(sorted(changes))}",
        user_id=principal.id,
        store_id=principal.store_id,
        entity_id=item.id,
        entity_type="item",
    )
    return item


async def _reload(session: AsyncSession, item_id: UUID) -> Item:
    async with transaction_scope(session):
        res = await session.execute(
            select(Item).where(Item.id == item_id).execution_options(populate_existing=True)
        )
        return res.scalars().one()
