"""Order intake. The header, its lines and the stock decrements commit together."""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storeledger.core.enums import OrderStatus, PaymentMethod
from storeledger.core.exceptions import NotFoundError, ValidationError
from storeledger.core.permissions import Principal, require
from storeledger.db.database import transaction_scope
from storeledger.db.item import Item
from storeledger.db.order import Order, OrderLine
from storeledger.schemas.orders import OrderLineRead, OrderRead
from storeledger.services.activity import ActivityLogger, log_activity
from storeledger.services.stock_adjustments import SaleLine, decrement_for_order
from storeledger.services.store_scope import authorize_store, narrow_scope
from storeledger.services.unit_conversion import price_to_presentation, to_base

logger = logging.getLogger(__name__)


def generate_reference(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def order_view(order: Order) -> OrderRead:
    return OrderRead(
        id=order.id,
        reference=order.reference,
        store_id=order.store_id,
        seller_id=order.seller_id,
        total_amount=order.total_amount,
        payment_method=order.payment_method,
        order_status=order.order_status,
        order_date=order.order_date,
        lines=[
            OrderLineRead(
                id=line.id,
                item_id=line.item_id,
                item_name=line.item.name if line.item else None,
                quantity=line.quantity,
                quantity_base=line.quantity_base,
                price_at_order=line.price_at_order,
                sub_total=line.sub_total,
            )
            for line in order.lines
        ],
    )


async def _load_order(session: AsyncSession, order_id: UUID) -> Optional[Order]:
    res = await session.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.lines).selectinload(OrderLine.item))
        .execution_options(populate_existing=True)
    )
    return res.scalars().first()


async def create_order(
    session: AsyncSession,
    principal: Principal,
    lines: Sequence[dict],
    store_id: Optional[UUID] = None,
    payment_method: PaymentMethod = PaymentMethod.CASH,
    activity: Optional[ActivityLogger] = None,
) -> Order:
    """Write an order and decrement stock for it, all or nothing.

    `lines` are {"item_id", "quantity"} with quantity in the item's own unit.
    """
    if not lines:
        raise ValidationError("An order needs at least one line", code="EMPTY_ORDER")
    for line in lines:
        q = line.get("quantity")
        if isinstance(q, bool) or not isinstance(q, (int, float)) or not q > 0:
            raise ValidationError("Line quantity must be > 0", code="INVALID_QUANTITY")

    require(principal, "orders.create")
    item_ids = {line["item_id"] for line in lines}

    async with transaction_scope(session):
        store_id = await authorize_store(session, principal, store_id)

        res = await session.execute(select(Item).where(Item.id.in_(item_ids)))
        items = {i.id: i for i in res.scalars().unique().all()}
        missing = item_ids - set(items)
        if missing:
            raise NotFoundError(
                "Item not found",
                code="ITEM_NOT_FOUND",
                details={"item_ids": sorted(str(i) for i in missing)},
            )
        inactive = sorted(i.name for i in items.values() if not i.is_active)
        if inactive:
            raise ValidationError(
                f"Discontinued items cannot be sold: {', '.join(inactive)}",
                code="ITEM_INACTIVE",
            )

        order_lines = []
        sale_lines = []
        total = 0.0
        for line in lines:
            item = items[line["item_id"]]
            quantity = float(line["quantity"])
            price = price_to_presentation(item.price_per_base_unit, item.unit)
            quantity_base = to_base(quantity, item.unit)
            sub_total = round(price * quantity, 2)
            total += sub_total
            order_lines.append(OrderLine(
                item_id=item.id,
                quantity=quantity,
                quantity_base=quantity_base,
                price_at_order=price,
                sub_total=sub_total,
            ))
            sale_lines.append(SaleLine(item_id=item.id, quantity_base=quantity_base))

        order = Order(
            reference=generate_reference(),
            store_id=store_id,
            seller_id=principal.id,
            total_amount=round(total, 2),
            payment_method=payment_method,
            order_status=OrderStatus.COMPLETED,
            order_date=datetime.now(timezone.utc),
            lines=order_lines,
        )
        session.add(order)
        await session.flush()
        await decrement_for_order(
            session,
            order.reference,
            order.id,
            sale_lines,
            performed_by=principal.id,
            store_id=store_id,
        )

    logger.info("Order %s created in store %s (%s lines, total %.2f)", order.reference, store_id, len(order_lines), order.total_amount)
    await log_activity(
        activity,
        action="ORDER_CREATED",
        details=f"Order {order.reference}: {len(order_lines)} lines, total {order.total_amount:.2f}",
        user_id=principal.id,
        store_id=store_id,
        entity_id=order.id,
        entity_type="order",
    )
    async with transaction_scope(session):
        return await _load_order(session, order.id)


async def get_order(session: AsyncSession, principal: Principal, order_id: UUID) -> Order:
    require(principal, "orders.read")
    async with transaction_scope(session):
        order = await _load_order(session, order_id)
        if not order:
            raise NotFoundError("Order not found", code="ORDER_NOT_FOUND")
        await narrow_scope(session, principal, [order.store_id])
    return order


async def list_orders(
    session: AsyncSession,
    principal: Principal,
    target_store_ids=None,
    limit: int = 100,
) -> List[Order]:
    require(principal, "orders.read")
    async with transaction_scope(session):
        scope = await narrow_scope(session, principal, target_store_ids)
        res = await session.execute(
            select(Order)
            .where(Order.store_id.in_(scope))
            .options(selectinload(Order.lines).selectinload(OrderLine.item))
            .order_by(Order.order_date.desc())
            .limit(limit)
        )
        return list(res.scalars().all())
