from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.auth import get_principal
from storeledger.core.permissions import Principal
from storeledger.db.database import get_async_session
from storeledger.schemas.orders import OrderCreate, OrderRead
from storeledger.services import orders as order_service
from storeledger.services.activity import ActivityLogger, get_activity_logger

router = APIRouter()


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Create an order and decrement stock for its lines in one transaction.

    409 when any line is short on stock; nothing is written in that case.
    """
    order = await order_service.create_order(
        db,
        principal,
        [line.model_dump() for line in payload.lines],
        store_id=payload.store_id,
        payment_method=payload.payment_method,
        activity=activity,
    )
    return order_service.order_view(order)


@router.get("", response_model=List[OrderRead])
async def list_orders(
    target_store_ids: Optional[List[UUID]] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    orders = await order_service.list_orders(db, principal, target_store_ids, limit)
    return [order_service.order_view(o) for o in orders]


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    order = await order_service.get_order(db, principal, order_id)
    return order_service.order_view(order)
