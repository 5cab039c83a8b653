from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.auth import get_principal
from storeledger.core.enums import ItemType
from storeledger.core.permissions import Principal, require
from storeledger.db.database import get_async_session
from storeledger.schemas.items import ItemCreate, ItemRead, ItemUpdate
from storeledger.services import catalog
from storeledger.services.activity import ActivityLogger, get_activity_logger

router = APIRouter()


@router.get("", response_model=List[ItemRead])
async def list_items(
    item_type: Optional[ItemType] = None,
    include_inactive: bool = False,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    require(principal, "catalog.read")
    items = await catalog.list_items(db, item_type, include_inactive)
    return [catalog.item_view(i, principal) for i in items]


@router.post("", response_model=ItemRead, status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: ItemCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    item = await catalog.create_item(
        db,
        principal,
        name=payload.name,
        item_type=payload.item_type,
        unit_id=payload.unit_id,
        price=payload.price,
        description=payload.description,
        activity=activity,
    )
    return catalog.item_view(item, principal)


@router.get("/{item_id}", response_model=ItemRead)
async def get_item(
    item_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    require(principal, "catalog.read")
    item = await catalog.fetch_item(db, item_id)
    return catalog.item_view(item, principal)


@router.patch("/{item_id}", response_model=ItemRead)
async def update_item(
    item_id: UUID,
    payload: ItemUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    # only fields the client actually sent go through the policy
    changes = payload.model_dump(exclude_unset=True)
    item = await catalog.update_item(db, principal, item_id, changes, activity=activity)
    return catalog.item_view(item, principal)
