from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.auth import get_principal
from storeledger.core.permissions import Principal
from storeledger.db.database import get_async_session
from storeledger.schemas.stores import StoreCreate, StoreHierarchy, StoreRead
from storeledger.services import store_scope
from storeledger.services.activity import ActivityLogger, get_activity_logger

router = APIRouter()


@router.get("", response_model=List[StoreRead])
async def list_stores(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    return await store_scope.list_stores(db, principal)


@router.post("", response_model=StoreRead, status_code=status.HTTP_201_CREATED)
async def create_store(
    payload: StoreCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    store = await store_scope.create_store(
        db,
        principal,
        name=payload.name,
        location=payload.location,
        parent_store_id=payload.parent_store_id,
        activity=activity,
    )
    return store


@router.get("/{store_id}/hierarchy", response_model=StoreHierarchy)
async def store_hierarchy(
    store_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    """Main store of `store_id` with its branches, as far as the caller may see them."""
    main, branches = await store_scope.store_hierarchy(db, principal, store_id)
    return StoreHierarchy(
        store=StoreRead.model_validate(main) if main else None,
        branches=[StoreRead.model_validate(b) for b in branches],
    )
