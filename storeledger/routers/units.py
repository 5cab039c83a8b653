from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.auth import get_principal
from storeledger.core.enums import UnitFamily
from storeledger.core.permissions import Principal, require
from storeledger.db.database import get_async_session
from storeledger.schemas.units import UnitCreate, UnitRead
from storeledger.services import catalog
from storeledger.services.activity import ActivityLogger, get_activity_logger
from storeledger.services.unit_conversion import fetch_unit

router = APIRouter()


@router.get("", response_model=List[UnitRead])
async def list_units(
    unit_family: Optional[UnitFamily] = None,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    require(principal, "catalog.read")
    return await catalog.list_units(db, unit_family)


@router.get("/{unit_id}", response_model=UnitRead)
async def get_unit(
    unit_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    require(principal, "catalog.read")
    return await fetch_unit(db, unit_id)


@router.post("", response_model=UnitRead, status_code=status.HTTP_201_CREATED)
async def create_unit(
    payload: UnitCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    return await catalog.create_unit(db, principal, activity=activity, **payload.model_dump())
