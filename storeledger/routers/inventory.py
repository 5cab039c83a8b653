from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storeledger.core.auth import get_principal
from storeledger.core.permissions import Principal
from storeledger.db.database import get_async_session
from storeledger.schemas.inventory import (
    AdjustmentResult,
    InventoryRecordCreate,
    ManualAdjustmentRequest,
    MovementReport,
    ReconciliationOut,
    ReportPeriod,
    StockInRequest,
    StockOutRequest,
    StockTransactionOut,
    StockView,
)
from storeledger.services import inventory_reports, stock_adjustments
from storeledger.services.activity import ActivityLogger, get_activity_logger

router = APIRouter()


@router.get("", response_model=List[StockView])
async def list_inventory(
    target_store_ids: Optional[List[UUID]] = Query(None),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    """Every inventory record in scope, optionally narrowed to `target_store_ids`."""
    return await stock_adjustments.list_stock(db, principal, target_store_ids)


@router.post("", response_model=StockView, status_code=status.HTTP_201_CREATED)
async def upsert_inventory_record(
    payload: InventoryRecordCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    return await stock_adjustments.setup_inventory(
        db,
        principal,
        payload.item_id,
        min_stock_level=payload.min_stock_level,
        store_id=payload.store_id,
        activity=activity,
    )


@router.get("/report", response_model=MovementReport)
async def movement_report(
    period: Optional[ReportPeriod] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    target_store_ids: Optional[List[UUID]] = Query(None),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    return await inventory_reports.movement_report(
        db,
        principal,
        target_store_ids,
        period=period,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/{item_id}", response_model=StockView)
async def get_stock(
    item_id: UUID,
    store_id: Optional[UUID] = None,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    return await stock_adjustments.get_stock(db, principal, item_id, store_id)


@router.post("/{item_id}/stock-in", response_model=AdjustmentResult, status_code=status.HTTP_201_CREATED)
async def stock_in(
    item_id: UUID,
    payload: StockInRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    return await stock_adjustments.add_stock(
        db,
        principal,
        item_id,
        payload.quantity,
        payload.unit_id,
        source=payload.source,
        store_id=payload.store_id,
        document_ref=payload.document_ref,
        notes=payload.notes,
        activity=activity,
    )


@router.post("/{item_id}/stock-out", response_model=AdjustmentResult, status_code=status.HTTP_201_CREATED)
async def stock_out(
    item_id: UUID,
    payload: StockOutRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    return await stock_adjustments.consume_stock(
        db,
        principal,
        item_id,
        payload.quantity,
        payload.unit_id,
        source=payload.source,
        store_id=payload.store_id,
        document_ref=payload.document_ref,
        notes=payload.notes,
        activity=activity,
    )


@router.patch("/{item_id}/adjust", response_model=AdjustmentResult)
async def adjust_stock(
    item_id: UUID,
    payload: ManualAdjustmentRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    return await stock_adjustments.manual_adjust(
        db,
        principal,
        item_id,
        payload.quantity_adjustment,
        payload.transaction_type,
        store_id=payload.store_id,
        notes=payload.notes,
        activity=activity,
    )


@router.get("/{item_id}/transactions", response_model=List[StockTransactionOut])
async def transaction_history(
    item_id: UUID,
    store_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    return await inventory_reports.transaction_history(
        db, principal, item_id, store_id, start_date, end_date, limit
    )


@router.get("/{item_id}/reconcile", response_model=ReconciliationOut)
async def reconcile(
    item_id: UUID,
    store_id: Optional[UUID] = None,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
):
    return await inventory_reports.reconcile_stock(db, principal, item_id, store_id)
