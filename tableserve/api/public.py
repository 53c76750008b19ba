"""
Unauthenticated guest endpoints: menu, ordering, tracking and QR scans.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.database import get_db
from tableserve.schemas import (
    PublicMenuResponse,
    PublicOrderCreate,
    PublicOrderResponse,
    PublicOrderStatusResponse,
    QrScanResponse,
)
from tableserve.services import public as public_service
from tableserve.services.qr_codes import record_scan

router = APIRouter(prefix="/api/public", tags=["Public"])


@router.get("/menus/{org_slug}", response_model=PublicMenuResponse, summary="Public Menu")
async def get_public_menu(
    org_slug: str,
    venue_id: Optional[str] = Query(None, alias="venueId"),
    table_id: Optional[str] = Query(None, alias="tableId"),
    db: AsyncSession = Depends(get_db),
):
    """Menus of an organization as opened from a QR code."""
    return await public_service.get_public_menu(db, org_slug, venue_id, table_id)


@router.post("/orders", response_model=PublicOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_public_order(data: PublicOrderCreate, db: AsyncSession = Depends(get_db)):
    return await public_service.create_public_order(db, data)


@router.post(
    "/venues/{venue_id}/orders",
    response_model=PublicOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_venue_order(venue_id: str, data: PublicOrderCreate, db: AsyncSession = Depends(get_db)):
    return await public_service.create_public_order(db, data, venue_id=venue_id)


@router.get("/orders/phone/{phone}", response_model=list[PublicOrderResponse], summary="Find Orders by Phone")
async def find_orders_by_phone(phone: str, db: AsyncSession = Depends(get_db)):
    return await public_service.find_orders_by_phone(db, phone)


@router.get("/orders/{order_id}", response_model=PublicOrderResponse)
async def get_public_order(order_id: str, db: AsyncSession = Depends(get_db)):
    return await public_service.get_public_order(db, order_id)


@router.get("/orders/{order_id}/status", response_model=PublicOrderStatusResponse)
async def get_public_order_status(order_id: str, db: AsyncSession = Depends(get_db)):
    return await public_service.get_public_order_status(db, order_id)


@router.post("/qr-codes/{qr_code_id}/scan", response_model=QrScanResponse)
async def scan_qr_code(qr_code_id: str, db: AsyncSession = Depends(get_db)):
    qr = await record_scan(db, qr_code_id)
    return {"qr_code_id": qr.id, "redirect_url": qr.qr_code_url, "scan_count": qr.scan_count}
