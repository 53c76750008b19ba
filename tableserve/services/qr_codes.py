"""
QR Code Service

A QR code points a printed sticker at the public menu of one venue, and
optionally one table. The encoded URL is stored on the record so the
printed image never changes unless the target does.
"""

import io
import logging
from typing import Optional
from urllib.parse import urlencode

import qrcode
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.config import get_settings
from tableserve.core.exceptions import NotFoundError, ValidationFailedError
from tableserve.models import Menu, Organization, QrCode, Table, Venue
from tableserve.schemas import QrCodeCreate, QrCodeUpdate

logger = logging.getLogger(__name__)


def build_qr_url(org_slug: str, venue_id: str, table_id: Optional[str] = None) -> str:
    """
    Public menu URL encoded into the QR image.

    Example:
        >>> build_qr_url("luigis", "v1", "t4")
        'http://localhost:5173/luigis?venueId=v1&tableId=t4'
    """
    params = {"venueId": venue_id}
    if table_id:
        params["tableId"] = table_id
    base = get_settings().public_base_url.rstrip("/")
    return f"{base}/{org_slug}?{urlencode(params)}"


def render_qr_png(qr: QrCode) -> bytes:
    img = qrcode.make(qr.qr_code_url)
    buffer = io.BytesIO()
    img.save(buffer)
    return buffer.getvalue()


async def _validate_target(
    db: AsyncSession,
    organization_id: str,
    venue_id: str,
    menu_id: str,
    table_id: Optional[str],
) -> None:
    venue = await db.get(Venue, venue_id)
    if not venue or venue.organization_id != organization_id:
        raise NotFoundError(f"Venue {venue_id} not found")

    menu = await db.get(Menu, menu_id)
    if not menu or menu.organization_id != organization_id:
        raise NotFoundError(f"Menu {menu_id} not found")

    if table_id:
        table = await db.get(Table, table_id)
        if not table:
            raise NotFoundError(f"Table {table_id} not found")
        if table.venue_id != venue_id:
            raise ValidationFailedError("Table does not belong to this venue")


async def list_qr_codes(db: AsyncSession, organization_id: str, venue_id: Optional[str] = None) -> list[QrCode]:
    query = select(QrCode).where(QrCode.organization_id == organization_id).order_by(QrCode.created_at)
    if venue_id:
        query = query.where(QrCode.venue_id == venue_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_qr_code(db: AsyncSession, qr_code_id: str, organization_id: Optional[str] = None) -> QrCode:
    qr = await db.get(QrCode, qr_code_id)
    if not qr or (organization_id and qr.organization_id != organization_id):
        raise NotFoundError(f"QR code {qr_code_id} not found")
    return qr


async def create_qr_code(db: AsyncSession, organization: Organization, data: QrCodeCreate) -> QrCode:
    await _validate_target(db, organization.id, data.venue_id, data.menu_id, data.table_id)

    qr = QrCode(
        organization_id=organization.id,
        qr_code_url=build_qr_url(organization.slug, data.venue_id, data.table_id),
        **data.model_dump(),
    )
    db.add(qr)
    await db.commit()

    logger.info(f"QR code '{qr.name}' created for venue {qr.venue_id}")
    return qr


async def update_qr_code(
    db: AsyncSession,
    organization: Organization,
    qr: QrCode,
    data: QrCodeUpdate,
) -> QrCode:
    changes = data.model_dump(exclude_unset=True)
    menu_id = changes.get("menu_id") or qr.menu_id
    table_id = changes["table_id"] if "table_id" in changes else qr.table_id
    await _validate_target(db, organization.id, qr.venue_id, menu_id, table_id)

    for key, value in changes.items():
        setattr(qr, key, value)
    qr.menu_id = menu_id
    qr.qr_code_url = build_qr_url(organization.slug, qr.venue_id, table_id)

    await db.commit()
    return qr


async def delete_qr_code(db: AsyncSession, qr: QrCode) -> None:
    await db.delete(qr)
    await db.commit()
    logger.info(f"QR code {qr.id} deleted")


async def record_scan(db: AsyncSession, qr_code_id: str) -> QrCode:
    """Count a scan of an active code. Inactive codes behave as missing."""
    qr = await get_qr_code(db, qr_code_id)
    if not qr.is_active:
        raise NotFoundError(f"QR code {qr_code_id} not found")

    qr.scan_count = (qr.scan_count or 0) + 1
    await db.commit()
    return qr
