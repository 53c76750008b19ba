"""
QR code endpoints, including the printable PNG.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.api.deps import require
from tableserve.core.permissions import Permission
from tableserve.core.security import MembershipContext
from tableserve.database import get_db
from tableserve.schemas import QrCodeCreate, QrCodeResponse, QrCodeUpdate
from tableserve.services import qr_codes as qr_service

router = APIRouter(prefix="/api/organizations/{organization_id}/qr-codes", tags=["QR Codes"])


@router.get("", response_model=list[QrCodeResponse])
async def list_qr_codes(
    venue_id: Optional[str] = None,
    ctx: MembershipContext = Depends(require(Permission.VIEW_QR_CODES)),
    db: AsyncSession = Depends(get_db),
):
    return await qr_service.list_qr_codes(db, ctx.organization_id, venue_id)


@router.post("", response_model=QrCodeResponse, status_code=status.HTTP_201_CREATED)
async def create_qr_code(
    data: QrCodeCreate,
    ctx: MembershipContext = Depends(require(Permission.GENERATE_QR_CODES)),
    db: AsyncSession = Depends(get_db),
):
    return await qr_service.create_qr_code(db, ctx.organization, data)


@router.get("/{qr_code_id}", response_model=QrCodeResponse)
async def get_qr_code(
    qr_code_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_QR_CODES)),
    db: AsyncSession = Depends(get_db),
):
    return await qr_service.get_qr_code(db, qr_code_id, ctx.organization_id)


@router.get(
    "/{qr_code_id}/image",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
    summary="QR Code PNG",
)
async def get_qr_code_image(
    qr_code_id: str,
    ctx: MembershipContext = Depends(require(Permission.VIEW_QR_CODES)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    qr = await qr_service.get_qr_code(db, qr_code_id, ctx.organization_id)
    return Response(
        content=qr_service.render_qr_png(qr),
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="qr-{qr.id}.png"'},
    )


@router.patch("/{qr_code_id}", response_model=QrCodeResponse)
async def update_qr_code(
    qr_code_id: str,
    data: QrCodeUpdate,
    ctx: MembershipContext = Depends(require(Permission.GENERATE_QR_CODES)),
    db: AsyncSession = Depends(get_db),
):
    qr = await qr_service.get_qr_code(db, qr_code_id, ctx.organization_id)
    return await qr_service.update_qr_code(db, ctx.organization, qr, data)


@router.delete("/{qr_code_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_qr_code(
    qr_code_id: str,
    ctx: MembershipContext = Depends(require(Permission.GENERATE_QR_CODES)),
    db: AsyncSession = Depends(get_db),
) -> Response:
    qr = await qr_service.get_qr_code(db, qr_code_id, ctx.organization_id)
    await qr_service.delete_qr_code(db, qr)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
