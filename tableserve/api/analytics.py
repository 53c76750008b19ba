"""
Dashboard analytics and payment reports.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.api.deps import require
from tableserve.core.exceptions import ValidationFailedError
from tableserve.core.permissions import Permission, resolve_order_venue_filter
from tableserve.core.security import MembershipContext
from tableserve.database import get_db
from tableserve.models import utcnow
from tableserve.schemas import DashboardAnalyticsResponse, PaymentReportResponse, ReportExportResponse
from tableserve.services import analytics
from tableserve.tasks import export_payment_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/organizations/{organization_id}", tags=["Analytics"])


def _date_range(start: Optional[datetime], end: Optional[datetime]) -> tuple[datetime, datetime]:
    end = end or utcnow()
    start = start or end - timedelta(days=30)
    if start > end:
        raise ValidationFailedError("start must be before end")
    return start, end


@router.get("/analytics/dashboard", response_model=DashboardAnalyticsResponse)
async def get_dashboard(
    venue_id: Optional[str] = None,
    days: int = Query(30, ge=1, le=365),
    ctx: MembershipContext = Depends(require(Permission.VIEW_ANALYTICS)),
    db: AsyncSession = Depends(get_db),
):
    return await analytics.get_dashboard_stats(
        db,
        ctx.organization_id,
        venue_id=resolve_order_venue_filter(ctx.role, ctx.venue_ids, venue_id),
        days=days,
        venue_scope=ctx.restricted_venue_ids,
    )


@router.get("/reports/payments", response_model=PaymentReportResponse, tags=["Reports"])
async def get_payment_report(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    venue_id: Optional[str] = None,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ANALYTICS)),
    db: AsyncSession = Depends(get_db),
):
    start, end = _date_range(start, end)
    return await analytics.get_payment_report(db, ctx.organization_id, start, end, venue_id)


@router.post("/reports/payments/export", response_model=ReportExportResponse, tags=["Reports"])
async def export_payments(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    venue_id: Optional[str] = None,
    ctx: MembershipContext = Depends(require(Permission.VIEW_ANALYTICS)),
    db: AsyncSession = Depends(get_db),
):
    """Queue an Excel export of the paid orders in the range."""
    start, end = _date_range(start, end)
    orders = await analytics.get_paid_orders(db, ctx.organization_id, start, end, venue_id)
    rows = analytics.payment_report_rows(orders)

    if not rows:
        return ReportExportResponse(success=True, message="No paid orders in range", rows=0)

    task = export_payment_report.delay(ctx.organization_id, rows)
    logger.info(f"Queued payment export {task.id} ({len(rows)} rows) for {ctx.organization_id}")
    return ReportExportResponse(success=True, message="Export queued", task_id=task.id, rows=len(rows))
