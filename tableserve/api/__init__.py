"""
API Routers

Every router carries its own prefix; ``api_router`` bundles them for the
application.
"""

from fastapi import APIRouter

from tableserve.api import (
    analytics,
    menus,
    orders,
    organizations,
    public,
    qr_codes,
    subscriptions,
    uploads,
    users,
    venues,
)
from tableserve.schemas import ErrorResponse

ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 402, 403, 404, 409)}

api_router = APIRouter(responses=ERROR_RESPONSES)

api_router.include_router(users.router)
api_router.include_router(organizations.router)
api_router.include_router(venues.router)
api_router.include_router(menus.router)
api_router.include_router(orders.router)
api_router.include_router(analytics.router)
api_router.include_router(qr_codes.router)
api_router.include_router(subscriptions.plans_router)
api_router.include_router(subscriptions.router)
api_router.include_router(uploads.router)
api_router.include_router(public.router)

__all__ = ["api_router"]
