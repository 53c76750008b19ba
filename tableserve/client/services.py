"""
Data-access services for the TableServe API.

One class per resource; each method maps onto a single endpoint and
returns the decoded JSON body. Request bodies may be pydantic schemas or
plain dicts.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel

from tableserve.client.api import ApiClient

Payload = Union[BaseModel, dict[str, Any]]
JSON = Any


def _body(data: Optional[Payload]) -> Any:
    if data is None:
        return None
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_unset=True)
    return data


def _org(organization_id: str) -> str:
    return f"/api/organizations/{organization_id}"


class _Service:
    def __init__(self, api: ApiClient):
        self.api = api


class UserService(_Service):
    async def register(self, name: str, email: str) -> JSON:
        """Create a user; the response carries the API token."""
        return await self.api.post("/api/users", {"name": name, "email": email}, auth=False)

    async def me(self) -> JSON:
        return await self.api.get("/api/users/me")


class OrganizationService(_Service):
    async def get_all(self) -> JSON:
        return await self.api.get("/api/organizations")

    async def get_by_id(self, organization_id: str) -> JSON:
        return await self.api.get(_org(organization_id))

    async def get_by_slug(self, slug: str) -> JSON:
        return await self.api.get(f"/api/organizations/slug/{slug}", auth=False)

    async def get_details(self, organization_id: str) -> JSON:
        return await self.api.get(f"{_org(organization_id)}/details")

    async def get_membership(self, organization_id: str) -> JSON:
        """Role, permissions and navigation for the current user."""
        return await self.api.get(f"{_org(organization_id)}/me")

    async def create(self, data: Payload) -> JSON:
        return await self.api.post("/api/organizations", _body(data))

    async def update(self, organization_id: str, data: Payload) -> JSON:
        return await self.api.patch(_org(organization_id), _body(data))

    async def delete(self, organization_id: str) -> None:
        await self.api.delete(_org(organization_id))

    # Members

    async def get_members(self, organization_id: str) -> JSON:
        return await self.api.get(f"{_org(organization_id)}/members")

    async def add_member(self, organization_id: str, data: Payload) -> JSON:
        return await self.api.post(f"{_org(organization_id)}/members", _body(data))

    async def update_member(self, organization_id: str, member_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{_org(organization_id)}/members/{member_id}", _body(data))

    async def remove_member(self, organization_id: str, member_id: str) -> None:
        await self.api.delete(f"{_org(organization_id)}/members/{member_id}")

    async def leave(self, organization_id: str) -> None:
        await self.api.post(f"{_org(organization_id)}/leave")

    # Tax configurations

    async def get_tax_configurations(self, organization_id: str) -> JSON:
        return await self.api.get(f"{_org(organization_id)}/tax-configurations")

    async def get_tax_configuration(self, organization_id: str, config_id: str) -> JSON:
        return await self.api.get(f"{_org(organization_id)}/tax-configurations/{config_id}")

    async def create_tax_configuration(self, organization_id: str, data: Payload) -> JSON:
        return await self.api.post(f"{_org(organization_id)}/tax-configurations", _body(data))

    async def update_tax_configuration(self, organization_id: str, config_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{_org(organization_id)}/tax-configurations/{config_id}", _body(data))

    async def delete_tax_configuration(self, organization_id: str, config_id: str) -> None:
        await self.api.delete(f"{_org(organization_id)}/tax-configurations/{config_id}")

    async def calculate_tax(self, organization_id: str, data: Payload) -> JSON:
        return await self.api.post(f"{_org(organization_id)}/tax-configurations/calculate", _body(data))

    # Analytics

    async def get_dashboard(self, organization_id: str, venue_id: Optional[str] = None, days: int = 30) -> JSON:
        return await self.api.get(
            f"{_org(organization_id)}/analytics/dashboard",
            params={"venue_id": venue_id, "days": days},
        )

    async def get_payment_report(
        self,
        organization_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        venue_id: Optional[str] = None,
    ) -> JSON:
        return await self.api.get(
            f"{_org(organization_id)}/reports/payments",
            params={"start": start, "end": end, "venue_id": venue_id},
        )

    async def export_payment_report(
        self,
        organization_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        venue_id: Optional[str] = None,
    ) -> JSON:
        return await self.api.post(
            f"{_org(organization_id)}/reports/payments/export",
            params={"start": start, "end": end, "venue_id": venue_id},
        )


class VenueService(_Service):
    def _base(self, organization_id: str) -> str:
        return f"{_org(organization_id)}/venues"

    async def get_all(self, organization_id: str) -> JSON:
        return await self.api.get(self._base(organization_id))

    async def get_by_id(self, organization_id: str, venue_id: str) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/{venue_id}")

    async def create(self, organization_id: str, data: Payload) -> JSON:
        return await self.api.post(self._base(organization_id), _body(data))

    async def update(self, organization_id: str, venue_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{self._base(organization_id)}/{venue_id}", _body(data))

    async def delete(self, organization_id: str, venue_id: str) -> None:
        await self.api.delete(f"{self._base(organization_id)}/{venue_id}")

    async def get_capacity(self, organization_id: str, venue_id: str) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/{venue_id}/capacity")

    # Tables

    async def get_tables(self, organization_id: str, venue_id: str) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/{venue_id}/tables")

    async def create_table(self, organization_id: str, venue_id: str, data: Payload) -> JSON:
        return await self.api.post(f"{self._base(organization_id)}/{venue_id}/tables", _body(data))

    async def update_table(self, organization_id: str, venue_id: str, table_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{self._base(organization_id)}/{venue_id}/tables/{table_id}", _body(data))

    async def update_table_status(self, organization_id: str, venue_id: str, table_id: str, status: str) -> JSON:
        return await self.api.patch(
            f"{self._base(organization_id)}/{venue_id}/tables/{table_id}/status",
            {"status": getattr(status, "value", status)},
        )

    async def delete_table(self, organization_id: str, venue_id: str, table_id: str) -> None:
        await self.api.delete(f"{self._base(organization_id)}/{venue_id}/tables/{table_id}")


class MenuService(_Service):
    async def get_all(self, organization_id: str) -> JSON:
        return await self.api.get(f"{_org(organization_id)}/menus")

    async def get_by_id(self, organization_id: str, menu_id: str) -> JSON:
        return await self.api.get(f"{_org(organization_id)}/menus/{menu_id}")

    async def create(self, organization_id: str, data: Payload) -> JSON:
        return await self.api.post(f"{_org(organization_id)}/menus", _body(data))

    async def update(self, organization_id: str, menu_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{_org(organization_id)}/menus/{menu_id}", _body(data))

    async def delete(self, organization_id: str, menu_id: str) -> None:
        await self.api.delete(f"{_org(organization_id)}/menus/{menu_id}")

    # Categories

    async def get_categories(self, organization_id: str, menu_id: str) -> JSON:
        return await self.api.get(f"{_org(organization_id)}/menus/{menu_id}/categories")

    async def create_category(self, organization_id: str, menu_id: str, data: Payload) -> JSON:
        return await self.api.post(f"{_org(organization_id)}/menus/{menu_id}/categories", _body(data))

    async def update_category(self, organization_id: str, category_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{_org(organization_id)}/categories/{category_id}", _body(data))

    async def delete_category(self, organization_id: str, category_id: str) -> None:
        await self.api.delete(f"{_org(organization_id)}/categories/{category_id}")

    # Items

    async def get_items(self, organization_id: str, category_id: str) -> JSON:
        return await self.api.get(f"{_org(organization_id)}/categories/{category_id}/items")

    async def get_item(self, organization_id: str, item_id: str) -> JSON:
        return await self.api.get(f"{_org(organization_id)}/items/{item_id}")

    async def create_item(self, organization_id: str, category_id: str, data: Payload) -> JSON:
        return await self.api.post(f"{_org(organization_id)}/categories/{category_id}/items", _body(data))

    async def update_item(self, organization_id: str, item_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{_org(organization_id)}/items/{item_id}", _body(data))

    async def set_item_availability(self, organization_id: str, item_id: str, is_available: bool) -> JSON:
        return await self.api.patch(
            f"{_org(organization_id)}/items/{item_id}/availability",
            {"is_available": is_available},
        )

    async def delete_item(self, organization_id: str, item_id: str) -> None:
        await self.api.delete(f"{_org(organization_id)}/items/{item_id}")

    async def add_modifier(self, organization_id: str, item_id: str, data: Payload) -> JSON:
        return await self.api.post(f"{_org(organization_id)}/items/{item_id}/modifiers", _body(data))

    async def delete_modifier(self, organization_id: str, item_id: str, modifier_id: str) -> None:
        await self.api.delete(f"{_org(organization_id)}/items/{item_id}/modifiers/{modifier_id}")


class OrderService(_Service):
    def _base(self, organization_id: str) -> str:
        return f"{_org(organization_id)}/orders"

    async def get_filtered(self, organization_id: str, filters: Optional[dict[str, Any]] = None) -> JSON:
        """Paginated listing: ``{data, total, page, limit, total_pages, has_next_page, ...}``."""
        return await self.api.get(self._base(organization_id), params=dict(filters or {}))

    async def get_all_for_organization(
        self,
        organization_id: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
    ) -> JSON:
        return await self.get_filtered(organization_id, {"page": page, "limit": limit, "status": status})

    async def get_all_for_venue(
        self,
        organization_id: str,
        venue_id: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
    ) -> JSON:
        return await self.get_filtered(
            organization_id,
            {"venue_id": venue_id, "page": page, "limit": limit, "status": status},
        )

    async def get_grouped(self, organization_id: str, filters: Optional[dict[str, Any]] = None) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/grouped", params=dict(filters or {}))

    async def get_unpaid(self, organization_id: str, venue_id: Optional[str] = None) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/unpaid", params={"venue_id": venue_id})

    async def get_active_count(self, organization_id: str) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/active-count")

    async def get_recent_active(self, organization_id: str, limit: int = 10) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/recent-active", params={"limit": limit})

    async def get_by_id(self, organization_id: str, order_id: str) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/{order_id}")

    async def create(self, organization_id: str, data: Payload) -> JSON:
        return await self.api.post(self._base(organization_id), _body(data))

    async def update(self, organization_id: str, order_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{self._base(organization_id)}/{order_id}", _body(data))

    async def update_status(self, organization_id: str, order_id: str, status: str) -> JSON:
        return await self.api.patch(
            f"{self._base(organization_id)}/{order_id}/status",
            {"status": getattr(status, "value", status)},
        )

    async def cancel(self, organization_id: str, order_id: str) -> JSON:
        return await self.api.post(f"{self._base(organization_id)}/{order_id}/cancel")

    async def update_item(self, organization_id: str, order_id: str, item_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{self._base(organization_id)}/{order_id}/items/{item_id}", _body(data))

    async def delete(self, organization_id: str, order_id: str) -> None:
        await self.api.delete(f"{self._base(organization_id)}/{order_id}")

    # Payments

    async def get_payment_status(self, organization_id: str, order_id: str) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/{order_id}/payment")

    async def mark_as_paid(self, organization_id: str, order_id: str, data: Payload) -> JSON:
        return await self.api.post(f"{self._base(organization_id)}/{order_id}/payment/paid", _body(data))

    async def mark_as_unpaid(self, organization_id: str, order_id: str, data: Optional[Payload] = None) -> JSON:
        return await self.api.post(f"{self._base(organization_id)}/{order_id}/payment/unpaid", _body(data) or {})

    async def refund(self, organization_id: str, order_id: str, reason: Optional[str] = None) -> JSON:
        return await self.api.post(f"{self._base(organization_id)}/{order_id}/payment/refund", {"reason": reason})


class QrCodeService(_Service):
    def _base(self, organization_id: str) -> str:
        return f"{_org(organization_id)}/qr-codes"

    async def get_all(self, organization_id: str, venue_id: Optional[str] = None) -> JSON:
        return await self.api.get(self._base(organization_id), params={"venue_id": venue_id})

    async def get_by_id(self, organization_id: str, qr_code_id: str) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/{qr_code_id}")

    async def get_image(self, organization_id: str, qr_code_id: str) -> bytes:
        """PNG bytes of the QR code."""
        return await self.api.get(f"{self._base(organization_id)}/{qr_code_id}/image", raw=True)

    async def create(self, organization_id: str, data: Payload) -> JSON:
        return await self.api.post(self._base(organization_id), _body(data))

    async def update(self, organization_id: str, qr_code_id: str, data: Payload) -> JSON:
        return await self.api.patch(f"{self._base(organization_id)}/{qr_code_id}", _body(data))

    async def delete(self, organization_id: str, qr_code_id: str) -> None:
        await self.api.delete(f"{self._base(organization_id)}/{qr_code_id}")

    async def record_scan(self, qr_code_id: str) -> JSON:
        return await self.api.post(f"/api/public/qr-codes/{qr_code_id}/scan", auth=False)


class UploadService(_Service):
    async def upload_image(self, filename: str, content: bytes, content_type: str) -> JSON:
        """Upload an image; returns ``{url, filename, size, content_type}``."""
        return await self.api.post(
            "/api/uploads/images",
            files={"file": (filename, content, content_type)},
        )

    async def delete_image(self, filename: str) -> None:
        await self.api.delete(f"/api/uploads/images/{filename}")


class SubscriptionService(_Service):
    def _base(self, organization_id: str) -> str:
        return f"{_org(organization_id)}/subscription"

    async def get_plans(self) -> JSON:
        return await self.api.get("/api/plans", auth=False)

    async def get_plan(self, plan_id: str) -> JSON:
        return await self.api.get(f"/api/plans/{plan_id}", auth=False)

    async def get_current(self, organization_id: str) -> JSON:
        return await self.api.get(self._base(organization_id))

    async def get_summary(self, organization_id: str) -> JSON:
        return await self.api.get(f"{self._base(organization_id)}/summary")

    async def subscribe(self, organization_id: str, plan_id: str, billing_cycle: str = "MONTHLY") -> JSON:
        return await self.api.post(
            self._base(organization_id),
            {"plan_id": plan_id, "billing_cycle": getattr(billing_cycle, "value", billing_cycle)},
        )

    async def cancel(self, organization_id: str, immediately: bool = False) -> JSON:
        return await self.api.post(f"{self._base(organization_id)}/cancel", {"immediately": immediately})

    async def reactivate(self, organization_id: str) -> JSON:
        return await self.api.post(f"{self._base(organization_id)}/reactivate")

    async def change_plan(self, organization_id: str, plan_id: str, billing_cycle: Optional[str] = None) -> JSON:
        return await self.api.post(
            f"{self._base(organization_id)}/change-plan",
            {"plan_id": plan_id, "billing_cycle": getattr(billing_cycle, "value", billing_cycle)},
        )


class PublicMenuService(_Service):
    async def get_menu(
        self,
        org_slug: str,
        venue_id: Optional[str] = None,
        table_id: Optional[str] = None,
    ) -> JSON:
        return await self.api.get(
            f"/api/public/menus/{org_slug}",
            params={"venueId": venue_id, "tableId": table_id},
            auth=False,
        )


class PublicOrderService(_Service):
    async def create_order(self, data: Payload, venue_id: Optional[str] = None) -> JSON:
        path = f"/api/public/venues/{venue_id}/orders" if venue_id else "/api/public/orders"
        return await self.api.post(path, _body(data), auth=False)

    async def get_order(self, order_id: str) -> JSON:
        return await self.api.get(f"/api/public/orders/{order_id}", auth=False)

    async def get_order_status(self, order_id: str) -> JSON:
        return await self.api.get(f"/api/public/orders/{order_id}/status", auth=False)

    async def find_by_phone(self, phone: str) -> JSON:
        return await self.api.get(f"/api/public/orders/phone/{phone}", auth=False)
