"""
Query Key Factories

Every cached query is addressed by a tuple key built here, so lists,
details and analytics for the same entity share a common prefix and can
be invalidated together.

Filters are normalized before they become part of a key: None values are
dropped and the remaining pairs are sorted, so ``{"a": 1, "b": None}`` and
``{"a": 1}`` address the same entry.
"""

from typing import Any, Mapping, Optional

QueryKey = tuple


def normalize_filters(filters: Optional[Mapping[str, Any]] = None) -> tuple:
    if not filters:
        return ()
    return tuple(
        (name, getattr(value, "value", value))
        for name, value in sorted(filters.items())
        if value is not None
    )


def _optional(*values: Any) -> tuple:
    return tuple(v for v in values if v)


class AuthKeys:
    all = ("auth",)

    @classmethod
    def session(cls) -> QueryKey:
        return (*cls.all, "session")

    @classmethod
    def user(cls) -> QueryKey:
        return (*cls.all, "user")


class OrganizationKeys:
    all = ("organizations",)

    @classmethod
    def lists(cls) -> QueryKey:
        return (*cls.all, "list")

    @classmethod
    def list(cls, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return (*cls.lists(), normalize_filters(filters))

    @classmethod
    def details(cls) -> QueryKey:
        return (*cls.all, "detail")

    @classmethod
    def detail(cls, organization_id: str) -> QueryKey:
        return (*cls.details(), organization_id)

    @classmethod
    def members(cls, organization_id: str) -> QueryKey:
        return (*cls.detail(organization_id), "members")

    @classmethod
    def invitations(cls, organization_id: str) -> QueryKey:
        return (*cls.detail(organization_id), "invitations")


class VenueKeys:
    all = ("venues",)

    @classmethod
    def lists(cls) -> QueryKey:
        return (*cls.all, "list")

    @classmethod
    def list(cls, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return (*cls.lists(), normalize_filters(filters))

    @classmethod
    def by_organization(cls, organization_id: str) -> QueryKey:
        return (*cls.lists(), "organization", organization_id)

    @classmethod
    def details(cls) -> QueryKey:
        return (*cls.all, "detail")

    @classmethod
    def detail(cls, venue_id: str) -> QueryKey:
        return (*cls.details(), venue_id)

    @classmethod
    def tables(cls, venue_id: str) -> QueryKey:
        return (*cls.detail(venue_id), "tables")


class MenuKeys:
    all = ("menus",)

    @classmethod
    def lists(cls) -> QueryKey:
        return (*cls.all, "list")

    @classmethod
    def list(cls, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return (*cls.lists(), normalize_filters(filters))

    @classmethod
    def by_organization(cls, organization_id: str) -> QueryKey:
        return (*cls.lists(), "organization", organization_id)

    @classmethod
    def details(cls) -> QueryKey:
        return (*cls.all, "detail")

    @classmethod
    def detail(cls, menu_id: str) -> QueryKey:
        return (*cls.details(), menu_id)

    @classmethod
    def categories(cls, menu_id: str) -> QueryKey:
        return (*cls.detail(menu_id), "categories")

    @classmethod
    def items(cls, category_id: str) -> QueryKey:
        return (*cls.all, "category", category_id, "items")


class OrderKeys:
    all = ("orders",)

    @classmethod
    def lists(cls) -> QueryKey:
        return (*cls.all, "list")

    @classmethod
    def list(cls, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return (*cls.lists(), normalize_filters(filters))

    @classmethod
    def infinite(cls, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return (*cls.lists(), "infinite", normalize_filters(filters))

    @classmethod
    def by_organization(cls, organization_id: str, status: Optional[str] = None) -> QueryKey:
        return (*cls.lists(), "organization", organization_id, *_optional(getattr(status, "value", status)))

    @classmethod
    def by_venue(cls, venue_id: str, status: Optional[str] = None) -> QueryKey:
        return (*cls.lists(), "venue", venue_id, *_optional(getattr(status, "value", status)))

    @classmethod
    def filtered(cls, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return (*cls.lists(), "filtered", normalize_filters(filters))

    @classmethod
    def details(cls) -> QueryKey:
        return (*cls.all, "detail")

    @classmethod
    def detail(cls, order_id: str) -> QueryKey:
        return (*cls.details(), order_id)

    @classmethod
    def analytics(cls) -> QueryKey:
        return (*cls.all, "analytics")

    @classmethod
    def active_count(cls, organization_id: str) -> QueryKey:
        return (*cls.analytics(), "active_count", organization_id)

    @classmethod
    def recent_active(cls, organization_id: str) -> QueryKey:
        return (*cls.analytics(), "recent_active", organization_id)


class AnalyticsKeys:
    all = ("analytics",)

    @classmethod
    def dashboard(cls) -> QueryKey:
        return (*cls.all, "dashboard")

    @classmethod
    def dashboard_by_org(
        cls,
        organization_id: str,
        venue_id: Optional[str] = None,
        days: Optional[int] = None,
    ) -> QueryKey:
        return (*cls.dashboard(), organization_id, *_optional(venue_id, days))

    @classmethod
    def reports(cls) -> QueryKey:
        return (*cls.all, "reports")

    @classmethod
    def report(cls, report_type: str, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return (*cls.reports(), report_type, normalize_filters(filters))


class UploadKeys:
    all = ("uploads",)

    @classmethod
    def images(cls) -> QueryKey:
        return (*cls.all, "images")

    @classmethod
    def image(cls, image_id: str) -> QueryKey:
        return (*cls.images(), image_id)


class PlanKeys:
    all = ("plans",)

    @classmethod
    def list(cls) -> QueryKey:
        return (*cls.all, "list")

    @classmethod
    def detail(cls, plan_id: str) -> QueryKey:
        return (*cls.all, "detail", plan_id)


class NotificationKeys:
    all = ("notifications",)

    @classmethod
    def lists(cls) -> QueryKey:
        return (*cls.all, "list")

    @classmethod
    def list(cls, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return (*cls.lists(), normalize_filters(filters))

    @classmethod
    def unread_count(cls) -> QueryKey:
        return (*cls.all, "unread_count")


class SubscriptionKeys:
    all = ("subscriptions",)

    @classmethod
    def current(cls, organization_id: str) -> QueryKey:
        return (*cls.all, "current", organization_id)

    @classmethod
    def summary(cls, organization_id: str) -> QueryKey:
        return (*cls.all, "summary", organization_id)


class QrCodeKeys:
    all = ("qr_codes",)

    @classmethod
    def by_organization(cls, organization_id: str, venue_id: Optional[str] = None) -> QueryKey:
        return (*cls.all, "organization", organization_id, *_optional(venue_id))

    @classmethod
    def detail(cls, qr_code_id: str) -> QueryKey:
        return (*cls.all, "detail", qr_code_id)


class PublicKeys:
    all = ("public",)

    @classmethod
    def menu(cls, org_slug: str, venue_id: Optional[str] = None, table_id: Optional[str] = None) -> QueryKey:
        return (*cls.all, "menu", org_slug, normalize_filters({"venue_id": venue_id, "table_id": table_id}))

    @classmethod
    def order_status(cls, order_id: str) -> QueryKey:
        return (*cls.all, "order", order_id, "status")


def get_related_query_keys(entity_type: str, entity_id: str) -> list[QueryKey]:
    """Keys to invalidate after an entity changes."""
    if entity_type == "organization":
        return [
            OrganizationKeys.detail(entity_id),
            VenueKeys.by_organization(entity_id),
            MenuKeys.by_organization(entity_id),
            OrderKeys.by_organization(entity_id),
            AnalyticsKeys.dashboard_by_org(entity_id),
        ]
    if entity_type == "venue":
        return [
            VenueKeys.detail(entity_id),
            VenueKeys.tables(entity_id),
            OrderKeys.by_venue(entity_id),
        ]
    if entity_type == "menu":
        return [
            MenuKeys.detail(entity_id),
            MenuKeys.categories(entity_id),
        ]
    if entity_type == "order":
        return [
            OrderKeys.detail(entity_id),
            OrderKeys.lists(),
            AnalyticsKeys.dashboard(),
        ]
    return []


_TAGS = (
    ("organizations", "organization"),
    ("venues", "venue"),
    ("menus", "menu"),
    ("orders", "order"),
    ("analytics", "analytics"),
)


def get_cache_tags(key: QueryKey) -> list[str]:
    return [tag for namespace, tag in _TAGS if namespace in key]
