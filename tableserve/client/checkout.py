"""
Guest checkout flow.

Drives a guest from the QR-code menu to a placed order:

    MENU -> CHECKOUT -> CONFIRMATION
      \\-> TRACK_ORDER

The flow owns the cart, talks to the public endpoints and keeps the
state a front end renders (active category, search results, errors, the
confirmed order and any pending table change).
"""

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from tableserve.client.api import ApiError
from tableserve.client.cart import Cart, CartStore
from tableserve.client.services import PublicMenuService, PublicOrderService
from tableserve.core.enums import OrderStatus

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_PHONE_DIGITS = 10
ORDER_NUMBER_LENGTH = 8

_FINISHED_STATUSES = {OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value}


class ViewState(str, enum.Enum):
    MENU = "menu"
    CHECKOUT = "checkout"
    CONFIRMATION = "confirmation"
    TRACK_ORDER = "track_order"


@dataclass
class ConfirmedOrder:
    id: str
    order_number: str
    status: str
    items: list[dict[str, Any]]
    total_amount: float
    customer_name: str

    @classmethod
    def from_response(cls, order: dict[str, Any], cart: Cart) -> "ConfirmedOrder":
        # Items and total come from the cart as the guest saw it
        return cls(
            id=order["id"],
            order_number=short_order_number(order["id"]),
            status=order["status"],
            items=[
                {
                    "name": item.menu_item.get("name"),
                    "quantity": item.quantity,
                    "price": item.unit_price,
                    "notes": item.notes or None,
                }
                for item in cart.items
            ],
            total_amount=cart.total_amount,
            customer_name=cart.customer_name,
        )


@dataclass
class PendingTableChange:
    current_table_id: str
    new_table_id: str
    new_table_name: Optional[str] = None
    venue_name: Optional[str] = None
    active_orders: list[dict[str, Any]] = field(default_factory=list)


def short_order_number(order_id: str) -> str:
    return order_id[:ORDER_NUMBER_LENGTH].upper()


def validate_customer(form: dict[str, Any]) -> dict[str, str]:
    """Field errors for a checkout form; empty when the form is valid."""
    errors = {}
    name = (form.get("customer_name") or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        errors["customer_name"] = "Name is required"

    digits = re.sub(r"\D", "", form.get("customer_phone") or "")
    if len(digits) < MIN_PHONE_DIGITS:
        errors["customer_phone"] = f"Phone number must have at least {MIN_PHONE_DIGITS} digits"
    return errors


class CheckoutFlow:
    def __init__(
        self,
        menus: PublicMenuService,
        orders: PublicOrderService,
        cart: Optional[Cart] = None,
        store: Optional[CartStore] = None,
    ):
        self.menus = menus
        self.orders = orders
        self.store = store
        self.cart = cart if cart is not None else (store.load() if store else Cart())

        self.view_state = ViewState.MENU
        self.menu: Optional[dict[str, Any]] = None
        self.org_slug: Optional[str] = None
        self.venue_id: Optional[str] = None
        # Table the guest is seated at; survives the cart being cleared
        self.table_id: Optional[str] = self.cart.table_id
        self.active_category: Optional[str] = None
        self.search_query = ""
        self.error: Optional[str] = None
        self.form_errors: dict[str, str] = {}
        self.is_submitting = False
        self.confirmed_order: Optional[ConfirmedOrder] = None
        self.tracked_order: Optional[dict[str, Any]] = None
        self.pending_table_change: Optional[PendingTableChange] = None

    def _persist(self) -> None:
        if self.store:
            self.store.save(self.cart)

    # =========================================================================
    # MENU
    # =========================================================================

    @property
    def categories(self) -> list[dict[str, Any]]:
        if not self.menu:
            return []
        return [c for m in self.menu.get("menus", []) for c in m.get("categories", [])]

    async def load_menu(
        self,
        org_slug: str,
        venue_id: Optional[str] = None,
        table_id: Optional[str] = None,
    ) -> Optional[dict[str, Any]]:
        self.error = None
        try:
            menu = await self.menus.get_menu(org_slug, venue_id, table_id)
        except ApiError as e:
            logger.warning(f"Could not load menu for '{org_slug}': {e.message}")
            self.menu = None
            self.error = "Failed to load menu. Please try again."
            return None

        self.menu = menu
        self.org_slug = org_slug
        self.venue_id = (menu.get("venue") or {}).get("id") or venue_id
        categories = self.categories
        self.active_category = categories[0]["id"] if categories else None

        if table_id:
            await self._apply_table(table_id, menu)
        return menu

    async def _apply_table(self, table_id: str, menu: dict[str, Any]) -> None:
        current = self.cart.table_id
        if current and current != table_id and not self.cart.is_empty:
            active_orders = []
            if self.cart.customer_phone:
                try:
                    found = await self.orders.find_by_phone(self.cart.customer_phone)
                except ApiError as e:
                    logger.warning(f"Active order lookup failed: {e.message}")
                    found = []
                active_orders = [o for o in found if o.get("status") not in _FINISHED_STATUSES]

            self.pending_table_change = PendingTableChange(
                current_table_id=current,
                new_table_id=table_id,
                new_table_name=(menu.get("table") or {}).get("name"),
                venue_name=(menu.get("venue") or {}).get("name"),
                active_orders=active_orders,
            )
            logger.info(f"Table change from {current} to {table_id} awaiting confirmation")
            return

        self.table_id = self.cart.table_id = table_id
        self._persist()

    def confirm_table_change(self) -> None:
        """Move the cart to the newly scanned table, keeping its items."""
        if self.pending_table_change is None:
            return
        self.table_id = self.cart.table_id = self.pending_table_change.new_table_id
        self.pending_table_change = None
        self._persist()

    def decline_table_change(self) -> None:
        self.pending_table_change = None

    def select_category(self, category_id: str) -> None:
        self.active_category = category_id
        self.search_query = ""

    def search(self, query: str) -> list[dict[str, Any]]:
        """Available items whose name or description contains ``query``."""
        self.search_query = query
        needle = query.strip().lower()
        if not needle:
            categories = self.categories
            self.active_category = categories[0]["id"] if categories else None
            return []

        self.active_category = None
        return [
            item
            for category in self.categories
            for item in category.get("items", [])
            if needle in item.get("name", "").lower()
            or needle in (item.get("description") or "").lower()
        ]

    def add_to_cart(
        self,
        menu_item: dict[str, Any],
        quantity: int = 1,
        notes: str = "",
        modifiers: Optional[list] = None,
    ) -> None:
        self.cart.add_item(menu_item, quantity, notes, modifiers)
        self._persist()

    # =========================================================================
    # CHECKOUT
    # =========================================================================

    def proceed_to_checkout(self) -> bool:
        if self.cart.is_empty:
            self.error = "Your cart is empty"
            return False
        self.error = None
        self.view_state = ViewState.CHECKOUT
        return True

    def back_to_menu(self) -> None:
        self.view_state = ViewState.MENU

    async def place_order(self, form: dict[str, Any]) -> Optional[ConfirmedOrder]:
        """
        Submit the cart as an order.

        ``form`` carries ``customer_name``, ``customer_phone`` and optionally
        ``customer_email``, ``room_number``, ``party_size`` and ``notes``.
        On failure the flow stays in CHECKOUT with ``error`` set.
        """
        if self.cart.is_empty:
            self.error = "Your cart is empty"
            return None

        self.form_errors = validate_customer(form)
        if self.form_errors:
            self.error = "Please correct the highlighted fields"
            return None

        self.cart.customer_name = form["customer_name"].strip()
        self.cart.customer_phone = form["customer_phone"].strip()
        self.cart.customer_email = form.get("customer_email") or ""
        self.cart.room_number = form.get("room_number") or ""
        self.cart.party_size = form.get("party_size")

        payload = self.cart.to_order_payload(form.get("notes"))
        venue_id = None if self.cart.table_id else self.venue_id

        self.is_submitting = True
        self.error = None
        try:
            order = await self.orders.create_order(payload, venue_id=venue_id)
        except ApiError as e:
            logger.warning(f"Order submission failed: {e.message}")
            self.error = e.message or "Failed to place order. Please try again."
            return None
        finally:
            self.is_submitting = False

        self.confirmed_order = ConfirmedOrder.from_response(order, self.cart)
        logger.info(f"Order {self.confirmed_order.order_number} placed")

        self.cart.clear()
        self.cart.table_id = self.table_id
        self._persist()
        self.view_state = ViewState.CONFIRMATION
        return self.confirmed_order

    # =========================================================================
    # TRACKING
    # =========================================================================

    async def track_order(self, order_id: Optional[str] = None) -> Optional[dict[str, Any]]:
        order_id = order_id or (self.confirmed_order.id if self.confirmed_order else None)
        self.view_state = ViewState.TRACK_ORDER
        if not order_id:
            return None

        try:
            self.tracked_order = await self.orders.get_order_status(order_id)
        except ApiError as e:
            self.error = "Order not found" if e.status_code == 404 else e.message
            self.tracked_order = None
        return self.tracked_order

    def start_new_order(self) -> None:
        self.confirmed_order = None
        self.tracked_order = None
        self.error = None
        self.form_errors = {}
        self.view_state = ViewState.MENU
