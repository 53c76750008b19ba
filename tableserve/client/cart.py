"""
Guest shopping cart.

The cart holds snapshots of the menu items a guest picked (so prices can be
shown without another request) plus the customer details that go on the
order. ``CartStore`` persists it as JSON between sessions.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from filelock import FileLock
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class CartModifier(BaseModel):
    modifier_id: str
    name: Optional[str] = None
    price: float = 0.0


class CartItem(BaseModel):
    menu_item_id: str
    menu_item: dict[str, Any]
    quantity: int = 1
    notes: str = ""
    modifiers: List[CartModifier] = Field(default_factory=list)

    @property
    def unit_price(self) -> float:
        """Discount price when set, else the list price, plus modifiers."""
        discount = self.menu_item.get("discount_price")
        base = discount if discount is not None else self.menu_item.get("price", 0)
        return float(base) + sum(m.price for m in self.modifiers)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class Cart(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    table_id: Optional[str] = None
    room_number: str = ""
    party_size: Optional[int] = None

    # =========================================================================
    # ITEMS
    # =========================================================================

    def add_item(
        self,
        menu_item: dict[str, Any],
        quantity: int = 1,
        notes: str = "",
        modifiers: Optional[List[Union[CartModifier, dict]]] = None,
    ) -> CartItem:
        """Add a menu item; adding one that is already in the cart raises its quantity."""
        for item in self.items:
            if item.menu_item_id == menu_item["id"]:
                item.quantity += quantity
                return item

        item = CartItem(
            menu_item_id=menu_item["id"],
            menu_item=menu_item,
            quantity=quantity,
            notes=notes,
            modifiers=[CartModifier.model_validate(m) for m in modifiers or []],
        )
        self.items.append(item)
        return item

    def remove_item(self, index: int) -> None:
        del self.items[index]

    def update_quantity(self, index: int, quantity: int) -> None:
        if quantity < 1:
            self.remove_item(index)
            return
        self.items[index].quantity = quantity

    def update_notes(self, index: int, notes: str) -> None:
        self.items[index].notes = notes

    def clear(self) -> None:
        self.items = []
        self.customer_name = ""
        self.customer_email = ""
        self.customer_phone = ""
        self.table_id = None
        self.room_number = ""
        self.party_size = None

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_amount(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cart":
        return cls.model_validate(data)

    def to_order_payload(self, notes: Optional[str] = None) -> dict[str, Any]:
        """Body for ``POST /api/public/orders``."""
        payload: dict[str, Any] = {
            "table_id": self.table_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email or None,
            "customer_phone": self.customer_phone,
            "room_number": self.room_number or None,
            "party_size": self.party_size,
            "notes": notes or None,
            "items": [
                {
                    "menu_item_id": item.menu_item_id,
                    "quantity": item.quantity,
                    "notes": item.notes or None,
                    "modifiers": [{"modifier_id": m.modifier_id} for m in item.modifiers],
                }
                for item in self.items
            ],
        }
        return {k: v for k, v in payload.items() if v is not None}


class CartStore:
    """JSON file persistence for a cart, guarded by a file lock."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.lock = FileLock(f"{self.path}.lock", timeout=10)

    def load(self) -> Cart:
        """Stored cart, or an empty one when nothing valid is stored."""
        if not self.path.parent.exists():
            return Cart()
        with self.lock:
            if not self.path.exists():
                return Cart()
            text = self.path.read_text(encoding="utf-8")

        try:
            return Cart.from_dict(json.loads(text))
        except (ValueError, TypeError) as e:
            # ValidationError and JSONDecodeError are both ValueErrors
            logger.warning(f"Ignoring invalid cart data in {self.path}: {e}")
            return Cart()

    def save(self, cart: Cart) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.lock:
            self.path.write_text(json.dumps(cart.to_dict()), encoding="utf-8")

    def clear(self) -> None:
        with self.lock:
            if self.path.exists():
                self.path.unlink()


