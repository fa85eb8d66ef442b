"""Cart value types and device payload encoding."""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from storefront.errors import ERROR_INVALID_PRODUCT_ID, ERROR_INVALID_QUANTITY


def _valid_quantity(value: Any) -> bool:
    # bool is an int subclass; JSON true must not become quantity 1
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _check_product_id(product_id: str) -> None:
    if not product_id or not isinstance(product_id, str):
        raise ValueError(ERROR_INVALID_PRODUCT_ID)


@dataclass
class Cart:
    """
    Mapping of product id to a positive quantity.

    Zero quantities never appear: decreasing the last unit deletes the entry.
    Mutators return a new Cart, so a Cart handed to a caller is never
    changed behind its back by a later write.
    """
    items: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        self.items = {pid: qty for pid, qty in self.items.items() if _valid_quantity(qty)}

    @property
    def total_items(self) -> int:
        """Total number of units in the cart."""
        return sum(self.items.values())

    @property
    def is_empty(self) -> bool:
        return not self.items

    def copy(self) -> "Cart":
        return Cart(dict(self.items))

    def add(self, product_id: str, quantity: int = 1) -> "Cart":
        """Increment a product's quantity, creating the entry if absent."""
        _check_product_id(product_id)
        if not _valid_quantity(quantity):
            raise ValueError(ERROR_INVALID_QUANTITY)
        items = dict(self.items)
        items[product_id] = items.get(product_id, 0) + quantity
        return Cart(items)

    def decrease(self, product_id: str) -> "Cart":
        """Remove one unit; the last unit removes the entry."""
        items = dict(self.items)
        current = items.get(product_id, 0)
        if current > 1:
            items[product_id] = current - 1
        else:
            items.pop(product_id, None)
        return Cart(items)

    def remove(self, product_id: str) -> "Cart":
        """Drop a product regardless of its quantity."""
        items = dict(self.items)
        items.pop(product_id, None)
        return Cart(items)

    def to_dict(self) -> Dict[str, int]:
        return dict(self.items)

    @classmethod
    def from_dict(cls, data: Any) -> "Cart":
        """
        Build a Cart from decoded JSON.

        Anything that is not an object yields an empty cart; entries with
        non-integer or non-positive quantities are dropped.
        """
        if not isinstance(data, dict):
            return cls()
        return cls({str(pid): qty for pid, qty in data.items()})

    def to_payload(self) -> str:
        """JSON blob stored under the device cart key."""
        return json.dumps(self.items, separators=(",", ":"), sort_keys=True)

    @classmethod
    def from_payload(cls, payload: Optional[str]) -> "Cart":
        """Decode a device payload; absent or corrupted payloads are an empty cart."""
        if not payload:
            return cls()
        try:
            return cls.from_dict(json.loads(payload))
        except (json.JSONDecodeError, TypeError, ValueError):
            return cls()


@dataclass
class CurrentUser:
    """Signed-in identity as reported by the identity provider."""
    id: str
    email: Optional[str] = None


@dataclass
class RemoteCartRecord:
    """One row of the remote user_carts table."""
    user_id: str
    cart_data: Any
    updated_at: Optional[str] = None

    @property
    def is_well_formed(self) -> bool:
        """Only a JSON object counts as a remote cart."""
        return isinstance(self.cart_data, dict)

    def to_cart(self) -> Cart:
        return Cart.from_dict(self.cart_data)
