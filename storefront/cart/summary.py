"""Priced cart view built from the product catalog."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from storefront import config
from storefront.logging import get_logger
from storefront.money import apply_discount, multiply, round_money, to_decimal, to_float

from .models import Cart

logger = get_logger(__name__)


@dataclass
class CartLine:
    """One product in the cart with catalog pricing."""
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal = Decimal("0")
    image_url: Optional[str] = None

    @property
    def final_price(self) -> Decimal:
        """Unit price after the product discount."""
        return apply_discount(self.unit_price, self.discount_percent)

    @property
    def total_price(self) -> Decimal:
        return multiply(self.final_price, self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "image_url": self.image_url,
            "unit_price": to_float(round_money(self.unit_price)),
            "discount_percent": to_float(self.discount_percent),
            "final_price": to_float(round_money(self.final_price)),
            "total_price": to_float(round_money(self.total_price)),
        }


@dataclass
class CartSummary:
    lines: List[CartLine] = field(default_factory=list)
    missing_product_ids: List[str] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def subtotal(self) -> Decimal:
        """Sum of undiscounted line prices."""
        return sum((multiply(line.unit_price, line.quantity) for line in self.lines), Decimal("0"))

    @property
    def total(self) -> Decimal:
        """Sum of discounted line prices."""
        return sum((line.total_price for line in self.lines), Decimal("0"))

    @property
    def savings(self) -> Decimal:
        return self.subtotal - self.total

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> dict:
        return {
            "items": [line.to_dict() for line in self.lines],
            "missing_product_ids": list(self.missing_product_ids),
            "total_items": self.total_items,
            "subtotal": to_float(round_money(self.subtotal)),
            "total": to_float(round_money(self.total)),
            "savings": to_float(round_money(self.savings)),
        }


def build_cart_summary(cart: Cart, products: Iterable[Dict[str, Any]]) -> CartSummary:
    """
    Price a cart against catalog rows.

    Rows need id and price; name, discount_percentage and image_url are
    optional. Cart entries without a catalog row are listed in
    missing_product_ids and left out of the totals.
    """
    catalog = {str(row["id"]): row for row in products if row.get("id") is not None}
    summary = CartSummary()

    for product_id in sorted(cart.items):
        row = catalog.get(product_id)
        if row is None:
            summary.missing_product_ids.append(product_id)
            continue
        summary.lines.append(CartLine(
            product_id=product_id,
            name=row.get("name") or "Unknown",
            quantity=cart.items[product_id],
            unit_price=to_decimal(row.get("price")),
            discount_percent=to_decimal(row.get("discount_percentage")),
            image_url=row.get("image_url"),
        ))

    return summary


async def fetch_cart_products(client, product_ids: Iterable[str]) -> List[Dict[str, Any]]:
    """Load catalog rows for the given ids in one query. Failures yield an empty list."""
    ids = sorted(set(product_ids))
    if not ids:
        return []
    try:
        result = await (
            client.table(config.PRODUCTS_TABLE)
            .select("id,name,price,discount_percentage,image_url")
            .in_("id", ids)
            .execute()
        )
    except Exception as e:
        logger.warning(f"Failed to load products for cart summary: {e}")
        return []
    return result.data or []
