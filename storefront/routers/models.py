"""
Cart API Pydantic Models
"""
from pydantic import BaseModel


class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = 1


class CartItemRequest(BaseModel):
    product_id: str


class CartResponse(BaseModel):
    items: dict[str, int]
    total_items: int
