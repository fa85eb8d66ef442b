"""
Cart Router

Thin HTTP surface over CartSynchronizer. The device is identified by the
X-Device-Id header; a Supabase bearer token attaches the user so writes are
replicated to the user's remote cart.
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from storefront.auth import get_device_id, get_optional_user
from storefront.cart import Cart, CartSynchronizer, build_cart_summary, build_device_synchronizer, fetch_cart_products
from storefront.cart.models import CurrentUser
from storefront.db import get_supabase
from storefront.errors import ERROR_INTERNAL
from storefront.logging import get_logger

from .models import AddToCartRequest, CartItemRequest, CartResponse

logger = get_logger(__name__)

router = APIRouter(tags=["cart"])


def get_synchronizer(
    device_id: str = Depends(get_device_id),
    user: Optional[CurrentUser] = Depends(get_optional_user),
) -> CartSynchronizer:
    """Request-scoped synchronizer for the calling device."""
    return build_device_synchronizer(device_id, user)


async def get_catalog_client():
    """Supabase client for product lookups, or None when not configured."""
    try:
        return await get_supabase()
    except ValueError as e:
        logger.warning(f"Product catalog unavailable: {e}")
        return None


def _cart_response(cart: Cart) -> CartResponse:
    return CartResponse(items=cart.to_dict(), total_items=cart.total_items)


async def _run_blocking(sync: CartSynchronizer, func, *args):
    """
    Run a synchronizer call in a worker thread.

    The device store is the blocking Upstash REST client. Remote pushes
    spawned from the worker land on this request's loop.
    """
    sync.tasks.bind(asyncio.get_running_loop())
    return await asyncio.to_thread(func, *args)


@router.get("/cart", response_model=CartResponse)
async def get_cart(sync: CartSynchronizer = Depends(get_synchronizer)):
    """Current device cart."""
    return _cart_response(await _run_blocking(sync, sync.get_cart))


@router.get("/cart/summary")
async def get_cart_summary(
    sync: CartSynchronizer = Depends(get_synchronizer),
    client=Depends(get_catalog_client),
):
    """Cart priced against the product catalog."""
    cart = await _run_blocking(sync, sync.get_cart)
    products = await fetch_cart_products(client, cart.items) if client is not None else []
    return build_cart_summary(cart, products).to_dict()


@router.post("/cart/add", response_model=CartResponse)
async def add_to_cart(request: AddToCartRequest, sync: CartSynchronizer = Depends(get_synchronizer)):
    """Add units of a product."""
    try:
        cart = await _run_blocking(sync, sync.add_to_cart, request.product_id, request.quantity)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    except Exception as e:
        logger.error(f"Failed to add to cart: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=ERROR_INTERNAL)
    return _cart_response(cart)


@router.post("/cart/decrease", response_model=CartResponse)
async def decrease_item(request: CartItemRequest, sync: CartSynchronizer = Depends(get_synchronizer)):
    """Remove one unit of a product."""
    return _cart_response(await _run_blocking(sync, sync.decrease_item, request.product_id))


@router.delete("/cart/items/{product_id}", response_model=CartResponse)
async def remove_from_cart(product_id: str, sync: CartSynchronizer = Depends(get_synchronizer)):
    """Remove a product from the cart."""
    return _cart_response(await _run_blocking(sync, sync.remove_from_cart, product_id))


@router.delete("/cart", response_model=CartResponse)
async def clear_cart(sync: CartSynchronizer = Depends(get_synchronizer)):
    """Empty the cart."""
    return _cart_response(await _run_blocking(sync, sync.clear_cart))


@router.post("/cart/sync", response_model=CartResponse)
async def sync_cart(sync: CartSynchronizer = Depends(get_synchronizer)):
    """Reconcile the device cart with the signed-in user's remote cart."""
    return _cart_response(await sync.activate())
