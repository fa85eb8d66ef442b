"""Request identity for the cart API: device id header and optional Supabase user."""
from typing import Optional

from fastapi import Header, HTTPException

from storefront.cart.identity import SupabaseIdentityProvider
from storefront.cart.models import CurrentUser
from storefront.errors import ERROR_DEVICE_ID_REQUIRED
from storefront.logging import get_logger

logger = get_logger(__name__)

MAX_DEVICE_ID_LENGTH = 128


async def get_device_id(x_device_id: str = Header(None, alias="X-Device-Id")) -> str:
    """Device id chosen by the client; one device store namespace per id."""
    device_id = (x_device_id or "").strip()
    if not device_id:
        raise HTTPException(status_code=400, detail=ERROR_DEVICE_ID_REQUIRED)
    if len(device_id) > MAX_DEVICE_ID_LENGTH or any(c in device_id for c in ":\n\r\t "):
        raise HTTPException(status_code=400, detail="Invalid X-Device-Id header")
    return device_id


async def get_optional_user(
    authorization: str = Header(None, alias="Authorization")
) -> Optional[CurrentUser]:
    """
    Resolve the signed-in user from a Supabase access token.

    No header means an anonymous session. A bearer token that Supabase
    rejects is a 401, not a silent downgrade to anonymous.
    """
    if not authorization:
        return None

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Unsupported authorization scheme")

    user = await SupabaseIdentityProvider(jwt=parts[1]).get_current_user()
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid access token")
    return user
