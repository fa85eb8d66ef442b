"""
Cart Errors

Error message constants and the exception hierarchy used between the
storage adapters and the cart synchronizer. None of these exceptions leave
CartSynchronizer: it degrades to the device store instead.
"""

import httpx
from postgrest.exceptions import APIError

# Postgres / PostgREST codes
PG_UNDEFINED_TABLE = "42P01"  # relation does not exist
PGRST_SCHEMA_CACHE_MISS = "PGRST205"  # table not in schema cache
NETWORK_ERROR = "NETWORK_ERROR"

# Messages
ERROR_REMOTE_UNAVAILABLE = "Remote cart store unavailable"
ERROR_CART_TABLE_MISSING = "Cart table does not exist"
ERROR_DEVICE_STORE_UNAVAILABLE = "Device store unavailable"
ERROR_INVALID_QUANTITY = "quantity must be a positive integer"
ERROR_INVALID_PRODUCT_ID = "product_id must be a non-empty string"
ERROR_DEVICE_ID_REQUIRED = "X-Device-Id header is required"
ERROR_INTERNAL = "Internal server error"


class RemoteCartError(Exception):
    """Base class for Remote Cart Store failures."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class RemoteUnavailableError(RemoteCartError):
    """Network failure or a backend that cannot serve the request."""


class CartTableMissingError(RemoteUnavailableError):
    """The user_carts relation is absent; provisioning may fix it."""


class DeviceStoreError(Exception):
    """Device store cannot be read or written (e.g. storage disabled)."""


def _is_missing_table(code: str | None, message: str) -> bool:
    if code in (PG_UNDEFINED_TABLE, PGRST_SCHEMA_CACHE_MISS):
        return True
    return "does not exist" in message and "relation" in message


def classify_remote_error(error: Exception) -> RemoteCartError:
    """
    Map a Supabase/transport exception onto the remote error hierarchy.

    - postgrest APIError with 42P01 (or schema cache miss) -> CartTableMissingError
    - httpx transport errors, "Failed to fetch" messages -> RemoteUnavailableError
    - anything else -> RemoteCartError
    """
    if isinstance(error, RemoteCartError):
        return error

    if isinstance(error, APIError):
        code = error.code
        message = error.message or ""
        if _is_missing_table(code, message):
            return CartTableMissingError(ERROR_CART_TABLE_MISSING, code=code)
        if code == NETWORK_ERROR or "Failed to fetch" in message:
            return RemoteUnavailableError(message or ERROR_REMOTE_UNAVAILABLE, code=code)
        return RemoteCartError(message or str(error), code=code)

    if isinstance(error, (httpx.HTTPError, OSError)):
        return RemoteUnavailableError(f"{ERROR_REMOTE_UNAVAILABLE}: {error}", code=NETWORK_ERROR)

    return RemoteCartError(str(error))
