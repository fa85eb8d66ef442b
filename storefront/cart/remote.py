"""
Remote Cart Store

Per-user cart replica. The Supabase implementation keeps one row per user
in the user_carts table (user_id unique, cart_data jsonb, updated_at).

Every method raises the storefront.errors remote hierarchy; deciding what a
failure means is left to CartSynchronizer.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from storefront import config
from storefront.db import get_supabase
from storefront.errors import RemoteCartError, classify_remote_error
from storefront.logging import get_logger, sanitize_id_for_logging

from .models import RemoteCartRecord

logger = get_logger(__name__)


class RemoteCartStore(ABC):
    """Per-user key-value persistence reachable over the network."""

    @abstractmethod
    async def probe(self) -> bool:
        """True when the backend is reachable and the carts table exists."""

    @abstractmethod
    async def fetch_by_user(self, user_id: str) -> Optional[RemoteCartRecord]:
        """Return the user's record, or None when there is none."""

    @abstractmethod
    async def upsert_by_user(self, user_id: str, cart_data: Dict[str, int]) -> None:
        """Insert or replace the user's single record."""


class SupabaseCartStore(RemoteCartStore):
    """RemoteCartStore on the Supabase user_carts table."""

    def __init__(self, client=None, table: str = config.USER_CARTS_TABLE):
        self._client = client
        self.table = table

    async def _get_client(self):
        if self._client is None:
            self._client = await get_supabase()
        return self._client

    async def probe(self) -> bool:
        """
        Check connectivity (products table) and then the carts table.

        Mirrors the startup check of the storefront: a missing relation or a
        network failure means the replica is disabled for now.
        """
        try:
            client = await self._get_client()
            await client.table(config.PRODUCTS_TABLE).select("id").limit(1).execute()
            await client.table(self.table).select("id").limit(1).execute()
            return True
        except Exception as e:
            error = classify_remote_error(e)
            logger.warning(f"Cart table probe failed ({type(error).__name__}): {error}")
            return False

    async def fetch_by_user(self, user_id: str) -> Optional[RemoteCartRecord]:
        try:
            client = await self._get_client()
            result = await (
                client.table(self.table)
                .select("cart_data,updated_at")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise classify_remote_error(e) from e

        rows = result.data or []
        if not rows:
            return None
        row: Dict[str, Any] = rows[0]
        return RemoteCartRecord(
            user_id=user_id,
            cart_data=row.get("cart_data"),
            updated_at=row.get("updated_at"),
        )

    async def upsert_by_user(self, user_id: str, cart_data: Dict[str, int]) -> None:
        payload = {
            "user_id": user_id,
            "cart_data": cart_data,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            client = await self._get_client()
            await client.table(self.table).upsert(payload, on_conflict="user_id").execute()
        except RemoteCartError:
            raise
        except Exception as e:
            raise classify_remote_error(e) from e
        logger.debug(f"Upserted remote cart for user {sanitize_id_for_logging(user_id)}")
