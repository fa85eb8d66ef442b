"""Identity providers consumed by the cart synchronizer."""
from abc import ABC, abstractmethod
from typing import Optional

from storefront.db import get_supabase
from storefront.logging import get_logger

from .models import CurrentUser

logger = get_logger(__name__)

# Supabase auth events the synchronizer reacts to
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
INITIAL_SESSION = "INITIAL_SESSION"


class IdentityProvider(ABC):
    @abstractmethod
    async def get_current_user(self) -> Optional[CurrentUser]:
        """Signed-in user, or None for an anonymous session."""


class StaticIdentityProvider(IdentityProvider):
    """Identity fixed at construction, e.g. a user already verified by a request dependency."""

    def __init__(self, user: Optional[CurrentUser] = None):
        self.user = user

    async def get_current_user(self) -> Optional[CurrentUser]:
        return self.user


class SupabaseIdentityProvider(IdentityProvider):
    """
    Reads the current user from Supabase auth.

    With a jwt the token is verified server-side; without one the client's
    own session is used. Any auth failure is reported as anonymous.
    """

    def __init__(self, client=None, jwt: Optional[str] = None):
        self._client = client
        self.jwt = jwt

    async def get_current_user(self) -> Optional[CurrentUser]:
        try:
            client = self._client or await get_supabase()
            response = await client.auth.get_user(self.jwt) if self.jwt else await client.auth.get_user()
        except Exception as e:
            logger.warning(f"Failed to resolve current user: {e}")
            return None
        return user_from_auth(getattr(response, "user", None))


def user_from_auth(user) -> Optional[CurrentUser]:
    """Convert a gotrue User (or None) to CurrentUser."""
    if user is None or not getattr(user, "id", None):
        return None
    return CurrentUser(id=str(user.id), email=getattr(user, "email", None))
