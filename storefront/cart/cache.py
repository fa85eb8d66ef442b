"""In-memory cart cache over the device store."""
from typing import Callable, Optional

from .models import Cart


class LocalCartCache:
    """
    Per-synchronizer mirror of the device store cart.

    read() serves the cached cart while warm and otherwise calls the loader
    (the device store read) and keeps its result. There is no expiry:
    invalidate() is called on storage events and page activation, and the
    write path calls put() instead of invalidating.
    """

    def __init__(self, loader: Callable[[], Cart]):
        self._loader = loader
        self._cart: Optional[Cart] = None

    @property
    def is_warm(self) -> bool:
        return self._cart is not None

    def read(self) -> Cart:
        if self._cart is None:
            self._cart = self._loader()
        return self._cart.copy()

    def put(self, cart: Cart) -> None:
        self._cart = cart.copy()

    def invalidate(self) -> None:
        self._cart = None
