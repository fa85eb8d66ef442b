"""
Device store adapters.

A device store is synchronous, durable key-value storage scoped to one
device (one browser profile in the original storefront). Several execution
contexts (tabs) can share one store; a write made through one context is
announced to the listeners of the others, mirroring the browser "storage"
event.
"""
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from storefront.db import RedisKeys, get_redis
from storefront.errors import ERROR_DEVICE_STORE_UNAVAILABLE, DeviceStoreError
from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

# Called with the changed key, or None when the whole store was cleared
StorageListener = Callable[[Optional[str]], None]


class DeviceStore(ABC):
    """Synchronous get/set/remove over string values."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        """Register for changes made by other contexts. Default: no events."""
        return lambda: None


class MemoryStorageArea:
    """
    Backing dict shared by every MemoryDeviceStore of one device.

    clear() models the user wiping site data; disabled models storage being
    turned off, in which case every access raises DeviceStoreError.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.disabled = False
        self._handles: List["MemoryDeviceStore"] = []

    def attach(self, handle: "MemoryDeviceStore") -> None:
        self._handles.append(handle)

    def notify(self, key: Optional[str], origin: Optional["MemoryDeviceStore"]) -> None:
        for handle in list(self._handles):
            if handle is not origin:
                handle._dispatch(key)

    def clear(self) -> None:
        self.data.clear()
        self.notify(None, origin=None)


class MemoryDeviceStore(DeviceStore):
    """One execution context's handle onto a MemoryStorageArea."""

    def __init__(self, area: Optional[MemoryStorageArea] = None):
        self.area = area or MemoryStorageArea()
        self._listeners: List[StorageListener] = []
        self.area.attach(self)

    def _check(self) -> None:
        if self.area.disabled:
            raise DeviceStoreError(ERROR_DEVICE_STORE_UNAVAILABLE)

    def get(self, key: str) -> Optional[str]:
        self._check()
        return self.area.data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check()
        self.area.data[key] = value
        self.area.notify(key, origin=self)

    def remove(self, key: str) -> None:
        self._check()
        if self.area.data.pop(key, None) is not None:
            self.area.notify(key, origin=self)

    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _dispatch(self, key: Optional[str]) -> None:
        for listener in list(self._listeners):
            listener(key)


class RedisDeviceStore(DeviceStore):
    """
    Device store in Upstash Redis, namespaced by device id.

    Used by the HTTP surface, where the device is identified by the
    X-Device-Id header. Keys do not expire.
    """

    def __init__(self, device_id: str, redis=None):
        if not device_id:
            raise ValueError("device_id must be a non-empty string")
        self.device_id = device_id
        self._redis = redis  # Lazy initialization

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise DeviceStoreError(f"{ERROR_DEVICE_STORE_UNAVAILABLE}: {e}")
        return self._redis

    def _key(self, key: str) -> str:
        return RedisKeys.device_key(self.device_id, key)

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(self._key(key))
        except DeviceStoreError:
            raise
        except Exception as e:
            logger.warning(f"Device store read failed for device {sanitize_id_for_logging(self.device_id)}: {e}")
            raise DeviceStoreError(ERROR_DEVICE_STORE_UNAVAILABLE) from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self.redis.set(self._key(key), value)
        except DeviceStoreError:
            raise
        except Exception as e:
            logger.warning(f"Device store write failed for device {sanitize_id_for_logging(self.device_id)}: {e}")
            raise DeviceStoreError(ERROR_DEVICE_STORE_UNAVAILABLE) from e

    def remove(self, key: str) -> None:
        try:
            self.redis.delete(self._key(key))
        except DeviceStoreError:
            raise
        except Exception as e:
            logger.warning(f"Device store delete failed for device {sanitize_id_for_logging(self.device_id)}: {e}")
            raise DeviceStoreError(ERROR_DEVICE_STORE_UNAVAILABLE) from e
