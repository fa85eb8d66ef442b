"""Cart package: models, storage adapters and the synchronizer facade."""
from .cache import LocalCartCache
from .identity import IdentityProvider, StaticIdentityProvider, SupabaseIdentityProvider
from .models import Cart, CurrentUser, RemoteCartRecord
from .reconcile import AdditiveMerge, LastWriterWins, ReconciliationPolicy, get_policy
from .remote import RemoteCartStore, SupabaseCartStore
from .service import CartSynchronizer, build_device_synchronizer
from .storage import DeviceStore, MemoryDeviceStore, MemoryStorageArea, RedisDeviceStore
from .summary import CartLine, CartSummary, build_cart_summary, fetch_cart_products
from .tasks import BackgroundTaskRunner, get_task_runner

__all__ = [
    "Cart",
    "CurrentUser",
    "RemoteCartRecord",
    "LocalCartCache",
    "DeviceStore",
    "MemoryDeviceStore",
    "MemoryStorageArea",
    "RedisDeviceStore",
    "RemoteCartStore",
    "SupabaseCartStore",
    "IdentityProvider",
    "StaticIdentityProvider",
    "SupabaseIdentityProvider",
    "ReconciliationPolicy",
    "LastWriterWins",
    "AdditiveMerge",
    "get_policy",
    "BackgroundTaskRunner",
    "get_task_runner",
    "CartSynchronizer",
    "build_device_synchronizer",
    "CartLine",
    "CartSummary",
    "build_cart_summary",
    "fetch_cart_products",
]
