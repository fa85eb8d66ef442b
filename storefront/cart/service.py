"""Cart synchronizer: local cache, device store and remote replica."""
import asyncio
from typing import Awaitable, Callable, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from storefront import config
from storefront.errors import CartTableMissingError, RemoteCartError, RemoteUnavailableError
from storefront.logging import describe_cart_for_logging, get_logger, sanitize_id_for_logging

from .cache import LocalCartCache
from .identity import (
    INITIAL_SESSION,
    SIGNED_IN,
    SIGNED_OUT,
    IdentityProvider,
    StaticIdentityProvider,
    user_from_auth,
)
from .models import Cart, CurrentUser
from .reconcile import LastWriterWins, ReconciliationPolicy, get_policy
from .remote import RemoteCartStore, SupabaseCartStore
from .storage import DeviceStore, RedisDeviceStore
from .tasks import BackgroundTaskRunner, get_task_runner

logger = get_logger(__name__)

Provisioner = Callable[[], Awaitable[bool]]


class CartSynchronizer:
    """
    Single cart view over three layers.

    - Reads come from the local cache, falling back to the device store.
    - Writes commit to cache and device store before returning, then push
      to the remote store in the background.
    - Reconciliation pulls the remote copy for the signed-in user and lets
      the policy (last-writer-wins by default) decide the resulting cart.

    Storage failures never propagate: a broken remote means device-only
    operation, a broken device store means an in-memory cart for the
    session. Invalid arguments (empty product id, quantity < 1) raise
    ValueError.
    """

    def __init__(
        self,
        device_store: DeviceStore,
        remote: Optional[RemoteCartStore] = None,
        identity: Optional[IdentityProvider] = None,
        policy: Optional[ReconciliationPolicy] = None,
        tasks: Optional[BackgroundTaskRunner] = None,
        provisioner: Optional[Provisioner] = None,
        storage_key: str = config.CART_STORAGE_KEY,
    ):
        self.device_store = device_store
        self.remote = remote
        self.identity = identity or StaticIdentityProvider()
        self.policy = policy or LastWriterWins()
        self.tasks = tasks or get_task_runner()
        self.provisioner = provisioner
        self.storage_key = storage_key
        self.cache = LocalCartCache(self._read_device)
        self._unsubscribe = device_store.subscribe(self.handle_storage_event)

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None

    # ==================== DEVICE LAYER ====================

    def _read_device(self) -> Cart:
        try:
            payload = self.device_store.get(self.storage_key)
        except Exception as e:
            logger.warning(f"Device store read failed, using empty cart: {e}")
            return Cart()
        return Cart.from_payload(payload)

    def _write_device(self, cart: Cart) -> None:
        try:
            self.device_store.set(self.storage_key, cart.to_payload())
        except Exception as e:
            # Cache keeps the cart for the rest of the session
            logger.warning(f"Device store write failed ({describe_cart_for_logging(cart.items)}): {e}")

    def _remove_device(self) -> None:
        try:
            self.device_store.remove(self.storage_key)
        except Exception as e:
            logger.warning(f"Device store clear failed: {e}")

    async def _device_io(self, func, *args):
        # Device stores block (Upstash REST); keep them off the event loop
        return await asyncio.to_thread(func, *args)

    # ==================== READS ====================

    def get_cart(self) -> Cart:
        """Current cart: cached copy when warm, otherwise the device store."""
        return self.cache.read()

    def total_items(self) -> int:
        """Number of units in the cart (cart badge count)."""
        return self.get_cart().total_items

    # ==================== WRITES ====================

    def _commit(self, cart: Cart, reason: str) -> Cart:
        self.cache.put(cart)
        self._write_device(cart)
        self._schedule_push(cart, reason)
        return cart.copy()

    def update_cart(self, cart: Cart) -> Cart:
        """Replace the whole cart."""
        return self._commit(cart.copy(), "update")

    def add_to_cart(self, product_id: str, quantity: int = 1) -> Cart:
        """
        Add quantity units of a product. Returns the updated cart.

        Only increments: quantity must be a positive int, otherwise ValueError.
        Use decrease_item or remove_from_cart to lower a quantity.
        """
        return self._commit(self.get_cart().add(product_id, quantity), "add")

    def decrease_item(self, product_id: str) -> Cart:
        """Remove one unit; the last unit removes the product."""
        return self._commit(self.get_cart().decrease(product_id), "decrease")

    def remove_from_cart(self, product_id: str) -> Cart:
        """Remove a product whatever its quantity."""
        return self._commit(self.get_cart().remove(product_id), "remove")

    def clear_cart(self) -> Cart:
        """Empty the cart locally and reset the user's remote copy to {}."""
        empty = Cart()
        self.cache.put(empty)
        self._remove_device()
        self._schedule_push(empty, "clear")
        return empty

    def _schedule_push(self, cart: Cart, reason: str) -> None:
        if not self.remote_enabled:
            return
        self.tasks.spawn(f"cart-push:{reason}", self._push_for_current_user(cart.copy()))

    async def _push_for_current_user(self, cart: Cart) -> None:
        user = await self.identity.get_current_user()
        if user is not None:
            await self.save_cart_to_cloud(user.id, cart)

    # ==================== REMOTE LAYER ====================

    async def _provision(self) -> bool:
        try:
            if self.provisioner is not None:
                return bool(await self.provisioner())
            return await self.remote.probe()
        except Exception as e:
            logger.warning(f"Cart storage provisioning failed: {e}")
            return False

    async def save_cart_to_cloud(self, user_id: str, cart: Cart) -> bool:
        """
        Upsert the user's remote cart.

        A missing table triggers the provisioning hook and one more attempt.
        Returns False on any failure; nothing is raised.
        """
        if not self.remote_enabled:
            return False

        safe_user = sanitize_id_for_logging(user_id)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(2),
                retry=retry_if_exception_type(CartTableMissingError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning("Cart table missing, provisioning and retrying once")
                        if not await self._provision():
                            return False
                    await self.remote.upsert_by_user(user_id, cart.to_dict())
        except RemoteUnavailableError as e:
            logger.warning(f"Remote cart store unavailable, cart for user {safe_user} kept on device: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to save cart for user {safe_user}: {e}")
            return False
        return True

    async def initialize_cart_storage(self) -> bool:
        """Probe the remote carts table. False when the replica is off or unreachable."""
        if not self.remote_enabled:
            return False
        return await self._remote_available()

    async def _remote_available(self) -> bool:
        try:
            return await self.remote.probe()
        except Exception as e:
            logger.warning(f"Remote cart store probe failed: {e}")
            return False

    async def sync_cart_with_cloud(self, user_id: str) -> Cart:
        """
        Reconcile the device cart with the user's remote record.

        - replica off or unreachable: device cart, unchanged
        - no record (or a malformed one): device cart seeds the remote
        - record present: policy result replaces the device cart, and is
          pushed back when it differs from the remote copy
        """
        if not self.remote_enabled:
            return await self._device_io(self.get_cart)

        safe_user = sanitize_id_for_logging(user_id)
        try:
            if not await self._remote_available():
                return await self._device_io(self.get_cart)

            try:
                record = await self.remote.fetch_by_user(user_id)
            except RemoteUnavailableError as e:
                logger.warning(f"Remote cart unavailable for user {safe_user}, using device store: {e}")
                return await self._device_io(self.get_cart)
            except RemoteCartError as e:
                logger.error(f"Failed to load remote cart for user {safe_user}: {e}")
                return await self._device_io(self.get_cart)

            local = await self._device_io(self.get_cart)
            if record is None or not record.is_well_formed:
                logger.info(f"No remote cart for user {safe_user}, seeding from device ({describe_cart_for_logging(local.items)})")
                await self.save_cart_to_cloud(user_id, local)
                return local

            remote_cart = record.to_cart()
            result = self.policy.reconcile(local, remote_cart)
            self.cache.put(result)
            await self._device_io(self._write_device, result)
            if result != remote_cart:
                await self.save_cart_to_cloud(user_id, result)
            return result.copy()
        except Exception as e:
            logger.error(f"Cart reconciliation failed for user {safe_user}: {e}", exc_info=True)
            return await self._device_io(self.get_cart)

    async def load_user_cart(self) -> Cart:
        """Reconcile for the current user; anonymous sessions get the device cart."""
        if not self.remote_enabled:
            return await self._device_io(self.get_cart)
        try:
            user = await self.identity.get_current_user()
        except Exception as e:
            logger.warning(f"Failed to get current user: {e}")
            return await self._device_io(self.get_cart)
        if user is None:
            return await self._device_io(self.get_cart)
        return await self.sync_cart_with_cloud(user.id)

    # ==================== CROSS-CONTEXT ====================

    def invalidate(self) -> None:
        """Drop the cached cart; the next read goes to the device store."""
        self.cache.invalidate()

    clear_cache = invalidate

    def handle_storage_event(self, key: Optional[str]) -> None:
        """Another context changed the device store (key None: store cleared)."""
        if key is None or key == self.storage_key:
            self.cache.invalidate()

    def handle_visibility_change(self, visible: bool) -> None:
        """Page became visible: refresh from the device store and reconcile in the background."""
        if not visible:
            return
        self.cache.invalidate()
        if self.remote_enabled:
            self.tasks.spawn("cart-reconcile:visibility", self.load_user_cart())

    async def activate(self) -> Cart:
        """Page (re)activation: invalidate, then reconcile and return the result."""
        self.cache.invalidate()
        return await self.load_user_cart()

    def handle_auth_event(self, event: str, user: Optional[CurrentUser] = None) -> None:
        """React to identity provider transitions."""
        if event == INITIAL_SESSION and user is None:
            return
        if event in (SIGNED_IN, INITIAL_SESSION):
            self.cache.invalidate()
            if not self.remote_enabled:
                return
            if user is not None:
                self.tasks.spawn("cart-reconcile:sign-in", self.sync_cart_with_cloud(user.id))
            else:
                self.tasks.spawn("cart-reconcile:sign-in", self.load_user_cart())
        elif event == SIGNED_OUT:
            # Device copy stays; the remote replica belongs to the old user
            self.cache.invalidate()

    def attach_auth_listener(self, client):
        """Subscribe to Supabase auth state changes. Returns the subscription."""
        def _on_change(event, session):
            self.handle_auth_event(event, user_from_auth(getattr(session, "user", None)))

        return client.auth.on_auth_state_change(_on_change)

    def close(self) -> None:
        """Stop listening to device store events."""
        self._unsubscribe()


def build_device_synchronizer(
    device_id: str,
    user: Optional[CurrentUser] = None,
    remote: Optional[RemoteCartStore] = None,
) -> CartSynchronizer:
    """
    Synchronizer for one device id, as used by the HTTP surface.

    The device store is Upstash Redis; the Supabase replica is attached when
    USE_API_STORAGE is on (or an explicit remote is given).
    """
    if remote is None and config.USE_API_STORAGE:
        remote = SupabaseCartStore()
    return CartSynchronizer(
        device_store=RedisDeviceStore(device_id),
        remote=remote,
        identity=StaticIdentityProvider(user),
        policy=_configured_policy(),
    )


def _configured_policy() -> ReconciliationPolicy:
    try:
        return get_policy(config.CART_RECONCILIATION_POLICY)
    except ValueError as e:
        logger.warning(f"{e}, falling back to {LastWriterWins.name}")
        return LastWriterWins()
