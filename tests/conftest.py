"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import Mock, AsyncMock

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")

from storefront.cart import (  # noqa: E402
    BackgroundTaskRunner,
    CartSynchronizer,
    MemoryDeviceStore,
    MemoryStorageArea,
    RemoteCartRecord,
    RemoteCartStore,
    StaticIdentityProvider,
)
from storefront.cart.models import CurrentUser  # noqa: E402
from storefront.errors import CartTableMissingError, RemoteUnavailableError  # noqa: E402


class FakeRemoteCartStore(RemoteCartStore):
    """In-memory RemoteCartStore with switchable failure modes."""

    def __init__(self):
        self.records = {}
        self.available = True
        self.table_exists = True
        self.fail_fetch = False
        self.fail_upsert = False
        self.upserts = []
        self.probes = 0

    async def probe(self):
        self.probes += 1
        return self.available and self.table_exists

    async def fetch_by_user(self, user_id):
        if not self.available or self.fail_fetch:
            raise RemoteUnavailableError("Failed to fetch")
        if not self.table_exists:
            raise CartTableMissingError("relation does not exist", code="42P01")
        if user_id not in self.records:
            return None
        return RemoteCartRecord(user_id=user_id, cart_data=self.records[user_id])

    async def upsert_by_user(self, user_id, cart_data):
        if not self.available or self.fail_upsert:
            raise RemoteUnavailableError("Failed to fetch")
        if not self.table_exists:
            raise CartTableMissingError("relation does not exist", code="42P01")
        self.upserts.append((user_id, dict(cart_data)))
        self.records[user_id] = dict(cart_data)


class FakeRedis:
    """Dict-backed stand-in for the blocking upstash_redis.Redis client."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture
def mock_supabase_client():
    """Mock async Supabase client"""
    client = Mock()

    # Mock table operations (builder methods chain, execute is awaited)
    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.insert.return_value = table_mock
    table_mock.update.return_value = table_mock
    table_mock.delete.return_value = table_mock
    table_mock.upsert.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.in_.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.execute = AsyncMock(return_value=Mock(data=[]))

    client.table.return_value = table_mock
    client.auth = Mock()
    client.auth.get_user = AsyncMock(return_value=None)

    return client


@pytest.fixture
def storage_area():
    """Device storage shared by every tab of one device"""
    return MemoryStorageArea()


@pytest.fixture
def device_store(storage_area):
    return MemoryDeviceStore(storage_area)


@pytest.fixture
def fake_remote():
    return FakeRemoteCartStore()


@pytest.fixture
def sample_user():
    return CurrentUser(id="user-123", email="test@example.com")


@pytest.fixture
def task_errors():
    """Failures reported by the background task runner"""
    return []


@pytest.fixture
def task_runner(task_errors):
    return BackgroundTaskRunner(on_error=lambda name, error: task_errors.append((name, error)))


@pytest.fixture
def local_sync(device_store, task_runner):
    """Synchronizer without a remote replica (anonymous / API storage off)"""
    return CartSynchronizer(device_store=device_store, tasks=task_runner)


@pytest.fixture
def user_sync(device_store, fake_remote, sample_user, task_runner):
    """Synchronizer for a signed-in user with an in-memory remote replica"""
    return CartSynchronizer(
        device_store=device_store,
        remote=fake_remote,
        identity=StaticIdentityProvider(sample_user),
        tasks=task_runner,
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fresh_task_runner(monkeypatch):
    """Replace the process-wide task runner so tests never share pending pushes"""
    from storefront.cart import tasks

    runner = BackgroundTaskRunner()
    monkeypatch.setattr(tasks, "_task_runner", runner)
    return runner
