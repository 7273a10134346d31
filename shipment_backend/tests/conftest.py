"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool

from shipment_backend.app.main import app
from shipment_backend.app.core.config import settings
from shipment_backend.app.core.jwt import create_user_token
from shipment_backend.app.core.security import get_password_hash
from shipment_backend.app.db.session import Datastore, get_db
from shipment_backend.app.models.enums import UserType, AccountStatus
from shipment_backend.app.models.user import User
from shipment_backend.app.services.image_storage import ImageStorage, get_image_storage
import shipment_backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False
    
    async def ping(self):
        return not self._closed
    
    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)
    
    async def setex(self, key, ttl, value):
        if self._closed:
            return False
        self.store[key] = value
        return True
    
    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0
    
    async def flushdb(self):
        self.store = {}
    
    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """bcrypt at production cost makes every signup slow; tests opt back in where the cost matters."""
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture
def mock_redis(monkeypatch):
    redis = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", redis)
    return redis


@pytest.fixture
async def datastore():
    """Fresh in-memory database per test; tables created up front and dropped after."""
    store = Datastore(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await store.create_all()
    yield store
    await store.drop_all()
    await store.dispose()


@pytest.fixture
def image_storage(tmp_path):
    return ImageStorage(str(tmp_path / "uploads"), max_bytes=1024 * 1024)


@pytest.fixture(autouse=True)
def apply_overrides(datastore, image_storage, mock_redis):
    """Route the app's database, image storage and Redis to the test doubles."""
    async def override_get_db():
        async with datastore.session() as session:
            yield session
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_storage] = lambda: image_storage
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(datastore):
    async with datastore.session() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    """Factory inserting accounts directly, bypassing signup rules."""
    async def create_user(user_id, email, user_type=UserType.CLIENT,
                          status=AccountStatus.APPROVED, password="password123"):
        user = User(
            user_id=user_id,
            name=email.split("@")[0].title(),
            email=email,
            phone="9876543210",
            hashed_password=get_password_hash(password),
            type=user_type,
            status=status,
            is_active=True,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    
    return create_user


@pytest.fixture
def token_for():
    """Build bearer headers the way /login would for a given account."""
    def headers(user):
        return {"Authorization": f"Bearer {create_user_token(user)}"}
    
    return headers


@pytest.fixture
async def admin_user(make_user):
    return await make_user(1001, "admin@mail.com", user_type=UserType.ADMIN)


@pytest.fixture
def admin_headers(admin_user, token_for):
    return token_for(admin_user)


@pytest.fixture
async def customer_user(make_user):
    return await make_user(2002, "customer@mail.com")


@pytest.fixture
def customer_headers(customer_user, token_for):
    return token_for(customer_user)
