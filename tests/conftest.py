import os
import uuid

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./fluxai-test.db")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_dummy")
os.environ.setdefault("STRIPE_PRICE_POINTS", '{"price_basic": 200, "price_pro": 1000}')

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.security import hash_password
from app.db.session import create_engine_for_url, get_db, init_db
from app.main import create_app
from app.models.user import User
from app.services.auth_service import AuthService
from app.services.points_service import PointsService


@pytest.fixture
async def engine(tmp_path):
    db_engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(session_factory):
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(session_factory):
    """Create a user directly in the store, one short-lived session per call."""

    async def _make_user(
        email="user@example.com",
        password="correct-horse-battery",
        name="Test User",
        points=5,
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email,
                name=name,
                password_hash=hash_password(password) if password else None,
                points=points,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make_user


@pytest.fixture
def balance_of(session_factory):
    async def _balance_of(user_id) -> int:
        async with session_factory() as session:
            return await PointsService.get_balance(uuid.UUID(str(user_id)), session)

    return _balance_of


@pytest.fixture
def auth_headers():
    """Build a Cookie header carrying a fresh session token for a user."""

    def _auth_headers(user: User) -> dict:
        return {"Cookie": f"token={AuthService.issue_token(user)}"}

    return _auth_headers
