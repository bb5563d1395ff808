"""
Shared fixtures.

Environment is set before anything from storefront is imported: settings are
read once at import time. Every test gets a fresh in-memory SQLite database
(aiosqlite, single shared connection) with all tables created.
"""

import os

os.environ["SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SHOPIFY_API_SECRET"] = "test-webhook-secret"  # nosec B105
os.environ["MAIL_PROVIDER"] = "console"
os.environ["APP_ENV"] = "test"
os.environ["APP_BASE_URL"] = "http://testserver"

from collections.abc import AsyncGenerator  # noqa: E402
from urllib.parse import parse_qs, urlsplit  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from storefront.core.config import settings  # noqa: E402
from storefront.core.errors import MailDeliveryError  # noqa: E402
from storefront.models import Base  # noqa: E402
from storefront.services.mailer import Mailer  # noqa: E402
from storefront.services.session_service import SessionManager  # noqa: E402
from storefront.services.user_service import UserService  # noqa: E402

TEST_EMAIL = "owner@example.com"
TENANT_A = "acme.myshopify.com"
TENANT_B = "globex.myshopify.com"


class RecordingMailer(Mailer):
    """Keeps sent links in memory instead of emailing them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_magic_link(self, email: str, link: str) -> None:
        if self.fail:
            raise MailDeliveryError()
        self.sent.append((email, link))

    @property
    def last_link(self) -> str:
        return self.sent[-1][1]

    @property
    def last_token(self) -> str:
        return parse_qs(urlsplit(self.last_link).query)["token"][0]


def link_path(link: str) -> str:
    """Strip scheme and host so the link can be replayed through the test client."""
    parts = urlsplit(link)
    return f"{parts.path}?{parts.query}"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest_asyncio.fixture
async def client(session_factory, mailer) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client wired to the test database and mailer."""
    from main import app
    from storefront.db.session import get_db
    from storefront.services.mailer import get_mailer

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://testserver",
        follow_redirects=False,
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def signed_in_client(client, session_factory) -> AsyncClient:
    """Client carrying a valid session cookie for TEST_EMAIL."""
    async with session_factory() as session:
        user = await UserService.find_or_create(session, TEST_EMAIL)
        await session.commit()
        user_id = user.id

    cookie_value, _ = SessionManager.create_session(user_id)
    client.cookies.set(settings.SESSION_COOKIE_NAME, cookie_value)
    return client
