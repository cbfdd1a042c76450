"""Pytest fixtures for an async SQLite test database."""
import uuid
from datetime import datetime

import bcrypt
import httpx
import pytest
import pytest_asyncio
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine

from billing_dashboard.app import create_app
from billing_dashboard.database.database import Base, ConnectionPool, get_pool
from billing_dashboard.models.customer import Customer
from billing_dashboard.models.invoice import Invoice
from billing_dashboard.models.revenue import Revenue
from billing_dashboard.models.user import User
from billing_dashboard.schemas.auth import SessionUser
from billing_dashboard.services.auth_service import require_user
from billing_dashboard.services.cache import clear_cache
from billing_dashboard.settings import Settings

USER_EMAIL = "user@nextmail.com"
USER_PASSWORD = "123456"


class CountingPool(ConnectionPool):
    """Connection pool that records every checkout and return."""

    def __init__(self, engine):
        super().__init__(engine)
        self.acquired = 0
        self.released = 0

    async def acquire(self):
        conn = await super().acquire()
        self.acquired += 1
        return conn

    async def release(self, conn):
        self.released += 1
        await super().release(conn)


class UnusablePool(ConnectionPool):
    """Pool for paths that must not touch the database."""

    def __init__(self):
        super().__init__(engine=None)

    async def acquire(self):
        raise AssertionError("no connection should be acquired")


@pytest.fixture(autouse=True)
def reset_cache():
    """Every test starts and ends with an empty page cache."""
    clear_cache()
    yield
    clear_cache()


@pytest_asyncio.fixture
async def pool(tmp_path):
    """A file-backed SQLite database so concurrent reads get separate connections."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'billing.db'}",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    counting_pool = CountingPool(engine)
    yield counting_pool
    await counting_pool.dispose()


@pytest_asyncio.fixture
async def sample_data(pool):
    """
    Four customers, eight invoices, one user and two revenue months.

    "Acme Labs" has no invoices.
    """
    ids = {
        "acme": uuid.uuid4(),
        "acme_labs": uuid.uuid4(),
        "delba": uuid.uuid4(),
        "lee": uuid.uuid4(),
    }
    customers = [
        {"id": ids["acme"], "name": "Acme Corp", "email": "billing@acmecorp.com",
         "image_url": "/customers/acme.png"},
        {"id": ids["acme_labs"], "name": "Acme Labs", "email": "hello@acmelabs.io",
         "image_url": "/customers/acme-labs.png"},
        {"id": ids["delba"], "name": "Delba de Oliveira", "email": "delba@oliveira.com",
         "image_url": "/customers/delba.png"},
        {"id": ids["lee"], "name": "Lee Robinson", "email": "lee@robinson.com",
         "image_url": "/customers/lee.png"},
    ]
    invoices = [
        ("acme", 15795, "pending", datetime(2024, 1, 1, 9, 0)),
        ("acme", 20348, "pending", datetime(2024, 1, 5, 9, 0)),
        ("acme", 3040, "paid", datetime(2024, 2, 10, 9, 0)),
        ("delba", 44800, "paid", datetime(2024, 3, 1, 9, 0)),
        ("delba", 34577, "pending", datetime(2024, 3, 15, 9, 0)),
        ("delba", 54246, "pending", datetime(2024, 4, 2, 9, 0)),
        ("lee", 666, "pending", datetime(2024, 5, 20, 9, 0)),
        ("lee", 32545, "paid", datetime(2024, 6, 11, 9, 0)),
    ]
    invoice_rows = [
        {"id": uuid.uuid4(), "customer_id": ids[key], "amount": amount, "status": status, "date": date}
        for key, amount, status, date in invoices
    ]
    password_hash = bcrypt.hashpw(USER_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode()

    async with pool.engine.begin() as conn:
        await conn.execute(insert(Customer), customers)
        await conn.execute(insert(Invoice), invoice_rows)
        await conn.execute(
            insert(User),
            [{"id": uuid.uuid4(), "name": "User", "email": USER_EMAIL, "password": password_hash}],
        )
        await conn.execute(
            insert(Revenue),
            [{"month": "Jan", "revenue": 2000}, {"month": "Feb", "revenue": 1800}],
        )

    return {
        "customers": ids,
        "invoices": invoice_rows,
    }


@pytest.fixture
def app(pool):
    """Application wired to the test pool; the lifespan is not run."""
    application = create_app(Settings(SECRET_KEY="test-secret"))
    application.state.pool = pool
    application.dependency_overrides[get_pool] = lambda: pool
    return application


@pytest_asyncio.fixture
async def anon_client(app):
    """HTTP client without a signed-in session."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def client(app):
    """HTTP client acting as a signed-in user."""
    app.dependency_overrides[require_user] = lambda: SessionUser(
        id=str(uuid.uuid4()), name="User", email=USER_EMAIL
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def unusable_pool():
    """Pool that fails the test if any connection is requested."""
    return UnusablePool()
