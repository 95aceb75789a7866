"""Shared fixtures: a throwaway SQLite database, the app and bearer tokens."""

import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.pop("REDIS_URL", None)
os.environ.pop("RABBIT_URL", None)
os.environ["EXPIRY_SWEEP_INTERVAL_SECONDS"] = "0"

import httpx  # noqa: E402
import pytest  # noqa: E402

from clinic_booking.db import Database  # noqa: E402
from clinic_booking.main import create_app  # noqa: E402
from clinic_booking.rabbitmq import RabbitPublisher  # noqa: E402
from factories import make_token  # noqa: E402


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'clinic.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.SessionLocal() as s:
        yield s


@pytest.fixture
async def client(database):
    app = create_app(database=database, publisher=RabbitPublisher(url=None))
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token(1, 'ADMIN')}"}


@pytest.fixture
def patient_headers():
    return {"Authorization": f"Bearer {make_token(42, 'PATIENT')}"}
