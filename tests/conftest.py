import os

# Settings are read at import time, so they go in before servicehub is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("DODO_PAYMENTS_API_KEY", None)
os.environ.pop("RESEND_API_KEY", None)

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from servicehub import cache as cache_module  # noqa: E402
from servicehub import realtime  # noqa: E402
from servicehub.auth import create_access_token, hash_password  # noqa: E402
from servicehub.cache import JSONCache  # noqa: E402
from servicehub.database import Base, get_db  # noqa: E402
from servicehub.main import app  # noqa: E402
from servicehub.models import Booking, Service, User  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan hook would reach for Redis and the real engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def emitted(monkeypatch):
    """Record socket emissions instead of sending them"""
    events = []

    async def fake_emit(event, data=None, room=None, to=None, **kwargs):
        events.append({"event": event, "data": data, "room": room or to})

    monkeypatch.setattr(realtime.sio, "emit", fake_emit)
    return events


def event_names(events) -> list:
    return [e["event"] for e in events]


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)


@pytest.fixture
def redis_store(monkeypatch):
    """Turn the cache on against an in-memory Redis"""
    fake = FakeRedis()
    monkeypatch.setattr(cache_module, "CACHE_ENABLED", True)
    monkeypatch.setattr(cache_module, "get_redis_client", lambda: fake)
    monkeypatch.setattr(cache_module, "cache", JSONCache())
    return fake.store


def make_user(db, role="customer", **overrides) -> User:
    count = db.query(User).count() + 1
    fields = {
        "name": f"{role.capitalize()} {count}",
        "email": f"{role}{count}@example.com",
        "phone": "5551234567",
        "password_hash": hash_password(PASSWORD),
        "role": role,
    }
    fields.update(overrides)
    user = User(**fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def make_service(db, creator=None, **overrides) -> Service:
    fields = {
        "name": "Deep Cleaning",
        "description": "Whole house clean",
        "price": 100.0,
        "category": "Cleaning",
        "created_by": creator.id if creator else None,
        "available_slots": {},
    }
    fields.update(overrides)
    service = Service(**fields)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def make_booking(db, customer, service, **overrides) -> Booking:
    fields = {
        "customer_id": customer.id if customer else None,
        "service_id": service.id if service else None,
        "customer_name": customer.name if customer else None,
        "customer_email": customer.email if customer else None,
        "customer_phone": customer.phone if customer else None,
        "scheduled_time": datetime.utcnow() + timedelta(days=2),
        "location": "12 Baker Street, London",
        "status": "pending",
        "total_price": service.price if service else 0.0,
        "payment_method": "COD",
        "payment_status": "pending",
    }
    fields.update(overrides)
    booking = Booking(**fields)
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


@pytest.fixture
def admin(db):
    return make_user(db, "admin", name="Admin", email="admin@example.com")


@pytest.fixture
def customer(db):
    return make_user(db, "customer", name="Casey Customer", email="casey@example.com")


@pytest.fixture
def provider(db):
    return make_user(
        db,
        "provider",
        name="Pat Provider",
        email="pat@example.com",
        skills=["Cleaning"],
        availability="Available",
        location_full_address="London",
    )
