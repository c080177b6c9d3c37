import json
import os
from datetime import timedelta
from itertools import count

# Configure an isolated in-memory database before the application is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFICATION_SCHEDULER_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from sweepro import models_notification  # noqa: F401
from sweepro.database import Base, SessionLocal, engine
from sweepro.domain.notifications.channel import ChannelHandshake
from sweepro.domain.notifications.delivery import NotificationRouter
from sweepro.domain.notifications.registry import Connection, ConnectionRegistry
from sweepro.domain.notifications.types import Role
from sweepro.models import MaidProfile, Service, User
from sweepro.security_utils import create_access_token

_sequence = count(1)


class FakeChannel:
    """Stands in for a WebSocket: records frames and close calls"""

    def __init__(self, fail_sends: bool = False):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[str] = []
        self.close_code = None
        self.close_reason = None
        self.fail_sends = fail_sends

    async def send_text(self, data: str) -> None:
        if self.fail_sends:
            raise RuntimeError("channel write failed")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_code = code
        self.close_reason = reason
        self.application_state = WebSocketState.DISCONNECTED
        self.client_state = WebSocketState.DISCONNECTED

    def drop(self) -> None:
        """Simulate the peer going away without a close handshake"""
        self.client_state = WebSocketState.DISCONNECTED

    @property
    def frames(self) -> list[dict]:
        return [json.loads(raw) for raw in self.sent]


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(role: Role = Role.CUSTOMER, name: str = None, is_active: bool = True) -> User:
        n = next(_sequence)
        user = User(
            name=name or f"{role.value.title()} {n}",
            email=f"user{n}@example.com",
            role=role.value,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_maid(db, make_user):
    def _make_maid(status: str = "ACTIVE", name: str = None) -> MaidProfile:
        user = make_user(Role.MAID, name=name)
        profile = MaidProfile(user_id=user.id, status=status)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make_maid


@pytest.fixture
def service(db):
    item = Service(name="Deep Cleaning", description="Full home deep clean", base_price=2499.0)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def notification_router(registry):
    return NotificationRouter(registry, SessionLocal)


@pytest.fixture
def handshake(registry):
    return ChannelHandshake(registry, SessionLocal)


@pytest.fixture
def connect(registry):
    """Register a live connection for a user, bypassing the token handshake"""

    def _connect(user: User, channel: FakeChannel = None) -> Connection:
        connection = Connection(channel or FakeChannel())
        registry.register(connection, user.id, Role(user.role), user.name)
        return connection

    return _connect


@pytest.fixture
def token_for():
    def _token_for(user: User, expires_delta: timedelta = None) -> str:
        return create_access_token(user.id, expires_delta)

    return _token_for


@pytest.fixture
def auth_headers(token_for):
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _auth_headers


@pytest.fixture
def client():
    from sweepro.main import app

    with TestClient(app) as test_client:
        yield test_client
