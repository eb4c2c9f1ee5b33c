"""Pytest configuration: isolated SQLite database and a fake FCM backend."""
import os
import tempfile
from types import SimpleNamespace

# Settings are read at import time, so the environment must be prepared first
_tmp_dir = tempfile.mkdtemp(prefix="pushrelay-tests-")
os.environ["DATA_PATH"] = _tmp_dir
os.environ["LOG_DIR"] = os.path.join(_tmp_dir, "logs")
os.environ["API_KEY"] = "test-key"
os.environ["SEND_RATE_LIMIT"] = "1000/minute"
os.environ["SCHEDULER_ENABLED"] = "false"
for _name in ("DATABASE_URL", "FIREBASE_CREDENTIALS", "GOOGLE_APPLICATION_CREDENTIALS"):
    os.environ.pop(_name, None)

import pytest
from firebase_admin import messaging
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete, select

from pushrelay.database import async_session, engine, init_db
from pushrelay.main import app
from pushrelay.models import Device
from pushrelay.rate_limit import limiter
from pushrelay.services.push_sender import push_sender_service

API_HEADERS = {"X-API-Key": "test-key"}


class FakeFCM:
    """Records FCM calls and answers with configurable per-token errors."""

    def __init__(self):
        self.sent = []
        self.multicasts = []
        self.subscriptions = []
        self.unsubscriptions = []
        self.token_errors = {}
        self.topic_errors = []

    def send(self, message, app=None):
        self.sent.append(message)
        return f"projects/test/messages/{len(self.sent)}"

    def send_each_for_multicast(self, message, app=None):
        self.multicasts.append(message)
        responses = []
        for index, token in enumerate(message.tokens):
            error = self.token_errors.get(token)
            responses.append(SimpleNamespace(
                success=error is None,
                message_id=None if error else f"msg-{index}",
                exception=error,
            ))
        success = sum(1 for r in responses if r.success)
        return SimpleNamespace(
            responses=responses,
            success_count=success,
            failure_count=len(responses) - success,
        )

    def _topic_response(self, tokens):
        errors = [SimpleNamespace(index=0, reason=reason) for reason in self.topic_errors]
        return SimpleNamespace(
            success_count=len(tokens) - len(errors),
            failure_count=len(errors),
            errors=errors,
        )

    def subscribe_to_topic(self, tokens, topic, app=None):
        self.subscriptions.append((list(tokens), topic))
        return self._topic_response(tokens)

    def unsubscribe_from_topic(self, tokens, topic, app=None):
        self.unsubscriptions.append((list(tokens), topic))
        return self._topic_response(tokens)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
async def db_session():
    """Fresh, empty devices table for each test."""
    await init_db()
    async with async_session() as session:
        await session.execute(delete(Device))
        await session.commit()
        yield session
    # Pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


@pytest.fixture
async def client(db_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def fcm(monkeypatch):
    """Mark the push sender configured and route FCM calls to a FakeFCM."""
    fake = FakeFCM()
    monkeypatch.setattr(push_sender_service, "_app", object())
    monkeypatch.setattr(messaging, "send", fake.send)
    monkeypatch.setattr(messaging, "send_each_for_multicast", fake.send_each_for_multicast)
    monkeypatch.setattr(messaging, "subscribe_to_topic", fake.subscribe_to_topic)
    monkeypatch.setattr(messaging, "unsubscribe_from_topic", fake.unsubscribe_from_topic)
    return fake


@pytest.fixture
def seed(db_session):
    """Insert devices directly, bypassing the API."""
    async def _seed(*devices: Device):
        async with async_session() as session:
            session.add_all(devices)
            await session.commit()
    return _seed


@pytest.fixture
def stored_devices(db_session):
    """Read the devices table through a fresh session."""
    async def _stored():
        async with async_session() as session:
            result = await session.execute(select(Device).order_by(Device.id))
            return {device.token: device.platform for device in result.scalars().all()}
    return _stored
