import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reservo import ai, whatsapp
from reservo.db import init_db
from reservo.deps import get_db
from reservo.main import app
from reservo.models import Tenant


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def tenant(db):
    t = Tenant(
        id="traviata",
        user_id=2,
        name="La Traviata",
        status="active",
        power_status="running",
        ai_api_key="sk-tenant",
        phone_id="PHONE-1",
        wh_token="EAAG-whatsapp-token",
        max_seats=4,
        open_time="18:00",
        close_time="23:00",
        open_days=["Friday"],
        ai_language="es",
    )
    db.add(t)
    db.commit()
    return t


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


class ScriptedCompletion:
    """Stands in for ``ai.complete``; replays the given replies in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def __call__(self, provider_key, history, tools=None, language="es"):
        self.calls.append({
            "provider_key": provider_key,
            "history": list(history),
            "tools": tools,
            "language": language,
        })
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def script(monkeypatch):
    def install(*replies):
        fake = ScriptedCompletion(*replies)
        monkeypatch.setattr(ai, "complete", fake)
        return fake
    return install


class Outbox(list):
    """Messages handed to ``whatsapp.send_text``."""

    delivered = True

    async def send_text(self, token, phone_id, to, text):
        self.append({"token": token, "phone_id": phone_id, "to": to, "text": text})
        return self.delivered


@pytest.fixture
def outbox(monkeypatch):
    box = Outbox()
    monkeypatch.setattr(whatsapp, "send_text", box.send_text)
    return box
