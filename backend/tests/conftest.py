"""Shared fixtures: in-memory database, fake external clients, authenticated test clients."""

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tradejournal.core.auth import create_session
from tradejournal.core.clients import get_email_client, get_llm_client, get_market_data_service, get_today
from tradejournal.core.config import SESSION_COOKIE_NAME, get_settings
from tradejournal.core.database import Base, get_db
from tradejournal.main import app
from tradejournal.models import User, UserSettings
from tradejournal.services.data.market import MarketDataError, MarketDataService
from tradejournal.services.data.normalized import MarketData, OHLCVCandle

# A Wednesday; report periods are pinned against it
TODAY = date(2025, 3, 12)


class FakeEmailClient:
    configured = True

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def send(self, to, subject, html, text=None, attachments=None):
        if to in self.fail_for:
            return False
        self.sent.append({
            "to": to,
            "subject": subject,
            "html": html,
            "text": text,
            "attachments": list(attachments or []),
        })
        return True

    def probe(self):
        return None


class FakeLLMClient:
    def __init__(self, content="", error=None):
        self.content = content
        self.error = error
        self.calls = []

    def call(self, system_prompt, user_prompt, model=None, temperature=0.7, max_tokens=None):
        self.calls.append({"system": system_prompt, "user": user_prompt})
        if self.error:
            raise ValueError(self.error)
        return {"content": self.content, "model": "fake-model", "tokens_used": 0}

    def probe(self, timeout=5.0):
        return None


class FakeFXAdapter:
    """Two daily candles closing at `previous` then `current`."""

    def __init__(self, previous=1.0800, current=1.0810, error=None):
        self.previous = previous
        self.current = current
        self.error = error
        self.requested = []

    def fetch_daily(self, currency_pair, limit=5):
        self.requested.append(currency_pair)
        if self.error:
            raise MarketDataError(self.error)
        day = datetime(2025, 3, 11, tzinfo=timezone.utc)
        return MarketData(
            instrument=currency_pair,
            timeframe="D1",
            exchange="fake",
            candles=[
                OHLCVCandle(timestamp=day - timedelta(days=1), open=self.previous, high=self.previous,
                            low=self.previous, close=self.previous, volume=0),
                OHLCVCandle(timestamp=day, open=self.previous, high=max(self.previous, self.current),
                            low=min(self.previous, self.current), close=self.current, volume=0),
            ],
            fetched_at=day,
        )


class FakeSettings:
    cron_secret = "test-cron-secret"
    announcement_batch_size = 50
    health_check_timeout_seconds = 1.0


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def llm_client():
    """No LLM configured by default; tests that need one override `get_llm_client`."""
    return None


@pytest.fixture
def fx_adapter():
    return FakeFXAdapter()


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def app_overrides(db_session, email_client, llm_client, fx_adapter, today):
    market_data = MarketDataService(adapter=fx_adapter)

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_client] = lambda: email_client
    app.dependency_overrides[get_llm_client] = lambda: llm_client
    app.dependency_overrides[get_market_data_service] = lambda: market_data
    app.dependency_overrides[get_today] = lambda: today
    app.dependency_overrides[get_settings] = lambda: FakeSettings()
    yield app
    app.dependency_overrides.clear()


def make_user(db, email, username, role="user", **settings):
    user = User(
        email=email,
        username=username,
        hashed_password="not-used",
        full_name=username.title(),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.flush()
    db.add(UserSettings(user_id=user.id, **settings))
    db.commit()
    db.refresh(user)
    return user


def client_for(user):
    token = create_session(user.id, user.email, user.role)
    return TestClient(app, headers={"Cookie": f"{SESSION_COOKIE_NAME}={token}"})


@pytest.fixture
def anonymous_client(app_overrides):
    return TestClient(app)


@pytest.fixture
def user(db_session):
    return make_user(db_session, "trader@example.com", "trader")


@pytest.fixture
def other_user(db_session):
    return make_user(db_session, "other@example.com", "other")


@pytest.fixture
def admin(db_session):
    return make_user(db_session, "admin@example.com", "admin", role="admin")


@pytest.fixture
def client(app_overrides, user):
    return client_for(user)


@pytest.fixture
def other_client(app_overrides, other_user):
    return client_for(other_user)


@pytest.fixture
def admin_client(app_overrides, admin):
    return client_for(admin)
