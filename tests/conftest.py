"""Shared test fixtures."""
import os

# Must be set before app.config is imported anywhere
os.environ.setdefault('DATABASE_URL', 'sqlite://')

import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base


class FakeRedis:
    """Minimal in-memory Redis fake (strings with TTL bookkeeping, hashes, pipelines)."""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.hashes = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = str(value)
        return True

    def setex(self, key, ttl, value):
        self.store[key] = str(value)
        self.ttls[key] = ttl
        return True

    def incr(self, key):
        val = int(self.store.get(key, 0)) + 1
        self.store[key] = str(val)
        return val

    def delete(self, *keys):
        for k in keys:
            self.store.pop(k, None)
            self.ttls.pop(k, None)
            self.hashes.pop(k, None)

    def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = str(value)

    def hincrby(self, key, field, amount):
        h = self.hashes.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Queues calls and replays them against the FakeRedis on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def __getattr__(self, name):
        def _queue(*args):
            self._ops.append((name, args))
            return self
        return _queue

    def execute(self):
        results = [getattr(self._redis, name)(*args) for name, args in self._ops]
        self._ops = []
        return results


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine('sqlite:///:memory:')
    import app.models.submission  # noqa: F401
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_session):
    """Route all get_session() calls to the test session.

    close() is disabled so that service helpers calling session.close()
    in their finally blocks don't invalidate the shared test session.
    app.services.submissions binds get_session at import time, so it is
    patched there too.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    with patch('app.database.get_session', return_value=db_session), \
            patch('app.services.submissions.get_session', return_value=db_session):
        yield db_session
    db_session.close = _real_close


@pytest.fixture(autouse=True)
def fake_redis():
    """Swap every Redis handle for an in-memory fake and rebuild the breakers on it."""
    from app.services.circuit_breaker import init_breakers
    fake = FakeRedis()
    with patch('app.extensions.redis_client', fake), \
            patch('app.services.admin_auth.r', fake):
        init_breakers(fake)
        yield fake


@pytest.fixture
def app():
    """Flask test app."""
    from app import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def admin_headers(fake_redis):
    """Authorization header carrying a freshly issued admin token."""
    from app.services.admin_auth import issue_token
    return {"Authorization": f"Bearer {issue_token()}"}


@pytest.fixture
def make_metrics():
    """Factory for StoreMetrics — defaults describe a mid-size store with two moderate leaks."""
    from app.diagnostic.engine import StoreMetrics

    def _make(**overrides):
        defaults = dict(
            sessions_30d=15000,
            orders_30d=350,
            conversion_rate=2.3,
            aov=145.0,
            abandoned_carts_30d=450,
        )
        defaults.update(overrides)
        return StoreMetrics(**defaults)
    return _make


@pytest.fixture
def form_payload():
    """Raw JSON body as the public form posts it (camelCase keys)."""
    return {
        'firstName': 'Dana',
        'email': 'Dana@Example.com ',
        'storeUrl': 'https://www.RangeReadyGear.com/',
        'monthlyRevenueRange': '50k-150k',
        'sessions30d': 15000,
        'orders30d': 350,
        'conversionRate': 2.3,
        'aov': 145,
        'abandonedCarts30d': 450,
    }


@pytest.fixture
def lead_form(form_payload):
    """A validated LeadForm built from form_payload."""
    from app.validation import LeadForm
    return LeadForm.model_validate(form_payload)


@pytest.fixture
def diagnostic_result(lead_form):
    """DiagnosticResult for lead_form (score 80, two leaks)."""
    from datetime import datetime, timezone
    from app.diagnostic.engine import run_diagnostic
    return run_diagnostic(lead_form.to_metrics(), datetime(2026, 3, 1, tzinfo=timezone.utc))
