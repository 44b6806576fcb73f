# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import threading
import pytest
import redis
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

# Set test environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['REMOTE_API_URL'] = ''

from models.entities import SessionContext
from models.remote import RemoteSuccess, RemoteFailure
from models.requests import CreateIssueRequest, MediaItemInput
from services.store import LocalStore
from services.sync import SyncCoordinator
from services.audit import AuditService
from services.issues import IssueService
from services.registrations import RegistrationService
from services.bonuses import BonusService
from services.session import SessionService
from services.dashboard import DashboardService


class FakeRedis:
    """In-memory stand-in for the few Redis commands the store uses."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.config: Dict[str, str] = {'appendonly': 'no'}
        self.set_calls = 0

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value
        self.set_calls += 1
        return True

    def delete(self, *keys):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    def ping(self):
        return True

    def config_get(self, pattern):
        return {pattern: self.config[pattern]} if pattern in self.config else {}

    def config_set(self, name, value):
        self.config[name] = value
        return True

    def memory_usage(self, key):
        value = self.data.get(key)
        return len(value.encode('utf-8')) if value is not None else None


class LockedConfigRedis(FakeRedis):
    """Managed Redis that refuses CONFIG commands."""

    def config_get(self, pattern):
        raise redis.ResponseError("unknown command 'CONFIG'")

    def config_set(self, name, value):
        raise redis.ResponseError("unknown command 'CONFIG'")


class FailingRedis(FakeRedis):
    """Redis whose connection is down."""

    def get(self, key):
        raise redis.ConnectionError("Connection refused")

    def set(self, key, value):
        raise redis.ConnectionError("Connection refused")

    def ping(self):
        raise redis.ConnectionError("Connection refused")

    def config_get(self, pattern):
        raise redis.ConnectionError("Connection refused")

    def memory_usage(self, key):
        raise redis.ConnectionError("Connection refused")


class StubRemote:
    """Remote endpoint double recording pushes and serving a fixed snapshot."""

    def __init__(self, configured: bool = True, snapshot: Optional[Dict[str, Any]] = None):
        self.configured = configured
        self.snapshot = snapshot or {}
        self.failure: Optional[str] = None
        self.sent: List[Any] = []
        self._lock = threading.Lock()

    def is_configured(self):
        return self.configured

    def ping(self):
        if self.failure:
            return RemoteFailure(reason=self.failure)
        return RemoteSuccess(data={"pong": True})

    def get_all_data(self):
        if self.failure:
            return RemoteFailure(reason=self.failure)
        return RemoteSuccess(data=self.snapshot)

    def send(self, action):
        with self._lock:
            self.sent.append(action)
        if self.failure:
            return RemoteFailure(reason=self.failure)
        return RemoteSuccess()


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    """Initialized store over the in-memory Redis double."""
    local_store = LocalStore(client=fake_redis, root_key="test:root", archive_min_payload_bytes=64)
    local_store.init()
    return local_store


@pytest.fixture
def remote():
    return StubRemote()


@pytest.fixture
def sync(store, remote):
    coordinator = SyncCoordinator(store, remote, max_workers=2)
    yield coordinator
    coordinator.shutdown()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 3, 1, 8, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def audit(store):
    return AuditService(store)


@pytest.fixture
def issue_service(store, sync, audit, clock):
    return IssueService(store, sync, audit, clock=clock)


@pytest.fixture
def registration_service(store, sync, audit, clock):
    return RegistrationService(store, sync, audit, clock=clock)


@pytest.fixture
def bonus_service(store, sync, audit, clock):
    return BonusService(store, sync, audit, clock=clock)


@pytest.fixture
def session_service(store, sync, clock):
    return SessionService(store, sync, "test-secret", ttl_seconds=3600, otp_code="123456", clock=clock)


@pytest.fixture
def dashboard_service(store, clock):
    return DashboardService(store, clock=clock)


def _session_for(store, unit_id: str) -> SessionContext:
    return SessionContext.for_unit(store.find_unit(unit_id), token_id=f"tok-{unit_id}")


@pytest.fixture
def admin_session(store):
    return _session_for(store, 'u_admin')


@pytest.fixture
def reviewer_session(store):
    return _session_for(store, 'u_reviewer')


@pytest.fixture
def ward_session(store):
    """Session of u_1 (Hoàn Kiếm, seeded with 1300 points)."""
    return _session_for(store, 'u_1')


@pytest.fixture
def other_ward_session(store):
    return _session_for(store, 'u_2')


def make_create_request(ward_id: str = 'u_1', violation_code: str = 'VP_ATGT_01', **overrides) -> CreateIssueRequest:
    data = {
        "ward_id": ward_id,
        "violation_code": violation_code,
        "location_description": "12 Hang Bai",
        "penalty_points": 1,
        "source": "patrol",
        "evidence": [MediaItemInput(url="https://cdn.example.com/ev1.jpg")]
    }
    data.update(overrides)
    return CreateIssueRequest(**data)


@pytest.fixture
def create_request():
    return make_create_request


@pytest.fixture
def app(store, remote):
    """Flask application wired to the test store and remote double."""
    from app import create_app

    application = create_app(
        {
            'TESTING': True,
            'OTEL_ENABLED': False,
            'AUTO_START_SYNC': False,
            'BASE_URL': 'http://testserver',
            'SESSION_SECRET': 'test-secret',
            'LOGIN_OTP_CODE': '123456'
        },
        store=store,
        remote=remote
    )
    yield application
    application.sync_coordinator.shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    """Log a unit in through the API and return its Authorization header."""
    def _login(email: str) -> Dict[str, str]:
        response = client.post('/api/auth/verify', json={"email": email, "otp": "123456"})
        assert response.status_code == 200, response.get_json()
        return {"Authorization": f"Bearer {response.get_json()['token']}"}
    return _login
