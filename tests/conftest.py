"""
Shared fixtures: fake remote responses, an in-memory record store, an app
wired to a mocked requests.Session, and bearer tokens for authenticated calls.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests
from fastapi.testclient import TestClient
from jose import jwt

from backend.config import Settings
from backend.main import create_app
from risk_engine.orchestrator import OrchestratorConfig
from risk_engine.remote_client import RemoteScoringClient
from storage.store import RecordStore

JWT_SECRET = "test-secret"
REMOTE_URL = "http://ai.test"


def make_response(status_code=200, json_body=None, text=None, headers=None):
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    if json_body is not None:
        response._content = json.dumps(json_body).encode("utf-8")
        response.headers["content-type"] = "application/json"
    else:
        response._content = (text or "").encode("utf-8")
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def remote_client(session):
    return RemoteScoringClient(REMOTE_URL, timeout=2.0, session=session)


@pytest.fixture
def orchestrator_config():
    return OrchestratorConfig(
        remote_base_url       = REMOTE_URL,
        max_attempts          = 3,
        rate_limit_backoff    = 2.0,
        transient_retry_delay = 1.0,
        overload_retry_after  = 60.0,
    )


@pytest.fixture
def store():
    store = RecordStore("sqlite://")
    store.create_tables()
    yield store
    store.dispose()


@pytest.fixture
def settings():
    return Settings(
        remote_base_url = REMOTE_URL,
        database_url    = "sqlite://",
        jwt_secret      = JWT_SECRET,
        environment     = "test",
        log_level       = "WARNING",
    )


@pytest.fixture
def app(settings, store, remote_client, sleeps):
    return create_app(settings, store=store, remote_client=remote_client, sleep=sleeps)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def make_token(subject="clinician-7", secret=JWT_SECRET):
    return jwt.encode({"sub": subject}, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}
