import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'app' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["STORE_BACKEND"] = "memory"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.setdefault("SITE_URL", "http://localhost:3000")

from app.core.events import ChangeBus  # noqa: E402
from app.core.identity import SessionUser  # noqa: E402
from app.database.memory_store import InMemoryStore  # noqa: E402
from app.modules.auth.providers import InMemoryIdentityProvider  # noqa: E402


@dataclass
class Account:
    user: SessionUser
    password: str
    access_token: str
    refresh_token: str

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def cookies(self) -> Dict[str, str]:
        return {"sb-access-token": self.access_token, "sb-refresh-token": self.refresh_token}

    @property
    def auth_header(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


class Clock:
    """Manually advanced clock for token expiry"""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def identity(store, clock) -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider(store, ttl_seconds=3600, clock=clock, bcrypt_rounds=4)


@pytest.fixture()
def events() -> ChangeBus:
    return ChangeBus(log_size=100)


@pytest.fixture()
def register(identity):
    """Sign up and sign in a user; returns an Account with live tokens"""

    def _register(email: str, role: str = "participant", full_name: str = None, password: str = "secret-pass"):
        identity.sign_up(email, password, {"full_name": full_name or email.split("@")[0], "email": email, "role": role})
        session = identity.sign_in(email, password)
        return Account(session.user, password, session.access_token, session.refresh_token)

    return _register


@pytest.fixture()
def manager(register) -> Account:
    return register("manager@example.com", role="event_manager", full_name="Morgan Manager")


@pytest.fixture()
def other_manager(register) -> Account:
    return register("organizer@example.com", role="event_manager", full_name="Olive Organizer")


@pytest.fixture()
def athlete(register) -> Account:
    return register("athlete@example.com", role="participant", full_name="Alex Athlete")


@pytest.fixture()
def app(store, identity):
    # lazy import after env configured
    from app.main import create_app

    return create_app(store=store, identity=identity)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def client_for(app):
    """TestClient carrying an account's session cookies"""

    def _client_for(account: Account) -> TestClient:
        return TestClient(app, cookies=account.cookies)

    return _client_for
