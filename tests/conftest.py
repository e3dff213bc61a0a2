"""Test fixtures for Callboard.

Provides fixtures for:
- An in-memory document store and a movable clock
- A fake identity provider (tokens look like ``token-<uid>``)
- Application context and an API test client
"""

from datetime import date, datetime, timezone
from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient

import paths
from accounts import Viewer
from config import Settings
from context import AppContext
from database import DocumentStore, MemoryDB
from errors import IdentityError
from identity import Identity, IdentityProvider
from main import create_app


class FakeIdentityProvider(IdentityProvider):
    """Identity provider that keeps accounts in a dict."""

    def __init__(self) -> None:
        self.accounts: Dict[str, Identity] = {}
        self.reset_requests: list[str] = []
        self._next = 1

    def add(self, uid: str, email: Optional[str] = None, display_name: Optional[str] = None) -> Identity:
        identity = Identity(uid=uid, email=email or f"{uid}@example.com", display_name=display_name)
        self.accounts[uid] = identity
        return identity

    def verify_token(self, token: str) -> Identity:
        uid = token.removeprefix("token-")
        if not token.startswith("token-") or uid not in self.accounts:
            raise IdentityError("Invalid or expired token", status_code=401)
        return self.accounts[uid]

    def create_user(self, email: str, password: str, display_name: str) -> Identity:
        if any(a.email == email for a in self.accounts.values()):
            raise IdentityError("The user with the provided email already exists")
        uid = f"user{self._next}"
        self._next += 1
        return self.add(uid, email, display_name)

    def update_user(self, uid: str, display_name: str, photo_url: Optional[str] = None) -> None:
        identity = self.accounts[uid]
        self.accounts[uid] = Identity(uid=uid, email=identity.email, display_name=display_name)

    def password_reset_link(self, email: str) -> str:
        self.reset_requests.append(email)
        return f"https://auth.example.com/reset?email={email}"


class Clock:
    """Settable clock; starts on Wednesday 2024-01-10 at 09:30 UTC."""

    def __init__(self) -> None:
        self.current = datetime(2024, 1, 10, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def set_day(self, day: date, hour: int = 9) -> None:
        self.current = datetime(day.year, day.month, day.day, hour, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def store() -> DocumentStore:
    return DocumentStore(MemoryDB())


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def ctx(store: DocumentStore, identity: FakeIdentityProvider, clock: Clock) -> AppContext:
    return AppContext(store=store, identity=identity, settings=Settings(), clock=clock)


def make_user(ctx: AppContext, uid: str, name: str, role: str = "employee", active: bool = True) -> Viewer:
    """Store a profile and register the account with the fake provider."""
    ctx.identity.add(uid, f"{uid}@example.com", name)
    ctx.store.set(
        paths.user(uid),
        {
            "uid": uid,
            "email": f"{uid}@example.com",
            "name": name,
            "role": role,
            "isActive": active,
            "joinedDate": ctx.now(),
        },
    )
    return Viewer(uid=uid, email=f"{uid}@example.com", name=name, role=role, is_active=active)


@pytest.fixture
def employee(ctx: AppContext) -> Viewer:
    return make_user(ctx, "emp1", "Erin Employee")


@pytest.fixture
def manager(ctx: AppContext) -> Viewer:
    return make_user(ctx, "mgr1", "Morgan Manager", role="manager")


@pytest.fixture
def admin_user(ctx: AppContext) -> Viewer:
    return make_user(ctx, "adm1", "Alex Admin", role="admin")


@pytest.fixture
def client(ctx: AppContext) -> TestClient:
    with TestClient(create_app(ctx)) as test_client:
        yield test_client


def auth_header(uid: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer token-{uid}"}
