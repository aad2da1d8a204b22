"""Shared test fixtures for the portal backend."""

import os

# Force test settings before any imports
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("RATE_LIMIT", "10000/minute")

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient

from app.core.dependencies import get_account_store, get_auth_service
from app.main import app
from app.modules.auth.schemas import Identity
from app.modules.users.exceptions import AccountAlreadyExists, AccountStoreUnavailable
from app.modules.users.resolver import AuthorizationResolver
from app.modules.users.schemas import Account, PermissionGrant, Role
from app.modules.users.store import AccountStore, row_to_account, serialize_changes


# ---------------------------------------------------------------------------
# In-memory account store (same boundary behaviour as the Supabase store)
# ---------------------------------------------------------------------------


class InMemoryAccountStore(AccountStore):
    """Keeps rows as JSON dicts so reads go through the same row conversion."""

    def __init__(self):
        self.rows: List[Dict[str, Any]] = []
        self.bootstrap_claimed_by: Optional[str] = None
        self.unavailable = False
        self.writes = 0

    def _check(self):
        if self.unavailable:
            raise AccountStoreUnavailable("store offline")

    def _find_row(self, key: str, value: str) -> Optional[Dict[str, Any]]:
        for row in self.rows:
            if row[key] == value:
                return row
        return None

    def find_by_email(self, email: str) -> Optional[Account]:
        self._check()
        row = self._find_row("email", email.strip().lower())
        return row_to_account(dict(row)) if row else None

    def find_by_id(self, account_id: str) -> Optional[Account]:
        self._check()
        row = self._find_row("id", account_id)
        return row_to_account(dict(row)) if row else None

    def list_all(self) -> List[Account]:
        self._check()
        return [row_to_account(dict(row)) for row in self.rows]

    def count(self) -> int:
        self._check()
        return len(self.rows)

    def insert(self, account: Account) -> str:
        self._check()
        if self._find_row("email", account.email):
            raise AccountAlreadyExists(account.email)
        self.rows.append(account.model_dump(mode="json"))
        self.writes += 1
        return account.id

    def update_by_email(self, email: str, changes: Dict[str, Any]) -> int:
        self._check()
        row = self._find_row("email", email.strip().lower())
        if row is None:
            return 0
        row.update(serialize_changes(changes))
        self.writes += 1
        return 1

    def delete_by_id(self, account_id: str) -> int:
        self._check()
        row = self._find_row("id", account_id)
        if row is None:
            return 0
        self.rows.remove(row)
        self.writes += 1
        return 1

    def claim_bootstrap(self, email: str) -> bool:
        self._check()
        if self.bootstrap_claimed_by is not None:
            return False
        self.bootstrap_claimed_by = email.strip().lower()
        return True


def make_account(
    store: InMemoryAccountStore,
    email: str,
    role: Role = Role.USER,
    approved: bool = True,
    grants: Optional[List[Dict[str, Any]]] = None,
    display_name: str = "Test User",
) -> Account:
    """Insert an account directly, bypassing provisioning."""
    now = datetime.now(UTC)
    account = Account(
        id=str(uuid.uuid4()),
        email=email,
        display_name=display_name,
        role=role,
        approved=approved,
        permission_grants=[PermissionGrant(**g) for g in grants or []],
        created_at=now,
        updated_at=now,
    )
    store.insert(account)
    return account


# ---------------------------------------------------------------------------
# Fake identity provider
# ---------------------------------------------------------------------------


class FakeAuthService:
    """Maps bearer tokens to identities instead of calling Supabase Auth."""

    def __init__(self, identities: Dict[str, Identity]):
        self.identities = identities
        self.logged_out: List[str] = []

    def get_identity(self, token: str) -> Identity:
        identity = self.identities.get(token)
        if identity is None:
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        return identity

    def logout(self, token: str) -> bool:
        self.logged_out.append(token)
        return True


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture()
def resolver(store) -> AuthorizationResolver:
    return AuthorizationResolver(store, unknown_resource_policy="allow")


@pytest.fixture()
def identities() -> Dict[str, Identity]:
    return {
        "root-token": Identity(email="Root@Example.com", display_name="Root", avatar_url="https://img/root.png"),
        "alice-token": Identity(email="alice@example.com", display_name="Alice"),
        "bob-token": Identity(email="bob@example.com", display_name="Bob"),
    }


@pytest.fixture()
def fake_auth(identities) -> FakeAuthService:
    return FakeAuthService(identities)


@pytest_asyncio.fixture()
async def client(store, fake_auth) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the FastAPI app with in-memory infrastructure."""
    app.dependency_overrides[get_account_store] = lambda: store
    app.dependency_overrides[get_auth_service] = lambda: fake_auth

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
