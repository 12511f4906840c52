"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
# Inject sys.path for reliable pytest imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # => .../apps/api

import os

# Must be set before hub_api.db.session / hub_api.main are imported
os.environ["HUB_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["HUB_JSON_LOGS"] = "false"
os.environ["HUB_RATE_LIMIT_ENABLED"] = "false"
os.environ["HUB_BASE_URL"] = "https://hub.example.test"

import uuid
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from hub_api.auth.identity_provider import IdentityPrincipal, IdentityProviderError, get_identity_provider
from hub_api.auth.session_resolution import new_user_record
from hub_api.db.engine import build_engine, build_sessionmaker
from hub_api.db.models import Base, Service, User, utcnow
from hub_api.db.repo_users import UserRepository
from hub_api.db.session import get_db
from hub_api.main import app
from hub_api.rate_limiter import NoOpRateLimiter
from hub_api.rbac.role_store import RoleStore

HUB_URL = "https://hub.example.test"
TEST_DATABASE_URL = "sqlite://"


class FakeIdentityProvider:
    """In-memory IdentityProvider.

    ``fail_with[op] = IdentityProviderError(...)`` makes the next calls of
    ``op`` raise that error.
    """

    def __init__(self):
        self.accounts: dict[str, dict] = {}  # uid -> {email, password, display_name}
        self.tokens: dict[str, str] = {}  # token -> uid
        self.fail_with: dict[str, IdentityProviderError] = {}
        self.calls: list[str] = []
        self.deleted: list[str] = []

    def _enter(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail_with:
            raise self.fail_with[op]

    def _principal(self, uid: str) -> IdentityPrincipal:
        account = self.accounts[uid]
        return IdentityPrincipal(
            uid=uid,
            email=account["email"],
            display_name=account["display_name"],
            email_confirmed=True,
        )

    def _uid_for_email(self, email: str) -> Optional[str]:
        for uid, account in self.accounts.items():
            if account["email"].lower() == email.lower():
                return uid
        return None

    def add_account(
        self,
        email: str,
        password: str = "secret123",
        display_name: Optional[str] = None,
        uid: Optional[str] = None,
    ) -> IdentityPrincipal:
        uid = uid or f"uid_{uuid.uuid4().hex[:12]}"
        self.accounts[uid] = {"email": email, "password": password, "display_name": display_name}
        return self._principal(uid)

    def issue_token(self, uid: str) -> str:
        token = f"token_{uuid.uuid4().hex}"
        self.tokens[token] = uid
        return token

    # IdentityProvider protocol

    def sign_in(self, email: str, password: str) -> IdentityPrincipal:
        self._enter("sign_in")
        uid = self._uid_for_email(email)
        if uid is None or self.accounts[uid]["password"] != password:
            raise IdentityProviderError("invalid_credentials", 400, "Invalid login credentials")
        return self._principal(uid)

    def create_user(self, email: str, password: str) -> IdentityPrincipal:
        self._enter("create_user")
        if self._uid_for_email(email) is not None:
            raise IdentityProviderError("user_already_exists", 422, "User already registered")
        return self.add_account(email, password)

    def update_profile(self, uid: str, display_name: str) -> None:
        self._enter("update_profile")
        self.accounts[uid]["display_name"] = display_name

    def get_user(self, access_token: str) -> Optional[IdentityPrincipal]:
        self._enter("get_user")
        uid = self.tokens.get(access_token)
        if uid is None or uid not in self.accounts:
            return None
        return self._principal(uid)

    def admin_create_user(self, email: str, password: str, display_name: str) -> IdentityPrincipal:
        self._enter("admin_create_user")
        if self._uid_for_email(email) is not None:
            raise IdentityProviderError("email_exists", 422, "Email already exists")
        return self.add_account(email, password, display_name)

    def delete_user(self, uid: str) -> None:
        self._enter("delete_user")
        self.accounts.pop(uid, None)
        self.deleted.append(uid)


@pytest.fixture(scope="function")
def db_session() -> Session:
    """Fresh in-memory SQLite database per test."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    session = build_sessionmaker(engine)()

    try:
        yield session
        session.rollback()
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def test_client(db_session: Session, provider: FakeIdentityProvider):
    """TestClient with db_session and identity provider overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close - db_session fixture handles it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: provider
    app.state.rate_limiter = NoOpRateLimiter()
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
    app.state.rate_limiter = NoOpRateLimiter()


@pytest.fixture
def seeded_roles(db_session: Session):
    return RoleStore(db_session).seed_defaults()


@pytest.fixture
def make_user(db_session: Session, provider: FakeIdentityProvider) -> Callable[..., tuple[User, dict]]:
    """Factory: provider account + user record + bearer headers.

    Returns:
        (User, {"Authorization": "Bearer <token>"})
    """

    def _make(
        role: str = "User",
        name: str = "Test User",
        email: Optional[str] = None,
        password: str = "secret123",
        status: str = "active",
    ) -> tuple[User, dict]:
        email = email or f"{uuid.uuid4().hex[:8]}@example.com"
        principal = provider.add_account(email, password, display_name=name)
        record = new_user_record(principal.uid, name, email, role=role)
        record.status = status
        user = UserRepository(db_session).create(record)
        token = provider.issue_token(principal.uid)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def admin(make_user, seeded_roles) -> tuple[User, dict]:
    return make_user(role="Administrator", name="Ada Admin")


@pytest.fixture
def editor(make_user, seeded_roles) -> tuple[User, dict]:
    return make_user(role="Editor", name="Eddie Editor")


@pytest.fixture
def member(make_user, seeded_roles) -> tuple[User, dict]:
    return make_user(role="User", name="Uma User")


@pytest.fixture
def content_service(db_session: Session) -> Service:
    """Active service stored with a schemed URL."""
    service = Service(
        slug="content",
        name="Content Service",
        description="Articles and media",
        icon="FileText",
        url="https://content.example.com",
        is_active=True,
        linked_subscription_ids=[],
        created_at=utcnow(),
    )
    db_session.add(service)
    db_session.commit()
    return service


@pytest.fixture
def files_service(db_session: Session) -> Service:
    """Active service stored as a bare domain."""
    service = Service(
        slug="files",
        name="File Service",
        description="File storage",
        icon="Folder",
        url="files.example.com",
        is_active=True,
        linked_subscription_ids=[],
        created_at=utcnow(),
    )
    db_session.add(service)
    db_session.commit()
    return service


@pytest.fixture
def inactive_service(db_session: Session) -> Service:
    service = Service(
        slug="legacy",
        name="Legacy Service",
        description="",
        icon="Archive",
        url="https://legacy.example.com",
        is_active=False,
        linked_subscription_ids=[],
        created_at=utcnow(),
    )
    db_session.add(service)
    db_session.commit()
    return service
