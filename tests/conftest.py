# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "modgate-test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["MODERATION_API_KEY"] = ""

from modgate.api.v1.dependencies import get_scorer_dep  # noqa: E402
from modgate.core.security import create_access_token  # noqa: E402
from modgate.db.session import Base, enable_sqlite_foreign_keys  # noqa: E402
from modgate.db.session import get_db as app_get_session  # noqa: E402
from modgate.main import app as fastapi_app  # noqa: E402
from modgate.models import ContentItem, User  # noqa: E402
from modgate.models.user import ROLE_MEMBER, ROLE_MODERATOR  # noqa: E402
from modgate.services.gate import GateContext, ModerationGate  # noqa: E402
from modgate.services.policy import DEFAULT_POLICY  # noqa: E402
from modgate.services.scoring import ContentScorer, HeuristicProvider  # noqa: E402

TEST_DB_URL = "sqlite://"

CLEAN_TEXT = "Hello world, nice day"
TOXIC_TEXT = "I hate you, idiot"

_USER_COUNTER = count(1)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def scorer() -> ContentScorer:
    """Heuristic-only scorer, as deployed without a provider key."""
    return ContentScorer(HeuristicProvider(DEFAULT_POLICY))


@pytest.fixture()
def gate(scorer: ContentScorer) -> ModerationGate:
    return ModerationGate(scorer, hold_policy="soft")


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, scorer: ContentScorer
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_scorer_dep] = lambda: scorer
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_scorer_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _make_user(db_session: Session, username: str, role: str = ROLE_MEMBER) -> User:
    user = User(user_id=f"u-{next(_USER_COUNTER)}", username=username, role=role)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Create and return a persisted member."""
    return _make_user(db_session, "alice")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """Create and return a second persisted member."""
    return _make_user(db_session, "bob")


@pytest.fixture()
def moderator(db_session: Session) -> User:
    """Create and return a persisted moderator."""
    return _make_user(db_session, "mod", role=ROLE_MODERATOR)


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return {"Authorization": f"Bearer {create_access_token(test_user.user_id)}"}


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return {"Authorization": f"Bearer {create_access_token(other_user.user_id)}"}


@pytest.fixture()
def moderator_token(moderator: User) -> dict[str, str]:
    """Return authorization headers for the moderator."""
    return {"Authorization": f"Bearer {create_access_token(moderator.user_id)}"}


@pytest.fixture()
def create_item(db_session: Session, gate: ModerationGate, test_user: User):
    """Return an async factory that pushes text through the gate."""

    async def _create(
        text: str,
        *,
        owner: User | None = None,
        kind: str = "post",
        parent_id: int | None = None,
    ) -> ContentItem:
        decision = await gate.evaluate(
            db_session,
            text,
            GateContext(caller=owner or test_user, kind=kind, parent_id=parent_id),
        )
        return decision.item

    return _create
