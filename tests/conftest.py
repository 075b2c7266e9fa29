"""Global test fixtures and shared test infrastructure.

Provides:
- Environment variable defaults (must be set before any app import)
- FakeResult / FakeScalarResult matching SQLAlchemy Result interface
- FakeAsyncSession matching SQLAlchemy AsyncSession interface
- Execute handler helpers (entity_handler, sequence_handler)
- Application factory (make_application)
- Shared pytest fixtures: fresh QueryStore, dependency overrides, client
"""

from __future__ import annotations

import os

# Environment defaults — must be set before importing the app, which triggers
# pydantic Settings validation on import.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from slowapi import Limiter
from slowapi.util import get_remote_address

from loanops.api import deps
from loanops.core.limiter import limiter
from loanops.db.session import get_db
from loanops.main import app
from loanops.models.application import Application
from loanops.services.store import QueryStore


# ---------------------------------------------------------------------------
# Sentinel
# ---------------------------------------------------------------------------

_UNSET = object()


# ---------------------------------------------------------------------------
# FakeResult / FakeScalarResult — mimics sqlalchemy.engine.Result
# ---------------------------------------------------------------------------


class FakeScalarResult:
    """Mimics the object returned by ``Result.scalars()``."""

    def __init__(self, items: list | None = None) -> None:
        self._items = list(items or [])

    def all(self) -> list:
        return list(self._items)

    def first(self):
        return self._items[0] if self._items else None


class FakeResult:
    """Mimics ``sqlalchemy.engine.Result``.

    Parameters
    ----------
    scalar:
        Value returned by ``.scalar_one_or_none()`` / ``.scalar_one()``.
        Use ``_UNSET`` (omit the kwarg) to signal "no scalar configured".
    items:
        List of model instances (or column values) for ``.scalars()``.
    """

    def __init__(self, *, scalar: Any = _UNSET, items: list | None = None) -> None:
        self._scalar = scalar
        self._items = items or []

    def scalar_one_or_none(self):
        if self._scalar is _UNSET:
            return None
        return self._scalar

    def scalar_one(self):
        if self._scalar is _UNSET or self._scalar is None:
            from sqlalchemy.exc import NoResultFound

            raise NoResultFound()
        return self._scalar

    def scalars(self) -> FakeScalarResult:
        return FakeScalarResult(self._items)


# ---------------------------------------------------------------------------
# FakeAsyncSession — mimics sqlalchemy.ext.asyncio.AsyncSession
# ---------------------------------------------------------------------------


class FakeAsyncSession:
    """Fake ``AsyncSession`` implementing the methods production code calls.

    Configure responses via ``on_execute`` and ``on_execute_return``.
    """

    def __init__(self) -> None:
        self.added: list[Any] = []
        self.committed: bool = False
        self.rolled_back: bool = False
        self.commit_error: Exception | None = None
        self.statements: list[Any] = []
        self._execute_handlers: list[Callable] = []
        self._default_result = FakeResult()

    def on_execute(self, handler: Callable) -> FakeAsyncSession:
        """Register a handler: ``handler(stmt) -> FakeResult | None``."""
        self._execute_handlers.append(handler)
        return self

    def on_execute_return(self, result: FakeResult) -> FakeAsyncSession:
        """Always return *result* for any ``execute()`` call."""
        self._execute_handlers.append(lambda _stmt: result)
        return self

    async def execute(self, stmt, *args, **kwargs):
        self.statements.append(stmt)
        for handler in self._execute_handlers:
            result = handler(stmt)
            if result is not None:
                return result
        return self._default_result

    def add(self, obj: Any) -> None:
        self.added.append(obj)
        if hasattr(obj, "id") and getattr(obj, "id", None) is None:
            obj.id = uuid4()

    async def commit(self) -> None:
        if self.commit_error is not None:
            raise self.commit_error
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True


# ---------------------------------------------------------------------------
# Execute handler helpers
# ---------------------------------------------------------------------------


def entity_handler(entity_class: type, result: FakeResult) -> Callable:
    """Return *result* when the query targets *entity_class*.

    Routes based on ``stmt.column_descriptions[0]["entity"]``.
    """

    def _handler(stmt):
        descriptions = getattr(stmt, "column_descriptions", None)
        if descriptions and descriptions[0].get("entity") is entity_class:
            return result
        return None

    return _handler


def sequence_handler(results: list[FakeResult]) -> Callable:
    """Return results sequentially, one per ``execute()`` call."""
    iterator = iter(results)

    def _handler(_stmt):
        try:
            return next(iterator)
        except StopIteration:
            return None

    return _handler


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


def make_application(*, app_id: str = "APP001", **overrides: Any) -> Application:
    now = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    defaults: dict[str, Any] = dict(
        id=uuid4(),
        app_id=app_id,
        customer_name="Asha Verma",
        branch="Pune Central",
        status="sanctioned",
        amount=Decimal("250000.00"),
        applied_date=date(2024, 4, 15),
        sanctioned_date=None,
        uploaded_by="Bulk Upload System",
        priority="medium",
        loan_type="Personal Loan",
        customer_phone="",
        customer_email="asha@example.com",
        document_status="Completed",
        remarks="Imported from CSV - Original Status: Loan Sanctioned",
        uploaded_at=now,
        last_updated=now,
    )
    defaults.update(overrides)
    return Application(**defaults)


# ---------------------------------------------------------------------------
# Shared pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Swap in a fresh in-memory limiter and clear route-level counters."""
    original = app.state.limiter
    app.state.limiter = Limiter(
        key_func=get_remote_address,
        storage_uri="memory://",
    )
    limiter.reset()
    yield
    app.state.limiter = original


@pytest.fixture
def store() -> QueryStore:
    return QueryStore()


@pytest.fixture
def fake_db() -> FakeAsyncSession:
    return FakeAsyncSession()


@pytest.fixture
def override_deps(fake_db, store):
    """Standard dependency overrides: db session and query store."""

    async def _get_db():
        yield fake_db

    def _get_store():
        return store

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[deps.get_query_store] = _get_store

    yield

    app.dependency_overrides.clear()


@pytest.fixture
def client(override_deps) -> TestClient:
    return TestClient(app)


@pytest.fixture
def submit_bundle(client) -> Callable[..., dict]:
    """POST a bundle and return its ``data`` payload."""

    def _submit(app_no: str = "A100", queries: list[str] | None = None, send_to: str = "Sales,Credit") -> dict:
        response = client.post(
            "/api/v1/queries",
            json={"appNo": app_no, "queries": queries or ["Missing KYC"], "sendTo": send_to},
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _submit
