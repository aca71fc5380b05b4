"""Shared pytest fixtures for the InsightLens client test suite."""

from __future__ import annotations

import inspect
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from insightlens.core.config import Settings
from insightlens.schemas.enums import CredentialKind
from insightlens.services.credential_store import CredentialStore
from insightlens.services.search import SearchOrchestrator
from insightlens.services.session import SessionManager

API_URL = "http://test/api"
SEARCH_URL = "http://test/api/product/"

LOGIN = "/api/auth/login/"
REGISTER = "/api/auth/register/"
REFRESH = "/api/auth/token/refresh/"
PROFILE = "/api/auth/profile/"
SEARCH = "/api/product/"


# ── Fake backend ────────────────────────────────────────────────────────────


Handler = Callable[[httpx.Request], Any]


class Router:
    """Scriptable stand-in for the InsightLens service.

    Handlers are keyed by ``(method, path)`` and may be plain or
    async functions returning an ``httpx.Response``.  Every request
    is recorded in order.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method, path)] = handler

    def json(self, method: str, path: str, status: int, body: Any) -> None:
        """Answer every ``method path`` with a fixed JSON response."""
        self.add(method, path, lambda request: httpx.Response(status, json=body))

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"detail": "Not found."})
        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
        return result


def bearer(request: httpx.Request) -> str | None:
    """The bearer credential *request* carried, if any."""
    header = request.headers.get("Authorization")
    return header.removeprefix("Bearer ") if header else None


def body(request: httpx.Request) -> dict[str, Any]:
    """Decoded JSON body of *request*."""
    return json.loads(request.content)


def products(*items: dict[str, Any]) -> dict[str, Any]:
    """Search payload carrying *items*."""
    return {"products": list(items), "total_count": len(items)}


# ── Settings / store ────────────────────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    """Settings with a short debounce and an in-memory store."""
    return Settings(
        _env_file=None,
        API_URL=API_URL,
        SEARCH_URL=SEARCH_URL,
        CREDENTIAL_BACKEND="memory",
        SEARCH_DEBOUNCE_MS=20,
    )


@pytest.fixture
def store() -> CredentialStore:
    """An empty in-memory credential store."""
    return CredentialStore()


@pytest.fixture
def logged_in_store(store: CredentialStore) -> CredentialStore:
    """A store holding access ``a1`` and refresh ``r1``."""
    store.set(CredentialKind.ACCESS, "a1")
    store.set(CredentialKind.REFRESH, "r1")
    return store


# ── Services ────────────────────────────────────────────────────────────────


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def navigations() -> list[str]:
    """Login URLs the session navigated to."""
    return []


@pytest.fixture
async def session(settings, store, router, navigations):  # type: ignore[misc]
    """A ``SessionManager`` talking to the fake service."""
    manager = SessionManager(
        store,
        settings,
        navigate=navigations.append,
        transport=httpx.MockTransport(router),
    )
    yield manager
    await manager.aclose()


@pytest.fixture
async def orchestrator(session, settings):  # type: ignore[misc]
    """A ``SearchOrchestrator`` over the fake-service session."""
    search = SearchOrchestrator(session, settings)
    yield search
    await search.aclose()
