"""
Shared pytest fixtures for wolfgift tests

Includes:
    - In-memory snapshot sink
    - Signed-token factory with a controllable ``exp`` claim
    - Fake aiohttp session that replays queued responses
    - Recording sleep for polling and scheduling tests
"""

import base64
import copy
import json
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from wolfgift.accounts.store import AccountStore
from wolfgift.core.types import Account, TokenSet

NOW = 1_800_000_000.0


# =============================================================================
# Tokens
# =============================================================================


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def build_token(claims: dict[str, Any] | None = None, exp: float | None = None) -> str:
    """Three-segment token whose payload carries ``claims`` (plus ``exp``)."""
    payload = dict(claims or {"sub": "player-1"})
    if exp is not None:
        payload["exp"] = exp
    header = _b64(json.dumps({"alg": "RS256", "typ": "JWT"}).encode())
    body = _b64(json.dumps(payload).encode())
    return f"{header}.{body}.{_b64(b'signature')}"


@pytest.fixture
def now() -> float:
    return NOW


@pytest.fixture
def token_with_claims() -> Callable[..., str]:
    return build_token


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Token factory: ``make_token(seconds_left)`` relative to ``NOW``."""

    def factory(seconds_left: float | None = 3600, now: float = NOW) -> str:
        exp = None if seconds_left is None else int(now + seconds_left)
        return build_token(exp=exp)

    return factory


@pytest.fixture
def fresh_tokens(make_token) -> TokenSet:
    return TokenSet(make_token(3600), "refresh-main", "clearance-main")


# =============================================================================
# Persistence
# =============================================================================


class MemorySink:
    """StateSink keeping deep copies of every snapshot in a dict."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = copy.deepcopy(initial or {})
        self.saves: list[str] = []

    def load(self, name: str, default: Any = None) -> Any:
        if name not in self.data:
            return default
        return copy.deepcopy(self.data[name])

    def save(self, name: str, data: Any) -> bool:
        self.data[name] = copy.deepcopy(data)
        self.saves.append(name)
        return True


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def store(sink: MemorySink, fresh_tokens: TokenSet) -> AccountStore:
    """Loaded pool holding only ``main`` with fresh tokens."""
    account_store = AccountStore(
        sink,
        seed=Account("main", "main@example.com", "pw-main", fresh_tokens.copy()),
    )
    account_store.load()
    return account_store


# =============================================================================
# HTTP
# =============================================================================


class FakeResponse:
    def __init__(self, status: int, payload: Any) -> None:
        self.status = status
        body = payload if isinstance(payload, str) else json.dumps(payload)
        self.text = AsyncMock(return_value=body)

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeSession:
    """
    Stand-in for ``aiohttp.ClientSession``.

    Queued ``(status, payload)`` pairs are replayed in order; once the queue
    is empty ``default`` is repeated. An exception instance as payload is
    raised from ``request()``.
    """

    def __init__(self, responses: list[tuple[int, Any]] | None = None) -> None:
        self.closed = False
        self.calls: list[dict[str, Any]] = []
        self.responses = list(responses or [])
        self.default: tuple[int, Any] | None = None

    def queue(self, status: int, payload: Any) -> "FakeSession":
        self.responses.append((status, payload))
        return self

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.responses:
            status, payload = self.responses.pop(0)
        elif self.default is not None:
            status, payload = self.default
        else:
            raise AssertionError(f"unexpected request: {method} {url}")
        if isinstance(payload, BaseException):
            raise payload
        return FakeResponse(status, payload)

    def calls_to(self, suffix: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["url"].endswith(suffix)]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


# =============================================================================
# Time
# =============================================================================


class RecordingSleep:
    """Async sleep that returns immediately and remembers each delay."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()
