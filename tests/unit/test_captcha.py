"""
Tests for the challenge solver polling loop
"""

import aiohttp
import pytest

from wolfgift.auth.captcha import NOT_READY, CaptchaSolver
from wolfgift.core.exceptions import FailureKind

SITE_KEY = "0x4AAAAAAATLZS5RyqlMGxsL"
PAGE_URL = "https://www.wolvesville.com"


@pytest.fixture
def solver(session, fake_sleep) -> CaptchaSolver:
    return CaptchaSolver(api_key="test-key", sleep=fake_sleep, session=session)


def not_ready() -> tuple[int, dict]:
    return 200, {"status": 0, "request": NOT_READY}


class TestCaptchaSolver:
    @pytest.mark.asyncio
    async def test_solved_after_some_polls(self, solver, session, fake_sleep):
        session.queue(200, {"status": 1, "request": "task-1"})
        session.queue(*not_ready())
        session.queue(*not_ready())
        session.queue(200, {"status": 1, "request": "solved-token"})

        result = await solver.solve(SITE_KEY, PAGE_URL)

        assert result.ok
        assert result.token == "solved-token"
        assert result.polls == 3
        assert fake_sleep.delays == [3.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_submit_parameters(self, solver, session):
        session.queue(200, {"status": 1, "request": "task-9"})
        session.queue(200, {"status": 1, "request": "tok"})

        await solver.solve(SITE_KEY, PAGE_URL)

        submit, poll = session.calls
        assert submit["method"] == "POST"
        assert submit["url"] == "https://2captcha.com/in.php"
        assert submit["params"] == {
            "key": "test-key",
            "method": "turnstile",
            "sitekey": SITE_KEY,
            "pageurl": PAGE_URL,
            "json": 1,
        }
        assert poll["method"] == "GET"
        assert poll["url"] == "https://2captcha.com/res.php"
        assert poll["params"] == {"key": "test-key", "action": "get", "id": "task-9", "json": 1}

    @pytest.mark.asyncio
    async def test_thirty_not_ready_polls_time_out(self, solver, session, fake_sleep):
        session.queue(200, {"status": 1, "request": "task-1"})
        for _ in range(30):
            session.queue(*not_ready())

        result = await solver.solve(SITE_KEY, PAGE_URL)

        assert not result.ok
        assert result.failure is FailureKind.CAPTCHA_TIMEOUT
        assert result.polls == 30
        assert len(session.calls_to("/res.php")) == 30
        assert fake_sleep.total >= 90

    @pytest.mark.asyncio
    async def test_terminal_error_stops_polling(self, solver, session):
        session.queue(200, {"status": 1, "request": "task-1"})
        session.queue(*not_ready())
        session.queue(200, {"status": 0, "request": "ERROR_CAPTCHA_UNSOLVABLE"})
        session.default = not_ready()

        result = await solver.solve(SITE_KEY, PAGE_URL)

        assert result.failure is FailureKind.CAPTCHA_PROVIDER_ERROR
        assert result.message == "ERROR_CAPTCHA_UNSOLVABLE"
        assert len(session.calls_to("/res.php")) == 2

    @pytest.mark.asyncio
    async def test_submit_rejected(self, solver, session, fake_sleep):
        session.queue(200, {"status": 0, "request": "ERROR_WRONG_USER_KEY"})

        result = await solver.solve(SITE_KEY, PAGE_URL)

        assert result.failure is FailureKind.CAPTCHA_PROVIDER_ERROR
        assert "ERROR_WRONG_USER_KEY" in result.message
        assert len(session.calls) == 1
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_network_error_is_returned(self, solver, session):
        session.queue(200, {"status": 1, "request": "task-1"})
        session.queue(0, aiohttp.ClientConnectionError("connection reset"))

        result = await solver.solve(SITE_KEY, PAGE_URL)

        assert result.failure is FailureKind.CAPTCHA_PROVIDER_ERROR
        assert result.polls == 1

    @pytest.mark.asyncio
    async def test_http_error_on_submit_is_returned(self, solver, session):
        session.queue(503, "Service Unavailable")

        result = await solver.solve(SITE_KEY, PAGE_URL)

        assert not result.ok
        assert result.failure is FailureKind.CAPTCHA_PROVIDER_ERROR

    @pytest.mark.asyncio
    async def test_custom_limits(self, session, fake_sleep):
        solver = CaptchaSolver(
            "k", poll_interval=0.5, max_attempts=4, sleep=fake_sleep, session=session
        )
        session.queue(200, {"status": 1, "request": "task-1"})
        session.default = not_ready()

        result = await solver.solve(SITE_KEY, PAGE_URL)

        assert result.failure is FailureKind.CAPTCHA_TIMEOUT
        assert fake_sleep.delays == [0.5] * 4
