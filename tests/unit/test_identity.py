"""
Tests for identity provider sign-in and clearance verification
"""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from wolfgift.auth.captcha import SolveResult
from wolfgift.auth.identity import CLEARANCE_INVALID_MESSAGE, IdentityClient
from wolfgift.core.exceptions import FailureKind
from wolfgift.core.types import Account, TokenSet

SIGN_IN = "/players/signInWithEmailAndPassword"
VERIFY = "/cloudflareTurnstile/verify"
LONG_TOKEN = "x" * 80


def clearance_invalid() -> tuple[int, dict]:
    return 403, {"code": 403, "message": CLEARANCE_INVALID_MESSAGE}


@pytest.fixture
def solver():
    mock = MagicMock()
    mock.solve = AsyncMock(return_value=SolveResult(token="solved-challenge", polls=2))
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def client(solver, session) -> IdentityClient:
    return IdentityClient(solver, session=session)


@pytest.fixture
def account() -> Account:
    return Account(
        "main",
        "main@example.com",
        "pw-main",
        TokenSet(LONG_TOKEN, "old-refresh", "old-clearance"),
    )


class TestReauthenticate:
    @pytest.mark.asyncio
    async def test_success(self, client, session, account):
        session.queue(200, {"idToken": "new-id", "refreshToken": "new-refresh"})

        result = await client.reauthenticate(account, "old-clearance")

        assert result.ok
        assert result.tokens == TokenSet("new-id", "new-refresh", "old-clearance")
        assert result.clearance_refreshed is False

        call = session.calls[0]
        assert call["url"] == "https://auth.api-wolvesville.com" + SIGN_IN
        assert call["json"] == {"email": "main@example.com", "password": "pw-main"}
        assert call["headers"]["Cf-JWT"] == "old-clearance"
        assert call["headers"]["Origin"] == "https://www.wolvesville.com"
        assert call["headers"]["Referer"] == "https://www.wolvesville.com/"

    @pytest.mark.asyncio
    async def test_clearance_rejection_recovers_once(self, client, session, solver, account):
        session.queue(*clearance_invalid())
        session.queue(200, {"jwt": "new-clearance"})
        session.queue(200, {"idToken": "new-id", "refreshToken": "new-refresh"})

        result = await client.reauthenticate(account, "old-clearance")

        assert result.ok
        assert result.clearance_refreshed is True
        assert result.tokens.clearance_token == "new-clearance"
        assert solver.solve.await_count == 1

        sign_ins = session.calls_to(SIGN_IN)
        assert [c["headers"]["Cf-JWT"] for c in sign_ins] == ["old-clearance", "new-clearance"]

    @pytest.mark.asyncio
    async def test_persistent_clearance_rejection_is_bounded(
        self, client, session, solver, account
    ):
        session.queue(*clearance_invalid())
        session.queue(200, {"jwt": "new-clearance"})
        session.default = clearance_invalid()

        result = await client.reauthenticate(account, "old-clearance")

        assert not result.ok
        assert result.failure is FailureKind.AUTH_REJECTED
        assert len(session.calls_to(SIGN_IN)) == 2
        assert result.clearance_token == "new-clearance"
        assert solver.solve.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_retry_still_reports_new_clearance(
        self, client, session, solver, account
    ):
        session.queue(*clearance_invalid())
        session.queue(200, {"jwt": "new-clearance"})
        session.queue(503, {"message": "Service Unavailable"})

        result = await client.reauthenticate(account, "old-clearance")

        assert not result.ok
        assert result.failure is FailureKind.PROVIDER_ERROR
        assert result.clearance_token == "new-clearance"

    @pytest.mark.asyncio
    async def test_captcha_failure_is_reported(self, client, session, solver, account):
        solver.solve.return_value = SolveResult(
            failure=FailureKind.CAPTCHA_TIMEOUT, message="no solution", polls=30
        )
        session.queue(*clearance_invalid())

        result = await client.reauthenticate(account, "old-clearance")

        assert result.failure is FailureKind.CAPTCHA_TIMEOUT
        assert len(session.calls_to(SIGN_IN)) == 1
        assert session.calls_to(VERIFY) == []

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, session, solver, account):
        session.queue(400, {"code": 400, "message": "INVALID_PASSWORD"})

        result = await client.reauthenticate(account, "old-clearance")

        assert result.failure is FailureKind.AUTH_REJECTED
        assert result.message == "INVALID_PASSWORD"
        assert result.status_code == 400
        solver.solve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreachable_provider(self, client, session, account):
        session.queue(0, aiohttp.ClientConnectionError("down"))

        result = await client.reauthenticate(account, "old-clearance")

        assert result.failure is FailureKind.PROVIDER_ERROR

    @pytest.mark.asyncio
    async def test_response_without_token(self, client, session, account):
        session.queue(200, {"something": "else"})

        result = await client.reauthenticate(account, "old-clearance")

        assert not result.ok
        assert result.failure is FailureKind.PROVIDER_ERROR


class TestVerifyChallenge:
    @pytest.mark.asyncio
    async def test_includes_usable_identity_token(self, client, session):
        session.queue(200, {"jwt": "clearance"})

        result = await client.verify_challenge("solved", "site", LONG_TOKEN)

        assert result.token == "clearance"
        assert session.calls[0]["json"] == {
            "token": "solved",
            "siteKey": "site",
            "idToken": LONG_TOKEN,
        }
        assert "Cf-JWT" not in session.calls[0]["headers"]

    @pytest.mark.asyncio
    async def test_omits_short_identity_token(self, client, session):
        session.queue(200, {"jwt": "clearance"})

        await client.verify_challenge("solved", "site", "x" * 50)

        assert "idToken" not in session.calls[0]["json"]

    @pytest.mark.asyncio
    async def test_server_error_retries_without_identity_token(self, client, session):
        session.queue(500, {"message": "Internal error"})
        session.queue(200, {"jwt": "clearance"})

        result = await client.verify_challenge("solved", "site", LONG_TOKEN)

        assert result.token == "clearance"
        assert result.retried_without_identity is True
        first, second = session.calls
        assert "idToken" in first["json"]
        assert "idToken" not in second["json"]

    @pytest.mark.asyncio
    async def test_server_error_without_identity_token_is_final(self, client, session):
        session.queue(500, {"message": "Internal error"})

        result = await client.verify_challenge("solved", "site", None)

        assert result.failure is FailureKind.PROVIDER_ERROR
        assert len(session.calls) == 1

    @pytest.mark.asyncio
    async def test_retry_happens_once(self, client, session):
        session.default = (500, {"message": "Internal error"})

        result = await client.verify_challenge("solved", "site", LONG_TOKEN)

        assert not result.ok
        assert len(session.calls) == 2

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, client, session):
        session.queue(400, {"message": "bad token"})

        result = await client.verify_challenge("solved", "site", LONG_TOKEN)

        assert result.message == "bad token"
        assert len(session.calls) == 1


class TestRefreshClearance:
    @pytest.mark.asyncio
    async def test_solves_then_verifies(self, client, session, solver):
        session.queue(200, {"jwt": "clearance"})

        result = await client.refresh_clearance(LONG_TOKEN)

        assert result.token == "clearance"
        solver.solve.assert_awaited_once_with(
            "0x4AAAAAAATLZS5RyqlMGxsL", "https://www.wolvesville.com"
        )
        assert session.calls[0]["json"]["token"] == "solved-challenge"

    @pytest.mark.asyncio
    async def test_solver_failure_skips_verification(self, client, session, solver):
        solver.solve.return_value = SolveResult(
            failure=FailureKind.CAPTCHA_PROVIDER_ERROR, message="ERROR_ZERO_BALANCE"
        )

        result = await client.refresh_clearance()

        assert result.failure is FailureKind.CAPTCHA_PROVIDER_ERROR
        assert session.calls == []
