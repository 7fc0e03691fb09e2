"""
Tests for the credential manager and the refresh schedule
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import dotenv_values

from wolfgift.auth.credentials import CredentialManager, RefreshScheduler
from wolfgift.auth.identity import AuthResult
from wolfgift.core.exceptions import FailureKind
from wolfgift.core.types import TokenSet


@pytest.fixture
def identity():
    mock = MagicMock()
    mock.reauthenticate = AsyncMock()
    return mock


@pytest.fixture
def manager(store, identity, now) -> CredentialManager:
    return CredentialManager(store, identity, clock=lambda: now)


def refreshed(make_token, clearance: str = "clearance-main", recovered: bool = False):
    return AuthResult(
        tokens=TokenSet(make_token(3600), "refresh-new", clearance),
        clearance_refreshed=recovered,
    )


class TestEnsureFresh:
    @pytest.mark.asyncio
    async def test_fresh_token_makes_no_call(self, manager, identity):
        assert await manager.ensure_fresh() is True
        identity.reauthenticate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed_and_persisted(
        self, manager, store, sink, identity, make_token
    ):
        store.update_tokens("main", TokenSet(make_token(60), "refresh-old", "clearance-main"))
        identity.reauthenticate.return_value = refreshed(make_token)

        assert await manager.ensure_fresh() is True

        identity.reauthenticate.assert_awaited_once()
        account, clearance = identity.reauthenticate.await_args.args
        assert account.name == "main"
        assert clearance == "clearance-main"
        assert store.current.tokens.refresh_token == "refresh-new"
        assert sink.data["accounts"]["accounts"]["main"]["refreshToken"] == "refresh-new"

    @pytest.mark.asyncio
    async def test_recovered_clearance_is_stored(self, manager, store, identity, make_token):
        store.update_tokens("main", TokenSet("", "", "stale"))
        identity.reauthenticate.return_value = refreshed(make_token, "fresh-cf", recovered=True)

        assert await manager.ensure_fresh() is True
        assert store.current.tokens.clearance_token == "fresh-cf"

    @pytest.mark.asyncio
    async def test_failed_refresh_leaves_tokens(self, manager, store, identity):
        store.update_tokens("main", TokenSet("", "refresh-old", "cf"))
        identity.reauthenticate.return_value = AuthResult(
            failure=FailureKind.CAPTCHA_TIMEOUT, message="no solution"
        )

        assert await manager.ensure_fresh() is False
        assert store.current.tokens == TokenSet("", "refresh-old", "cf")

    @pytest.mark.asyncio
    async def test_failed_sign_in_keeps_verified_clearance(self, manager, store, sink, identity):
        store.update_tokens("main", TokenSet("", "refresh-old", "old-clearance"))
        identity.reauthenticate.return_value = AuthResult(
            failure=FailureKind.PROVIDER_ERROR,
            message="Service Unavailable",
            clearance_refreshed=True,
            clearance_token="paid-new-clearance",
        )

        assert await manager.ensure_fresh() is False
        assert store.current.tokens == TokenSet("", "refresh-old", "paid-new-clearance")
        assert sink.data["accounts"]["accounts"]["main"]["cfJwt"] == "paid-new-clearance"

        await manager.ensure_fresh()
        _, clearance = identity.reauthenticate.await_args.args
        assert clearance == "paid-new-clearance"

    @pytest.mark.asyncio
    async def test_force_bypasses_fast_path(self, manager, identity, make_token):
        identity.reauthenticate.return_value = refreshed(make_token)

        assert await manager.ensure_fresh(force=True) is True
        identity.reauthenticate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_named_account(self, manager, store, identity, make_token):
        store.add("alt", "alt@example.com", "pw")
        identity.reauthenticate.return_value = refreshed(make_token)

        assert await manager.ensure_fresh("alt") is True
        assert identity.reauthenticate.await_args.args[0].name == "alt"
        assert store.get("alt").tokens.refresh_token == "refresh-new"
        assert store.current_name == "main"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(
        self, manager, store, identity, make_token
    ):
        store.update_tokens("main", TokenSet("", "", "cf"))

        async def slow_reauth(account, clearance):
            await asyncio.sleep(0)
            return refreshed(make_token)

        identity.reauthenticate.side_effect = slow_reauth

        results = await asyncio.gather(*(manager.ensure_fresh() for _ in range(5)))

        assert results == [True] * 5
        assert identity.reauthenticate.await_count == 1

    @pytest.mark.asyncio
    async def test_tokens_mirrored_to_env_file(
        self, store, identity, now, make_token, tmp_path
    ):
        env_file = tmp_path / ".env"
        env_file.write_text("WOLVESVILLE_EMAIL=main@example.com\n")
        manager = CredentialManager(store, identity, env_file=env_file, clock=lambda: now)
        result = refreshed(make_token, "cf-new")
        identity.reauthenticate.return_value = result

        assert await manager.ensure_fresh(force=True) is True

        values = dotenv_values(env_file)
        assert values["WOLVESVILLE_EMAIL"] == "main@example.com"
        assert values["WOLVESVILLE_ID_TOKEN"] == result.tokens.identity_token
        assert values["WOLVESVILLE_REFRESH_TOKEN"] == "refresh-new"
        assert values["WOLVESVILLE_CF_JWT"] == "cf-new"

    @pytest.mark.asyncio
    async def test_no_mirroring_for_other_accounts(
        self, store, identity, now, make_token, tmp_path
    ):
        env_file = tmp_path / ".env"
        manager = CredentialManager(store, identity, env_file=env_file, clock=lambda: now)
        store.add("alt", "alt@example.com", "pw")
        identity.reauthenticate.return_value = refreshed(make_token)

        await manager.ensure_fresh("alt")

        assert not env_file.exists()


class TestRefreshScheduler:
    @pytest.mark.asyncio
    async def test_run_once_skips_fresh_tokens(self, manager, identity):
        scheduler = RefreshScheduler(manager)

        assert await scheduler.run_once() is True
        identity.reauthenticate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_run_once_refreshes_under_store_lock(
        self, manager, store, identity, make_token
    ):
        store.update_tokens("main", TokenSet("", "", "cf"))
        seen_locked = []

        async def reauth(account, clearance):
            seen_locked.append(store.lock.locked())
            return refreshed(make_token)

        identity.reauthenticate.side_effect = reauth
        scheduler = RefreshScheduler(manager)

        assert await scheduler.run_once() is True
        assert seen_locked == [True]

    @pytest.mark.asyncio
    async def test_run_once_swallows_errors(self, manager, store, identity):
        store.update_tokens("main", TokenSet("", "", "cf"))
        identity.reauthenticate.side_effect = RuntimeError("boom")
        scheduler = RefreshScheduler(manager)

        assert await scheduler.run_once() is False
        assert not store.lock.locked()

    @pytest.mark.asyncio
    async def test_schedule_survives_failing_runs(self, manager, store, identity):
        store.update_tokens("main", TokenSet("", "", "cf"))
        identity.reauthenticate.side_effect = RuntimeError("boom")
        delays = []

        async def sleep(seconds):
            delays.append(seconds)
            if len(delays) > 3:
                raise asyncio.CancelledError

        scheduler = RefreshScheduler(manager, startup_delay=5.0, interval=3000.0, sleep=sleep)

        with pytest.raises(asyncio.CancelledError):
            await scheduler._loop()

        assert delays == [5.0, 3000.0, 3000.0, 3000.0]
        assert scheduler.runs == 3
        assert identity.reauthenticate.await_count == 3

    @pytest.mark.asyncio
    async def test_start_and_stop(self, manager):
        scheduler = RefreshScheduler(manager, startup_delay=3600)

        scheduler.start()
        assert scheduler.running
        await scheduler.stop()
        assert not scheduler.running
        assert scheduler.runs == 0
