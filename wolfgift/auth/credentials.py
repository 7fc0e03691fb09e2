"""
Credential lifecycle.

CredentialManager keeps the current account's identity token fresh before
every authenticated call; RefreshScheduler runs the same check once shortly
after start and then on a fixed interval.
"""

import asyncio
import time
from collections.abc import Callable
from pathlib import Path

from dotenv import set_key

from wolfgift.accounts.store import AccountStore
from wolfgift.core.logging import get_logger
from wolfgift.core.types import TokenSet

from .captcha import SleepFn
from .identity import IdentityClient
from .token_clock import EXPIRY_MARGIN_SECONDS, is_expired

logger = get_logger("wolfgift.auth.credentials")

ENV_TOKEN_KEYS = {
    "identity_token": "WOLVESVILLE_ID_TOKEN",
    "refresh_token": "WOLVESVILLE_REFRESH_TOKEN",
    "clearance_token": "WOLVESVILLE_CF_JWT",
}


class CredentialManager:
    """
    Guarantees a usable TokenSet for an account.

    Fresh tokens return immediately without touching the network. Expired
    ones go through a password sign-in (which may refresh the clearance
    token); concurrent callers share one refresh.

    Args:
        store: Account pool that owns the tokens
        identity: Identity provider client
        env_file: If set, refreshed tokens are mirrored into this dotenv file
        margin_seconds: Remaining lifetime below which a token counts as expired
        clock: Unix-seconds clock (injectable for tests)
    """

    def __init__(
        self,
        store: AccountStore,
        identity: IdentityClient,
        env_file: str | Path | None = None,
        margin_seconds: float = EXPIRY_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.identity = identity
        self.env_file = Path(env_file) if env_file else None
        self.margin_seconds = margin_seconds
        self.clock = clock
        self._refresh_lock = asyncio.Lock()
        self._generations: dict[str, int] = {}

    def is_fresh(self, account: str | None = None) -> bool:
        target = self.store.get(account) if account else self.store.current
        return not is_expired(target.tokens, now=self.clock(), margin_seconds=self.margin_seconds)

    async def ensure_fresh(self, account: str | None = None, force: bool = False) -> bool:
        """
        Make sure ``account`` (default: current) holds a fresh identity token.

        Args:
            account: Account name; the current account when omitted
            force: Refresh even if the token still looks valid (used after
                the vendor rejected it)

        Returns:
            True when the account ends up with usable tokens
        """
        name = account or self.store.current_name
        if not force and self.is_fresh(name):
            return True

        seen = self._generations.get(name, 0)
        async with self._refresh_lock:
            # Another caller may have refreshed while we waited.
            if self._generations.get(name, 0) != seen:
                return True
            if not force and self.is_fresh(name):
                return True

            target = self.store.get(name)
            logger.info("token_refresh_started", account=name, forced=force)
            result = await self.identity.reauthenticate(target, target.tokens.clearance_token)

            if not result.ok or result.tokens is None:
                if result.clearance_token:
                    self.keep_clearance(name, result.clearance_token)
                logger.error(
                    "token_refresh_failed",
                    account=name,
                    kind=result.failure.value if result.failure else None,
                    reason=result.message,
                )
                return False

            self.store.update_tokens(name, result.tokens)
            self._generations[name] = seen + 1
            if result.clearance_refreshed:
                logger.info("token_refresh_recovered", account=name, recovered=True)
            else:
                logger.info("token_refresh_succeeded", account=name, recovered=False)

            if name == self.store.current_name:
                self.mirror_to_env(result.tokens)
            return True

    def keep_clearance(self, name: str, clearance_token: str) -> None:
        """Store a verified clearance token whose sign-in did not go through."""
        tokens = self.store.get(name).tokens.copy()
        tokens.clearance_token = clearance_token
        self.store.update_tokens(name, tokens)
        logger.info("clearance_kept", account=name)
        if name == self.store.current_name:
            self.mirror_to_env(tokens)

    def mirror_to_env(self, tokens: TokenSet) -> None:
        """Write the current tokens into the dotenv file, if configured."""
        if self.env_file is None:
            return
        try:
            self.env_file.parent.mkdir(parents=True, exist_ok=True)
            self.env_file.touch(exist_ok=True)
            for field_name, key in ENV_TOKEN_KEYS.items():
                value = getattr(tokens, field_name)
                if value:
                    set_key(str(self.env_file), key, value, quote_mode="never")
        except OSError as e:
            logger.warning("env_mirror_failed", path=str(self.env_file), error=str(e))


class RefreshScheduler:
    """
    Background freshness checks for the current account.

    Runs once after ``startup_delay`` seconds and then every ``interval``
    seconds. A failing run is logged and the schedule continues.
    """

    def __init__(
        self,
        credentials: CredentialManager,
        startup_delay: float = 5.0,
        interval: float = 50 * 60,
        sleep: SleepFn | None = None,
    ) -> None:
        self.credentials = credentials
        self.startup_delay = startup_delay
        self.interval = interval
        self._sleep: SleepFn = sleep or asyncio.sleep
        self._task: asyncio.Task | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="wolfgift-token-refresh")
        logger.info(
            "refresh_scheduler_started",
            startup_delay=self.startup_delay,
            interval=self.interval,
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("refresh_scheduler_stopped", runs=self.runs)

    async def _loop(self) -> None:
        await self._sleep(self.startup_delay)
        while True:
            await self.run_once()
            await self._sleep(self.interval)

    async def run_once(self) -> bool:
        """One scheduled check; never raises."""
        self.runs += 1
        store = self.credentials.store
        try:
            async with store.lock:
                if self.credentials.is_fresh():
                    logger.debug("scheduled_check_fresh", account=store.current_name)
                    return True
                ok = await self.credentials.ensure_fresh()
            if not ok:
                logger.error("scheduled_refresh_failed", account=store.current_name)
            return ok
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("scheduled_refresh_error", error=str(e))
            return False


__all__ = ["CredentialManager", "RefreshScheduler", "ENV_TOKEN_KEYS"]
