"""
Challenge solving through a paid solving service (2Captcha-compatible API).

Flow:
    1. POST ``in.php`` with the API key, challenge method, site key and page URL
       -> task id (or an immediate error)
    2. Wait, then GET ``res.php`` for the task, up to ``max_attempts`` polls
       - ``CAPCHA_NOT_READY``  -> keep polling
       - ``status == 1``       -> solved, return the token
       - anything else         -> terminal failure, stop polling

Failures are returned as a ``SolveResult`` without a token; nothing is raised
across this boundary.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import aiohttp

from wolfgift.core.exceptions import FailureKind, ProviderError
from wolfgift.core.http import DEFAULT_TIMEOUT_SECONDS, HttpClient

NOT_READY = "CAPCHA_NOT_READY"

SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class SolveResult:
    """Outcome of one solve: a token, or the reason there is none."""

    token: str | None = None
    failure: FailureKind | None = None
    message: str = ""
    polls: int = 0

    @property
    def ok(self) -> bool:
        return self.token is not None


class CaptchaSolver(HttpClient):
    """
    Submits a browser challenge to the solving service and polls for the answer.

    Args:
        api_key: Solving service API key
        base_url: Service root, e.g. ``https://2captcha.com``
        method: Challenge type understood by the service (``turnstile``)
        poll_interval: Seconds to wait before each poll
        max_attempts: Poll ceiling; ``max_attempts * poll_interval`` bounds a solve
        sleep: Awaitable sleep used between polls (injectable for tests)
    """

    provider_name = "captcha"
    logger_name = "wolfgift.auth.captcha"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://2captcha.com",
        method: str = "turnstile",
        poll_interval: float = 3.0,
        max_attempts: int = 30,
        sleep: SleepFn | None = None,
        session: aiohttp.ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.method = method
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep: SleepFn = sleep or asyncio.sleep

    async def solve(self, site_key: str, page_url: str) -> SolveResult:
        """Solve one challenge for ``site_key`` on ``page_url``."""
        self._logger.info("captcha_submit", method=self.method, page_url=page_url)

        try:
            submitted = await self._request(
                "POST",
                f"{self.base_url}/in.php",
                params={
                    "key": self.api_key,
                    "method": self.method,
                    "sitekey": site_key,
                    "pageurl": page_url,
                    "json": 1,
                },
            )
        except ProviderError as e:
            return self._fail(FailureKind.CAPTCHA_PROVIDER_ERROR, f"submit failed: {e.message}")

        if not isinstance(submitted, dict) or submitted.get("status") != 1:
            reason = submitted.get("request") if isinstance(submitted, dict) else None
            return self._fail(FailureKind.CAPTCHA_PROVIDER_ERROR, str(reason or "submit rejected"))

        task_id = str(submitted.get("request"))
        self._logger.info("captcha_task_created", task_id=task_id)
        return await self._poll(task_id)

    async def _poll(self, task_id: str) -> SolveResult:
        polls = 0
        while polls < self.max_attempts:
            await self._sleep(self.poll_interval)
            polls += 1

            try:
                result = await self._request(
                    "GET",
                    f"{self.base_url}/res.php",
                    params={"key": self.api_key, "action": "get", "id": task_id, "json": 1},
                )
            except ProviderError as e:
                return self._fail(
                    FailureKind.CAPTCHA_PROVIDER_ERROR, f"poll failed: {e.message}", polls
                )

            if not isinstance(result, dict):
                return self._fail(FailureKind.CAPTCHA_PROVIDER_ERROR, "malformed poll response", polls)

            if result.get("status") == 1:
                self._logger.info("captcha_solved", task_id=task_id, polls=polls)
                return SolveResult(token=str(result.get("request")), polls=polls)

            if result.get("request") != NOT_READY:
                return self._fail(
                    FailureKind.CAPTCHA_PROVIDER_ERROR,
                    str(result.get("request") or "unknown error"),
                    polls,
                )

            self._logger.debug("captcha_pending", task_id=task_id, poll=polls, of=self.max_attempts)

        return self._fail(
            FailureKind.CAPTCHA_TIMEOUT,
            f"no solution after {polls} polls ({polls * self.poll_interval:.0f}s)",
            polls,
        )

    def _fail(self, kind: FailureKind, message: str, polls: int = 0) -> SolveResult:
        self._logger.error("captcha_failed", kind=kind.value, reason=message, polls=polls)
        return SolveResult(failure=kind, message=message, polls=polls)


__all__ = ["CaptchaSolver", "SolveResult", "NOT_READY"]
