"""
Shared aiohttp plumbing for the identity, captcha and commerce clients.
"""

import asyncio
import json
from types import TracebackType
from typing import Any

import aiohttp

from .exceptions import ProviderNotAvailableError, ProviderResponseError
from .logging import get_logger

DEFAULT_TIMEOUT_SECONDS = 30.0


def decode_body(body: str) -> Any:
    """Parse a JSON body, falling back to ``{"message": body}``."""
    if not body:
        return {}
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return {"message": body.strip()}


class HttpClient:
    """
    Base for the remote clients.

    Features:
    - Lazy, reusable ``aiohttp.ClientSession`` (or an injected one)
    - Per-request total timeout
    - Non-2xx responses raised as ProviderResponseError with the parsed payload
    - Network failures raised as ProviderNotAvailableError
    """

    provider_name: str = "http"
    logger_name: str = ""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._logger = get_logger(self.logger_name or f"wolfgift.http.{self.provider_name}")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        session = await self._get_session()
        try:
            async with session.request(
                method,
                url,
                json=json_body,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                body = await response.text()
                payload = decode_body(body)
                if response.status >= 400:
                    raise ProviderResponseError(
                        provider_name=self.provider_name,
                        status_code=response.status,
                        response_body=body,
                        payload=payload,
                    )
                return payload
        except aiohttp.ClientError as e:
            raise ProviderNotAvailableError(self.provider_name, str(e) or type(e).__name__, cause=e)
        except asyncio.TimeoutError as e:
            raise ProviderNotAvailableError(
                self.provider_name, f"timed out after {self.timeout}s", cause=e
            )

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "HttpClient":
        await self._get_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


__all__ = ["HttpClient", "decode_body", "DEFAULT_TIMEOUT_SECONDS"]
