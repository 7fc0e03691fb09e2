"""
Vendor commerce API client (gem offer purchases and player search).
"""

import aiohttp

from wolfgift.core.http import DEFAULT_TIMEOUT_SECONDS, HttpClient
from wolfgift.core.types import TokenSet

DEFAULT_CORE_URL = "https://core.api-wolvesville.com"


class CommerceClient(HttpClient):
    """
    Authenticated calls against the vendor's core API.

    Every call takes the TokenSet to act with, so the caller decides which
    account a request runs under. Errors surface as ProviderResponseError /
    ProviderNotAvailableError from the base client.
    """

    provider_name = "commerce"
    logger_name = "wolfgift.commerce.client"

    def __init__(
        self,
        base_url: str = DEFAULT_CORE_URL,
        session: aiohttp.ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def headers(tokens: TokenSet) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {tokens.identity_token}",
            "Cf-JWT": tokens.clearance_token,
            "ids": "1",
        }

    async def purchase(
        self,
        tokens: TokenSet,
        item_type: str,
        recipient_id: str,
        message: str,
        calendar_id: str | None = None,
    ) -> dict:
        """Buy ``item_type`` as a gift for ``recipient_id``."""
        body = {
            "type": item_type,
            "giftRecipientId": recipient_id,
            "giftMessage": message,
        }
        if calendar_id:
            body["calendarId"] = calendar_id

        data = await self._request(
            "POST",
            f"{self.base_url}/gemOffers/purchases",
            json_body=body,
            headers=self.headers(tokens),
        )
        return data if isinstance(data, dict) else {"result": data}

    async def search_player(self, tokens: TokenSet, username: str) -> dict | None:
        """First player matching ``username``, or None."""
        data = await self._request(
            "GET",
            f"{self.base_url}/players/search",
            params={"username": username},
            headers=self.headers(tokens),
        )
        if isinstance(data, list) and data:
            return data[0]
        return None


__all__ = ["CommerceClient", "DEFAULT_CORE_URL"]
