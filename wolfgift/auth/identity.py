"""
Identity provider client.

Two endpoints:
    - ``/players/signInWithEmailAndPassword``: email + password, gated by the
      clearance token in the ``Cf-JWT`` header -> identity + refresh token
    - ``/cloudflareTurnstile/verify``: solved challenge token + site key
      (+ identity token) -> clearance token

A rejected clearance token during sign-in triggers one clearance refresh and
one more sign-in. Results are returned as ``AuthResult`` / ``ClearanceResult``;
nothing is raised across this boundary.
"""

from dataclasses import dataclass

import aiohttp

from wolfgift.core.config import IdentityConfig
from wolfgift.core.exceptions import FailureKind, ProviderError, ProviderResponseError
from wolfgift.core.http import DEFAULT_TIMEOUT_SECONDS, HttpClient
from wolfgift.core.logging import token_preview
from wolfgift.core.types import Account, TokenSet

from .captcha import CaptchaSolver

CLEARANCE_INVALID_MESSAGE = "Cloudflare JWT invalid"
MAX_CLEARANCE_REFRESHES = 1


@dataclass
class ClearanceResult:
    token: str | None = None
    failure: FailureKind | None = None
    message: str = ""
    retried_without_identity: bool = False

    @property
    def ok(self) -> bool:
        return self.token is not None


@dataclass
class AuthResult:
    """Outcome of a password sign-in."""

    tokens: TokenSet | None = None
    failure: FailureKind | None = None
    message: str = ""
    clearance_refreshed: bool = False
    status_code: int | None = None
    # Set whenever a new clearance token was verified, even if sign-in then failed
    clearance_token: str | None = None

    @property
    def ok(self) -> bool:
        return self.tokens is not None


class IdentityClient(HttpClient):
    """
    Password sign-in and challenge verification against the identity provider.

    Args:
        solver: Challenge solver used when a new clearance token is needed
        config: Endpoint, browser header and challenge settings
    """

    provider_name = "identity"
    logger_name = "wolfgift.auth.identity"

    def __init__(
        self,
        solver: CaptchaSolver,
        config: IdentityConfig | None = None,
        session: aiohttp.ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(session=session, timeout=timeout)
        self.solver = solver
        self.config = config or IdentityConfig()
        self.base_url = self.config.auth_base_url.rstrip("/")

    def _headers(self, clearance_token: str | None = None) -> dict[str, str]:
        origin = self.config.origin.rstrip("/")
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Origin": origin,
            "Referer": origin + "/",
            "User-Agent": self.config.user_agent,
        }
        if clearance_token is not None:
            headers["Cf-JWT"] = clearance_token
        return headers

    def usable_identity_token(self, identity_token: str | None) -> bool:
        """Superficial shape check before sending an identity token along."""
        if not identity_token or not identity_token.strip():
            return False
        return len(identity_token) > self.config.min_identity_token_length

    @staticmethod
    def is_clearance_rejection(error: ProviderResponseError) -> bool:
        if error.provider_message != CLEARANCE_INVALID_MESSAGE:
            return False
        return error.provider_code == 403 or error.status_code == 403

    # =========================================================================
    # Sign-in
    # =========================================================================

    async def reauthenticate(self, account: Account, clearance_token: str) -> AuthResult:
        """
        Sign ``account`` in with its password.

        On a clearance rejection the clearance token is refreshed at most
        ``MAX_CLEARANCE_REFRESHES`` times; the returned TokenSet carries
        whichever clearance token the successful sign-in used.
        """
        clearance = clearance_token or ""
        refreshes = 0
        new_clearance: str | None = None
        last_error: ProviderResponseError | None = None

        for attempt in range(1, MAX_CLEARANCE_REFRESHES + 2):
            self._logger.info("sign_in_attempt", account=account.name, attempt=attempt)
            try:
                data = await self._request(
                    "POST",
                    f"{self.base_url}/players/signInWithEmailAndPassword",
                    json_body={"email": account.email, "password": account.password},
                    headers=self._headers(clearance),
                )
            except ProviderResponseError as e:
                last_error = e
                if not self.is_clearance_rejection(e):
                    kind = (
                        FailureKind.AUTH_REJECTED
                        if e.status_code in (400, 401, 403)
                        else FailureKind.PROVIDER_ERROR
                    )
                    return self._auth_failed(
                        account, kind, e.message, refreshes > 0, e.status_code, new_clearance
                    )
                if refreshes >= MAX_CLEARANCE_REFRESHES:
                    break

                self._logger.warning("clearance_rejected", account=account.name)
                clearance_result = await self.refresh_clearance(account.tokens.identity_token)
                refreshes += 1
                if not clearance_result.ok:
                    return self._auth_failed(
                        account,
                        clearance_result.failure or FailureKind.PROVIDER_ERROR,
                        clearance_result.message,
                        True,
                    )
                clearance = clearance_result.token or ""
                new_clearance = clearance
                continue
            except ProviderError as e:
                return self._auth_failed(
                    account,
                    FailureKind.PROVIDER_ERROR,
                    e.message,
                    refreshes > 0,
                    clearance_token=new_clearance,
                )

            if not isinstance(data, dict) or not data.get("idToken"):
                return self._auth_failed(
                    account,
                    FailureKind.PROVIDER_ERROR,
                    "sign-in response carried no identity token",
                    refreshes > 0,
                    clearance_token=new_clearance,
                )

            tokens = TokenSet(
                identity_token=str(data["idToken"]),
                refresh_token=str(data.get("refreshToken") or account.tokens.refresh_token),
                clearance_token=clearance,
            )
            self._logger.info(
                "sign_in_succeeded",
                account=account.name,
                identity_token=token_preview(tokens.identity_token),
                clearance_refreshed=refreshes > 0,
            )
            return AuthResult(
                tokens=tokens, clearance_refreshed=refreshes > 0, clearance_token=new_clearance
            )

        return self._auth_failed(
            account,
            FailureKind.AUTH_REJECTED,
            "clearance token rejected again after refresh",
            True,
            last_error.status_code if last_error else None,
            new_clearance,
        )

    def _auth_failed(
        self,
        account: Account,
        kind: FailureKind,
        message: str,
        clearance_refreshed: bool,
        status_code: int | None = None,
        clearance_token: str | None = None,
    ) -> AuthResult:
        self._logger.error(
            "sign_in_failed",
            account=account.name,
            kind=kind.value,
            reason=message,
            status_code=status_code,
        )
        return AuthResult(
            failure=kind,
            message=message,
            clearance_refreshed=clearance_refreshed,
            status_code=status_code,
            clearance_token=clearance_token,
        )

    # =========================================================================
    # Clearance
    # =========================================================================

    async def verify_challenge(
        self,
        solved_token: str,
        site_key: str | None = None,
        identity_token: str | None = None,
    ) -> ClearanceResult:
        """
        Exchange a solved challenge for a clearance token.

        The identity token is sent only when it looks usable. A server error
        on a request that carried it is retried once without it.
        """
        body = {"token": solved_token, "siteKey": site_key or self.config.site_key}
        if self.usable_identity_token(identity_token):
            body["idToken"] = identity_token or ""
        retried = False

        while True:
            try:
                data = await self._request(
                    "POST",
                    f"{self.base_url}/cloudflareTurnstile/verify",
                    json_body=body,
                    headers=self._headers(),
                )
                break
            except ProviderResponseError as e:
                if e.status_code >= 500 and "idToken" in body:
                    self._logger.warning("verify_retry_without_identity", status_code=e.status_code)
                    body = {k: v for k, v in body.items() if k != "idToken"}
                    retried = True
                    continue
                return self._clearance_failed(e.message, retried)
            except ProviderError as e:
                return self._clearance_failed(e.message, retried)

        jwt = data.get("jwt") if isinstance(data, dict) else None
        if not jwt:
            return self._clearance_failed("verification response carried no clearance token", retried)

        self._logger.info(
            "clearance_obtained", clearance_token=token_preview(jwt), retried=retried
        )
        return ClearanceResult(token=str(jwt), retried_without_identity=retried)

    async def refresh_clearance(self, identity_token: str | None = None) -> ClearanceResult:
        """Solve a new challenge and verify it."""
        solved = await self.solver.solve(self.config.site_key, self.config.page_url)
        if not solved.ok:
            return ClearanceResult(
                failure=solved.failure or FailureKind.CAPTCHA_PROVIDER_ERROR,
                message=solved.message,
            )
        return await self.verify_challenge(
            solved.token or "", self.config.site_key, identity_token
        )

    def _clearance_failed(self, message: str, retried: bool) -> ClearanceResult:
        self._logger.error("clearance_failed", reason=message, retried=retried)
        return ClearanceResult(
            failure=FailureKind.PROVIDER_ERROR,
            message=message,
            retried_without_identity=retried,
        )

    async def close(self) -> None:
        await self.solver.close()
        await super().close()


__all__ = [
    "IdentityClient",
    "AuthResult",
    "ClearanceResult",
    "CLEARANCE_INVALID_MESSAGE",
    "MAX_CLEARANCE_REFRESHES",
]
