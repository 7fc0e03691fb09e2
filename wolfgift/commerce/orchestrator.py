"""
Purchase Orchestrator
=====================

Runs one gift purchase through the state machine:

  Validating -> CredentialCheck -> ProactiveFailoverCheck -> Executing
      Executing -> Success
                 | AuthRetry            (first 401/403: forced refresh, once)
                 | FundsFailoverRetry   (insufficient funds: switch account, once)
                 | Failed

Purchases are serialized on ``AccountStore.lock`` so the current account,
its tokens and its cached currency never change under an in-flight request.
The only error that leaves ``purchase()`` is ``PurchaseError``.
"""

from wolfgift.accounts.store import AccountStore
from wolfgift.auth.credentials import CredentialManager
from wolfgift.core.exceptions import (
    FailureKind,
    ProviderError,
    ProviderResponseError,
    PurchaseError,
)
from wolfgift.core.logging import get_logger
from wolfgift.core.types import (
    FORBIDDEN_CATEGORY,
    CalendarPurchase,
    CatalogEntry,
    PurchaseReceipt,
    PurchaseRequest,
    PurchaseState,
    TokenSet,
)
from wolfgift.ledger.ledger import Ledger

from .catalog import Catalog
from .client import CommerceClient

logger = get_logger("wolfgift.commerce.orchestrator")

MAX_AUTH_RETRIES = 1
MAX_FUNDS_FAILOVERS = 1

# Provider error codes that mean the acting account cannot pay.
INSUFFICIENT_FUNDS_CODES = frozenset(
    {"INSUFFICIENT_GEMS", "NOT_ENOUGH_GEMS", "INSUFFICIENT_FUNDS", "NOT_ENOUGH_CURRENCY"}
)


def is_insufficient_funds(error: ProviderResponseError) -> bool:
    """
    Whether a vendor error means the account lacks currency.

    A known error code wins; otherwise a 400/403 whose message mentions
    "insufficient" or "gem" counts.
    """
    code = error.provider_code
    if isinstance(code, str) and code.upper() in INSUFFICIENT_FUNDS_CODES:
        return True
    if error.status_code not in (400, 403):
        return False
    text = error.provider_message.lower()
    return "insufficient" in text or "gem" in text


class PurchaseOrchestrator:
    """
    Executes purchases with auth retry and account failover.

    Args:
        store: Account pool (also provides the purchase lock)
        credentials: Freshness guard for the acting account
        client: Vendor commerce client
        ledger: Community ledger gating and recording spend
        catalog: Authoritative cost and category per item
        default_message: Gift message when the request has none
        calendar_item_type: Offer type sent for calendar purchases
    """

    def __init__(
        self,
        store: AccountStore,
        credentials: CredentialManager,
        client: CommerceClient,
        ledger: Ledger,
        catalog: Catalog,
        default_message: str = "Have fun!",
        calendar_item_type: str = "CALENDAR_LEGACY",
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.client = client
        self.ledger = ledger
        self.catalog = catalog
        self.default_message = default_message
        self.calendar_item_type = calendar_item_type
        # States visited by the latest purchase
        self.states: list[PurchaseState] = []

    async def purchase(self, request: PurchaseRequest, user_id: str) -> PurchaseReceipt:
        """
        Buy ``request`` on behalf of ledger user ``user_id``.

        Raises:
            PurchaseError: with ``kind`` set to the failure classification
        """
        async with self.store.lock:
            self.states = []
            try:
                receipt = await self._run(request, str(user_id))
            except PurchaseError as e:
                self._enter(PurchaseState.FAILED)
                self._log_failure(request, str(user_id), e)
                raise
            except Exception as e:
                error = PurchaseError(
                    FailureKind.PROVIDER_ERROR,
                    str(e) or type(e).__name__,
                    account=self.store.current_name,
                    cause=e,
                )
                self._enter(PurchaseState.FAILED)
                self._log_failure(request, str(user_id), error)
                raise error from e
            self._enter(PurchaseState.SUCCESS)
            receipt.states = list(self.states)

        logger.info(
            "purchase_succeeded",
            user=str(user_id),
            item=request.key,
            cost=receipt.cost,
            account=receipt.account,
            remote_currency=receipt.remote_currency,
            authoritative=receipt.authoritative,
            attempts=receipt.attempts,
            switched_from=receipt.switched_from,
        )
        return receipt

    def _log_failure(self, request: PurchaseRequest, user_id: str, error: PurchaseError) -> None:
        logger.error(
            "purchase_failed",
            user=user_id,
            item=request.key,
            cost=request.cost,
            account=error.account or self.store.current_name,
            kind=error.kind.value,
            reason=error.message,
        )

    # =========================================================================
    # State machine
    # =========================================================================

    def _enter(self, state: PurchaseState) -> None:
        self.states.append(state)
        logger.debug("purchase_state", state=state.value, account=self.store.current_name)

    async def _run(self, request: PurchaseRequest, user_id: str) -> PurchaseReceipt:
        self._enter(PurchaseState.VALIDATING)
        entry = self._validate(request, user_id)
        cost = entry.cost
        origin = self.store.current_name

        self._enter(PurchaseState.CREDENTIAL_CHECK)
        await self._check_credentials()

        # Switch before spending a call on a short account.
        self._enter(PurchaseState.PROACTIVE_FAILOVER_CHECK)
        if self.store.current.cached_currency < cost:
            await self._fail_over(cost, "proactive_insufficient_funds")

        auth_retries = 0
        failovers = 0
        attempts = 0
        while True:
            attempts += 1
            account = self.store.current
            self._enter(PurchaseState.EXECUTING)
            try:
                response = await self._execute(request, account.tokens)
                break
            except ProviderResponseError as e:
                if is_insufficient_funds(e):
                    if failovers >= MAX_FUNDS_FAILOVERS:
                        raise self._error(
                            FailureKind.INSUFFICIENT_FUNDS_ALL_ACCOUNTS,
                            "Insufficient gems on all accounts",
                            e,
                        ) from e
                    self._enter(PurchaseState.FUNDS_FAILOVER_RETRY)
                    failovers += 1
                    logger.warning(
                        "purchase_insufficient_funds", account=account.name, cost=cost
                    )
                    await self._fail_over(cost, "insufficient_funds")
                    continue

                if e.is_auth_failure:
                    if auth_retries >= MAX_AUTH_RETRIES:
                        raise self._error(FailureKind.AUTH_REJECTED, e.message, e) from e
                    self._enter(PurchaseState.AUTH_RETRY)
                    auth_retries += 1
                    logger.warning(
                        "purchase_auth_rejected",
                        account=account.name,
                        status_code=e.status_code,
                    )
                    if not await self.credentials.ensure_fresh(force=True):
                        raise self._error(FailureKind.AUTH_REJECTED, e.message, e) from e
                    continue

                raise self._error(FailureKind.PROVIDER_ERROR, e.message, e) from e
            except ProviderError as e:
                raise self._error(FailureKind.PROVIDER_ERROR, e.message, e) from e

        return self._settle(response, account.name, cost, user_id, attempts, origin)

    def _validate(self, request: PurchaseRequest, user_id: str) -> CatalogEntry:
        if request.category == FORBIDDEN_CATEGORY:
            raise self._error(FailureKind.CATEGORY_FORBIDDEN, "XP boosters cannot be gifted")

        entry = self.catalog.resolve(request)
        if entry is None:
            raise self._error(FailureKind.UNKNOWN_ITEM, f"Unknown item '{request.key}'")
        if entry.forbidden:
            raise self._error(FailureKind.CATEGORY_FORBIDDEN, "XP boosters cannot be gifted")

        balance = self.ledger.balance(user_id)
        if balance < entry.cost:
            raise self._error(
                FailureKind.INSUFFICIENT_BALANCE,
                f"Balance {balance} is below the item cost {entry.cost}",
            )
        return entry

    async def _check_credentials(self) -> None:
        if not await self.credentials.ensure_fresh():
            raise self._error(
                FailureKind.AUTH_UNAVAILABLE,
                f"Could not refresh credentials for '{self.store.current_name}'",
            )
        logger.debug("credentials_ready", account=self.store.current_name)

    async def _fail_over(self, cost: int, reason: str) -> None:
        candidate = self.store.find_failover_candidate(cost)
        if candidate is None:
            raise self._error(
                FailureKind.INSUFFICIENT_FUNDS_ALL_ACCOUNTS,
                f"No account holds the {cost} gems this purchase needs",
            )
        self.store.switch_to(candidate, reason=reason)
        await self._check_credentials()

    async def _execute(self, request: PurchaseRequest, tokens: TokenSet) -> dict:
        message = request.message or self.default_message
        if isinstance(request, CalendarPurchase):
            return await self.client.purchase(
                tokens,
                self.calendar_item_type,
                request.recipient_id,
                message,
                calendar_id=request.calendar_id,
            )
        return await self.client.purchase(tokens, request.item_type, request.recipient_id, message)

    def _settle(
        self,
        response: dict,
        account: str,
        cost: int,
        user_id: str,
        attempts: int,
        origin: str,
    ) -> PurchaseReceipt:
        remote = response.get("gemCount")
        authoritative = isinstance(remote, int) and not isinstance(remote, bool)
        if authoritative:
            remote_currency = self.store.set_cached_currency(account, remote)
        else:
            remote_currency = self.store.deduct_cached_currency(account, cost)

        user_balance = self.ledger.debit(user_id, cost)
        pool_total = self.ledger.debit_pool(cost)
        self.ledger.record_spend(cost)

        return PurchaseReceipt(
            account=account,
            cost=cost,
            remote_currency=remote_currency,
            authoritative=authoritative,
            user_balance=user_balance,
            pool_total=pool_total,
            attempts=attempts,
            switched_from=origin if origin != account else None,
            response=response,
        )

    def _error(
        self,
        kind: FailureKind,
        message: str,
        cause: ProviderError | None = None,
    ) -> PurchaseError:
        status = cause.status_code if isinstance(cause, ProviderResponseError) else None
        return PurchaseError(
            kind,
            message,
            account=self.store.current_name,
            status_code=status,
            cause=cause,
        )

    # =========================================================================
    # Player lookup
    # =========================================================================

    async def lookup_player(self, username: str) -> dict | None:
        """
        Search the vendor for ``username``.

        A 401/403 forces one credential refresh and one retry. Runs under the
        store lock, like purchases.

        Raises:
            PurchaseError: AuthUnavailable, AuthRejected or ProviderError
        """
        async with self.store.lock:
            return await self._lookup(username)

    async def _lookup(self, username: str) -> dict | None:
        await self._check_credentials()

        for attempt in range(1, MAX_AUTH_RETRIES + 2):
            try:
                player = await self.client.search_player(self.store.active_tokens, username)
            except ProviderResponseError as e:
                if e.is_auth_failure and attempt <= MAX_AUTH_RETRIES:
                    logger.warning("lookup_auth_rejected", username=username, attempt=attempt)
                    if await self.credentials.ensure_fresh(force=True):
                        continue
                kind = FailureKind.AUTH_REJECTED if e.is_auth_failure else FailureKind.PROVIDER_ERROR
                raise self._error(kind, e.message, e) from e
            except ProviderError as e:
                raise self._error(FailureKind.PROVIDER_ERROR, e.message, e) from e

            logger.info("player_lookup", username=username, found=player is not None)
            return player

        return None


__all__ = [
    "PurchaseOrchestrator",
    "is_insufficient_funds",
    "INSUFFICIENT_FUNDS_CODES",
    "MAX_AUTH_RETRIES",
    "MAX_FUNDS_FAILOVERS",
]
