"""
Account Pool Store
==================

Owns the pool of vendor accounts, the current-account pointer and each
account's cached currency. Every mutation persists the full pool snapshot
through the injected ``StateSink`` under the ``accounts`` name.

Invariants:
  - ``current`` always names an account in the pool
  - ``main`` can never be removed; neither can the current account
  - cached currency is clamped to >= 0 on every update

Usage:
  store = AccountStore(JSONStore("data"), seed=Account("main", email, password))
  store.load()
  store.add("alt", "alt@example.com", "secret")
  name = store.find_failover_candidate(cost=300)
  if name:
      store.switch_to(name, reason="insufficient_funds")
"""

import asyncio
from typing import Any

from wolfgift.core.exceptions import (
    AccountExistsError,
    AccountNotFoundError,
    InvariantViolationError,
)
from wolfgift.core.logging import get_logger
from wolfgift.core.types import Account, TokenSet
from wolfgift.storage import AccountRecord, AccountsSnapshot, StateSink

logger = get_logger("wolfgift.accounts.store")

MAIN_ACCOUNT = "main"
SNAPSHOT_NAME = "accounts"


class AccountStore:
    """
    Ordered pool of accounts plus the current pointer.

    ``lock`` serializes whole purchase flows and scheduled refreshes against
    each other; the store's own methods are synchronous and do not take it.
    """

    def __init__(self, sink: StateSink, seed: Account | None = None) -> None:
        self.sink = sink
        self.seed = seed or Account(MAIN_ACCOUNT)
        self._accounts: dict[str, Account] = {}
        self._current = MAIN_ACCOUNT
        self.lock = asyncio.Lock()

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> None:
        """Load the pool snapshot, seeding ``main`` when there is none."""
        raw = self.sink.load(SNAPSHOT_NAME, None)
        needs_save = False

        if not isinstance(raw, dict):
            self._accounts = {MAIN_ACCOUNT: self._seed_account()}
            self._current = MAIN_ACCOUNT
            self.save()
            logger.info("accounts_initialised", accounts=[MAIN_ACCOUNT])
            return

        records = raw.get("accounts")
        if isinstance(records, dict):
            needs_save = any(
                isinstance(r, dict) and "gemCount" not in r for r in records.values()
            )

        snapshot = AccountsSnapshot.model_validate(raw)
        self._accounts = {
            name: self._from_record(name, record) for name, record in snapshot.accounts.items()
        }

        if MAIN_ACCOUNT not in self._accounts:
            self._accounts = {MAIN_ACCOUNT: self._seed_account(), **self._accounts}
            needs_save = True

        self._current = snapshot.current
        if self._current not in self._accounts:
            logger.warning("current_account_missing", current=self._current)
            self._current = MAIN_ACCOUNT
            needs_save = True

        if needs_save:
            self.save()

        logger.info("accounts_loaded", accounts=list(self._accounts), current=self._current)

    def save(self) -> bool:
        snapshot = AccountsSnapshot(
            current=self._current,
            accounts={name: self._to_record(acc) for name, acc in self._accounts.items()},
        )
        return self.sink.save(SNAPSHOT_NAME, snapshot.model_dump(by_alias=True))

    def _seed_account(self) -> Account:
        return Account(
            name=MAIN_ACCOUNT,
            email=self.seed.email,
            password=self.seed.password,
            tokens=self.seed.tokens.copy(),
            cached_currency=self.seed.cached_currency,
        )

    @staticmethod
    def _from_record(name: str, record: AccountRecord) -> Account:
        return Account(
            name=name,
            email=record.email,
            password=record.password,
            tokens=TokenSet(record.id_token, record.refresh_token, record.cf_jwt),
            cached_currency=record.gem_count,
        )

    @staticmethod
    def _to_record(account: Account) -> AccountRecord:
        return AccountRecord(
            email=account.email,
            password=account.password,
            id_token=account.tokens.identity_token,
            refresh_token=account.tokens.refresh_token,
            cf_jwt=account.tokens.clearance_token,
            gem_count=account.cached_currency,
        )

    # =========================================================================
    # Lookup
    # =========================================================================

    @property
    def current_name(self) -> str:
        return self._current

    @property
    def current(self) -> Account:
        if not self._accounts:
            self.load()
        return self._accounts[self._current]

    @property
    def active_tokens(self) -> TokenSet:
        """Credentials the next authenticated call should use."""
        return self.current.tokens

    def get(self, name: str) -> Account:
        try:
            return self._accounts[name]
        except KeyError:
            raise AccountNotFoundError(name, available=list(self._accounts)) from None

    def __contains__(self, name: object) -> bool:
        return name in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)

    def list_accounts(self) -> list[dict[str, Any]]:
        """Summaries in insertion order, secrets omitted."""
        return [acc.to_summary(name == self._current) for name, acc in self._accounts.items()]

    def find_failover_candidate(self, cost: int, excluding: str | None = None) -> str | None:
        """
        First account in insertion order, other than ``excluding`` (default:
        the current account), whose cached currency covers ``cost``.
        """
        skip = self._current if excluding is None else excluding
        for name, account in self._accounts.items():
            if name == skip:
                continue
            if account.cached_currency >= cost:
                return name
        return None

    # =========================================================================
    # Mutation
    # =========================================================================

    def switch_to(self, name: str, reason: str = "manual") -> Account:
        """Make ``name`` the current account."""
        target = self.get(name)
        previous = self._current
        if name == previous:
            return target

        # Outgoing tokens hit disk before the pointer moves.
        self.save()
        self._current = name
        self.save()

        logger.info("account_switched", from_account=previous, to_account=name, reason=reason)
        return target

    def add(self, name: str, email: str, password: str) -> Account:
        name = name.strip()
        if not name:
            raise InvariantViolationError("Account name must not be empty")
        if name in self._accounts:
            raise AccountExistsError(name)

        account = Account(name=name, email=email, password=password)
        self._accounts[name] = account
        self.save()
        logger.info("account_added", account=name)
        return account

    def remove(self, name: str) -> None:
        if name == MAIN_ACCOUNT:
            raise InvariantViolationError("The main account cannot be removed", account=name)
        if name == self._current:
            raise InvariantViolationError(
                "The current account cannot be removed; switch away first", account=name
            )
        self.get(name)

        del self._accounts[name]
        self.save()
        logger.info("account_removed", account=name)

    def update_tokens(self, name: str, tokens: TokenSet) -> None:
        account = self.get(name)
        account.tokens = tokens.copy()
        self.save()

    def set_cached_currency(self, name: str, amount: int) -> int:
        account = self.get(name)
        account.cached_currency = max(0, int(amount))
        self.save()
        return account.cached_currency

    def deduct_cached_currency(self, name: str, amount: int) -> int:
        account = self.get(name)
        return self.set_cached_currency(name, account.cached_currency - int(amount))


__all__ = ["AccountStore", "MAIN_ACCOUNT", "SNAPSHOT_NAME"]
