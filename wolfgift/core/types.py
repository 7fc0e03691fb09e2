"""
Core Types for wolfgift

Classes:
    - TokenSet: identity, refresh and clearance credentials of one account
    - Account: a game account in the pool
    - ItemPurchase / CalendarPurchase: the two purchase request variants
    - CatalogEntry: resolved catalog data for a request
    - PurchaseReceipt: successful purchase outcome
    - PurchaseState: orchestrator state machine states

Usage:
    from wolfgift.core.types import Account, TokenSet, ItemPurchase

    request = ItemPurchase(item_type="ROSE_V2", recipient_id="p-1", cost=20)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

FORBIDDEN_CATEGORY = "xpbooster"
CALENDAR_CATEGORY = "calendar"


# =============================================================================
# Credentials & Accounts
# =============================================================================


@dataclass
class TokenSet:
    """Authentication material for one account."""

    identity_token: str = ""
    refresh_token: str = ""
    clearance_token: str = ""

    def copy(self) -> "TokenSet":
        return TokenSet(self.identity_token, self.refresh_token, self.clearance_token)


@dataclass
class Account:
    """A vendor account the engine can act as."""

    name: str
    email: str = ""
    password: str = ""
    tokens: TokenSet = field(default_factory=TokenSet)
    cached_currency: int = 0

    def __post_init__(self) -> None:
        self.cached_currency = max(0, int(self.cached_currency or 0))

    def to_summary(self, current: bool = False) -> dict[str, Any]:
        """Log- and UI-safe view (no password, no tokens)."""
        return {
            "name": self.name,
            "email": self.email,
            "gems": self.cached_currency,
            "current": current,
        }


# =============================================================================
# Purchase Requests
# =============================================================================


@dataclass
class _PurchaseBase:
    recipient_id: str
    message: str = ""
    cost: int = 0
    category: str = ""


@dataclass
class ItemPurchase(_PurchaseBase):
    """Gift a catalog item identified by its offer type."""

    item_type: str = ""

    @property
    def key(self) -> str:
        return self.item_type


@dataclass
class CalendarPurchase(_PurchaseBase):
    """Gift a calendar identified by its calendar id."""

    calendar_id: str = ""

    @property
    def key(self) -> str:
        return self.calendar_id


PurchaseRequest = Union[ItemPurchase, CalendarPurchase]


@dataclass
class CatalogEntry:
    """Read-only catalog data for one purchasable thing."""

    key: str
    cost: int
    category: str
    enabled: bool = True
    title: str = ""
    is_calendar: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def forbidden(self) -> bool:
        return self.category == FORBIDDEN_CATEGORY


def request_from_entry(
    entry: CatalogEntry, recipient_id: str, message: str = ""
) -> PurchaseRequest:
    """Build the matching request variant for a catalog entry."""
    if entry.is_calendar:
        return CalendarPurchase(
            recipient_id=recipient_id,
            message=message,
            cost=entry.cost,
            category=entry.category,
            calendar_id=entry.key,
        )
    return ItemPurchase(
        recipient_id=recipient_id,
        message=message,
        cost=entry.cost,
        category=entry.category,
        item_type=entry.key,
    )


# =============================================================================
# Purchase Outcome
# =============================================================================


class PurchaseState(Enum):
    """States of a single purchase attempt."""

    VALIDATING = "validating"
    CREDENTIAL_CHECK = "credential_check"
    PROACTIVE_FAILOVER_CHECK = "proactive_failover_check"
    EXECUTING = "executing"
    AUTH_RETRY = "auth_retry"
    FUNDS_FAILOVER_RETRY = "funds_failover_retry"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class PurchaseReceipt:
    """What a successful purchase leaves behind."""

    account: str
    cost: int
    remote_currency: int
    authoritative: bool
    user_balance: int
    pool_total: int
    attempts: int = 1
    switched_from: str | None = None
    response: dict[str, Any] = field(default_factory=dict)
    states: list[PurchaseState] = field(default_factory=list)


__all__ = [
    "FORBIDDEN_CATEGORY",
    "CALENDAR_CATEGORY",
    "TokenSet",
    "Account",
    "ItemPurchase",
    "CalendarPurchase",
    "PurchaseRequest",
    "CatalogEntry",
    "request_from_entry",
    "PurchaseState",
    "PurchaseReceipt",
]
