"""
Snapshot schemas.

Field aliases keep the on-disk shape of the bot's historical files
(``accounts.json``, ``balances.json``, ``stats.json``, ``gifts.json``,
``calendars.json``) so existing data loads unchanged.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_if_none(value: Any) -> Any:
    return "" if value is None else value


def _non_negative(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


# =============================================================================
# Accounts
# =============================================================================


class AccountRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: str = ""
    password: str = ""
    id_token: str = Field(default="", alias="idToken")
    refresh_token: str = Field(default="", alias="refreshToken")
    cf_jwt: str = Field(default="", alias="cfJwt")
    gem_count: int = Field(default=0, alias="gemCount")

    blank_to_empty = field_validator(
        "email", "password", "id_token", "refresh_token", "cf_jwt", mode="before"
    )(_blank_if_none)
    clamp_gems = field_validator("gem_count", mode="before")(_non_negative)


class AccountsSnapshot(BaseModel):
    current: str = "main"
    accounts: dict[str, AccountRecord] = Field(default_factory=dict)


# =============================================================================
# Ledger
# =============================================================================


class BalancesSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    users: dict[str, int] = Field(default_factory=dict)
    total_gems: int = Field(default=0, alias="totalGems")

    clamp_total = field_validator("total_gems", mode="before")(_non_negative)

    @field_validator("users", mode="before")
    @classmethod
    def clamp_users(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return {}
        return {str(k): _non_negative(v) for k, v in value.items()}


class SpendBucket(BaseModel):
    period: str = ""
    gems: int = 0
    transactions: int = 0

    @field_validator("period", mode="before")
    @classmethod
    def period_as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


# =============================================================================
# Catalog
# =============================================================================


class GiftItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    cost: int = 0
    category: str = ""
    enabled: bool = True


class CalendarItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    cost: int = 0
    enabled: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, value: Any) -> str:
        return str(value)


__all__ = [
    "AccountRecord",
    "AccountsSnapshot",
    "BalancesSnapshot",
    "SpendBucket",
    "GiftItem",
    "CalendarItem",
]
