"""
wolfgift Core Module
====================

Types:
    - TokenSet, Account
    - ItemPurchase, CalendarPurchase (PurchaseRequest)
    - CatalogEntry, PurchaseReceipt, PurchaseState

Configuration:
    - WolfgiftConfig and its sections
    - load_config

Exceptions:
    - WolfgiftException: Base exception
    - FailureKind: failure classification
    - PurchaseError, AccountError, ProviderError, ConfigurationError
"""

from .config import WolfgiftConfig, load_config
from .exceptions import (
    AccountError,
    AccountExistsError,
    AccountNotFoundError,
    CatalogError,
    ConfigurationError,
    FailureKind,
    InvariantViolationError,
    MissingConfigError,
    ProviderError,
    ProviderNotAvailableError,
    ProviderResponseError,
    PurchaseError,
    WolfgiftException,
)
from .logging import configure_logging, get_logger
from .types import (
    Account,
    CalendarPurchase,
    CatalogEntry,
    ItemPurchase,
    PurchaseReceipt,
    PurchaseRequest,
    PurchaseState,
    TokenSet,
    request_from_entry,
)

__all__ = [
    "WolfgiftConfig",
    "load_config",
    "configure_logging",
    "get_logger",
    "FailureKind",
    "WolfgiftException",
    "ConfigurationError",
    "MissingConfigError",
    "AccountError",
    "AccountNotFoundError",
    "AccountExistsError",
    "InvariantViolationError",
    "ProviderError",
    "ProviderNotAvailableError",
    "ProviderResponseError",
    "PurchaseError",
    "CatalogError",
    "Account",
    "TokenSet",
    "ItemPurchase",
    "CalendarPurchase",
    "PurchaseRequest",
    "CatalogEntry",
    "PurchaseReceipt",
    "PurchaseState",
    "request_from_entry",
]
