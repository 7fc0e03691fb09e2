"""
wolfgift
========

Credential lifecycle and purchase failover engine for gifting items in a
third-party game economy from a pool of vendor accounts, gated by a
community-owned currency ledger.

Components:
    - CaptchaSolver: paid challenge solving with bounded polling
    - IdentityClient: password sign-in and clearance verification
    - CredentialManager / RefreshScheduler: token freshness on demand and on a timer
    - AccountStore: account pool, current pointer, cached currency
    - PurchaseOrchestrator: purchases with auth retry and account failover
    - Ledger: member balances, pool total, spend statistics

Usage:
    from wolfgift import Engine, ItemPurchase, load_config

    async with Engine.from_config(load_config()) as engine:
        receipt = await engine.orchestrator.purchase(
            ItemPurchase(recipient_id="player-id", item_type="ROSE_V2"), user_id="42"
        )
"""

__version__ = "1.0.0"

from .core import (
    Account,
    CalendarPurchase,
    FailureKind,
    ItemPurchase,
    PurchaseError,
    PurchaseReceipt,
    TokenSet,
    WolfgiftConfig,
    WolfgiftException,
    load_config,
)
from .engine import Engine

__all__ = [
    "__version__",
    "Engine",
    "load_config",
    "WolfgiftConfig",
    "Account",
    "TokenSet",
    "ItemPurchase",
    "CalendarPurchase",
    "PurchaseReceipt",
    "FailureKind",
    "WolfgiftException",
    "PurchaseError",
]
