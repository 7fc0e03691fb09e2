"""
wolfgift Storage Module

- Atomic writes for snapshot integrity
- JSON snapshot store implementing the StateSink contract
- Pydantic schemas for the persisted shapes
"""

from .atomic import atomic_write
from .json_store import JSONStore, StateSink
from .schemas import (
    AccountRecord,
    AccountsSnapshot,
    BalancesSnapshot,
    CalendarItem,
    GiftItem,
    SpendBucket,
)

__all__ = [
    "atomic_write",
    "JSONStore",
    "StateSink",
    "AccountRecord",
    "AccountsSnapshot",
    "BalancesSnapshot",
    "SpendBucket",
    "GiftItem",
    "CalendarItem",
]
