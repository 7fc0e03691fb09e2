"""
Community Ledger
================

Local currency granted to community members, independent of the vendor's
currency. Tracks:
  - per-user balances
  - the pool total available for gifting
  - spend counters bucketed by day, ISO week and month

Balances and the pool total never go negative: an oversized debit clamps to
zero. Every mutation is persisted immediately through the ``StateSink``
(``balances`` and ``stats`` snapshots).
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from wolfgift.core.logging import get_logger
from wolfgift.storage import BalancesSnapshot, SpendBucket, StateSink

logger = get_logger("wolfgift.ledger")

BALANCES_SNAPSHOT = "balances"
STATS_SNAPSHOT = "stats"

# bucket name -> key naming its period in the stats snapshot
BUCKET_KEYS = {"daily": "date", "weekly": "week", "monthly": "month"}


def period_keys(moment: datetime) -> dict[str, str]:
    """Current period key of each spend bucket."""
    year, week, _ = moment.isocalendar()
    return {
        "daily": moment.strftime("%Y-%m-%d"),
        "weekly": f"{year}-W{week:02d}",
        "monthly": moment.strftime("%Y-%m"),
    }


class Ledger:
    """
    Per-user balances, the pool total and spend statistics.

    Args:
        sink: Snapshot storage
        clock: Returns the current local time; drives bucket rollover
    """

    def __init__(self, sink: StateSink, clock: Callable[[], datetime] = datetime.now) -> None:
        self.sink = sink
        self.clock = clock
        self._users: dict[str, int] = {}
        self._pool_total = 0
        self._buckets: dict[str, SpendBucket] = {}

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> None:
        raw = self.sink.load(BALANCES_SNAPSHOT, None)
        if not isinstance(raw, dict):
            self._users, self._pool_total = {}, 0
            self._save_balances()
        elif "totalGems" not in raw and "total_gems" not in raw:
            # Older snapshots were a bare user -> balance mapping.
            users = raw.get("users") if isinstance(raw.get("users"), dict) else raw
            snapshot = BalancesSnapshot(users=users)
            self._users, self._pool_total = dict(snapshot.users), 0
            self._save_balances()
            logger.info("balances_migrated", users=len(self._users))
        else:
            snapshot = BalancesSnapshot.model_validate(raw)
            self._users, self._pool_total = dict(snapshot.users), snapshot.total_gems

        self._buckets = self._load_buckets(self.sink.load(STATS_SNAPSHOT, None))
        self._roll_over()
        logger.info("ledger_loaded", users=len(self._users), pool_total=self._pool_total)

    def _load_buckets(self, raw: Any) -> dict[str, SpendBucket]:
        buckets = {}
        raw = raw if isinstance(raw, dict) else {}
        for bucket, key in BUCKET_KEYS.items():
            data = raw.get(bucket) if isinstance(raw.get(bucket), dict) else {}
            buckets[bucket] = SpendBucket(
                period=data.get(key),
                gems=data.get("gems", 0),
                transactions=data.get("transactions", 0),
            )
        return buckets

    def _save_balances(self) -> None:
        snapshot = BalancesSnapshot(users=self._users, total_gems=self._pool_total)
        self.sink.save(BALANCES_SNAPSHOT, snapshot.model_dump(by_alias=True))

    def _save_stats(self) -> None:
        self.sink.save(
            STATS_SNAPSHOT,
            {
                bucket: {
                    key: self._buckets[bucket].period,
                    "gems": self._buckets[bucket].gems,
                    "transactions": self._buckets[bucket].transactions,
                }
                for bucket, key in BUCKET_KEYS.items()
            },
        )

    # =========================================================================
    # User balances
    # =========================================================================

    def balance(self, user_id: str) -> int:
        return self._users.get(str(user_id), 0)

    def users(self) -> dict[str, int]:
        return dict(self._users)

    def credit(self, user_id: str, amount: int) -> int:
        return self.set_balance(user_id, self.balance(user_id) + int(amount))

    def debit(self, user_id: str, amount: int) -> int:
        """Subtract ``amount``, clamping at zero."""
        return self.set_balance(user_id, self.balance(user_id) - int(amount))

    def set_balance(self, user_id: str, amount: int) -> int:
        value = max(0, int(amount))
        self._users[str(user_id)] = value
        self._save_balances()
        return value

    # =========================================================================
    # Pool total
    # =========================================================================

    @property
    def pool_total(self) -> int:
        return self._pool_total

    def credit_pool(self, amount: int) -> int:
        return self.set_pool_total(self._pool_total + int(amount))

    def debit_pool(self, amount: int) -> int:
        return self.set_pool_total(self._pool_total - int(amount))

    def set_pool_total(self, amount: int) -> int:
        self._pool_total = max(0, int(amount))
        self._save_balances()
        return self._pool_total

    # =========================================================================
    # Spend statistics
    # =========================================================================

    def _roll_over(self) -> bool:
        changed = False
        for bucket, key in period_keys(self.clock()).items():
            current = self._buckets.get(bucket)
            if current is None or current.period != key:
                self._buckets[bucket] = SpendBucket(period=key)
                changed = True
        if changed:
            self._save_stats()
        return changed

    def record_spend(self, gems: int) -> None:
        """Count one purchase of ``gems`` in every bucket."""
        self._roll_over()
        for bucket in self._buckets.values():
            bucket.gems += int(gems)
            bucket.transactions += 1
        self._save_stats()

    def stats(self) -> dict[str, dict[str, Any]]:
        """The three buckets, rolled over to the current periods."""
        self._roll_over()
        return {
            bucket: {
                "period": self._buckets[bucket].period,
                "gems": self._buckets[bucket].gems,
                "transactions": self._buckets[bucket].transactions,
            }
            for bucket in BUCKET_KEYS
        }


__all__ = ["Ledger", "period_keys", "BUCKET_KEYS", "BALANCES_SNAPSHOT", "STATS_SNAPSHOT"]
