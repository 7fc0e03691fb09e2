"""
CLI Commands Package
"""

from .accounts import cmd_accounts, cmd_tokens
from .gifts import cmd_catalog, cmd_gift, cmd_lookup
from .ledger import cmd_balance, cmd_pool, cmd_stats

__all__ = [
    "cmd_accounts",
    "cmd_tokens",
    "cmd_balance",
    "cmd_pool",
    "cmd_stats",
    "cmd_lookup",
    "cmd_gift",
    "cmd_catalog",
]
