"""
wolfgift Ledger Module
"""

from .ledger import Ledger, period_keys

__all__ = ["Ledger", "period_keys"]
