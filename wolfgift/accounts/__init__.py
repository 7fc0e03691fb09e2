"""
wolfgift Accounts Module
"""

from .store import MAIN_ACCOUNT, AccountStore

__all__ = ["AccountStore", "MAIN_ACCOUNT"]
