"""
wolfgift Commerce Module

- Catalog: gift and calendar lookup
- CommerceClient: vendor purchase and player search endpoints
- PurchaseOrchestrator: purchase state machine with retry and failover
"""

from .catalog import Catalog
from .client import CommerceClient
from .orchestrator import PurchaseOrchestrator, is_insufficient_funds

__all__ = ["Catalog", "CommerceClient", "PurchaseOrchestrator", "is_insufficient_funds"]
