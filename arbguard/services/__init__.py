"""
Services module - Cross-cutting capabilities

Contains:
- Durable ledger storage
- Scheduling
"""

from arbguard.services.persistence import (
    LedgerStore,
    SQLiteLedgerStore,
    create_ledger_store,
)
from arbguard.services.scheduler import SchedulerService, create_scheduler_service

__all__ = [
    "LedgerStore",
    "SQLiteLedgerStore",
    "create_ledger_store",
    "SchedulerService",
    "create_scheduler_service",
]
