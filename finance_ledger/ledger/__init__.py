"""Ledger core: account registry, history ledger, merge/unmerge."""

from finance_ledger.ledger.consolidation import ConsolidationEngine
from finance_ledger.ledger.history import DEFAULT_MAX_ENTRIES, HistoryLedger
from finance_ledger.ledger.registry import AccountRegistry

__all__ = [
    "AccountRegistry",
    "ConsolidationEngine",
    "DEFAULT_MAX_ENTRIES",
    "HistoryLedger",
]
