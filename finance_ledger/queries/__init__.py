"""Read-only views over the history ledger."""

from finance_ledger.queries.history_views import HistoryViews

__all__ = ["HistoryViews"]
