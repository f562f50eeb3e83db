"""
History Ledger

Bounded, append-only event log. Entries are kept in `timestamp` order and
the oldest are evicted after every append once the cap is exceeded, so the
size invariant holds no matter who appends.
"""

from datetime import datetime
from typing import Iterator, Optional

from finance_ledger.models.history import (
    AccountCreatedEntry,
    AccountsMergedEntry,
    BalanceUpdateEntry,
    HistoryEntry,
)

DEFAULT_MAX_ENTRIES = 1000


class HistoryLedger:

    def __init__(self, entries: list[HistoryEntry], max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries = entries
        self._max_entries = max_entries
        self.evicted_count = 0

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        """
        Add an entry, then evict the oldest entries beyond the cap.

        Entries carrying an explicit older timestamp (restored copies) are
        placed in timestamp order; an entry older than everything in a full
        ledger is evicted straight away.
        """
        index = len(self._entries)
        while index > 0 and self._entries[index - 1].timestamp > entry.timestamp:
            index -= 1
        self._entries.insert(index, entry)

        overflow = len(self._entries) - self._max_entries
        if overflow > 0:
            del self._entries[:overflow]
            self.evicted_count += overflow
        return entry

    def query(
        self,
        account_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[HistoryEntry]:
        """Filter by account ID and an inclusive `timestamp` range."""
        results = []
        for entry in self._entries:
            if account_id is not None and getattr(entry, "account_id", None) != account_id:
                continue
            if start is not None and entry.timestamp < start:
                continue
            if end is not None and entry.timestamp > end:
                continue
            results.append(entry)
        return results

    def account_entries(self) -> list:
        """Entries that belong to a single account (and move on merge)."""
        return [
            e for e in self._entries
            if isinstance(e, (BalanceUpdateEntry, AccountCreatedEntry))
        ]

    def balance_updates(self, account_id: Optional[str] = None) -> list[BalanceUpdateEntry]:
        return [
            e for e in self._entries
            if isinstance(e, BalanceUpdateEntry)
            and (account_id is None or e.account_id == account_id)
        ]

    def latest_merge_for(self, account_id: str) -> Optional[AccountsMergedEntry]:
        """Most recent merge audit entry naming `account_id` as survivor."""
        latest = None
        for entry in self._entries:
            if (
                isinstance(entry, AccountsMergedEntry)
                and entry.surviving_account_id == account_id
                and (latest is None or entry.timestamp >= latest.timestamp)
            ):
                latest = entry
        return latest
