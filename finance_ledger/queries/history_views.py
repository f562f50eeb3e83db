"""
History Views

Read-only projections of the ledger's balance updates.

DESIGN DECISION: Views are ordered by BALANCE DATE, never by the entry
timestamp. A balance entered today for last month belongs to last month.

Net worth and category views emit one point per balance day. Accounts
not updated on that day carry their last known balance forward, and
accounts with no balance yet contribute nothing.

Merged history keeps one series per account it was recorded against.
The merged account's series stops carrying forward once the merge
happened; the survivor's own balance stands for both from then on. An
unmerge picks the series up again under the recreated account.
"""

from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from finance_ledger.models.account import ASSET_CATEGORIES, Account, AccountCategory
from finance_ledger.models.history import (
    AccountsMergedEntry,
    BalancePoint,
    BalanceUpdateEntry,
    CategoryHistoryPoint,
    NetWorthPoint,
)


def _day_start(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


class HistoryViews:
    """
    Builds balance timelines from the accounts and their balance updates.

    Entries for accounts that no longer exist are ignored by the
    aggregate views: without the account there is no category to put
    them in.
    """

    def __init__(
        self,
        accounts: Iterable[Account],
        balance_updates: Iterable[BalanceUpdateEntry],
        merges: Iterable[AccountsMergedEntry] = (),
    ):
        self._accounts = {a.id: a for a in accounts}
        self._updates = sorted(balance_updates, key=lambda e: (e.effective_date, e.timestamp))

        # Original account -> account recreated for it by an unmerge
        self._recreated_as = {
            e.original_account_id: e.account_id
            for e in self._updates
            if e.restored_from_merge and e.original_account_id and e.transferred_to_account is None
        }
        self._merged_at: dict[str, datetime] = {}
        for merge in merges:
            for merged_id in merge.merged_account_ids:
                key = self._series_key(merged_id)
                if key not in self._merged_at or merge.timestamp > self._merged_at[key]:
                    self._merged_at[key] = merge.timestamp

    def _series_key(self, account_id: str) -> str:
        return self._recreated_as.get(account_id, account_id)

    def account_balance_history(self, account_id: str) -> list[BalancePoint]:
        return [
            BalancePoint(
                balance_date=entry.effective_date,
                balance=entry.new_balance,
                account_id=entry.account_id,
                account_name=entry.account_name,
            )
            for entry in self._updates
            if entry.account_id == account_id
        ]

    def _daily_balances(self) -> list[tuple[date, list[tuple[str, float]]]]:
        """(account id, balance) for every live series at the end of each balance day."""
        by_day: dict[date, list[BalanceUpdateEntry]] = defaultdict(list)
        for entry in self._updates:
            if entry.account_id in self._accounts:
                by_day[entry.effective_date.date()].append(entry)

        # series -> (account holding it now, balance, balance date)
        known: dict[str, tuple[str, float, datetime]] = {}
        snapshots = []
        for day in sorted(by_day):
            for entry in by_day[day]:
                key = self._series_key(entry.source_account_id)
                known[key] = (entry.account_id, entry.new_balance, entry.effective_date)
            for key, (_, _, as_of) in list(known.items()):
                merged_at = self._merged_at.get(key)
                if merged_at is not None and merged_at.date() <= day and as_of < merged_at:
                    del known[key]
            snapshots.append((day, [(account_id, balance) for account_id, balance, _ in known.values()]))
        return snapshots

    def _category_totals(self, balances: Iterable[tuple[str, float]]) -> dict[AccountCategory, float]:
        totals = {category: 0.0 for category in AccountCategory}
        for account_id, balance in balances:
            totals[self._accounts[account_id].category] += balance
        return totals

    def net_worth_history(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[NetWorthPoint]:
        points = []
        for day, balances in self._daily_balances():
            stamp = _day_start(day)
            if (start is not None and stamp < start) or (end is not None and stamp > end):
                continue
            totals = self._category_totals(balances)
            assets = sum(totals[c] for c in ASSET_CATEGORIES)
            liabilities = totals[AccountCategory.LIABILITIES]
            points.append(NetWorthPoint(
                balance_date=stamp,
                total_assets=round(assets, 2),
                total_liabilities=round(liabilities, 2),
                net_worth=round(assets - liabilities, 2),
            ))
        return points

    def history_by_category(self) -> list[CategoryHistoryPoint]:
        return [
            CategoryHistoryPoint(
                balance_date=_day_start(day),
                totals={c: round(v, 2) for c, v in self._category_totals(balances).items()},
            )
            for day, balances in self._daily_balances()
        ]
