"""Tests for the balance history views."""

from conftest import make_account, utc
from finance_ledger.models.account import AccountCategory, AccountType
from finance_ledger.models.history import AccountsMergedEntry, BalanceUpdateEntry
from finance_ledger.queries import HistoryViews


def update(account, balance, balance_date, timestamp=None) -> BalanceUpdateEntry:
    return BalanceUpdateEntry(
        account_id=account.id,
        account_name=account.name,
        new_balance=balance,
        balance_date=balance_date,
        timestamp=timestamp or balance_date,
    )


class TestHistoryViews:
    """Timelines ordered by balance date."""

    def setup_method(self):
        self.checking = make_account("Checking", AccountType.CHECKING, account_id="chk")
        self.brokerage = make_account("Brokerage", AccountType.STOCKS, account_id="brk")
        self.visa = make_account("Visa", AccountType.CREDIT_CARD, account_id="visa")
        self.accounts = [self.checking, self.brokerage, self.visa]

    def test_account_history_ordered_by_balance_date(self):
        """A backdated entry sorts before newer balances."""
        updates = [
            update(self.checking, 200, utc(2024, 3, 1)),
            update(self.checking, 100, utc(2024, 1, 1), timestamp=utc(2024, 4, 1)),
        ]
        points = HistoryViews(self.accounts, updates).account_balance_history("chk")
        assert [p.balance for p in points] == [100, 200]
        assert points[0].balance_date == utc(2024, 1, 1)

    def test_net_worth_carries_balances_forward(self):
        """Accounts not updated on a day keep their last balance."""
        updates = [
            update(self.checking, 1_000, utc(2024, 1, 1)),
            update(self.brokerage, 5_000, utc(2024, 1, 2)),
            update(self.visa, 500, utc(2024, 1, 3)),
            update(self.checking, 1_200, utc(2024, 1, 4, 15)),
        ]
        points = HistoryViews(self.accounts, updates).net_worth_history()
        assert [p.net_worth for p in points] == [1_000, 6_000, 5_500, 5_700]
        assert points[-1].total_assets == 6_200
        assert points[-1].total_liabilities == 500
        assert points[-1].balance_date == utc(2024, 1, 4)

    def test_same_day_updates_collapse(self):
        """The last update of a day wins for that day."""
        updates = [
            update(self.checking, 1_000, utc(2024, 1, 1, 8)),
            update(self.checking, 900, utc(2024, 1, 1, 20)),
        ]
        points = HistoryViews(self.accounts, updates).net_worth_history()
        assert len(points) == 1
        assert points[0].net_worth == 900

    def test_net_worth_range(self):
        """Start and end bound the emitted days."""
        updates = [update(self.checking, day * 100, utc(2024, 1, day)) for day in range(1, 6)]
        points = HistoryViews(self.accounts, updates).net_worth_history(utc(2024, 1, 2), utc(2024, 1, 4))
        assert [p.net_worth for p in points] == [200, 300, 400]

    def test_deleted_accounts_are_ignored(self):
        """Entries for accounts that no longer exist do not count."""
        gone = make_account("Closed", AccountType.SAVINGS, account_id="gone")
        updates = [
            update(gone, 9_999, utc(2024, 1, 1)),
            update(self.checking, 10, utc(2024, 1, 2)),
        ]
        points = HistoryViews(self.accounts, updates).net_worth_history()
        assert [p.net_worth for p in points] == [10]

    def test_history_by_category(self):
        """Per-day totals for every category."""
        updates = [
            update(self.checking, 1_000, utc(2024, 1, 1)),
            update(self.brokerage, 5_000, utc(2024, 1, 2)),
        ]
        points = HistoryViews(self.accounts, updates).history_by_category()
        assert len(points) == 2
        assert points[1].totals[AccountCategory.CASH] == 1_000
        assert points[1].totals[AccountCategory.INVESTMENTS] == 5_000
        assert points[1].totals[AccountCategory.RETIREMENT] == 0
        assert set(points[0].totals) == set(AccountCategory)

    def test_empty(self):
        """No balance updates, no points."""
        views = HistoryViews(self.accounts, [])
        assert views.net_worth_history() == []
        assert views.history_by_category() == []
        assert views.account_balance_history("chk") == []


class TestMergedHistory:
    """Views over balances moved by a merge and copied back by an unmerge."""

    def setup_method(self):
        self.checking = make_account("Checking", AccountType.CHECKING, account_id="chk")
        # "Old Checking" (id "old") was merged into "chk" on Jan 3rd
        self.moved = BalanceUpdateEntry(
            account_id="chk",
            account_name="Checking",
            original_account_id="old",
            original_account_name="Old Checking",
            transferred_to_account="chk",
            new_balance=1_000,
            balance_date=utc(2024, 1, 1),
            timestamp=utc(2024, 1, 1),
        )
        self.merge = AccountsMergedEntry(
            surviving_account_id="chk",
            surviving_account_name="Checking",
            merged_account_ids=["old"],
            merged_account_names=["Old Checking"],
            timestamp=utc(2024, 1, 3, 12),
        )
        self.updates = [
            self.moved,
            update(self.checking, 5_000, utc(2024, 1, 2)),
            update(self.checking, 5_100, utc(2024, 1, 4)),
        ]

    def test_merged_balance_counts_until_merge(self):
        """Before the merge both balances count; afterwards only the survivor's."""
        views = HistoryViews([self.checking], self.updates, [self.merge])
        assert [p.net_worth for p in views.net_worth_history()] == [1_000, 6_000, 5_100]

    def test_survivor_balance_not_overwritten(self):
        """Without the merge record the moved series still stays separate."""
        views = HistoryViews([self.checking], self.updates)
        assert [p.net_worth for p in views.net_worth_history()][:2] == [1_000, 6_000]

    def test_unmerge_resumes_series(self):
        """The recreated account carries the old series on without double counting."""
        recreated = make_account("Old Checking", AccountType.CHECKING, account_id="new")
        copy = self.moved.model_copy(update={
            "account_id": "new",
            "account_name": "Old Checking",
            "transferred_to_account": None,
            "restored_from_merge": True,
        })
        opening = BalanceUpdateEntry(
            account_id="new",
            account_name="Old Checking",
            new_balance=1_000,
            balance_date=utc(2024, 1, 5),
            opened_by_unmerge=True,
        )
        views = HistoryViews(
            [self.checking, recreated],
            self.updates + [copy, opening],
            [self.merge],
        )
        assert [p.net_worth for p in views.net_worth_history()] == [1_000, 6_000, 5_100, 6_100]
