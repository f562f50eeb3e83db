"""Tests for statement ingestion and account matching."""

import pytest

from conftest import make_account, utc
from finance_ledger.exceptions import InvalidInputError
from finance_ledger.ledger import AccountRegistry, HistoryLedger
from finance_ledger.models.account import AccountType
from finance_ledger.models.history import AccountCreatedEntry, BalanceUpdateEntry
from finance_ledger.services.ocr import (
    AccountIngestor,
    AccountMatcher,
    ParsedAccount,
    normalize_name,
    parse_amount,
)


class TestParsing:
    """Amount and name cleanup."""

    @pytest.mark.parametrize("text,expected", [
        ("$1,234.56", 1234.56),
        ("1234", 1234.0),
        ("(1,234.50)", -1234.5),
        ("-42.10", -42.1),
        ("500.00 DR", -500.0),
        ("500.00 CR", 500.0),
        ("  $ 7 ", 7.0),
    ])
    def test_parse_amount(self, text, expected):
        """Currency symbols, separators and debit markers are handled."""
        assert parse_amount(text) == pytest.approx(expected)

    def test_parse_amount_rejects_empty(self):
        """Text without digits is not an amount."""
        with pytest.raises(ValueError):
            parse_amount("N/A")

    def test_parsed_account_accepts_text_balance(self):
        """Balances straight from OCR text are parsed."""
        item = ParsedAccount(name=" Chase Checking ", balance="$2,500.00", category="cash")
        assert item.name == "Chase Checking"
        assert item.balance == 2500.0

    def test_normalize_name(self):
        """Punctuation becomes spaces; whitespace collapses."""
        assert normalize_name("CHASE  Chk.-1234") == "chase chk 1234"


class TestMatching:
    """Tiered name matching."""

    def test_exact_beats_contains(self):
        """An exact match later in the list beats an earlier containment match."""
        broad = make_account("Chase Checking Plus", account_id="broad")
        exact = make_account("Chase Checking", account_id="exact")
        assert AccountMatcher([broad, exact]).match("chase checking").id == "exact"

    def test_contains(self):
        """Either name may contain the other."""
        account = make_account("Fidelity 401k", account_id="f")
        matcher = AccountMatcher([account])
        assert matcher.match("Fidelity 401k - Rollover").id == "f"
        assert matcher.match("fidelity").id == "f"

    def test_normalized(self):
        """Punctuation differences still match."""
        account = make_account("Amex Blue-Cash", account_id="amex")
        assert AccountMatcher([account]).match("AMEX BLUE CASH").id == "amex"

    def test_previous_names(self):
        """A name absorbed by a merge still matches."""
        account = make_account("Savings", account_id="s")
        account.previous_names = ["Ally High Yield"]
        assert AccountMatcher([account]).match("ally high yield").id == "s"

    def test_display_name_not_matched(self):
        """Display overrides are labels only."""
        account = make_account("ACCT 0001", account_id="a")
        account.display_name = "Emergency Fund"
        assert AccountMatcher([account]).match("Emergency Fund") is None

    def test_no_match(self):
        """Unrelated names match nothing."""
        assert AccountMatcher([make_account("Checking")]).match("Vanguard") is None


class TestIngestor:
    """Applying parsed lines to the registry and ledger."""

    def _setup(self, accounts=()):
        registry = AccountRegistry([])
        registry._accounts.extend(accounts)
        ledger = HistoryLedger([])
        return registry, ledger

    def test_updates_matched_account(self):
        """A newer statement updates the balance and logs history."""
        account = make_account("Chase Checking", value=100, account_id="c", updated_at=utc(2024, 1, 1))
        registry, ledger = self._setup([account])

        result = AccountIngestor(registry, ledger).ingest(
            [{"name": "CHASE CHECKING", "balance": "$250.00", "category": "cash"}],
            as_of=utc(2024, 2, 1),
        )

        assert [a.id for a in result.updated_accounts] == ["c"]
        assert registry.get("c").current_value == 250.0
        assert registry.get("c").balance_as_of == utc(2024, 2, 1)
        assert result.history_entries_added == 1
        entry = ledger.balance_updates("c")[0]
        assert entry.old_balance == 100
        assert entry.new_balance == 250

    def test_stale_statement_only_logs_history(self):
        """An older statement keeps the newer balance but is still recorded."""
        account = make_account("Chase Checking", value=100, account_id="c", updated_at=utc(2024, 5, 1))
        registry, ledger = self._setup([account])

        result = AccountIngestor(registry, ledger).ingest(
            [ParsedAccount(name="Chase Checking", balance=80, category="cash")],
            as_of=utc(2024, 2, 1),
        )

        assert result.stale_account_ids == ["c"]
        assert result.updated_accounts == []
        assert registry.get("c").current_value == 100
        assert len(ledger.balance_updates("c")) == 1

    def test_creates_unmatched_account(self):
        """Unmatched lines create an account of the mapped type."""
        registry, ledger = self._setup()
        result = AccountIngestor(registry, ledger).ingest(
            [{"name": "Vanguard Brokerage", "balance": 12_000, "category": "Investments"}],
            as_of=utc(2024, 2, 1),
        )

        created = result.created_accounts[0]
        assert created.type == AccountType.STOCKS
        assert created.current_value == 12_000
        assert created.id
        assert len(registry) == 1
        assert result.history_entries_added == 2
        assert any(isinstance(e, AccountCreatedEntry) for e in ledger)
        assert any(isinstance(e, BalanceUpdateEntry) for e in ledger)

    def test_custom_category_map(self):
        """Caller maps override the defaults."""
        registry, ledger = self._setup()
        result = AccountIngestor(registry, ledger, {"brokerage": "etf"}).ingest(
            [{"name": "Robinhood", "balance": 10, "category": "brokerage"}],
            as_of=utc(2024, 2, 1),
        )
        assert result.created_accounts[0].type == AccountType.ETF

    def test_invalid_category_map(self):
        """Unknown account types in the map are rejected."""
        registry, ledger = self._setup()
        with pytest.raises(InvalidInputError):
            AccountIngestor(registry, ledger, {"cash": "piggy_bank"})

    def test_unknown_category_skipped(self):
        """Lines with an unmapped category are skipped with a reason."""
        registry, ledger = self._setup()
        result = AccountIngestor(registry, ledger).ingest(
            [{"name": "Mystery", "balance": 1, "category": "crypto"}],
            as_of=utc(2024, 2, 1),
        )
        assert result.created_accounts == []
        assert result.skipped[0]["reason"] == "No account type mapped for category"

    def test_unreadable_line_skipped(self):
        """Lines that fail to parse do not stop the batch."""
        registry, ledger = self._setup()
        result = AccountIngestor(registry, ledger).ingest(
            [
                {"name": "Broken", "balance": "N/A", "category": "cash"},
                {"name": "Checking", "balance": "10", "category": "cash"},
            ],
            as_of=utc(2024, 2, 1),
        )
        assert len(result.skipped) == 1
        assert result.skipped[0]["reason"].startswith("Unreadable line")
        assert len(result.created_accounts) == 1

    def test_same_batch_duplicates_reuse_created_account(self):
        """A second line for a just-created account matches it instead of duplicating."""
        registry, ledger = self._setup()
        result = AccountIngestor(registry, ledger).ingest(
            [
                {"name": "Ally Savings", "balance": 10, "category": "cash"},
                {"name": "ALLY SAVINGS", "balance": 20, "category": "cash"},
            ],
            as_of=utc(2024, 2, 1),
        )
        assert len(registry) == 1
        assert len(result.created_accounts) == 1
        assert len(ledger.balance_updates()) == 2
        assert registry.get(result.created_accounts[0].id).current_value == 20

    def test_statements_in_date_order_apply(self):
        """Each newer statement replaces the balance it dated, whenever it is imported."""
        registry, ledger = self._setup()
        ingestor = AccountIngestor(registry, ledger)
        line = {"name": "Ally Savings", "category": "cash"}

        first = ingestor.ingest([{**line, "balance": 100}], as_of=utc(2024, 1, 31))
        second = ingestor.ingest([{**line, "balance": 200}], as_of=utc(2024, 2, 29))

        account = registry.get(first.created_accounts[0].id)
        assert second.stale_account_ids == []
        assert [a.id for a in second.updated_accounts] == [account.id]
        assert account.current_value == 200
        assert account.balance_as_of == utc(2024, 2, 29)

    def test_older_than_dated_balance_is_stale(self):
        """The dated balance, not the last edit, decides what is older."""
        account = make_account("Chase Checking", value=100, account_id="c", updated_at=utc(2024, 1, 1))
        account.balance_as_of = utc(2024, 3, 1)
        registry, ledger = self._setup([account])

        result = AccountIngestor(registry, ledger).ingest(
            [{"name": "Chase Checking", "balance": 80, "category": "cash"}],
            as_of=utc(2024, 2, 1),
        )

        assert result.stale_account_ids == ["c"]
        assert registry.get("c").current_value == 100

    def test_same_day_statement_applies_to_undated_account(self):
        """An account edited later the same day still takes that day's statement."""
        account = make_account("Chase Checking", value=100, account_id="c", updated_at=utc(2024, 2, 1, 15))
        registry, ledger = self._setup([account])

        result = AccountIngestor(registry, ledger).ingest(
            [{"name": "Chase Checking", "balance": 250, "category": "cash"}],
            as_of=utc(2024, 2, 1),
        )

        assert result.stale_account_ids == []
        assert registry.get("c").current_value == 250
