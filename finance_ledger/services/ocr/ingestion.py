"""
Statement Ingestion

Entry point for balances read off statements or screenshots by an
external OCR step. The OCR step hands over `{name, balance, category}`
triples; everything text-heuristic (amount parsing, name normalization,
fuzzy matching) stays in this module and never reaches the ledger or
merge logic.

DESIGN DECISION: Matching is TIERED. Every account is tried against the
strictest rule before any account is tried against a looser one, so an
exact match always beats a containment match elsewhere in the list:

1. exact (case-insensitive) match on name or a previous name
2. one name contains the other (case-insensitive)
3. punctuation-normalized equality or containment

Display names are user labels and are never matched.

IMPORTANT: A matched account always gets a history entry, but its
current balance only changes when the statement's as-of date is not
older than the date of the balance it would replace (`balance_as_of`).
Accounts without a dated balance compare by calendar day against their
last edit, so a statement dated today applies to an account saved today.
"""

import re
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from finance_ledger.exceptions import InvalidInputError
from finance_ledger.ledger.history import HistoryLedger
from finance_ledger.ledger.registry import AccountRegistry
from finance_ledger.models.account import Account, AccountType, as_utc_datetime
from finance_ledger.models.history import AccountCreatedEntry, BalanceUpdateEntry
from finance_ledger.models.results import IngestionResult

# Used when the caller passes no category map
DEFAULT_CATEGORY_TYPES: dict[str, AccountType] = {
    "cash": AccountType.CHECKING,
    "investments": AccountType.STOCKS,
    "retirement": AccountType.RETIREMENT_401K,
    "real_estate": AccountType.HOME,
    "liabilities": AccountType.CREDIT_CARD,
    "future_income": AccountType.PENSION,
}

_AMOUNT_CLEANUP = re.compile(r"[^\d.\-]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def parse_amount(value: Union[str, float, int]) -> float:
    """
    Parse an amount as OCR tends to emit it.

    Handles currency symbols, thousands separators, a trailing "CR"/"DR"
    marker and accounting parentheses for negatives: "(1,234.50)" is -1234.5.
    """
    if isinstance(value, (int, float)):
        return float(value)

    text = value.strip()
    negative = text.startswith("(") and text.endswith(")")
    if text.upper().endswith("DR"):
        negative = True
    text = re.sub(r"(?i)\s*(CR|DR)$", "", text)

    cleaned = _AMOUNT_CLEANUP.sub("", text)
    if cleaned in ("", "-", ".", "-."):
        raise ValueError(f"No amount found in {value!r}")
    amount = float(cleaned)
    return -abs(amount) if negative else amount


def normalize_name(name: str) -> str:
    """Lowercase, punctuation to spaces, whitespace collapsed."""
    return _NON_ALNUM.sub(" ", name.lower()).strip()


def normalize_category(category: str) -> str:
    return re.sub(r"[\s\-]+", "_", category.strip().lower())


class ParsedAccount(BaseModel):
    """One balance line produced by the OCR step."""

    name: str = Field(..., min_length=1, max_length=200)
    balance: float
    category: str = Field(..., min_length=1)

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("balance", mode="before")
    @classmethod
    def parse_balance(cls, v):
        if isinstance(v, str):
            return parse_amount(v)
        return v


# =============================================================================
# MATCHING
# =============================================================================

def _exact(query: str, candidate: str) -> bool:
    return query.casefold() == candidate.casefold()


def _contains(query: str, candidate: str) -> bool:
    q, c = query.casefold(), candidate.casefold()
    return q in c or c in q


def _normalized(query: str, candidate: str) -> bool:
    q, c = normalize_name(query), normalize_name(candidate)
    if not q or not c:
        return False
    return q == c or q in c or c in q


MATCH_TIERS: tuple[Callable[[str, str], bool], ...] = (_exact, _contains, _normalized)


class AccountMatcher:
    """Finds the existing account an OCR name refers to."""

    def __init__(self, accounts: Iterable[Account]):
        self._accounts = list(accounts)

    def add(self, account: Account) -> None:
        self._accounts.append(account)

    def match(self, name: str) -> Optional[Account]:
        for rule in MATCH_TIERS:
            for account in self._accounts:
                candidates = [account.name, *account.previous_names]
                if any(rule(name, candidate) for candidate in candidates):
                    return account
        return None


# =============================================================================
# INGESTION
# =============================================================================

class AccountIngestor:
    """
    Applies parsed statement lines to the registry and ledger.

    Mutates the in-memory state it is given; the engine persists it.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        ledger: HistoryLedger,
        category_type_map: Optional[dict[str, Union[AccountType, str]]] = None,
    ):
        self._registry = registry
        self._ledger = ledger
        mapping = category_type_map if category_type_map is not None else DEFAULT_CATEGORY_TYPES
        try:
            self._category_types = {
                normalize_category(category): AccountType(account_type)
                for category, account_type in mapping.items()
            }
        except ValueError as e:
            raise InvalidInputError(f"Invalid category map: {e}") from e

    def account_type_for(self, category: str) -> Optional[AccountType]:
        return self._category_types.get(normalize_category(category))

    @staticmethod
    def _is_current(account: Account, as_of: datetime) -> bool:
        if account.balance_as_of is not None:
            return as_of >= account.balance_as_of
        if account.updated_at is None:
            return True
        return as_of.date() >= account.updated_at.date()

    def ingest(
        self,
        items: Iterable[Union[ParsedAccount, dict]],
        as_of: Union[date, datetime],
    ) -> IngestionResult:
        # A statement date means midnight UTC of that day
        as_of = as_utc_datetime(as_of)
        matcher = AccountMatcher(self._registry.all())
        result = IngestionResult(success=True)

        for raw in items:
            try:
                item = raw if isinstance(raw, ParsedAccount) else ParsedAccount.model_validate(raw)
            except ValidationError as e:
                result.skipped.append({
                    "name": raw.get("name") if isinstance(raw, dict) else None,
                    "category": raw.get("category") if isinstance(raw, dict) else None,
                    "reason": f"Unreadable line: {e.errors()[0]['msg']}",
                })
                continue

            account = matcher.match(item.name)

            if account is not None:
                self._ledger.append(BalanceUpdateEntry(
                    account_id=account.id,
                    account_name=account.name,
                    old_balance=account.current_value,
                    new_balance=item.balance,
                    balance_date=as_of,
                    note=f"Imported as {item.name!r}",
                ))
                result.history_entries_added += 1

                if self._is_current(account, as_of):
                    account.current_value = item.balance
                    account.balance_as_of = as_of
                    self._registry.upsert(account)
                    result.updated_accounts.append(account)
                else:
                    result.stale_account_ids.append(account.id)
                continue

            account_type = self.account_type_for(item.category)
            if account_type is None:
                result.skipped.append({
                    "name": item.name,
                    "category": item.category,
                    "reason": "No account type mapped for category",
                })
                continue

            account = Account(
                name=item.name,
                type=account_type,
                current_value=item.balance,
                balance_as_of=as_of,
                notes="Created from imported statement",
            )
            self._registry.upsert(account)
            matcher.add(account)

            self._ledger.append(AccountCreatedEntry(
                account_id=account.id,
                account_name=account.name,
                account_type=account.type,
                initial_balance=item.balance,
            ))
            self._ledger.append(BalanceUpdateEntry(
                account_id=account.id,
                account_name=account.name,
                old_balance=None,
                new_balance=item.balance,
                balance_date=as_of,
                note="Opening balance from imported statement",
            ))
            result.history_entries_added += 2
            result.created_accounts.append(account)

        return result
