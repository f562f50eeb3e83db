"""
History Entry Models

The ledger is a bounded, timestamp-ordered list of entries. Each entry kind
is its own model with its own required fields; the `type` field is the
discriminator used when loading the persisted payload.

Two clocks live on balance entries and must not be mixed up:
- `timestamp`: when the entry was written. Orders the ledger and drives eviction.
- `balance_date`: the date the balance was true. Drives every financial calculation.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, field_validator

from finance_ledger.models.account import (
    AccountCategory,
    AccountType,
    LedgerModel,
    ensure_utc,
    utc_now,
)


class _EntryBase(LedgerModel):
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the entry was recorded (UTC)"
    )

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class _AccountScopedEntry(_EntryBase):
    """Entry that belongs to one account and can be moved by a merge."""

    account_id: str
    account_name: str

    # Merge bookkeeping
    original_account_name: Optional[str] = Field(
        default=None,
        description="Name the entry carried before its first merge"
    )
    original_account_id: Optional[str] = Field(
        default=None,
        description="Account the entry belonged to before its first merge"
    )
    transferred_to_account: Optional[str] = Field(
        default=None,
        description="Survivor ID when the entry was moved by a merge"
    )
    restored_from_merge: bool = Field(
        default=False,
        description="True for copies recreated by an unmerge"
    )

    @property
    def source_account_id(self) -> str:
        """Account the entry was recorded against, before any merge moved it."""
        return self.original_account_id or self.account_id

    def belongs_to_name(self, name: str) -> bool:
        """Did this entry originally describe the account called `name`?"""
        if self.original_account_name == name:
            return True
        return self.transferred_to_account is not None and self.account_name == name


class BalanceUpdateEntry(_AccountScopedEntry):
    type: Literal["balance_update"] = "balance_update"

    old_balance: Optional[float] = None
    new_balance: float
    balance_date: Optional[datetime] = Field(
        default=None,
        description="Date the balance was observed; falls back to timestamp"
    )
    note: Optional[str] = Field(default=None, max_length=500)
    opened_by_unmerge: bool = Field(
        default=False,
        description="Opening balance written for an account recreated by an unmerge"
    )

    @field_validator("balance_date")
    @classmethod
    def normalize_balance_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def effective_date(self) -> datetime:
        return self.balance_date or self.timestamp


class AccountCreatedEntry(_AccountScopedEntry):
    type: Literal["account_created"] = "account_created"

    account_type: Optional[AccountType] = None
    initial_balance: float = 0.0


class AccountsMergedEntry(_EntryBase):
    """Audit entry written by a merge. Unmerge depends on it."""

    type: Literal["accounts_merged"] = "accounts_merged"

    surviving_account_id: str
    surviving_account_name: str
    merged_account_ids: list[str]
    merged_account_names: list[str]
    previous_names: list[str] = Field(
        default_factory=list,
        description="Survivor's previous names right after the merge"
    )


class AccountsUnmergedEntry(_EntryBase):
    type: Literal["accounts_unmerged"] = "accounts_unmerged"

    source_account_id: str
    source_account_name: str
    recreated_account_ids: list[str]
    recreated_account_names: list[str]
    manual_balances_used: bool = False


HistoryEntry = Annotated[
    Union[
        BalanceUpdateEntry,
        AccountCreatedEntry,
        AccountsMergedEntry,
        AccountsUnmergedEntry,
    ],
    Field(discriminator="type"),
]

AccountScopedEntry = Union[BalanceUpdateEntry, AccountCreatedEntry]


# =============================================================================
# HISTORY VIEWS (read-only, derived from balance updates)
# =============================================================================

class BalancePoint(LedgerModel):
    """One account's balance on one balance date."""

    balance_date: datetime
    balance: float
    account_id: str
    account_name: str


class NetWorthPoint(LedgerModel):
    balance_date: datetime
    total_assets: float
    total_liabilities: float
    net_worth: float


class CategoryHistoryPoint(LedgerModel):
    balance_date: datetime
    totals: dict[AccountCategory, float]
