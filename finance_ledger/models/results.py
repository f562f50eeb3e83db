"""
Operation Results

Every public engine operation returns one of these. Expected domain
failures come back as `success=False` with a message; they never raise
past the engine.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from finance_ledger.models.account import Account
from finance_ledger.models.apartment import Apartment
from finance_ledger.models.planning import RetirementProjection
from finance_ledger.models.validation import ValidationIssue


class OperationResult(BaseModel):
    success: bool
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str):
        return cls(success=False, error=error)


class AccountResult(OperationResult):
    account: Optional[Account] = None
    created: bool = False


class BalanceUpdateResult(OperationResult):
    account: Optional[Account] = None
    balance_applied: bool = Field(
        default=False,
        description="False when the balance date was older than the current balance"
    )


class MergeResult(OperationResult):
    surviving_account: Optional[Account] = None
    merged_count: int = 0
    merged_account_ids: list[str] = Field(default_factory=list)
    merged_account_names: list[str] = Field(default_factory=list)
    previous_names: list[str] = Field(default_factory=list)


class UnmergeResult(OperationResult):
    source_account: Optional[Account] = None
    recreated_accounts: list[Account] = Field(default_factory=list)
    recreated_account_ids: list[str] = Field(default_factory=list)
    recreated_account_names: list[str] = Field(default_factory=list)
    manual_balances_used: bool = False

    @property
    def recreated_count(self) -> int:
        return len(self.recreated_accounts)


class ApartmentResult(OperationResult):
    apartment: Optional[Apartment] = None


class ProjectionResult(OperationResult):
    projection: Optional[RetirementProjection] = None
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="Validation issues; errors explain why nothing was simulated"
    )


class IngestionResult(OperationResult):
    updated_accounts: list[Account] = Field(default_factory=list)
    created_accounts: list[Account] = Field(default_factory=list)
    stale_account_ids: list[str] = Field(
        default_factory=list,
        description="Matched accounts whose balance was newer than the as-of date"
    )
    skipped: list[dict[str, Any]] = Field(default_factory=list)
    history_entries_added: int = 0


class DataResult(OperationResult):
    """Wraps a computed report (allocation, projection, cash flow, ...)."""

    data: Any = None
