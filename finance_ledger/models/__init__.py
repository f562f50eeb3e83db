"""
Data Models Package

This package contains all Pydantic models used by the finance ledger.
Everything persisted in the encrypted state conforms to these schemas.
"""

from finance_ledger.models.account import (
    ACCOUNT_TYPES,
    ALLOCATION_CATEGORIES,
    ASSET_CATEGORIES,
    Account,
    AccountCategory,
    AccountType,
    AccountTypeInfo,
    category_for,
)
from finance_ledger.models.apartment import (
    AmortizationBreakdown,
    Apartment,
    Expense,
    ExpenseType,
    FinancialGoal,
    ForecastedRent,
    GoalType,
    IncomeEntry,
    IncomeType,
    MonthlyCashFlow,
    MortgageTerms,
    SuggestedRent,
)
from finance_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finance_ledger.models.history import (
    AccountCreatedEntry,
    AccountsMergedEntry,
    AccountsUnmergedEntry,
    BalancePoint,
    BalanceUpdateEntry,
    CategoryHistoryPoint,
    HistoryEntry,
    NetWorthPoint,
)
from finance_ledger.models.planning import (
    AdvancedSettings,
    AllocationReport,
    AllocationSuggestion,
    DebtRecommendation,
    Demographics,
    RetirementProjection,
    RiskProfile,
    RiskTolerance,
    SuccessRating,
)
from finance_ledger.models.results import (
    AccountResult,
    ApartmentResult,
    BalanceUpdateResult,
    DataResult,
    IngestionResult,
    MergeResult,
    OperationResult,
    ProjectionResult,
    UnmergeResult,
)
from finance_ledger.models.state import FinanceState, default_state
from finance_ledger.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Accounts
    "ACCOUNT_TYPES",
    "ALLOCATION_CATEGORIES",
    "ASSET_CATEGORIES",
    "Account",
    "AccountCategory",
    "AccountType",
    "AccountTypeInfo",
    "category_for",
    # Apartments
    "AmortizationBreakdown",
    "Apartment",
    "Expense",
    "ExpenseType",
    "FinancialGoal",
    "ForecastedRent",
    "GoalType",
    "IncomeEntry",
    "IncomeType",
    "MonthlyCashFlow",
    "MortgageTerms",
    "SuggestedRent",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # History
    "AccountCreatedEntry",
    "AccountsMergedEntry",
    "AccountsUnmergedEntry",
    "BalancePoint",
    "BalanceUpdateEntry",
    "CategoryHistoryPoint",
    "HistoryEntry",
    "NetWorthPoint",
    # Planning
    "AdvancedSettings",
    "AllocationReport",
    "AllocationSuggestion",
    "DebtRecommendation",
    "Demographics",
    "RetirementProjection",
    "RiskProfile",
    "RiskTolerance",
    "SuccessRating",
    # Results
    "AccountResult",
    "ApartmentResult",
    "BalanceUpdateResult",
    "DataResult",
    "IngestionResult",
    "MergeResult",
    "OperationResult",
    "ProjectionResult",
    "UnmergeResult",
    # State
    "FinanceState",
    "default_state",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
