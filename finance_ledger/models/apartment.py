"""
Apartment (rental property) Models

An apartment carries its mortgage terms, recurring and one-time expenses,
rent actually collected, forecasted rent, and the financial goal used to
suggest a rent.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator, model_validator

from finance_ledger.models.account import LedgerModel, new_id

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class ExpenseType(str, Enum):
    ONE_TIME = "one-time"
    MONTHLY = "monthly"
    ANNUAL = "annual"


class IncomeType(str, Enum):
    COLLECTED = "collected"
    FORECASTED = "forecasted"


class GoalType(str, Enum):
    BREAKEVEN = "breakeven"
    BREAKEVEN_EXCLUDING_PRINCIPAL = "breakeven-excluding-principal"
    PROFIT = "profit"


class MortgageTerms(LedgerModel):
    principal: float = Field(..., gt=0)
    annual_rate: float = Field(
        ...,
        ge=0,
        le=100,
        description="Annual interest rate in percent (4.5 means 4.5%)"
    )
    term_months: int = Field(..., ge=1, le=600)
    start_date: date = Field(..., description="Month of the first payment")


class Expense(LedgerModel):
    id: str = Field(default_factory=new_id)
    amount: float = Field(..., ge=0)
    type: ExpenseType
    category: str = Field(default="other", max_length=100)
    start_date: date = Field(
        ...,
        description="When the expense was created (one-time: when it occurs)"
    )
    annual_increase_percent: float = Field(default=0.0, ge=0, le=100)
    last_increase_date: Optional[date] = Field(
        default=None,
        description="Date the amount was last raised; escalation counts from here"
    )


class IncomeEntry(LedgerModel):
    amount: float = Field(..., ge=0)
    type: IncomeType
    month: str = Field(..., pattern=MONTH_PATTERN, description="YYYY-MM")


class ForecastedRent(LedgerModel):
    """Expected monthly rent over a range of months (inclusive)."""

    start_month: str = Field(..., pattern=MONTH_PATTERN)
    end_month: Optional[str] = Field(default=None, pattern=MONTH_PATTERN)
    amount: float = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_range(self) -> "ForecastedRent":
        if self.end_month is not None and self.end_month < self.start_month:
            raise ValueError("Forecast end month cannot be before start month")
        return self

    def covers(self, month: str) -> bool:
        # YYYY-MM strings order correctly as text
        if month < self.start_month:
            return False
        return self.end_month is None or month <= self.end_month


class FinancialGoal(LedgerModel):
    type: GoalType = GoalType.BREAKEVEN
    target_amount: float = Field(
        default=0.0,
        ge=0,
        description="Monthly profit margin for the profit goal"
    )


class Apartment(LedgerModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    mortgage: Optional[MortgageTerms] = None
    mortgage_account_id: Optional[str] = None
    equity_account_id: Optional[str] = None
    expenses: list[Expense] = Field(default_factory=list)
    income: list[IncomeEntry] = Field(default_factory=list)
    forecasted_rent: list[ForecastedRent] = Field(default_factory=list)
    reconciliation_date: Optional[date] = None
    financial_goal: FinancialGoal = Field(default_factory=FinancialGoal)

    @field_validator("forecasted_rent")
    @classmethod
    def sort_forecasts(cls, v: list[ForecastedRent]) -> list[ForecastedRent]:
        return sorted(v, key=lambda f: f.start_month)


# =============================================================================
# ANALYSIS OUTPUT
# =============================================================================

class AmortizationBreakdown(LedgerModel):
    month: int
    monthly_payment: float
    interest_portion: float
    principal_portion: float
    total_interest_paid: float
    total_principal_paid: float
    remaining_balance: float


class SuggestedRent(LedgerModel):
    goal: GoalType
    monthly_rent: float
    mortgage_component: float
    expense_component: float
    margin: float = 0.0


class MonthlyCashFlow(LedgerModel):
    month: str
    income: float
    income_source: str = Field(..., pattern="^(collected|forecasted|none)$")
    expenses: float
    mortgage_payment: float
    net: float
