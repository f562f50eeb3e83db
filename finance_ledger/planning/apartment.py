"""
Apartment Investment Analyzer

Mortgage amortization, rent suggestions for a financial goal, and a
month-by-month cash-flow table.

DESIGN DECISION: Amortization is computed by ITERATING month by month from
origination rather than with the closed-form remaining-balance formula.
Each month's interest is charged on the balance the previous month left,
which is also how a lender's statement reads.

Months are handled as the first day of the month (`date(y, m, 1)`);
`"YYYY-MM"` strings are accepted wherever a month is expected.
"""

from datetime import date, datetime
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from finance_ledger.config.settings import PlanningSettings
from finance_ledger.exceptions import InvalidInputError
from finance_ledger.models.apartment import (
    AmortizationBreakdown,
    Apartment,
    Expense,
    ExpenseType,
    GoalType,
    IncomeType,
    MonthlyCashFlow,
    MortgageTerms,
    SuggestedRent,
)

MonthLike = Union[date, str]


# =============================================================================
# MONTH HELPERS
# =============================================================================

def to_month(value: MonthLike) -> date:
    """First day of the month for a date or a 'YYYY-MM' string."""
    if isinstance(value, str):
        try:
            year, month = value.split("-")[:2]
            return date(int(year), int(month), 1)
        except ValueError as e:
            raise InvalidInputError(f"Invalid month: {value!r}") from e
    if isinstance(value, datetime):
        value = value.date()
    return value.replace(day=1)


def month_key(value: date) -> str:
    return value.strftime("%Y-%m")


def months_between(start: date, end: date) -> int:
    """Whole months from start's month to end's month (negative if end is earlier)."""
    delta = relativedelta(to_month(end), to_month(start))
    return delta.years * 12 + delta.months


# =============================================================================
# MORTGAGE
# =============================================================================

def monthly_payment(principal: float, annual_rate_pct: float, term_months: int) -> float:
    """Fixed payment of an amortizing loan; zero rate is straight-line."""
    if term_months <= 0:
        raise InvalidInputError("Loan term must be at least one month")
    rate = annual_rate_pct / 100 / 12
    if rate == 0:
        return principal / term_months
    factor = (1 + rate) ** term_months
    return principal * rate * factor / (factor - 1)


def amortization_breakdown(terms: MortgageTerms, month: int) -> AmortizationBreakdown:
    """
    Interest/principal split for payment number `month` (1-based).

    Months past the end of the term report the final payment.
    """
    if month < 1:
        raise InvalidInputError("Payment month must be 1 or later")
    month = min(month, terms.term_months)

    payment = monthly_payment(terms.principal, terms.annual_rate, terms.term_months)
    rate = terms.annual_rate / 100 / 12

    balance = terms.principal
    total_interest = 0.0
    total_principal = 0.0
    interest = principal_paid = 0.0

    for current in range(1, month + 1):
        interest = balance * rate
        principal_paid = payment - interest
        # Last payment absorbs rounding drift
        if current == terms.term_months or principal_paid > balance:
            principal_paid = balance
        balance -= principal_paid
        total_interest += interest
        total_principal += principal_paid

    return AmortizationBreakdown(
        month=month,
        monthly_payment=round(payment, 2),
        interest_portion=round(interest, 2),
        principal_portion=round(principal_paid, 2),
        total_interest_paid=round(total_interest, 2),
        total_principal_paid=round(total_principal, 2),
        remaining_balance=round(max(balance, 0.0), 2),
    )


def payment_number(terms: MortgageTerms, as_of: MonthLike) -> Optional[int]:
    """1-based payment number falling in `as_of`'s month, or None outside the term."""
    elapsed = months_between(terms.start_date, to_month(as_of))
    if elapsed < 0 or elapsed >= terms.term_months:
        return None
    return elapsed + 1


# =============================================================================
# EXPENSES
# =============================================================================

def escalated_amount(expense: Expense, month: MonthLike) -> float:
    """
    Amount after compounding annual increases.

    One increase per full year elapsed since `last_increase_date`
    (or `start_date` when the amount was never raised).
    """
    if not expense.annual_increase_percent:
        return expense.amount
    base = expense.last_increase_date or expense.start_date
    years = max(0, months_between(base, to_month(month)) // 12)
    return expense.amount * (1 + expense.annual_increase_percent / 100) ** years


def expense_for_month(expense: Expense, month: MonthLike) -> float:
    """What the expense costs in one calendar month."""
    month = to_month(month)
    start = to_month(expense.start_date)

    if expense.type == ExpenseType.ONE_TIME:
        return expense.amount if month == start else 0.0
    if month < start:
        return 0.0
    if expense.type == ExpenseType.ANNUAL and month.month != start.month:
        return 0.0
    return escalated_amount(expense, month)


def recurring_monthly_cost(expenses: list[Expense], as_of: MonthLike) -> float:
    """Recurring expenses as a monthly figure (annual ones spread over 12)."""
    total = 0.0
    for expense in expenses:
        if expense.type == ExpenseType.MONTHLY:
            total += escalated_amount(expense, as_of)
        elif expense.type == ExpenseType.ANNUAL:
            total += escalated_amount(expense, as_of) / 12
    return total


# =============================================================================
# ANALYZER
# =============================================================================

class ApartmentAnalyzer:
    """Rent suggestions and cash-flow tables for one apartment at a time."""

    def __init__(self, settings: Optional[PlanningSettings] = None):
        self._settings = settings or PlanningSettings()

    def suggest_rent(
        self,
        apartment: Apartment,
        goal: Optional[GoalType] = None,
        as_of: Optional[MonthLike] = None,
    ) -> SuggestedRent:
        """
        Minimum monthly rent that meets the goal in `as_of`'s month.

        - breakeven: mortgage payment + recurring expenses
        - breakeven-excluding-principal: this month's interest + recurring expenses
        - profit: breakeven + the goal's target margin
        """
        goal = goal or apartment.financial_goal.type
        month = to_month(as_of or date.today())

        mortgage_component = 0.0
        terms = apartment.mortgage
        if terms is not None:
            number = payment_number(terms, month)
            if number is not None:
                if goal == GoalType.BREAKEVEN_EXCLUDING_PRINCIPAL:
                    mortgage_component = amortization_breakdown(terms, number).interest_portion
                else:
                    mortgage_component = monthly_payment(
                        terms.principal, terms.annual_rate, terms.term_months
                    )

        expense_component = recurring_monthly_cost(apartment.expenses, month)
        margin = apartment.financial_goal.target_amount if goal == GoalType.PROFIT else 0.0

        return SuggestedRent(
            goal=goal,
            monthly_rent=round(mortgage_component + expense_component + margin, 2),
            mortgage_component=round(mortgage_component, 2),
            expense_component=round(expense_component, 2),
            margin=margin,
        )

    def _income_for_month(self, apartment: Apartment, month: date) -> tuple[float, str]:
        key = month_key(month)

        def entries_of(kind: IncomeType) -> list[float]:
            return [e.amount for e in apartment.income if e.type == kind and e.month == key]

        reconciliation = apartment.reconciliation_date
        if reconciliation is not None:
            first = to_month(reconciliation)
            window_end = first + relativedelta(months=self._settings.forecast_window_months)
            if first <= month < window_end:
                forecasted = entries_of(IncomeType.FORECASTED)
                if forecasted:
                    return sum(forecasted), "forecasted"
                for forecast in apartment.forecasted_rent:
                    if forecast.covers(key):
                        return forecast.amount, "forecasted"
                return 0.0, "none"

        collected = entries_of(IncomeType.COLLECTED)
        if collected:
            return sum(collected), "collected"
        return 0.0, "none"

    def analyze_cash_flow(
        self,
        apartment: Apartment,
        start: MonthLike,
        end: MonthLike,
    ) -> list[MonthlyCashFlow]:
        """
        One row per month from `start` to `end` inclusive.

        Income before the reconciliation month is what was collected. From
        the reconciliation month, for the forecast window, it is the
        forecasted income entries for that month, else the forecasted-rent
        range covering it. Without a reconciliation date only collected
        income counts.
        """
        first = to_month(start)
        last = to_month(end)
        if last < first:
            raise InvalidInputError("Cash flow end month is before start month")

        payment = 0.0
        if apartment.mortgage is not None:
            terms = apartment.mortgage
            payment = monthly_payment(terms.principal, terms.annual_rate, terms.term_months)

        rows = []
        month = first
        while month <= last:
            income, source = self._income_for_month(apartment, month)
            expenses = sum(expense_for_month(e, month) for e in apartment.expenses)

            mortgage = 0.0
            if apartment.mortgage is not None and payment_number(apartment.mortgage, month):
                mortgage = payment

            rows.append(MonthlyCashFlow(
                month=month_key(month),
                income=round(income, 2),
                income_source=source,
                expenses=round(expenses, 2),
                mortgage_payment=round(mortgage, 2),
                net=round(income - expenses - mortgage, 2),
            ))
            month += relativedelta(months=1)

        return rows
