"""Tests for mortgage amortization, rent suggestions and cash flow."""

from datetime import date, datetime

import pytest

from finance_ledger.config import PlanningSettings
from finance_ledger.exceptions import InvalidInputError
from finance_ledger.models.apartment import (
    Apartment,
    Expense,
    ExpenseType,
    FinancialGoal,
    ForecastedRent,
    GoalType,
    IncomeEntry,
    IncomeType,
    MortgageTerms,
)
from finance_ledger.planning import ApartmentAnalyzer, amortization_breakdown, monthly_payment
from finance_ledger.planning.apartment import (
    escalated_amount,
    expense_for_month,
    months_between,
    payment_number,
    recurring_monthly_cost,
    to_month,
)


@pytest.fixture
def terms() -> MortgageTerms:
    return MortgageTerms(
        principal=200_000,
        annual_rate=4.5,
        term_months=360,
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
def analyzer() -> ApartmentAnalyzer:
    return ApartmentAnalyzer(PlanningSettings())


def expense(amount, kind, start, increase=0.0, **kwargs) -> Expense:
    return Expense(
        amount=amount,
        type=kind,
        start_date=start,
        annual_increase_percent=increase,
        **kwargs,
    )


class TestMonthHelpers:
    """Month parsing and arithmetic."""

    def test_to_month(self):
        """Strings, dates and datetimes become the first of the month."""
        assert to_month("2025-07") == date(2025, 7, 1)
        assert to_month(date(2025, 7, 19)) == date(2025, 7, 1)
        assert to_month(datetime(2025, 7, 19, 13, 0)) == date(2025, 7, 1)

    def test_to_month_rejects_garbage(self):
        """Unparseable months are invalid input."""
        with pytest.raises(InvalidInputError):
            to_month("July")

    def test_months_between(self):
        """Whole months across year boundaries, negative when reversed."""
        assert months_between(date(2024, 11, 15), date(2025, 2, 1)) == 3
        assert months_between(date(2025, 2, 1), date(2024, 11, 1)) == -3


class TestAmortization:
    """Iterative amortization schedule."""

    def test_standard_payment(self):
        """200k at 4.5% over 30 years is about 1013.37 a month."""
        assert monthly_payment(200_000, 4.5, 360) == pytest.approx(1013.37, abs=0.01)

    def test_month_12_split(self, terms):
        """Values after the first year of a 30-year loan."""
        breakdown = amortization_breakdown(terms, 12)
        assert breakdown.month == 12
        assert breakdown.monthly_payment == pytest.approx(1013.37, abs=0.01)
        assert breakdown.remaining_balance == pytest.approx(196_773.56, abs=1)
        assert breakdown.interest_portion == pytest.approx(738.93, abs=1)
        assert breakdown.principal_portion == pytest.approx(274.44, abs=1)
        assert breakdown.total_interest_paid == pytest.approx(8_933.99, abs=1)
        assert breakdown.total_principal_paid == pytest.approx(3_226.44, abs=1)

    def test_first_month_interest(self, terms):
        """The first payment's interest is one month on the full principal."""
        assert amortization_breakdown(terms, 1).interest_portion == pytest.approx(750.0)

    def test_paid_off_at_term(self, terms):
        """The final payment clears the balance exactly."""
        final = amortization_breakdown(terms, 360)
        assert final.remaining_balance == 0
        assert final.total_principal_paid == pytest.approx(200_000, abs=0.01)

    def test_month_past_term_is_clamped(self, terms):
        """Asking past the term reports the final payment."""
        assert amortization_breakdown(terms, 500).month == 360

    def test_zero_rate_is_straight_line(self):
        """No interest: principal divided evenly."""
        terms = MortgageTerms(principal=12_000, annual_rate=0, term_months=12, start_date=date(2024, 1, 1))
        breakdown = amortization_breakdown(terms, 3)
        assert breakdown.monthly_payment == 1_000
        assert breakdown.interest_portion == 0
        assert breakdown.principal_portion == 1_000
        assert breakdown.remaining_balance == 9_000

    def test_invalid_month(self, terms):
        """Payment numbers start at 1."""
        with pytest.raises(InvalidInputError):
            amortization_breakdown(terms, 0)

    def test_invalid_term(self):
        """A loan needs at least one month."""
        with pytest.raises(InvalidInputError):
            monthly_payment(1_000, 5, 0)

    def test_payment_number(self, terms):
        """Payment numbers are counted from the start month."""
        assert payment_number(terms, date(2024, 1, 20)) == 1
        assert payment_number(terms, "2024-03") == 3
        assert payment_number(terms, "2023-12") is None
        assert payment_number(terms, "2054-01") is None
        assert payment_number(terms, "2053-12") == 360


class TestExpenses:
    """Expense recurrence and escalation."""

    def test_one_time_only_in_its_month(self):
        """A one-time expense hits once."""
        repair = expense(5_000, ExpenseType.ONE_TIME, date(2025, 4, 10))
        assert expense_for_month(repair, "2025-04") == 5_000
        assert expense_for_month(repair, "2025-05") == 0
        assert expense_for_month(repair, "2026-04") == 0

    def test_monthly_from_start(self):
        """Monthly expenses start in their start month."""
        hoa = expense(300, ExpenseType.MONTHLY, date(2025, 2, 1))
        assert expense_for_month(hoa, "2025-01") == 0
        assert expense_for_month(hoa, "2025-02") == 300
        assert expense_for_month(hoa, "2025-09") == 300

    def test_annual_in_anniversary_month(self):
        """Annual expenses fall in the start's calendar month."""
        tax = expense(2_400, ExpenseType.ANNUAL, date(2024, 3, 1))
        assert expense_for_month(tax, "2024-03") == 2_400
        assert expense_for_month(tax, "2025-03") == 2_400
        assert expense_for_month(tax, "2025-04") == 0
        assert expense_for_month(tax, "2023-03") == 0

    def test_escalation_per_full_year(self):
        """One compounding step per full year since the base date."""
        tax = expense(2_400, ExpenseType.ANNUAL, date(2024, 3, 1), increase=3.0)
        assert escalated_amount(tax, "2025-02") == pytest.approx(2_400)
        assert escalated_amount(tax, "2025-03") == pytest.approx(2_472)
        assert escalated_amount(tax, "2026-03") == pytest.approx(2_400 * 1.03 ** 2)

    def test_escalation_counts_from_last_increase(self):
        """A recorded increase resets the escalation clock."""
        insurance = expense(
            1_200,
            ExpenseType.ANNUAL,
            date(2020, 6, 1),
            increase=5.0,
            last_increase_date=date(2025, 6, 1),
        )
        assert escalated_amount(insurance, "2025-12") == pytest.approx(1_200)
        assert escalated_amount(insurance, "2026-06") == pytest.approx(1_260)

    def test_never_negative_years(self):
        """Months before the base date use the base amount."""
        tax = expense(1_000, ExpenseType.MONTHLY, date(2025, 1, 1), increase=10.0)
        assert escalated_amount(tax, "2024-01") == pytest.approx(1_000)

    def test_recurring_monthly_cost(self):
        """Monthly plus annual/12; one-time ignored."""
        expenses = [
            expense(300, ExpenseType.MONTHLY, date(2024, 1, 1)),
            expense(2_400, ExpenseType.ANNUAL, date(2024, 3, 1)),
            expense(5_000, ExpenseType.ONE_TIME, date(2024, 6, 1)),
        ]
        assert recurring_monthly_cost(expenses, "2024-06") == pytest.approx(500)


class TestSuggestRent:
    """Rent needed to meet a goal."""

    def _apartment(self, terms, goal=GoalType.BREAKEVEN, target=0.0) -> Apartment:
        return Apartment(
            name="Unit 4B",
            mortgage=terms,
            expenses=[
                expense(300, ExpenseType.MONTHLY, date(2024, 1, 1)),
                expense(2_400, ExpenseType.ANNUAL, date(2024, 3, 1)),
                expense(5_000, ExpenseType.ONE_TIME, date(2024, 6, 1)),
            ],
            financial_goal=FinancialGoal(type=goal, target_amount=target),
        )

    def test_breakeven(self, analyzer, terms):
        """Full payment plus recurring expenses."""
        suggestion = analyzer.suggest_rent(self._apartment(terms), as_of="2024-06")
        assert suggestion.goal == GoalType.BREAKEVEN
        assert suggestion.mortgage_component == pytest.approx(1013.37, abs=0.01)
        assert suggestion.expense_component == pytest.approx(500)
        assert suggestion.monthly_rent == pytest.approx(1513.37, abs=0.01)

    def test_breakeven_excluding_principal(self, analyzer, terms):
        """Only this month's interest counts toward the mortgage."""
        suggestion = analyzer.suggest_rent(
            self._apartment(terms),
            goal=GoalType.BREAKEVEN_EXCLUDING_PRINCIPAL,
            as_of="2024-06",
        )
        interest = amortization_breakdown(terms, 6).interest_portion
        assert suggestion.mortgage_component == pytest.approx(interest)
        assert suggestion.monthly_rent == pytest.approx(interest + 500, abs=0.01)

    def test_profit_adds_margin(self, analyzer, terms):
        """Profit goal is breakeven plus the target margin."""
        apartment = self._apartment(terms, goal=GoalType.PROFIT, target=250)
        suggestion = analyzer.suggest_rent(apartment, as_of="2024-06")
        assert suggestion.margin == 250
        assert suggestion.monthly_rent == pytest.approx(1763.37, abs=0.01)

    def test_margin_ignored_for_breakeven(self, analyzer, terms):
        """Explicit breakeven goal does not include the stored margin."""
        apartment = self._apartment(terms, goal=GoalType.PROFIT, target=250)
        suggestion = analyzer.suggest_rent(apartment, goal=GoalType.BREAKEVEN, as_of="2024-06")
        assert suggestion.margin == 0

    def test_no_mortgage_outside_term(self, analyzer, terms):
        """Before the first payment only expenses count."""
        suggestion = analyzer.suggest_rent(self._apartment(terms), as_of="2023-06")
        assert suggestion.mortgage_component == 0

    def test_without_mortgage(self, analyzer):
        """A paid-off unit only needs to cover expenses."""
        apartment = Apartment(
            name="Paid off",
            expenses=[expense(100, ExpenseType.MONTHLY, date(2024, 1, 1))],
        )
        assert analyzer.suggest_rent(apartment, as_of="2024-02").monthly_rent == 100


class TestCashFlow:
    """Month-by-month cash-flow table."""

    def _apartment(self) -> Apartment:
        return Apartment(
            name="Unit 4B",
            mortgage=MortgageTerms(
                principal=120_000,
                annual_rate=0,
                term_months=120,
                start_date=date(2024, 12, 1),
            ),
            expenses=[
                expense(200, ExpenseType.MONTHLY, date(2024, 1, 1)),
                expense(1_200, ExpenseType.ANNUAL, date(2024, 3, 1)),
            ],
            income=[
                IncomeEntry(amount=1_500, type=IncomeType.COLLECTED, month="2024-11"),
                IncomeEntry(amount=1_400, type=IncomeType.COLLECTED, month="2025-01"),
                IncomeEntry(amount=1_700, type=IncomeType.FORECASTED, month="2025-02"),
                IncomeEntry(amount=1_550, type=IncomeType.COLLECTED, month="2027-01"),
            ],
            forecasted_rent=[
                ForecastedRent(start_month="2025-01", end_month="2025-12", amount=1_600),
                ForecastedRent(start_month="2026-01", amount=1_650),
            ],
            reconciliation_date=date(2025, 1, 1),
        )

    def test_income_sources(self, analyzer):
        """Collected before reconciliation, forecasted inside the window."""
        rows = analyzer.analyze_cash_flow(self._apartment(), "2024-11", "2025-03")
        assert [(r.month, r.income, r.income_source) for r in rows] == [
            ("2024-11", 1_500, "collected"),
            ("2024-12", 0, "none"),
            ("2025-01", 1_600, "forecasted"),
            ("2025-02", 1_700, "forecasted"),
            ("2025-03", 1_600, "forecasted"),
        ]

    def test_open_ended_forecast(self, analyzer):
        """An open-ended range covers the rest of the window."""
        rows = analyzer.analyze_cash_flow(self._apartment(), "2026-06", "2026-06")
        assert rows[0].income == 1_650

    def test_after_forecast_window(self, analyzer):
        """Past the 24-month window income is what was collected."""
        rows = analyzer.analyze_cash_flow(self._apartment(), "2026-12", "2027-02")
        assert [(r.income, r.income_source) for r in rows] == [
            (1_650, "forecasted"),
            (1_550, "collected"),
            (0, "none"),
        ]

    def test_window_is_configurable(self):
        """A shorter window ends forecasting sooner."""
        analyzer = ApartmentAnalyzer(PlanningSettings(forecast_window_months=3))
        rows = analyzer.analyze_cash_flow(self._apartment(), "2025-03", "2025-04")
        assert [r.income_source for r in rows] == ["forecasted", "none"]

    def test_expenses_and_mortgage(self, analyzer):
        """Mortgage starts with its first payment; annual expense in March."""
        rows = analyzer.analyze_cash_flow(self._apartment(), "2024-11", "2025-03")
        assert [r.mortgage_payment for r in rows] == [0, 1_000, 1_000, 1_000, 1_000]
        assert [r.expenses for r in rows] == [200, 200, 200, 200, 1_400]
        assert rows[0].net == 1_300
        assert rows[4].net == pytest.approx(1_600 - 1_400 - 1_000)

    def test_one_row_per_month_inclusive(self, analyzer):
        """Start and end months are both included."""
        rows = analyzer.analyze_cash_flow(self._apartment(), date(2025, 1, 15), date(2025, 12, 1))
        assert len(rows) == 12

    def test_end_before_start(self, analyzer):
        """A reversed range is invalid."""
        with pytest.raises(InvalidInputError):
            analyzer.analyze_cash_flow(self._apartment(), "2025-03", "2025-01")
