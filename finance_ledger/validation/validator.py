"""
Planning Input Validation

DESIGN DECISION: Preconditions are checked BEFORE any computation.
A retirement projection with no age or no spending target would still
produce a number, just a meaningless one, so it is refused outright with
a structured failure instead.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and the engine decides what to do.
"""

from collections import Counter
from typing import Iterable, Optional

from finance_ledger.models.apartment import Apartment, IncomeType
from finance_ledger.models.planning import AdvancedSettings, Demographics
from finance_ledger.models.validation import ValidationIssue, ValidationResult


class RetirementInputValidator:
    """
    Checks demographics before a Monte Carlo run.

    Errors (any one blocks the simulation):
    - age is not set
    - annual retirement spending is missing or not positive
    - age is not below the retirement age
    """

    def validate(
        self,
        demographics: Demographics,
        advanced: Optional[AdvancedSettings] = None,
    ) -> ValidationResult:
        issues = []

        if demographics.age is None:
            issues.append(ValidationIssue(
                field="age",
                issue_type="missing",
                message="Age is required for retirement projection",
                severity="error",
                suggested_fix="Set your current age in demographics",
            ))
        elif demographics.age >= demographics.retirement_age:
            issues.append(ValidationIssue(
                field="retirement_age",
                issue_type="inconsistent",
                message="Current age must be less than retirement age",
                severity="error",
                suggested_fix="Raise the retirement age or correct the current age",
            ))

        spending = demographics.annual_retirement_spending
        if spending is None or spending <= 0:
            issues.append(ValidationIssue(
                field="annual_retirement_spending",
                issue_type="invalid_value",
                message="Annual retirement spending must be greater than zero",
                severity="error",
                suggested_fix="Enter how much you expect to spend per year in retirement",
            ))

        if not demographics.annual_income:
            issues.append(ValidationIssue(
                field="annual_income",
                issue_type="missing",
                message="No annual income set; projection assumes no further contributions",
                severity="warning",
            ))

        if advanced is not None and advanced.savings_rate == 0:
            issues.append(ValidationIssue(
                field="savings_rate",
                issue_type="suspicious_value",
                message="Savings rate is 0%; projection assumes no further contributions",
                severity="info",
            ))

        return ValidationResult.from_issues(issues)


class ApartmentValidator:
    """
    Cross-field checks for an apartment before it is saved.

    Field-level rules (ranges, month format) are already enforced by the
    pydantic model; this covers what a single field cannot see.
    """

    def validate(
        self,
        apartment: Apartment,
        known_account_ids: Iterable[str] = (),
    ) -> ValidationResult:
        issues = []
        known = set(known_account_ids)

        for field, account_id in (
            ("mortgage_account_id", apartment.mortgage_account_id),
            ("equity_account_id", apartment.equity_account_id),
        ):
            if account_id is not None and account_id not in known:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="not_found",
                    message=f"Linked account {account_id} does not exist",
                    severity="error",
                    suggested_fix="Link an existing account or clear the link",
                ))

        # Forecasts are sorted by start month; an open-ended range must be last
        forecasts = apartment.forecasted_rent
        for current, following in zip(forecasts, forecasts[1:]):
            if current.end_month is None or current.end_month >= following.start_month:
                issues.append(ValidationIssue(
                    field="forecasted_rent",
                    issue_type="inconsistent",
                    message=(
                        f"Forecast starting {current.start_month} overlaps "
                        f"forecast starting {following.start_month}"
                    ),
                    severity="warning",
                    suggested_fix="The earlier range wins; adjust the end month",
                ))

        collected = Counter(
            entry.month for entry in apartment.income if entry.type == IncomeType.COLLECTED
        )
        for month, count in sorted(collected.items()):
            if count > 1:
                issues.append(ValidationIssue(
                    field="income",
                    issue_type="potential_duplicate",
                    message=f"{count} collected income entries for {month} will be summed",
                    severity="warning",
                ))

        if (
            apartment.mortgage is not None
            and apartment.reconciliation_date is not None
            and apartment.reconciliation_date < apartment.mortgage.start_date
        ):
            issues.append(ValidationIssue(
                field="reconciliation_date",
                issue_type="suspicious_date",
                message="Reconciliation date is before the mortgage start date",
                severity="info",
            ))

        return ValidationResult.from_issues(issues)
