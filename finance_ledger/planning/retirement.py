"""
Retirement Monte Carlo Projector

Simulates N independent market paths through two phases:

1. ACCUMULATION (`retirement_age - age` years): the portfolio compounds by
   a normally distributed annual return, then the yearly contribution
   (income x savings rate) is added.
2. DISTRIBUTION (`years_in_retirement` years): an inflation-escalated
   withdrawal is taken first, then the remainder compounds at a reduced
   return and volatility.

A path succeeds only if the balance stays above zero for the whole
distribution phase.

DESIGN DECISION: All paths are advanced together one year at a time as
numpy arrays. Every year draws the same number of uniforms whether or not
a path has already failed, so two runs with the same seed see identical
market returns. Changing only the contribution therefore moves the
success rate in one direction.

The closed-form estimates are computed independently of the simulation so
the two can be compared.
"""

from collections import defaultdict
from typing import Iterable, Optional

import numpy as np

from finance_ledger.exceptions import InvalidInputError
from finance_ledger.models.history import BalanceUpdateEntry
from finance_ledger.models.planning import (
    AdvancedSettings,
    ClosedFormEstimate,
    Demographics,
    RetirementProjection,
    SuccessRating,
)
from finance_ledger.validation.validator import RetirementInputValidator

MIN_HISTORY_POINTS = 3
MIN_HISTORY_SPAN_DAYS = 30
MIN_ANNUAL_RETURN = -0.5
MAX_ANNUAL_RETURN = 2.0
DAYS_PER_YEAR = 365.25

PERCENTILES = (10, 50, 90)

RATING_MESSAGES = {
    SuccessRating.EXCELLENT: "Your retirement plan is on track with a high probability of success.",
    SuccessRating.GOOD: "Your plan is reasonable, but consider saving a little more for a safety margin.",
    SuccessRating.CONCERNING: "Your plan has a significant risk of running short. Consider saving more or retiring later.",
    SuccessRating.CRITICAL: "Your plan is unlikely to last through retirement. Significant changes are needed.",
}


def rate_success(probability: float) -> SuccessRating:
    """Map a success probability (percent) to its advisory band."""
    if probability >= 80:
        return SuccessRating.EXCELLENT
    if probability >= 60:
        return SuccessRating.GOOD
    if probability >= 40:
        return SuccessRating.CONCERNING
    return SuccessRating.CRITICAL


def estimate_historical_return(entries: Iterable[BalanceUpdateEntry]) -> Optional[float]:
    """
    Average annualized growth across accounts with enough balance history.

    Entries moved by a merge stay with the account they were recorded
    against, so one series never mixes two accounts. Unmerge copies and
    opening balances repeat history already counted and are skipped.

    Needs at least 3 balance points overall. Each account contributes only
    when it has 2+ points whose balance dates span more than 30 days and
    a positive first balance. Per-account rates are clamped to
    [-50%, +200%] before averaging. Returns None when nothing qualifies.
    """
    entries = [
        e for e in entries
        if not e.restored_from_merge and not e.opened_by_unmerge
    ]
    if len(entries) < MIN_HISTORY_POINTS:
        return None

    by_account: dict[str, list[BalanceUpdateEntry]] = defaultdict(list)
    for entry in entries:
        by_account[entry.source_account_id].append(entry)

    rates = []
    for points in by_account.values():
        if len(points) < 2:
            continue
        points = sorted(points, key=lambda e: e.effective_date)
        first, last = points[0], points[-1]
        span_days = (last.effective_date - first.effective_date).total_seconds() / 86400
        if span_days <= MIN_HISTORY_SPAN_DAYS or first.new_balance <= 0:
            continue

        growth = last.new_balance / first.new_balance
        if growth <= 0:
            rate = MIN_ANNUAL_RETURN
        else:
            rate = growth ** (DAYS_PER_YEAR / span_days) - 1
        rates.append(min(MAX_ANNUAL_RETURN, max(MIN_ANNUAL_RETURN, rate)))

    if not rates:
        return None
    return sum(rates) / len(rates)


def box_muller(rng: np.random.Generator, size: int) -> np.ndarray:
    """Standard normal draws from two uniforms (cosine branch)."""
    # 1 - U keeps the log argument in (0, 1]
    u1 = 1.0 - rng.random(size)
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


def closed_form_estimate(
    starting_portfolio: float,
    annual_contribution: float,
    years_to_retirement: int,
    expected_return: float,
    annual_spending: float,
    years_in_retirement: int,
    inflation_rate: float,
    retirement_return: float,
) -> ClosedFormEstimate:
    """
    Deterministic point estimates.

    Projected portfolio: future value of the starting balance plus an
    ordinary annuity of contributions. Capital needed: present value at
    retirement of a growing annuity-due of withdrawals.
    """
    r = expected_return
    n = years_to_retirement
    growth = (1 + r) ** n
    if r == 0:
        contributions = annual_contribution * n
    else:
        contributions = annual_contribution * (growth - 1) / r
    projected = starting_portfolio * growth + contributions

    g = inflation_rate
    d = retirement_return
    m = years_in_retirement
    if abs(d - g) < 1e-12:
        needed = annual_spending * m
    else:
        needed = annual_spending * (1 - ((1 + g) / (1 + d)) ** m) / (d - g) * (1 + d)

    return ClosedFormEstimate(
        projected_portfolio_at_retirement=round(projected, 2),
        total_capital_needed=round(needed, 2),
        shortfall=round(max(0.0, needed - projected), 2),
    )


class RetirementProjector:
    """
    Runs the retirement projection for one set of inputs.

    Usage:
        projector = RetirementProjector(advanced_settings)
        projection = projector.project(demographics, total_assets, balance_updates, seed=42)
    """

    def __init__(
        self,
        advanced: Optional[AdvancedSettings] = None,
        validator: Optional[RetirementInputValidator] = None,
    ):
        self._advanced = advanced or AdvancedSettings()
        self._validator = validator or RetirementInputValidator()

    def simulate(
        self,
        starting_portfolio: float,
        annual_contribution: float,
        years_to_retirement: int,
        annual_spending: float,
        expected_return: float,
        volatility: float,
        simulation_count: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> dict:
        """
        Raw simulation. Returns success probability (percent), balances
        at retirement and final balances (numpy arrays, one per path).
        """
        advanced = self._advanced
        n = simulation_count or advanced.simulation_count
        rng = np.random.default_rng(seed)

        balances = np.full(n, float(starting_portfolio))
        for _ in range(years_to_retirement):
            returns = expected_return + volatility * box_muller(rng, n)
            balances = balances * (1 + returns) + annual_contribution

        at_retirement = balances.copy()

        retired_return = expected_return * advanced.retirement_return_factor
        retired_volatility = volatility * advanced.retirement_volatility_factor
        failed = balances <= 0
        for year in range(advanced.years_in_retirement):
            withdrawal = annual_spending * (1 + advanced.inflation_rate) ** year
            returns = retired_return + retired_volatility * box_muller(rng, n)
            balances = balances - withdrawal
            failed |= balances <= 0
            balances = np.where(failed, 0.0, balances * (1 + returns))
            failed |= balances <= 0

        successes = int(np.count_nonzero(~failed))
        return {
            "success_probability": successes / n * 100,
            "at_retirement": at_retirement,
            "final_balances": balances,
        }

    def project(
        self,
        demographics: Demographics,
        starting_portfolio: float,
        balance_history: Iterable[BalanceUpdateEntry] = (),
        seed: Optional[int] = None,
    ) -> RetirementProjection:
        """
        Validate inputs, pick return assumptions, run the simulation.

        Raises:
            InvalidInputError: if a precondition fails (nothing is simulated)
        """
        validation = self._validator.validate(demographics, self._advanced)
        if not validation.is_valid:
            raise InvalidInputError(validation.error_message, validation.issues)

        advanced = self._advanced
        profile = advanced.profile_for(demographics.risk_tolerance)

        historical = estimate_historical_return(balance_history)
        if historical is not None:
            expected_return = historical
            return_source = "history"
        else:
            expected_return = profile.expected_return
            return_source = "risk_profile"
        volatility = profile.volatility

        years_to_retirement = demographics.retirement_age - demographics.age
        contribution = (demographics.annual_income or 0.0) * advanced.savings_rate
        spending = demographics.annual_retirement_spending

        outcome = self.simulate(
            starting_portfolio=starting_portfolio,
            annual_contribution=contribution,
            years_to_retirement=years_to_retirement,
            annual_spending=spending,
            expected_return=expected_return,
            volatility=volatility,
            seed=seed,
        )

        probability = round(outcome["success_probability"], 1)
        rating = rate_success(probability)
        percentiles = np.percentile(outcome["at_retirement"], PERCENTILES)

        return RetirementProjection(
            success_probability=probability,
            rating=rating,
            message=RATING_MESSAGES[rating],
            simulation_count=advanced.simulation_count,
            years_to_retirement=years_to_retirement,
            years_in_retirement=advanced.years_in_retirement,
            starting_portfolio=starting_portfolio,
            annual_contribution=contribution,
            expected_return=expected_return,
            volatility=volatility,
            return_source=return_source,
            percentiles_at_retirement={
                f"{p}th": round(float(value), 2) for p, value in zip(PERCENTILES, percentiles)
            },
            median_final_balance=round(float(np.median(outcome["final_balances"])), 2),
            closed_form=closed_form_estimate(
                starting_portfolio=starting_portfolio,
                annual_contribution=contribution,
                years_to_retirement=years_to_retirement,
                expected_return=expected_return,
                annual_spending=spending,
                years_in_retirement=advanced.years_in_retirement,
                inflation_rate=advanced.inflation_rate,
                retirement_return=expected_return * advanced.retirement_return_factor,
            ),
        )
