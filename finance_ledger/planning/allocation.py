"""
Allocation Recommendation Engine

Compares the current spread of assets across categories with an
age-based target for the user's risk tier.

DESIGN DECISION: Percentages are computed over TOTAL ASSETS only
(cash + investments + retirement + real estate). Liabilities feed the
debt-to-asset ratio instead, and future income (pensions, Social
Security) is never investable, so it is reported at 0% on both sides.
"""

from typing import Callable, Iterable, Optional

from finance_ledger.config.settings import PlanningSettings
from finance_ledger.models.account import (
    ALLOCATION_CATEGORIES,
    ASSET_CATEGORIES,
    Account,
    AccountCategory,
)
from finance_ledger.models.planning import (
    AllocationReport,
    AllocationSuggestion,
    DebtRecommendation,
    Demographics,
    RiskTolerance,
)

# Used when demographics carry no age yet
DEFAULT_AGE = 30


# =============================================================================
# TARGET FORMULAS
# =============================================================================

TargetFormula = Callable[[int], dict[AccountCategory, float]]


def _conservative(age: int) -> dict[AccountCategory, float]:
    return {
        AccountCategory.CASH: min(20.0, age * 0.3),
        AccountCategory.INVESTMENTS: max(30.0, 80.0 - age),
        AccountCategory.RETIREMENT: min(40.0, age * 0.5),
        AccountCategory.REAL_ESTATE: 10.0,
    }


def _moderate(age: int) -> dict[AccountCategory, float]:
    return {
        AccountCategory.CASH: min(15.0, age * 0.2),
        AccountCategory.INVESTMENTS: max(40.0, 90.0 - age),
        AccountCategory.RETIREMENT: min(35.0, age * 0.4),
        AccountCategory.REAL_ESTATE: 10.0,
    }


def _aggressive(age: int) -> dict[AccountCategory, float]:
    return {
        AccountCategory.CASH: min(10.0, age * 0.1),
        AccountCategory.INVESTMENTS: max(50.0, 110.0 - age),
        AccountCategory.RETIREMENT: min(30.0, age * 0.3),
        AccountCategory.REAL_ESTATE: 10.0,
    }


TARGET_FORMULAS: dict[RiskTolerance, TargetFormula] = {
    RiskTolerance.CONSERVATIVE: _conservative,
    RiskTolerance.MODERATE: _moderate,
    RiskTolerance.AGGRESSIVE: _aggressive,
}


# Cause hypotheses shown when a category is far off target
DIAGNOSTICS: dict[AccountCategory, dict[str, list[str]]] = {
    AccountCategory.CASH: {
        "reduce": [
            "Large emergency fund beyond 6 months of expenses",
            "Recent windfall or asset sale not yet invested",
            "Savings earmarked for a near-term purchase",
        ],
        "increase": [
            "Emergency fund may not cover 3-6 months of expenses",
            "Most savings are locked in long-term accounts",
        ],
    },
    AccountCategory.INVESTMENTS: {
        "reduce": [
            "Concentrated position in a single stock or fund",
            "Recent market gains have not been rebalanced",
        ],
        "increase": [
            "Idle cash that could be invested for growth",
            "Brokerage contributions paused or never started",
        ],
    },
    AccountCategory.RETIREMENT: {
        "reduce": [
            "Taxable savings may be too thin for goals before retirement",
            "Retirement accounts have outgrown other categories after strong returns",
        ],
        "increase": [
            "Employer 401(k) match may not be fully captured",
            "IRA contribution room left unused",
        ],
    },
    AccountCategory.REAL_ESTATE: {
        "reduce": [
            "Home equity dominates net worth and is illiquid",
            "Property values may be stale and overstated",
        ],
        "increase": [
            "No real estate exposure; consider a REIT or home equity over time",
        ],
    },
}


class AllocationEngine:
    """
    Builds an AllocationReport from accounts and demographics.

    Stateless apart from its thresholds, so one instance can serve every
    request.
    """

    def __init__(self, settings: Optional[PlanningSettings] = None):
        self._settings = settings or PlanningSettings()

    # -------------------------------------------------------------------------
    # Building blocks
    # -------------------------------------------------------------------------

    @staticmethod
    def category_totals(accounts: Iterable[Account]) -> dict[AccountCategory, float]:
        totals = {category: 0.0 for category in AccountCategory}
        for account in accounts:
            totals[account.category] += account.current_value or 0.0
        return totals

    @staticmethod
    def total_assets(totals: dict[AccountCategory, float]) -> float:
        return sum(totals[category] for category in ASSET_CATEGORIES)

    @staticmethod
    def current_allocation(totals: dict[AccountCategory, float]) -> dict[AccountCategory, float]:
        """Percent of total assets per allocation key (future income always 0)."""
        assets = AllocationEngine.total_assets(totals)
        allocation = {}
        for category in ALLOCATION_CATEGORIES:
            if assets > 0 and category in ASSET_CATEGORIES:
                allocation[category] = totals[category] / assets * 100
            else:
                allocation[category] = 0.0
        return allocation

    @staticmethod
    def target_allocation(age: int, risk_tolerance: RiskTolerance) -> dict[AccountCategory, float]:
        """Age-based target for the tier, renormalized to sum to 100."""
        raw = TARGET_FORMULAS[risk_tolerance](age)
        total = sum(raw.values())
        target = {category: value / total * 100 for category, value in raw.items()}
        target[AccountCategory.FUTURE_INCOME] = 0.0
        return target

    def suggestions(
        self,
        current: dict[AccountCategory, float],
        target: dict[AccountCategory, float],
    ) -> list[AllocationSuggestion]:
        results = []
        for category in ALLOCATION_CATEGORIES:
            difference = current[category] - target[category]
            if abs(difference) <= self._settings.rebalance_threshold_pct:
                continue

            direction = "reduce" if difference > 0 else "increase"
            verb = "reducing" if difference > 0 else "increasing"
            label = category.value.replace("_", " ")
            diagnostics = []
            if abs(difference) > self._settings.diagnostic_threshold_pct:
                diagnostics = list(DIAGNOSTICS.get(category, {}).get(direction, []))

            results.append(AllocationSuggestion(
                category=category,
                direction=direction,
                message=f"Consider {verb} {label} allocation by {abs(difference):.1f}%",
                current=round(current[category], 1),
                recommended=round(target[category], 1),
                difference=round(difference, 1),
                diagnostics=diagnostics,
            ))
        return results

    def debt_recommendation(self, liabilities: float, assets: float) -> Optional[DebtRecommendation]:
        if liabilities <= 0:
            return None
        if assets <= 0:
            return DebtRecommendation(
                debt_to_asset_ratio=None,
                message="Debt with no recorded assets. Focus on paying down balances first.",
            )
        ratio = liabilities / assets * 100
        if ratio <= self._settings.debt_ratio_threshold_pct:
            return None
        return DebtRecommendation(
            debt_to_asset_ratio=round(ratio, 1),
            message=(
                f"Debt is {ratio:.1f}% of total assets. Prioritize paying down "
                "high-interest balances before adding to investments."
            ),
        )

    # -------------------------------------------------------------------------
    # Report
    # -------------------------------------------------------------------------

    def analyze(self, accounts: list[Account], demographics: Demographics) -> AllocationReport:
        totals = self.category_totals(accounts)
        assets = self.total_assets(totals)
        liabilities = totals[AccountCategory.LIABILITIES]

        current = self.current_allocation(totals)
        target = self.target_allocation(
            demographics.age if demographics.age is not None else DEFAULT_AGE,
            demographics.risk_tolerance,
        )

        recommendations = self.suggestions(current, target) if assets > 0 else []

        return AllocationReport(
            category_totals=totals,
            current_allocation=current,
            recommended_allocation=target,
            recommendations=recommendations,
            debt_recommendation=self.debt_recommendation(liabilities, assets),
            total_assets=assets,
            total_liabilities=liabilities,
            debt_to_asset_ratio=liabilities / assets * 100 if assets > 0 else None,
            account_count=len(accounts),
        )
