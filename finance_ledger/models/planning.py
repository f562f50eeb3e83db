"""
Planning Models

Inputs (demographics, simulation assumptions) and outputs (allocation
guidance, retirement projection) of the planning components.
"""

from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from finance_ledger.models.account import AccountCategory, LedgerModel


class RiskTolerance(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class Demographics(LedgerModel):
    """Personal inputs used by allocation and retirement planning."""

    age: Optional[int] = Field(default=None, ge=0, le=120)
    annual_income: Optional[float] = Field(default=None, ge=0)
    retirement_age: int = Field(default=65, ge=1, le=120)
    annual_retirement_spending: Optional[float] = Field(
        default=None,
        ge=0,
        description="Target spending in the first year of retirement"
    )
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE


class RiskProfile(LedgerModel):
    """Expected annual return and volatility for one risk tier (fractions)."""

    expected_return: float = Field(..., ge=-1.0, le=1.0)
    volatility: float = Field(..., ge=0.0, le=2.0)


def _default_risk_profiles() -> dict[RiskTolerance, RiskProfile]:
    return {
        RiskTolerance.CONSERVATIVE: RiskProfile(expected_return=0.05, volatility=0.06),
        RiskTolerance.MODERATE: RiskProfile(expected_return=0.07, volatility=0.12),
        RiskTolerance.AGGRESSIVE: RiskProfile(expected_return=0.09, volatility=0.18),
    }


class AdvancedSettings(LedgerModel):
    """
    Simulation assumptions stored alongside the ledger.

    These are user data (persisted in the state file), not process
    configuration.
    """

    simulation_count: int = Field(default=10_000, ge=1, le=1_000_000)
    years_in_retirement: int = Field(default=30, ge=1, le=80)
    inflation_rate: float = Field(default=0.03, ge=-0.1, le=0.5)
    savings_rate: float = Field(default=0.15, ge=0.0, le=1.0)
    risk_profiles: dict[RiskTolerance, RiskProfile] = Field(
        default_factory=_default_risk_profiles
    )
    retirement_return_factor: float = Field(
        default=0.8,
        ge=0.0,
        le=2.0,
        description="Multiplier applied to expected return once retired"
    )
    retirement_volatility_factor: float = Field(
        default=0.6,
        ge=0.0,
        le=2.0,
        description="Multiplier applied to volatility once retired"
    )

    @model_validator(mode="after")
    def fill_missing_profiles(self) -> "AdvancedSettings":
        """Partial payloads keep the default for any tier they omit."""
        for tier, profile in _default_risk_profiles().items():
            self.risk_profiles.setdefault(tier, profile)
        return self

    def profile_for(self, tier: RiskTolerance) -> RiskProfile:
        return self.risk_profiles[tier]


# =============================================================================
# ALLOCATION OUTPUT
# =============================================================================

class AllocationSuggestion(LedgerModel):
    """A rebalancing suggestion for one category."""

    category: AccountCategory
    direction: str = Field(..., pattern="^(increase|reduce)$")
    message: str
    current: float
    recommended: float
    difference: float
    diagnostics: list[str] = Field(
        default_factory=list,
        description="Possible causes, present only for large gaps"
    )


class DebtRecommendation(LedgerModel):
    debt_to_asset_ratio: Optional[float] = None
    message: str


class AllocationReport(LedgerModel):
    category_totals: dict[AccountCategory, float]
    current_allocation: dict[AccountCategory, float]
    recommended_allocation: dict[AccountCategory, float]
    recommendations: list[AllocationSuggestion] = Field(default_factory=list)
    debt_recommendation: Optional[DebtRecommendation] = None
    total_assets: float
    total_liabilities: float
    debt_to_asset_ratio: Optional[float] = None
    account_count: int


# =============================================================================
# RETIREMENT OUTPUT
# =============================================================================

class SuccessRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    CONCERNING = "concerning"
    CRITICAL = "critical"


class ClosedFormEstimate(LedgerModel):
    """Deterministic point estimates computed alongside the simulation."""

    projected_portfolio_at_retirement: float
    total_capital_needed: float
    shortfall: float


class RetirementProjection(LedgerModel):
    success_probability: float = Field(..., ge=0.0, le=100.0)
    rating: SuccessRating
    message: str
    simulation_count: int
    years_to_retirement: int
    years_in_retirement: int
    starting_portfolio: float
    annual_contribution: float
    expected_return: float
    volatility: float
    return_source: str = Field(..., pattern="^(history|risk_profile)$")
    percentiles_at_retirement: dict[str, float] = Field(default_factory=dict)
    median_final_balance: float
    closed_form: ClosedFormEstimate
