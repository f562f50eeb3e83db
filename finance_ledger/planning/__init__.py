"""Planning components: allocation guidance, retirement projection, apartment analysis."""

from finance_ledger.planning.allocation import AllocationEngine
from finance_ledger.planning.apartment import (
    ApartmentAnalyzer,
    amortization_breakdown,
    monthly_payment,
)
from finance_ledger.planning.retirement import (
    RetirementProjector,
    estimate_historical_return,
    rate_success,
)

__all__ = [
    "AllocationEngine",
    "ApartmentAnalyzer",
    "RetirementProjector",
    "amortization_breakdown",
    "estimate_historical_return",
    "monthly_payment",
    "rate_success",
]
