"""Input validation for planning operations."""

from finance_ledger.validation.validator import ApartmentValidator, RetirementInputValidator

__all__ = ["ApartmentValidator", "RetirementInputValidator"]
