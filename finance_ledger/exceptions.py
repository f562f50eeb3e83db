"""
Domain Exceptions

Raised inside the ledger and planning components for expected failures.
`FinanceEngine` converts every `LedgerError` into a failed
`OperationResult`; they never escape the engine.

Storage and encryption errors are NOT here: they live with the storage
interface and do escape the engine.
"""


class LedgerError(Exception):
    """Base exception for expected domain failures."""
    pass


class AccountNotFoundError(LedgerError):
    """Account ID does not exist in the registry."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Account not found")


class ApartmentNotFoundError(LedgerError):
    """Apartment ID does not exist."""

    def __init__(self, apartment_id: str):
        self.apartment_id = apartment_id
        super().__init__("Apartment not found")


class InsufficientAccountsError(LedgerError):
    """Merge needs at least two resolvable accounts."""
    pass


class MergeHistoryNotFoundError(LedgerError):
    """Unmerge cannot find what it needs to reverse."""
    pass


class InvalidInputError(LedgerError):
    """Inputs failed validation; `issues` carries the details."""

    def __init__(self, message: str, issues: list = None):
        self.issues = issues or []
        super().__init__(message)
