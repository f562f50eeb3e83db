"""
Persisted State

`FinanceState` is the whole decrypted payload. It is always loaded and
saved as one unit.
"""

from pydantic import Field

from finance_ledger.models.account import Account, LedgerModel
from finance_ledger.models.apartment import Apartment
from finance_ledger.models.history import HistoryEntry
from finance_ledger.models.planning import AdvancedSettings, Demographics


class FinanceState(LedgerModel):
    accounts: list[Account] = Field(default_factory=list)
    demographics: Demographics = Field(default_factory=Demographics)
    advanced_settings: AdvancedSettings = Field(default_factory=AdvancedSettings)
    history: list[HistoryEntry] = Field(default_factory=list)
    apartments: list[Apartment] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, payload: str) -> "FinanceState":
        return cls.model_validate_json(payload)


def default_state() -> FinanceState:
    """The empty schema used for new files."""
    return FinanceState()
