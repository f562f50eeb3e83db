"""
In-Memory Storage

Same contract as the encrypted file, kept in a string. The state is
round-tripped through JSON on every load and save, so callers can never
mutate the stored copy by accident.
"""

from typing import Optional

from finance_ledger.models.state import FinanceState, default_state
from finance_ledger.services.storage.interface import PersistenceError, StateStorageInterface


class InMemoryStorage(StateStorageInterface):

    def __init__(self, initial: Optional[FinanceState] = None):
        self._payload: Optional[str] = initial.to_json() if initial else None
        self.fail_next_save: Optional[Exception] = None
        self.save_count = 0

    def exists(self) -> bool:
        return self._payload is not None

    def load(self) -> FinanceState:
        if self._payload is None:
            return default_state()
        return FinanceState.from_json(self._payload)

    def save(self, state: FinanceState) -> None:
        if self.fail_next_save is not None:
            error, self.fail_next_save = self.fail_next_save, None
            raise PersistenceError(f"Error saving finance data: {error}") from error
        self._payload = state.to_json()
        self.save_count += 1
