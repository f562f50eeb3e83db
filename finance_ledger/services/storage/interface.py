"""
Abstract Storage Interface

DESIGN DECISION: The engine only ever talks to this interface. This allows us to:
1. Keep the encrypted file as the production backend
2. Use in-memory storage for testing
3. Keep business logic decoupled from the on-disk format

The interface is intentionally tiny: the whole state is loaded and saved
as one unit. There are no partial writes.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from finance_ledger.models.state import FinanceState


class StateStorageInterface(ABC):
    """
    Abstract interface for whole-state persistence.

    Any backend (encrypted file, in-memory, ...) must implement these methods.
    """

    @abstractmethod
    def load(self) -> FinanceState:
        """
        Load the complete state.

        Returns:
            A fresh FinanceState instance. Callers may mutate it freely;
            nothing is shared with the backend.

        Raises:
            DecryptionError: If the stored blob cannot be decrypted
            EncryptionKeyError: If the key is missing or malformed
        """
        pass

    @abstractmethod
    def save(self, state: FinanceState) -> None:
        """
        Persist the complete state, replacing what was stored.

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    def exists(self) -> bool:
        """True if a state has been saved before."""
        pass

    def quarantine(self) -> Optional[Path]:
        """
        Move an unreadable state aside so a later save cannot destroy it.

        Returns the new location, or None if the backend has nothing to move.
        """
        return None


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class EncryptionKeyError(StorageError):
    """Encryption key is missing, unreadable or malformed."""
    pass


class DecryptionError(StorageError):
    """
    Stored blob failed authentication or is malformed.

    Signals corruption, tampering or the wrong key. Never swallowed.
    """
    pass


class PersistenceError(StorageError):
    """Writing the state failed. The underlying error is chained."""
    pass
