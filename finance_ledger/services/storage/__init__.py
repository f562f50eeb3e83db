"""
Storage Services Package

Provides the abstract state storage interface and its implementations:
the AES-GCM encrypted file used in production and an in-memory variant.
"""

from finance_ledger.services.storage.interface import (
    DecryptionError,
    EncryptionKeyError,
    PersistenceError,
    StateStorageInterface,
    StorageError,
)
from finance_ledger.services.storage.cipher import KeyManager, StateCipher
from finance_ledger.services.storage.encrypted_file import EncryptedFileStorage
from finance_ledger.services.storage.memory import InMemoryStorage

__all__ = [
    # Interface
    "StateStorageInterface",
    # Exceptions
    "DecryptionError",
    "EncryptionKeyError",
    "PersistenceError",
    "StorageError",
    # Encryption
    "KeyManager",
    "StateCipher",
    # Implementations
    "EncryptedFileStorage",
    "InMemoryStorage",
]
