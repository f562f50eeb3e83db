"""Services package: encrypted state storage and statement ingestion."""

from finance_ledger.services.ocr import AccountIngestor, ParsedAccount
from finance_ledger.services.storage import (
    DecryptionError,
    EncryptedFileStorage,
    EncryptionKeyError,
    InMemoryStorage,
    PersistenceError,
    StateStorageInterface,
    StorageError,
)

__all__ = [
    # Ingestion
    "AccountIngestor",
    "ParsedAccount",
    # Storage
    "DecryptionError",
    "EncryptedFileStorage",
    "EncryptionKeyError",
    "InMemoryStorage",
    "PersistenceError",
    "StateStorageInterface",
    "StorageError",
]
