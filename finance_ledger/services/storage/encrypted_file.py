"""
Encrypted File Storage

DESIGN DECISION: The whole ledger is one encrypted file on local disk:
1. Personal-scale data fits comfortably in a single blob
2. One file means one atomic replace per save
3. Nothing readable ever touches the disk

TRADEOFFS:
- Every operation rewrites the whole file (fine at this scale)
- No cross-process locking (single owner assumed)

Writes go to a temporary file in the same directory, are fsynced, then
renamed over the target, so a crash leaves either the old or the new
file and never a partial one.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from finance_ledger.config.settings import StorageSettings
from finance_ledger.models.account import utc_now
from finance_ledger.models.state import FinanceState, default_state
from finance_ledger.services.storage.cipher import KeyManager, StateCipher
from finance_ledger.services.storage.interface import (
    DecryptionError,
    PersistenceError,
    StateStorageInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)


class EncryptedFileStorage(StateStorageInterface):
    """AES-GCM encrypted state file with a separate key file."""

    def __init__(self, settings: StorageSettings):
        self._data_path = Path(settings.data_path)
        self._key_manager = KeyManager(settings.key_path)
        self._cipher: Optional[StateCipher] = None
        self.key_generated = False

        # A missing key next to existing data means the data is unreadable;
        # generating a fresh key there would only hide that.
        if not self._data_path.exists():
            self.key_generated = self._key_manager.ensure_key()

    @property
    def data_path(self) -> Path:
        return self._data_path

    @property
    def key_path(self) -> Path:
        return self._key_manager.key_path

    def _get_cipher(self) -> StateCipher:
        """Get or create the cipher (reads the key on first use)."""
        if self._cipher is None:
            self._cipher = StateCipher(self._key_manager.load_key())
        return self._cipher

    def exists(self) -> bool:
        return self._data_path.exists()

    def load(self) -> FinanceState:
        if not self._data_path.exists():
            return default_state()

        try:
            blob = self._data_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Invalid encrypted data format: file is not text") from e
        except OSError as e:
            raise StorageError(f"Cannot read finance data: {e}") from e
        payload = self._get_cipher().decrypt(blob)

        try:
            return FinanceState.from_json(payload)
        except ValidationError as e:
            raise DecryptionError(f"Decrypted state is not a valid ledger payload: {e}") from e

    def save(self, state: FinanceState) -> None:
        if not self._data_path.exists() and self._key_manager.ensure_key():
            self.key_generated = True

        blob = self._get_cipher().encrypt(state.to_json())

        directory = self._data_path.parent
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            # mkstemp creates the file with mode 0o600
            fd, tmp_name = tempfile.mkstemp(
                dir=directory,
                prefix=f"{self._data_path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(blob)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._data_path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Error saving finance data: {e}") from e

    def quarantine(self) -> Optional[Path]:
        if not self._data_path.exists():
            return None

        stamp = utc_now().strftime("%Y%m%dT%H%M%S%f")
        target = self._data_path.with_name(f"{self._data_path.name}.corrupt-{stamp}")
        os.replace(self._data_path, target)
        logger.error(
            "state_file_quarantined",
            data_path=str(self._data_path),
            quarantined_path=str(target),
        )
        return target
