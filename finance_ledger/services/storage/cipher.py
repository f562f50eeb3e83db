"""
State Encryption

AES-256-GCM over the serialized state. The stored format is

    <ivHex>:<authTagHex>:<cipherHex>

with a fresh 128-bit IV for every write and a 128-bit authentication tag.
The key is 256 bits, generated once, stored hex-encoded in its own file
with owner-only permissions, and never rotated.
"""

import os
import secrets
from pathlib import Path

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from finance_ledger.services.storage.interface import DecryptionError, EncryptionKeyError

KEY_LENGTH = 32  # 256 bits
IV_LENGTH = 16  # 128 bits
AUTH_TAG_LENGTH = 16

logger = structlog.get_logger(__name__)


class KeyManager:
    """Creates and reads the encryption key file."""

    def __init__(self, key_path: Path):
        self._key_path = Path(key_path)

    @property
    def key_path(self) -> Path:
        return self._key_path

    def exists(self) -> bool:
        return self._key_path.exists()

    def ensure_key(self) -> bool:
        """
        Generate the key file if it does not exist yet.

        Returns True if a new key was written.
        """
        if self._key_path.exists():
            return False

        self._key_path.parent.mkdir(parents=True, exist_ok=True)
        key = secrets.token_bytes(KEY_LENGTH)
        try:
            # O_EXCL: never overwrite a key another writer just created
            fd = os.open(self._key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        except FileExistsError:
            return False
        except OSError as e:
            raise EncryptionKeyError(f"Cannot create encryption key: {e}") from e

        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(key.hex())

        logger.info("encryption_key_generated", key_path=str(self._key_path))
        return True

    def load_key(self) -> bytes:
        """Read and decode the key."""
        try:
            raw = self._key_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError as e:
            raise EncryptionKeyError("Encryption key not available") from e
        except OSError as e:
            raise EncryptionKeyError(f"Cannot read encryption key: {e}") from e

        try:
            key = bytes.fromhex(raw)
        except ValueError as e:
            raise EncryptionKeyError("Encryption key is not valid hex") from e

        if len(key) != KEY_LENGTH:
            raise EncryptionKeyError(
                f"Encryption key must be {KEY_LENGTH} bytes, got {len(key)}"
            )
        return key


class StateCipher:
    """Authenticated encryption of text blobs."""

    def __init__(self, key: bytes):
        if len(key) != KEY_LENGTH:
            raise EncryptionKeyError(f"Encryption key must be {KEY_LENGTH} bytes")
        self._aead = AESGCM(key)

    def encrypt(self, text: str) -> str:
        iv = secrets.token_bytes(IV_LENGTH)
        sealed = self._aead.encrypt(iv, text.encode("utf-8"), None)
        # AESGCM appends the tag to the ciphertext
        ciphertext, auth_tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
        return f"{iv.hex()}:{auth_tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, blob: str) -> str:
        parts = blob.strip().split(":")
        if len(parts) != 3:
            raise DecryptionError("Invalid encrypted data format")

        try:
            iv, auth_tag, ciphertext = (bytes.fromhex(part) for part in parts)
        except ValueError as e:
            raise DecryptionError("Invalid encrypted data format") from e

        if len(iv) != IV_LENGTH or len(auth_tag) != AUTH_TAG_LENGTH:
            raise DecryptionError("Invalid encrypted data format")

        try:
            plaintext = self._aead.decrypt(iv, ciphertext + auth_tag, None)
        except InvalidTag as e:
            raise DecryptionError(
                "Authentication failed: data is corrupt, tampered with, or the key is wrong"
            ) from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted data is not valid UTF-8") from e
