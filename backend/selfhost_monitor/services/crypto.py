"""Encryption at rest for stored URLs and notes.

Values are encrypted with AES-256-GCM and stored as
base64(12-byte IV + ciphertext + tag).
"""
import base64
import binascii
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

IV_LENGTH = 12


class DecryptionError(Exception):
    """Raised when a stored value cannot be decrypted with the configured key."""


class UrlCipher:
    """Encrypts and decrypts sensitive strings with a configured key.

    With no key configured the cipher is disabled: values are stored and
    returned as-is.
    """

    def __init__(self, key_hex: Optional[str] = None):
        self._aead: Optional[AESGCM] = None
        if key_hex:
            if len(key_hex) != 64:
                raise ValueError("ENCRYPTION_KEY must be exactly 64 hex characters (32 bytes) for AES-256")
            try:
                key = bytes.fromhex(key_hex)
            except ValueError as e:
                raise ValueError(f"ENCRYPTION_KEY is not valid hex: {e}") from e
            self._aead = AESGCM(key)

    @property
    def enabled(self) -> bool:
        return self._aead is not None

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        """Encrypt a value; empty values are stored as None."""
        if not plaintext:
            return None
        if not self._aead:
            return plaintext
        iv = os.urandom(IV_LENGTH)
        ciphertext = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        return base64.b64encode(iv + ciphertext).decode("ascii")

    def decrypt(self, token: Optional[str]) -> Optional[str]:
        """Decrypt a stored value, raising DecryptionError on failure."""
        if not token:
            return None
        if not self._aead:
            raise DecryptionError("Encryption is not configured")
        try:
            combined = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError(f"Not an encrypted value: {e}") from e
        if len(combined) <= IV_LENGTH:
            raise DecryptionError("Encrypted value is too short")
        try:
            plaintext = self._aead.decrypt(combined[:IV_LENGTH], combined[IV_LENGTH:], None)
            return plaintext.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError) as e:
            raise DecryptionError("Decryption failed") from e

    def reveal(self, stored: Optional[str]) -> Optional[str]:
        """Decrypt a stored value, falling back to the stored value itself.

        Rows written before encryption was enabled hold plaintext; those keep
        working instead of breaking monitoring.
        """
        if not stored or not self._aead:
            return stored
        try:
            return self.decrypt(stored)
        except DecryptionError:
            logger.debug("Stored value is not decryptable, using it as plaintext")
            return stored
