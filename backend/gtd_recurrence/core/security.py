"""
Encryption helpers for free-text task fields.
"""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from gtd_recurrence.core.config import Settings
from gtd_recurrence.core.exceptions import ValidationError
from gtd_recurrence.interfaces.field_cipher import IFieldCipher

_PBKDF2_HASH = "sha256"


def derive_key(passphrase: str, salt: str, iterations: int) -> bytes:
    """Derive a urlsafe-base64 Fernet key from a passphrase using PBKDF2-HMAC-SHA256."""
    digest = hashlib.pbkdf2_hmac(
        _PBKDF2_HASH,
        passphrase.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
        dklen=32,
    )
    return base64.urlsafe_b64encode(digest)


class FernetFieldCipher(IFieldCipher):
    """Fernet (AES-128-CBC + HMAC) implementation of the field cipher."""

    def __init__(self, key: bytes):
        self._fernet = Fernet(key)

    @classmethod
    def from_passphrase(
        cls, passphrase: str, salt: str, iterations: int = 100_000
    ) -> "FernetFieldCipher":
        return cls(derive_key(passphrase, salt, iterations))

    @classmethod
    def from_settings(cls, settings: Settings) -> "FernetFieldCipher":
        return cls.from_passphrase(
            settings.ENCRYPTION_PASSPHRASE,
            settings.ENCRYPTION_SALT,
            settings.ENCRYPTION_ITERATIONS,
        )

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise ValidationError("Field could not be decrypted with the current key") from exc
