"""
Field cipher interface.

Defines the contract for encrypting free-text task fields before they are
written to the store and decrypting them after they are read.
"""

from abc import ABC, abstractmethod
from typing import Optional


class IFieldCipher(ABC):
    """Abstract interface for free-text field encryption."""

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext into an opaque ciphertext string."""
        pass

    @abstractmethod
    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a ciphertext produced by encrypt()."""
        pass

    def encrypt_optional(self, plaintext: Optional[str]) -> Optional[str]:
        """Encrypt a value that may be empty; empty values are stored as None."""
        if not plaintext:
            return None
        return self.encrypt(plaintext)

    def decrypt_optional(self, ciphertext: Optional[str]) -> Optional[str]:
        """Decrypt a value that may be absent."""
        if not ciphertext:
            return None
        return self.decrypt(ciphertext)
