"""
Passthrough protect provider.

It leaves every value untouched and is meant for development and tests where
no real cryptography is wanted.
"""

from .base import ProtectProvider


class PassthroughProtectProvider(ProtectProvider):
    """Identity provider: encrypt and decrypt return their input."""

    def encrypt(self, plaintext: str) -> str:
        return plaintext

    def decrypt(self, ciphertext: str) -> str:
        return ciphertext

    def derive_sub_provider(self, subkey: str) -> ProtectProvider:
        return self

    def __repr__(self) -> str:
        return "PassthroughProtectProvider()"
