"""
Fernet protect provider.

``FernetProtectProvider`` is the real cryptographic backend shipped with the
package. It is bound to a master key and a *purpose chain*: the root provider
uses a single purpose (by default ``ProtectedConfigurationBuilder.Key1``) and
every ``derive_sub_provider(subkey)`` call appends ``subkey`` to the chain.

The Fernet key for a chain is derived from the master key with HKDF-SHA256,
using the JSON encoding of the chain as HKDF ``info``. The encoding keeps the
chain boundaries, so ``("P", "a.b")`` and ``("P.a", "b")`` get different keys
even though both print as ``P.a.b``. A token encrypted under one chain never
decrypts under another.

Fernet tokens are randomized (random IV plus timestamp) and authenticated, so
tampered or foreign tokens raise ``DecryptionError``.

Example:
    >>> key = FernetProtectProvider.generate_key()
    >>> provider = FernetProtectProvider(key, purpose="P")
    >>> child = provider.derive_sub_provider("mySubPurpose")
    >>> child.decrypt(child.encrypt("42"))
    '42'
"""

import base64
import json
import logging
from collections.abc import Sequence

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..errors import ConfigurationShapeError, DecryptionError
from .base import ProtectProvider

logger = logging.getLogger(__name__)

BASE_PURPOSE = "ProtectedConfigurationBuilder"
MIN_MASTER_KEY_SIZE = 16

_HKDF_SALT = b"protected-config.purpose.v1"
_DERIVED_KEY_SIZE = 32


def string_purpose(purpose: str | None) -> str:
    """Return the root purpose for a custom purpose string."""
    if not purpose:
        return BASE_PURPOSE
    return f"{BASE_PURPOSE}.{purpose}"


def key_number_purpose(key_number: int) -> str:
    """Return the root purpose for a numbered key (``...Key1``, ``...Key2``)."""
    return string_purpose(f"Key{key_number}")


def _normalize_master_key(master_key: str | bytes) -> bytes:
    key_bytes = master_key.encode("utf-8") if isinstance(master_key, str) else master_key
    if not key_bytes or len(key_bytes) < MIN_MASTER_KEY_SIZE:
        raise ConfigurationShapeError(
            f"Master key must be at least {MIN_MASTER_KEY_SIZE} bytes long. "
            "Use FernetProtectProvider.generate_key() to create one."
        )
    return key_bytes


class FernetProtectProvider(ProtectProvider):
    """Protect provider backed by ``cryptography.fernet`` with HKDF purposes."""

    def __init__(
        self,
        master_key: str | bytes,
        purpose: str | Sequence[str] | None = None,
    ):
        """
        Args:
            master_key: Secret key material (at least 16 bytes). The output of
                ``generate_key()`` is the recommended format.
            purpose: Root purpose, or a full purpose chain. Defaults to
                ``key_number_purpose(1)``.
        """
        self._master_key = _normalize_master_key(master_key)

        if purpose is None:
            chain: tuple[str, ...] = (key_number_purpose(1),)
        elif isinstance(purpose, str):
            chain = (purpose,)
        else:
            chain = tuple(purpose)

        if not chain or any(not part for part in chain):
            raise ConfigurationShapeError("Purpose chain must not contain empty purposes")

        self._purposes = chain
        self._fernet = Fernet(self._derive_key(chain))

    @staticmethod
    def generate_key() -> str:
        """Generate a new random master key as a URL-safe base64 string."""
        return Fernet.generate_key().decode("ascii")

    @property
    def purposes(self) -> tuple[str, ...]:
        return self._purposes

    @property
    def purpose(self) -> str:
        return ".".join(self._purposes)

    def _derive_key(self, chain: tuple[str, ...]) -> bytes:
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=_DERIVED_KEY_SIZE,
            salt=_HKDF_SALT,
            info=json.dumps(list(chain)).encode("utf-8"),
        )
        return base64.urlsafe_b64encode(hkdf.derive(self._master_key))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise DecryptionError(
                f"Failed to decrypt value with purpose '{self.purpose}': "
                "invalid token, wrong key or wrong sub-purpose"
            ) from e

    def derive_sub_provider(self, subkey: str) -> ProtectProvider:
        return FernetProtectProvider(self._master_key, self._purposes + (subkey,))

    def __repr__(self) -> str:
        return f"FernetProtectProvider(purpose={self.purpose!r})"
