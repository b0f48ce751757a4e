"""
Base class for protect providers.

A protect provider is the pluggable component which actually encrypts and
decrypts single string values. Providers form a tree: a root provider is bound
to a base purpose and ``derive_sub_provider(subkey)`` returns a child bound to
``base.subkey`` whose encryption namespace is disjoint from its parent and
from every sibling derived with a different subkey.

## Implementation Example

```python
import codecs

from protected_config.providers import ProtectProvider

class Rot13ProtectProvider(ProtectProvider):
    '''Toy provider, never use it for real secrets.'''

    def encrypt(self, plaintext: str) -> str:
        return codecs.encode(plaintext, "rot13")

    def decrypt(self, ciphertext: str) -> str:
        return codecs.decode(ciphertext, "rot13")

    def derive_sub_provider(self, subkey: str) -> "ProtectProvider":
        return self
```

Providers must guarantee ``decrypt(encrypt(x)) == x``; ``encrypt`` does not
need to be deterministic. ``decrypt`` must raise
``protected_config.errors.DecryptionError`` when the value cannot be decrypted.
"""

from abc import ABC, abstractmethod


class ProtectProvider(ABC):
    """Abstract encryption/decryption capability used by the grammar."""

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string."""
        pass

    @abstractmethod
    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a string previously produced by ``encrypt``."""
        pass

    @abstractmethod
    def derive_sub_provider(self, subkey: str) -> "ProtectProvider":
        """Return a provider bound to the per-value subkey (sub-purpose)."""
        pass
