"""Chained protect provider."""

from collections.abc import Callable

from .base import ProtectProvider


class ChainedProtectProvider(ProtectProvider):
    """Wrap a provider with an extra reversible transformation.

    ``encode`` is applied to the output of the inner provider's ``encrypt`` and
    ``decode`` to the input of its ``decrypt``. Derived providers stay chained,
    so a chained provider can be used anywhere a provider is expected.

    Example:
        >>> reverse = lambda text: text[::-1]
        >>> provider = ChainedProtectProvider(FernetProtectProvider(key), reverse, reverse)
    """

    def __init__(
        self,
        inner: ProtectProvider,
        encode: Callable[[str], str],
        decode: Callable[[str], str],
    ):
        self.inner = inner
        self.encode = encode
        self.decode = decode

    def encrypt(self, plaintext: str) -> str:
        return self.encode(self.inner.encrypt(plaintext))

    def decrypt(self, ciphertext: str) -> str:
        return self.inner.decrypt(self.decode(ciphertext))

    def derive_sub_provider(self, subkey: str) -> ProtectProvider:
        return ChainedProtectProvider(
            self.inner.derive_sub_provider(subkey), self.encode, self.decode
        )

    def __repr__(self) -> str:
        return f"ChainedProtectProvider({self.inner!r})"
