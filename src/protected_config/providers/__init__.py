"""
Protect providers.

This subpackage contains the provider abstraction and its implementations.
"""

from .base import ProtectProvider
from .chained import ChainedProtectProvider
from .fernet import (
    BASE_PURPOSE,
    FernetProtectProvider,
    key_number_purpose,
    string_purpose,
)
from .passthrough import PassthroughProtectProvider

__all__ = [
    "ProtectProvider",
    "PassthroughProtectProvider",
    "ChainedProtectProvider",
    "FernetProtectProvider",
    "BASE_PURPOSE",
    "key_number_purpose",
    "string_purpose",
]
