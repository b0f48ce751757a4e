"""
Host configuration contract.

These are the interfaces the protected configuration layer decorates. A
configuration provider exposes a flat key space where hierarchy levels are
joined with ``KEY_DELIMITER`` (``database:connection:password``). Every key
maps to at most one string value; ``None`` means the key is an interior node
or an explicit null.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, MutableMapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .tokens import ChangeToken

KEY_DELIMITER = ":"

_NUMBER = re.compile(r"^\d+$")


def combine_keys(*segments: str | None) -> str:
    """Join path segments with the key delimiter, skipping empty ones."""
    return KEY_DELIMITER.join(segment for segment in segments if segment)


def segment(key: str, prefix_length: int) -> str:
    """Return the key segment starting at ``prefix_length`` up to the next delimiter."""
    index = key.find(KEY_DELIMITER, prefix_length)
    if index < 0:
        return key[prefix_length:]
    return key[prefix_length:index]


def key_sort_key(key: str) -> tuple[tuple[int, int, str], ...]:
    """Sort key ordering numeric segments numerically (``2`` before ``10``)."""
    return tuple(
        (0, int(part), "") if _NUMBER.match(part) else (1, 0, part)
        for part in key.split(KEY_DELIMITER)
    )


class ConfigurationProvider(ABC):
    """A source of flattened configuration key/value pairs."""

    @abstractmethod
    def load(self) -> None:
        """(Re)load the key/value pairs from the backing store."""
        pass

    @abstractmethod
    def try_get(self, key: str) -> tuple[bool, str | None]:
        """Return ``(found, value)`` for ``key``."""
        pass

    @abstractmethod
    def set(self, key: str, value: str | None) -> None:
        """Set the value for ``key``."""
        pass

    @abstractmethod
    def get_child_keys(self, earlier_keys: Iterable[str], parent_path: str | None) -> list[str]:
        """Return the immediate child key segments of ``parent_path``.

        The result contains ``earlier_keys`` plus the segments found in this
        provider, sorted. Duplicates are not removed: a segment is returned once
        per key below it.
        """
        pass

    @abstractmethod
    def get_reload_token(self) -> "ChangeToken | None":
        """Return the current reload token, or ``None`` if reload is unsupported."""
        pass

    def close(self) -> None:
        """Release resources (watchers, subscriptions). Idempotent."""
        pass


class ConfigurationSource(ABC):
    """Builds a ``ConfigurationProvider``."""

    @abstractmethod
    def build(self, builder: "ConfigurationBuilderLike") -> ConfigurationProvider:
        pass


class ConfigurationBuilderLike(Protocol):
    """The builder surface a source may use while building its provider."""

    @property
    def properties(self) -> dict[str, Any]: ...

    @property
    def sources(self) -> list[ConfigurationSource]: ...


@runtime_checkable
class SupportsDataAccess(Protocol):
    """Optional capability: direct access to a provider's full key/value set.

    Providers implementing it let bulk operations read and rewrite values
    without walking ``get_child_keys`` level by level.
    """

    def get_data(self) -> MutableMapping[str, str | None]: ...
