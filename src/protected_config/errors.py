"""Exception hierarchy for protected configuration.

Three kinds of failure are distinguished:

- ``ConfigurationShapeError``: a grammar, replacement template or provider
  configuration is malformed. Raised eagerly at construction time.
- ``DecryptionError``: a ciphertext token could not be decrypted (wrong key,
  wrong sub-purpose, corrupted data). Raised out of ``load()`` and reloads.
- File I/O failures during bulk file protection are not raised at all; they
  are logged per file by ``protect_files``.
"""


class ProtectedConfigurationError(Exception):
    """Base class for all protected configuration errors."""


class ConfigurationShapeError(ProtectedConfigurationError, ValueError):
    """Raised when grammar, template or provider configuration is invalid."""


class DecryptionError(ProtectedConfigurationError):
    """Raised when a protected token cannot be decrypted."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key
