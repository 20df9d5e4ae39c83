"""
Exception hierarchy for the disk cache.

All exceptions inherit from DiskboxError, which carries optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class DiskboxError(Exception):
    """Base exception for all cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(DiskboxError):
    """Raised when the store is misconfigured.

    Examples:
        - Missing cache_path
        - cache_path missing or not a directory
        - Non-integer or negative clean_every
        - Probe write/read/delete in the root failed
    """

    pass


class ValidationError(DiskboxError):
    """Raised for a malformed key or segment name.

    Context should include:
        - field: The field that failed validation
        - value: The invalid value
    """

    pass


class NotConnectedError(DiskboxError):
    """Raised when an operation is attempted before start()."""

    pass


class CacheIOError(DiskboxError):
    """Raised for filesystem failures other than file-not-found.

    Attributes:
        errno: The OS error number, if known.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        errno: int | None = None,
    ) -> None:
        super().__init__(message, context)
        self.errno = errno

    @classmethod
    def from_os_error(cls, action: str, path: Any, exc: OSError) -> CacheIOError:
        """Wrap an OSError raised while touching a record file."""
        return cls(
            f"Failed to {action} cache file: {exc.strerror or exc}",
            context={"path": str(path)},
            errno=exc.errno,
        )


class CorruptionError(DiskboxError):
    """Raised when a record file cannot be parsed at all."""

    pass


class SchemaMismatchError(CorruptionError):
    """Raised when a record file parses but does not hold an envelope.

    Context should include:
        - reason: What part of the envelope was missing or malformed
    """

    pass


class SerializationError(DiskboxError):
    """Raised when a value cannot be encoded for storage."""

    pass
