"""Autocontext exception hierarchy.

All autocontext-specific exceptions inherit from AutoContextError.
"""

from __future__ import annotations


class AutoContextError(Exception):
    """Base exception for all autocontext errors."""


class StorageError(AutoContextError):
    """Raised when a memory storage backend fails."""


class ContextOffloadError(AutoContextError):
    """Raised when an off-loader cannot write, read, or clear a record."""

    def __init__(self, uuid: str, reason: str) -> None:
        self.uuid = uuid
        self.reason = reason
        super().__init__(f"Offload operation failed for UUID {uuid}: {reason}")


class ContextReloadError(AutoContextError):
    """Raised when offloaded data cannot be decoded back into messages.

    Named separately from ContextOffloadError so callers can tell a
    storage outage apart from a corrupt or foreign record.
    """

    def __init__(self, uuid: str, cause: BaseException) -> None:
        self.uuid = uuid
        self.cause = cause
        super().__init__(
            f"Failed to reload context with UUID {uuid}: "
            f"{type(cause).__name__}: {cause}"
        )


class CompressionError(AutoContextError):
    """Raised when a compression strategy produces an invalid result."""
