"""
Error taxonomy for the extended client.

Every failure that leaves the client is one of these classes, whichever
calling convention (async or blocking) produced it. The original
collaborator error, if any, is chained as __cause__.
"""

from __future__ import annotations

from typing import Optional


class ExtendedClientError(Exception):
    """Base class for all errors raised by sqs_extended."""


class ConfigurationError(ExtendedClientError):
    """Missing or invalid configuration (e.g. no bucket for send)."""


class MalformedPointerError(ExtendedClientError):
    """A pointer attribute or JSON body pointer is present but unparsable."""


class StorageError(ExtendedClientError):
    """An object-store call failed."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.bucket = bucket
        self.key = key


class QueueError(ExtendedClientError):
    """A queue call failed."""

    def __init__(self, message: str, *, operation: str):
        super().__init__(message)
        self.operation = operation


__all__ = [
    "ExtendedClientError",
    "ConfigurationError",
    "MalformedPointerError",
    "StorageError",
    "QueueError",
]
