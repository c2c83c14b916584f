"""
Error taxonomy shared by the storage layer and the HTTP boundary.

Each error carries the HTTP status it maps to so routes never have to guess.
"""
from __future__ import annotations

from typing import Optional


class StorageError(Exception):
    """Base exception for the file manager backend."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StoreUnavailable(StorageError):
    """The object store could not be reached or returned a failure."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class StoreNotConfigured(StorageError):
    """Bucket, endpoint or credentials are missing from the environment."""


class InvalidArgument(StorageError):
    """Caller supplied missing or malformed input."""

    status_code = 400
