"""
Error kinds raised by the treat databases and the image storage clients.

The web layer maps each kind to an HTTP status, so callers should catch the
specific subclasses rather than inspecting messages.
"""

from __future__ import annotations

from typing import Optional


class TreatDatabaseError(Exception):
    """Base class for every error a TreatDatabase raises."""

    def __init__(
        self,
        message: str,
        *,
        op: Optional[str] = None,
        treat_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.op = op
        self.treat_id = treat_id


class InvalidArgumentError(TreatDatabaseError):
    """The caller passed an empty id to an operation that needs one."""


class NotFoundError(TreatDatabaseError):
    """No treat exists with the requested id."""


class DatabaseConnectionError(TreatDatabaseError):
    """The backend could not be reached when it was constructed."""


class BackendError(TreatDatabaseError):
    """Any other failure reported by a remote backend."""


class StorageError(Exception):
    """Uploading an image to object storage failed."""
