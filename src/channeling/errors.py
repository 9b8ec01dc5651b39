# src/channeling/errors.py

"""
Error hierarchy shared by stores, the tracking engine and connectors.

Stores translate storage exceptions into these types; connectors and command
handlers log them and drop the event (at-most-once, best-effort).
"""

from __future__ import annotations


class ChannelingError(Exception):
    """Base class for all project errors."""


class PersistenceError(ChannelingError):
    """Storage is unreachable or rejected an operation unexpectedly."""


class ReferentialIntegrityError(PersistenceError):
    """A constraint (foreign key / unique) rejected the write."""


class NotFoundError(ChannelingError):
    """A referenced task or status does not exist."""


class ReservedStatusError(ChannelingError):
    """Attempt to delete one of the built-in statuses."""

    def __init__(self, status_id: int) -> None:
        super().__init__(f"status {status_id} is reserved and cannot be deleted")
        self.status_id = status_id


class InvalidActionError(ChannelingError):
    """An action payload could not be decoded."""


class ExternalContextUnavailable(ChannelingError):
    """Message or profile lookup failed on the messaging platform."""
