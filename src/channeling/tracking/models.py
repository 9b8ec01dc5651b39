# src/channeling/tracking/models.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum

TAG_DELIMITER = ","


class DefaultStatus(IntEnum):
    """
    Built-in statuses seeded at initialization.

    Their ids are fixed and they can never be deleted.
    """

    NEW = 0
    COMPLETED = 1

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def of(cls, status_id: int) -> DefaultStatus | None:
        """Return the matching built-in status, or None for user-created ids."""
        try:
            return cls(int(status_id))
        except ValueError:
            return None


@dataclass(slots=True, frozen=True)
class Status:
    id: int
    name: str

    @property
    def reserved(self) -> DefaultStatus | None:
        return DefaultStatus.of(self.id)


@dataclass(slots=True, frozen=True)
class Task:
    id: int
    channel: str
    message_ref: str
    status_id: int
    status_name: str
    tags: frozenset[str]

    created_at: float = 0.0
    updated_at: float = 0.0


def encode_tags(tags: Iterable[str]) -> str:
    # Sorted so the stored column is stable for the same set.
    return TAG_DELIMITER.join(sorted({t.strip() for t in tags if t and t.strip()}))


def decode_tags(raw: str | None) -> frozenset[str]:
    """Parse the stored column; empty tokens (e.g. from "" or ",a,") are dropped."""
    if not raw:
        return frozenset()
    return frozenset(t.strip() for t in raw.split(TAG_DELIMITER) if t.strip())


def merge_tags(current: Iterable[str], incoming: Iterable[str]) -> frozenset[str]:
    """
    Toggle merge: a tag present on both sides is removed, a tag present on
    one side only is kept. Applying the same incoming tags twice restores
    the original set.
    """
    return frozenset(current) ^ frozenset(incoming)
