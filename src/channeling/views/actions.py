# src/channeling/views/actions.py

"""
Wire encoding for status-transition choices.

A choice in the dashboard can carry a single opaque string, so the task id and
the target status id travel together as "<task_id>:<status_id>". Connectors
and stored chat history depend on this format; keep it stable.
"""

from __future__ import annotations

from ..errors import InvalidActionError

SEPARATOR = ":"


def encode_transition(task_id: int, status_id: int) -> str:
    return f"{int(task_id)}{SEPARATOR}{int(status_id)}"


def decode_transition(value: str) -> tuple[int, int]:
    raw = (value or "").strip()
    task_part, sep, status_part = raw.partition(SEPARATOR)
    if not sep:
        raise InvalidActionError(f"expected '<task_id>:<status_id>', got {value!r}")
    try:
        return int(task_part), int(status_part)
    except ValueError as e:
        raise InvalidActionError(f"non-numeric ids in {value!r}") from e
