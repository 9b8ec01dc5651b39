# src/channeling/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps connectors/storage swappable and makes testing easier.
"""

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(slots=True, frozen=True)
class Message:
    """A chat message a task is anchored to."""

    channel: str
    ref: str
    text: str
    author_id: str


@dataclass(slots=True, frozen=True)
class Profile:
    user_id: str
    display_name: str
    avatar_url: str = ""


class MessageContext(Protocol):
    """
    Platform-side lookups used when assembling views.

    Both methods return None when the message/user is gone (deleted message,
    deleted account). Transport failures raise ExternalContextUnavailable.
    """

    async def fetch_message(self, channel: str, message_ref: str) -> Message | None: ...

    async def fetch_profile(self, user_id: str) -> Profile | None: ...


class ViewPublisher(Protocol):
    """
    Connector-side port: how the engine shows views to users.

    The connector decides what "publish" means for its transport
    (a home tab, an edited chat message, stdout).
    """

    async def publish(self, user_id: str, view: Any) -> None: ...

    async def open_modal(self, trigger_id: str, view: Any) -> str: ...

    async def update_modal(self, view_id: str, view: Any) -> None: ...


class StatusRepo(Protocol):
    async def initialize(self) -> None: ...
    async def list(self) -> list[Any]: ...
    async def get(self, status_id: int) -> Any: ...
    async def create(self, name: str) -> None: ...
    async def delete(self, status_id: int) -> int: ...


class TaskRepo(Protocol):
    async def initialize(self) -> None: ...
    async def list(self) -> list[Any]: ...
    async def create_or_merge_tags(self, channel: str, message_ref: str, tags: Any) -> Any: ...
    async def update_status(self, task_id: int, status_id: int) -> int: ...
