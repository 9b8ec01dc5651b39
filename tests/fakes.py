# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from channeling.core.ports import Message, Profile
from channeling.errors import ExternalContextUnavailable


class FakeMessageContext:
    """
    In-memory MessageContext.

    - `post()` registers a message (and its author's profile)
    - refs listed in `broken` raise ExternalContextUnavailable
    - `calls` records every fetch, to check that nothing is cached
    """

    def __init__(self) -> None:
        self.messages: dict[tuple[str, str], Message] = {}
        self.profiles: dict[str, Profile] = {}
        self.broken: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def post(self, channel: str, ref: str, text: str, author_id: str = "U1", name: str = "Ada") -> Message:
        msg = Message(channel=channel, ref=ref, text=text, author_id=author_id)
        self.messages[(channel, ref)] = msg
        self.profiles.setdefault(author_id, Profile(user_id=author_id, display_name=name, avatar_url=f"https://img/{author_id}"))
        return msg

    async def fetch_message(self, channel: str, message_ref: str) -> Message | None:
        self.calls.append(("message", message_ref))
        if message_ref in self.broken:
            raise ExternalContextUnavailable(f"timeout fetching {message_ref}")
        return self.messages.get((channel, message_ref))

    async def fetch_profile(self, user_id: str) -> Profile | None:
        self.calls.append(("profile", user_id))
        return self.profiles.get(user_id)


@dataclass(slots=True)
class FakePublisher:
    """Records published views instead of sending them anywhere."""

    published: list[tuple[str, Any]] = field(default_factory=list)
    opened: list[tuple[str, Any]] = field(default_factory=list)
    updated: list[tuple[str, Any]] = field(default_factory=list)

    async def publish(self, user_id: str, view: Any) -> None:
        self.published.append((user_id, view))

    async def open_modal(self, trigger_id: str, view: Any) -> str:
        self.opened.append((trigger_id, view))
        return f"view-{len(self.opened)}"

    async def update_modal(self, view_id: str, view: Any) -> None:
        self.updated.append((view_id, view))
