# src/channeling/views/assembler.py

from __future__ import annotations

"""
View assembly.

Turns store contents plus freshly fetched platform context into view models.
Nothing is cached: every build re-fetches each message and author profile.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..core.ports import MessageContext
from ..errors import ExternalContextUnavailable
from ..tracking.models import DefaultStatus, Status, Task
from .actions import encode_transition

logger = logging.getLogger(__name__)

# Markup wrapped around the status name: New is italic, Completed struck through.
STATUS_STYLES: dict[str, str] = {
    DefaultStatus.NEW.label: "_",
    DefaultStatus.COMPLETED.label: "~",
}

DASHBOARD_TITLE = "Tasks"
MANAGER_TITLE = "Manage Status"


def status_style(status_name: str) -> str:
    return STATUS_STYLES.get(status_name, "")


@dataclass(slots=True, frozen=True)
class TransitionOption:
    label: str
    value: str  # "<task_id>:<status_id>"


@dataclass(slots=True, frozen=True)
class TaskEntry:
    task_id: int
    text: str
    author_name: str
    author_avatar: str
    status_name: str
    status_style: str
    tags: tuple[str, ...]
    options: tuple[TransitionOption, ...]


@dataclass(slots=True, frozen=True)
class DashboardView:
    user_id: str
    entries: tuple[TaskEntry, ...]
    title: str = DASHBOARD_TITLE


@dataclass(slots=True, frozen=True)
class StatusEntry:
    status_id: int
    name: str
    delete_value: str | None  # None for reserved statuses

    @property
    def deletable(self) -> bool:
        return self.delete_value is not None


@dataclass(slots=True, frozen=True)
class StatusManagerView:
    entries: tuple[StatusEntry, ...]
    title: str = MANAGER_TITLE


def build_status_options(task: Task, statuses: Sequence[Status]) -> tuple[TransitionOption, ...]:
    """Every status except the task's current one."""
    return tuple(
        TransitionOption(label=s.name, value=encode_transition(task.id, s.id))
        for s in statuses
        if s.id != task.status_id
    )


def build_status_entry(status: Status) -> StatusEntry:
    if status.reserved is not None:
        return StatusEntry(status_id=status.id, name=status.name, delete_value=None)
    return StatusEntry(status_id=status.id, name=status.name, delete_value=str(status.id))


class ViewAssembler:
    def __init__(self, context: MessageContext) -> None:
        self._context = context

    async def build_task_entry(self, task: Task, statuses: Sequence[Status]) -> TaskEntry | None:
        """
        Build the dashboard entry for one task.

        Returns None when the message or its author can no longer be resolved;
        such tasks are left out of the dashboard rather than shown with placeholders.
        """
        try:
            message = await self._context.fetch_message(task.channel, task.message_ref)
            if message is None:
                logger.debug("Task %s: message %s/%s not found -> omitted", task.id, task.channel, task.message_ref)
                return None

            profile = await self._context.fetch_profile(message.author_id)
            if profile is None:
                logger.debug("Task %s: author %s not found -> omitted", task.id, message.author_id)
                return None
        except ExternalContextUnavailable as e:
            logger.warning("Task %s: context unavailable (%s) -> omitted", task.id, e)
            return None

        return TaskEntry(
            task_id=task.id,
            text=message.text,
            author_name=profile.display_name,
            author_avatar=profile.avatar_url,
            status_name=task.status_name,
            status_style=status_style(task.status_name),
            tags=tuple(sorted(task.tags)),
            options=build_status_options(task, statuses),
        )

    async def build_dashboard(
        self,
        user_id: str,
        tasks: Sequence[Task],
        statuses: Sequence[Status],
    ) -> DashboardView:
        entries = await asyncio.gather(*(self.build_task_entry(t, statuses) for t in tasks))
        return DashboardView(user_id=user_id, entries=tuple(e for e in entries if e is not None))

    @staticmethod
    def build_status_manager(statuses: Sequence[Status]) -> StatusManagerView:
        return StatusManagerView(entries=tuple(build_status_entry(s) for s in statuses))
