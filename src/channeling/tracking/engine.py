# src/channeling/tracking/engine.py

from __future__ import annotations

"""
Tracking engine.

Maps inbound platform events to store operations and re-derives views:
- reaction added/removed -> tag merge on the reacted message's task
- status transition      -> task status update
- status create/delete   -> status catalog change + view refresh

Views are stateless projections of store contents; every build re-reads the
stores and re-fetches platform context.
"""

import logging
from collections.abc import Mapping, Sequence

from ..core.ports import StatusRepo, TaskRepo, ViewPublisher
from ..views.actions import decode_transition
from ..views.assembler import DashboardView, StatusManagerView, ViewAssembler
from .models import Task

logger = logging.getLogger(__name__)


def normalize_reaction_name(name: str) -> str:
    """":ladybug:" / "Ladybug" / " ladybug " -> "ladybug"."""
    return (name or "").strip().strip(":").lower()


class TrackingEngine:
    def __init__(
        self,
        statuses: StatusRepo,
        tasks: TaskRepo,
        assembler: ViewAssembler,
        reactions: Mapping[str, Sequence[str]],
        publisher: ViewPublisher | None = None,
    ) -> None:
        self._statuses = statuses
        self._tasks = tasks
        self._assembler = assembler
        self._reactions = {normalize_reaction_name(k): tuple(v) for k, v in reactions.items() if v}
        self._publisher = publisher
        # Open management views per user (user_id -> view_id), refreshed on status changes.
        self._open_managers: dict[str, str] = {}

    @property
    def reactions(self) -> dict[str, tuple[str, ...]]:
        return dict(self._reactions)

    def tags_for_reaction(self, reaction_name: str) -> tuple[str, ...] | None:
        return self._reactions.get(normalize_reaction_name(reaction_name))

    # ---- events ----

    async def on_reaction_event(self, channel: str, message_ref: str, reaction_name: str) -> Task | None:
        """
        Apply a reaction (added or removed) to the message's task.

        Unmapped reactions are ignored. Added and removed reactions take the
        same path: the merge toggles tags, so add-then-remove restores the
        previous tag set.
        """
        tags = self.tags_for_reaction(reaction_name)
        if not tags:
            logger.debug("Reaction %r is not mapped -> ignored", reaction_name)
            return None

        task = await self._tasks.create_or_merge_tags(channel, message_ref, tags)
        logger.info(
            "Reaction %s on %s/%s -> task %s tags=%s",
            reaction_name,
            channel,
            message_ref,
            task.id,
            sorted(task.tags),
        )
        return task

    async def on_status_transition_request(self, task_id: int, status_id: int) -> int:
        # Raises NotFoundError for a status that was deleted after the view was built.
        status = await self._statuses.get(status_id)
        changed = await self._tasks.update_status(task_id, status.id)
        if not changed:
            logger.warning("Status transition for unknown task %s ignored", task_id)
        else:
            logger.info("Task %s -> status %s (%s)", task_id, status.id, status.name)
        return changed

    async def on_status_transition_value(self, value: str) -> int:
        """Transition from an action value encoded as "<task_id>:<status_id>"."""
        task_id, status_id = decode_transition(value)
        return await self.on_status_transition_request(task_id, status_id)

    async def on_status_create_request(self, name: str) -> None:
        await self._statuses.create(name)
        logger.info("Status created name=%r", name)

    async def on_status_delete_request(self, status_id: int) -> int:
        return await self._statuses.delete(status_id)

    # ---- views ----

    async def build_dashboard(self, user_id: str) -> DashboardView:
        tasks = await self._tasks.list()
        statuses = await self._statuses.list()
        return await self._assembler.build_dashboard(user_id, tasks, statuses)

    async def build_status_manager(self) -> StatusManagerView:
        return self._assembler.build_status_manager(await self._statuses.list())

    # ---- publishing ----

    def _require_publisher(self) -> ViewPublisher:
        if self._publisher is None:
            raise RuntimeError("TrackingEngine has no view publisher")
        return self._publisher

    async def publish_dashboard(self, user_id: str) -> DashboardView:
        publisher = self._require_publisher()
        view = await self.build_dashboard(user_id)
        await publisher.publish(user_id, view)
        logger.debug("Dashboard published user=%s entries=%d", user_id, len(view.entries))
        return view

    async def open_status_manager(self, user_id: str, trigger_id: str) -> str:
        publisher = self._require_publisher()
        view_id = await publisher.open_modal(trigger_id, await self.build_status_manager())
        self._open_managers[user_id] = view_id
        return view_id

    def open_manager_for(self, user_id: str) -> str | None:
        return self._open_managers.get(user_id)

    async def refresh_views(self, user_id: str) -> None:
        """Re-derive the user's open management view (if any) and dashboard."""
        publisher = self._require_publisher()
        view_id = self._open_managers.get(user_id)
        if view_id is not None:
            await publisher.update_modal(view_id, await self.build_status_manager())
        await self.publish_dashboard(user_id)
