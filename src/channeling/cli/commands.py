# src/channeling/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import cast

from ..errors import (
    ChannelingError,
    InvalidActionError,
    NotFoundError,
    ReferentialIntegrityError,
    ReservedStatusError,
)
from ..tracking.engine import TrackingEngine

CommandEmitter = Callable[[str], None]
CommandHandler4 = Callable[[TrackingEngine, list[str], str | None, str | None], Awaitable[str]]
CommandHandler5 = Callable[
    [TrackingEngine, list[str], str | None, str | None, CommandEmitter | None], Awaitable[str]
]
CommandHandler = CommandHandler4 | CommandHandler5

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by connectors (/help, /tasks, /move, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        engine: TrackingEngine,
        line: str,
        user_id: str | None = None,
        room_id: str | None = None,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Errors from the engine are logged and answered with a short message;
        the event itself is dropped.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 5

        try:
            if nparams >= 5:
                h5 = cast(CommandHandler5, handler)
                return await h5(engine, args, user_id, room_id, emit)

            h4 = cast(CommandHandler4, handler)
            return await h4(engine, args, user_id, room_id)
        except InvalidActionError as e:
            logger.warning("/%s rejected: %s", name, e)
            return f"Invalid action: {e}"
        except ReservedStatusError as e:
            logger.info("/%s rejected: %s", name, e)
            return "Built-in statuses (New, Completed) cannot be deleted."
        except NotFoundError as e:
            logger.info("/%s: %s", name, e)
            return "That status no longer exists. Refresh with /tasks."
        except ReferentialIntegrityError:
            logger.exception("/%s violated a constraint", name)
            return "That change was rejected by the database."
        except ChannelingError:
            logger.exception("/%s failed", name)
            return "Internal error while handling a command."

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


async def cmd_help(
    engine: TrackingEngine,
    args: list[str],
    user_id: str | None,
    room_id: str | None,
    emit: CommandEmitter | None = None,
) -> str:
    return registry.build_help()


async def cmd_tasks(
    engine: TrackingEngine,
    args: list[str],
    user_id: str | None,
    room_id: str | None,
) -> str:
    if not user_id:
        return "No user_id in this context."
    await engine.publish_dashboard(user_id)
    return ""


async def cmd_statuses(
    engine: TrackingEngine,
    args: list[str],
    user_id: str | None,
    room_id: str | None,
) -> str:
    if not user_id:
        return "No user_id in this context."
    await engine.open_status_manager(user_id, trigger_id=room_id or user_id)
    return ""


async def cmd_move(
    engine: TrackingEngine,
    args: list[str],
    user_id: str | None,
    room_id: str | None,
) -> str:
    """
    /move <task_id>:<status_id>   -> move a task (value as shown on the dashboard)
    """
    if len(args) != 1:
        return "Usage: /move <task_id>:<status_id>"

    changed = await engine.on_status_transition_value(args[0])
    if not changed:
        return "No such task."
    if user_id:
        await engine.publish_dashboard(user_id)
    return ""


async def cmd_status_add(
    engine: TrackingEngine,
    args: list[str],
    user_id: str | None,
    room_id: str | None,
) -> str:
    # Names are free text; an empty name is allowed by the store but not reachable from chat.
    name = " ".join(args).strip()
    if not name:
        return "Usage: /status-add <name>"

    await engine.on_status_create_request(name)
    if user_id:
        await engine.refresh_views(user_id)
    return f"Status added: {name}"


async def cmd_status_del(
    engine: TrackingEngine,
    args: list[str],
    user_id: str | None,
    room_id: str | None,
) -> str:
    status_id = _parse_id(args[0]) if len(args) == 1 else None
    if status_id is None:
        return "Usage: /status-del <status_id>"

    deleted = await engine.on_status_delete_request(status_id)
    if not deleted:
        return f"No status with id {status_id}."
    if user_id:
        await engine.refresh_views(user_id)
    return f"Status {status_id} deleted."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("tasks", cmd_tasks, help_text="Show the task dashboard.", aliases=["home"])
registry.register("statuses", cmd_statuses, help_text="Open status management.")
registry.register("move", cmd_move, help_text="Move a task: /move <task_id>:<status_id>.")
registry.register("status-add", cmd_status_add, help_text="Create a status: /status-add <name>.")
registry.register("status-del", cmd_status_del, help_text="Delete a status: /status-del <id>.")
