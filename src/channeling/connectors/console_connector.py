# src/channeling/connectors/console_connector.py

from __future__ import annotations

import asyncio
import getpass
import itertools
import logging
from datetime import datetime
from typing import Any

from ..cli.bootstrap import build_engine
from ..cli.commands import registry as command_registry
from ..core.ports import Message, Profile
from ..core.state import AppState
from ..errors import ChannelingError
from ..tracking.engine import TrackingEngine
from ..views.assembler import DashboardView, StatusManagerView
from ..views.render import render_dashboard, render_status_manager

logger = logging.getLogger(__name__)

CONSOLE_CHANNEL = "console"


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class LocalMessageContext:
    """
    In-process message context for the console connector.

    Messages only exist while the process runs; tasks created in an earlier
    session point at refs that resolve to nothing and are left off the dashboard.
    """

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        self._messages: dict[tuple[str, str], Message] = {}
        self._refs = itertools.count(1)

    def add_message(self, text: str, *, channel: str = CONSOLE_CHANNEL) -> Message:
        ref = f"{datetime.now().timestamp():.0f}.{next(self._refs)}"
        msg = Message(channel=channel, ref=ref, text=text, author_id=self.user_id)
        self._messages[(channel, ref)] = msg
        return msg

    def delete_message(self, ref: str, *, channel: str = CONSOLE_CHANNEL) -> bool:
        return self._messages.pop((channel, ref), None) is not None

    async def fetch_message(self, channel: str, message_ref: str) -> Message | None:
        return self._messages.get((channel, message_ref))

    async def fetch_profile(self, user_id: str) -> Profile | None:
        if user_id != self.user_id:
            return None
        return Profile(user_id=user_id, display_name=user_id)


class ConsolePublisher:
    """Prints views to stdout; "modals" are just numbered prints."""

    def __init__(self) -> None:
        self._modal_ids = itertools.count(1)

    async def publish(self, user_id: str, view: Any) -> None:
        if isinstance(view, DashboardView):
            print(render_dashboard(view))

    async def open_modal(self, trigger_id: str, view: Any) -> str:
        view_id = f"console-modal-{next(self._modal_ids)}"
        if isinstance(view, StatusManagerView):
            print(render_status_manager(view))
        return view_id

    async def update_modal(self, view_id: str, view: Any) -> None:
        if isinstance(view, StatusManagerView):
            print(render_status_manager(view))


async def _handle_local(
    engine: TrackingEngine,
    context: LocalMessageContext,
    line: str,
) -> str | None:
    """
    Console-only commands that stand in for platform events:
      /say <text>             -> post a message, prints its ref
      /react <ref> <reaction> -> react (or un-react: same call toggles)
      /delete <ref>           -> delete a posted message
    """
    parts = line.split(maxsplit=1)
    cmd = parts[0].lower()
    rest = parts[1].strip() if len(parts) > 1 else ""

    if cmd == "/say":
        if not rest:
            return "Usage: /say <text>"
        msg = context.add_message(rest)
        return f"Posted message ref={msg.ref}"

    if cmd == "/react":
        args = rest.split()
        if len(args) != 2:
            return "Usage: /react <ref> <reaction>"
        task = await engine.on_reaction_event(CONSOLE_CHANNEL, args[0], args[1])
        if task is None:
            return f"Reaction {args[1]!r} is not mapped. Known: {', '.join(engine.reactions) or '-'}"
        await engine.publish_dashboard(context.user_id)
        return ""

    if cmd == "/delete":
        if not rest:
            return "Usage: /delete <ref>"
        return "Deleted." if context.delete_message(rest) else "No such message."

    return None


def run_console_loop(state: AppState) -> None:
    user_id = getpass.getuser() or "console"
    context = LocalMessageContext(user_id)
    engine = build_engine(state, context, ConsolePublisher())

    logger.info("Console connector started (user=%s).", user_id)
    _print_ts("[CONSOLE] /say <text>, /react <ref> <reaction>, /help for commands, /exit to quit.\n")

    loop = asyncio.new_event_loop()
    try:
        while True:
            try:
                user_input = input(">>> ").strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                resp = loop.run_until_complete(_handle_local(engine, context, user_input))
                if resp is None:
                    resp = loop.run_until_complete(
                        command_registry.handle(engine, user_input, user_id=user_id, room_id=CONSOLE_CHANNEL)
                    )
            except ChannelingError:
                logger.exception("Console command failed.")
                resp = "Internal error while handling a command."

            if resp is None:
                _print_ts("Not a command. Use /say <text> to post a message.")
            elif resp:
                _print_ts(resp)
    finally:
        loop.close()

    logger.info("Console connector finished.")
