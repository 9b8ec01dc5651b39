# src/channeling/connectors/matrix_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from nio import (
    AsyncClient,
    ErrorResponse,
    MatrixRoom,
    ProfileGetResponse,
    ReactionEvent,
    RedactionEvent,
    RoomGetEventResponse,
    RoomMessageText,
    RoomSendResponse,
)

from ..cli.bootstrap import build_engine
from ..cli.commands import registry as command_registry
from ..core.ports import Message, Profile
from ..core.state import AppState
from ..errors import ExternalContextUnavailable
from ..tracking.engine import TrackingEngine
from ..views.assembler import DashboardView, StatusManagerView
from ..views.render import render_dashboard, render_status_manager
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)

# Error codes meaning "the thing is gone", as opposed to "the server is unhappy".
_ABSENT_CODES = {"M_NOT_FOUND", "M_FORBIDDEN"}

# Reaction keys arrive as emoji; the reaction map is keyed by name.
EMOJI_NAMES: dict[str, str] = {
    "\U0001f41e": "ladybug",
    "\U0001f41b": "bug",
    "\U0001f4dd": "memo",
    "✅": "white_check_mark",
    "\U0001f525": "fire",
    "\U0001f440": "eyes",
    "❓": "question",
}

MAX_TRACKED_REACTIONS = 5000


def _ms_now() -> int:
    return int(time.time() * 1000)


def _room_allowlist(settings_rooms: list[str]) -> set[str] | None:
    rooms = [r.strip() for r in (settings_rooms or []) if str(r).strip()]
    return set(rooms) if rooms else None


def reaction_name(key: str) -> str:
    """Map a reaction key ("🐞", "🐞" + U+FE0F, ":ladybug:") to the name used in the reaction map."""
    k = (key or "").replace("\ufe0f", "").strip()
    return EMOJI_NAMES.get(k, k.strip(":"))


class MatrixMessageContext:
    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    def _check(self, resp: Any, what: str) -> bool:
        """True when resp is usable, False when the target is gone; raises otherwise."""
        if isinstance(resp, ErrorResponse):
            if resp.status_code in _ABSENT_CODES:
                return False
            raise ExternalContextUnavailable(f"{what}: {resp.status_code} {resp.message}")
        return True

    async def fetch_message(self, channel: str, message_ref: str) -> Message | None:
        try:
            resp = await self._client.room_get_event(channel, message_ref)
        except (OSError, asyncio.TimeoutError) as e:
            raise ExternalContextUnavailable(f"room_get_event {channel}/{message_ref}: {e!r}") from e

        if not self._check(resp, f"room_get_event {channel}/{message_ref}"):
            return None
        if not isinstance(resp, RoomGetEventResponse):
            return None

        # Redacted messages come back without a body.
        body = getattr(resp.event, "body", None)
        if not body:
            return None
        return Message(channel=channel, ref=message_ref, text=str(body), author_id=resp.event.sender)

    async def fetch_profile(self, user_id: str) -> Profile | None:
        try:
            resp = await self._client.get_profile(user_id)
        except (OSError, asyncio.TimeoutError) as e:
            raise ExternalContextUnavailable(f"get_profile {user_id}: {e!r}") from e

        if not self._check(resp, f"get_profile {user_id}") or not isinstance(resp, ProfileGetResponse):
            return None
        return Profile(
            user_id=user_id,
            display_name=resp.displayname or user_id,
            avatar_url=resp.avatar_url or "",
        )


async def _send_text(client: AsyncClient, *, room_id: str, text: str, replaces: str | None = None) -> str | None:
    content: dict[str, Any] = {"msgtype": "m.text", "body": text}
    if replaces:
        content = {
            "msgtype": "m.text",
            "body": f"* {text}",
            "m.new_content": {"msgtype": "m.text", "body": text},
            "m.relates_to": {"rel_type": "m.replace", "event_id": replaces},
        }
    resp = await client.room_send(
        room_id=room_id,
        message_type="m.room.message",
        content=content,
        ignore_unverified_devices=True,
    )
    if isinstance(resp, RoomSendResponse):
        return resp.event_id
    logger.warning("room_send to %s failed: %r", room_id, resp)
    return None


class MatrixViewPublisher:
    """
    Publishes views as chat messages.

    Each user gets one dashboard message in the room they last used a command
    in; later publishes edit that message instead of posting a new one.
    The management "modal" is a separate message, edited on refresh.
    """

    def __init__(self, client: AsyncClient) -> None:
        self._client = client
        self._home_rooms: dict[str, str] = {}
        self._dashboards: dict[str, tuple[str, str]] = {}  # user -> (room_id, event_id)

    def remember_room(self, user_id: str, room_id: str) -> None:
        self._home_rooms[user_id] = room_id

    async def publish(self, user_id: str, view: Any) -> None:
        if not isinstance(view, DashboardView):
            return
        room_id = self._home_rooms.get(user_id)
        if room_id is None:
            logger.debug("No dashboard room known for %s; run /tasks to pick one.", user_id)
            return

        text = render_dashboard(view)
        prev = self._dashboards.get(user_id)
        replaces = prev[1] if prev and prev[0] == room_id else None
        event_id = await _send_text(self._client, room_id=room_id, text=text, replaces=replaces)
        if event_id and not replaces:
            self._dashboards[user_id] = (room_id, event_id)

    async def open_modal(self, trigger_id: str, view: Any) -> str:
        if not isinstance(view, StatusManagerView):
            return ""
        event_id = await _send_text(self._client, room_id=trigger_id, text=render_status_manager(view))
        return f"{trigger_id}|{event_id or ''}"

    async def update_modal(self, view_id: str, view: Any) -> None:
        room_id, _, event_id = view_id.partition("|")
        if not room_id or not event_id or not isinstance(view, StatusManagerView):
            return
        await _send_text(self._client, room_id=room_id, text=render_status_manager(view), replaces=event_id)


@dataclass(slots=True, frozen=True)
class TrackedReaction:
    room_id: str
    reacts_to: str
    key: str


class ReactionTracker:
    """
    Remembers reaction event ids so a later redaction (= reaction removed)
    can be routed to the same message and reaction.

    In-memory only: reactions seen before a restart cannot be un-applied by
    redacting them afterwards.
    """

    def __init__(self, limit: int = MAX_TRACKED_REACTIONS) -> None:
        self._limit = limit
        self._by_event: dict[str, TrackedReaction] = {}

    def add(self, event_id: str, reaction: TrackedReaction) -> None:
        self._by_event[event_id] = reaction
        while len(self._by_event) > self._limit:
            self._by_event.pop(next(iter(self._by_event)))

    def pop(self, event_id: str) -> TrackedReaction | None:
        return self._by_event.pop(event_id, None)


async def _apply_reaction(
    engine: TrackingEngine,
    *,
    room_id: str,
    target_event_id: str,
    key: str,
    user_id: str,
) -> None:
    task = await engine.on_reaction_event(room_id, target_event_id, reaction_name(key))
    if task is not None:
        await engine.publish_dashboard(user_id)


async def _run_matrix_bot(state: AppState, stop_event: asyncio.Event) -> None:
    """
    Matrix connector (async):

    init -> callbacks -> sync loop

    Shutdown model:
    - main thread sets stop_event via loop.call_soon_threadsafe(stop_event.set)
    - we run a manual sync loop so we can exit promptly.
    """
    settings = state.settings
    startup_ts = _ms_now()

    allowed_rooms = _room_allowlist(getattr(settings, "matrix_rooms", []) or [])
    logger.info("Matrix allowed_rooms=%s", allowed_rooms if allowed_rooms is not None else "ALL")

    client = await create_matrix_client(settings)
    if client is None:
        logger.error("Matrix client creation failed; connector will stop.")
        return

    publisher = MatrixViewPublisher(client)
    engine = build_engine(state, MatrixMessageContext(client), publisher)
    tracker = ReactionTracker()

    def _accept(room: MatrixRoom, event: Any) -> bool:
        ts = getattr(event, "server_timestamp", None)
        if ts is not None and ts <= startup_ts:
            return False
        if event.sender == client.user_id:
            return False
        return allowed_rooms is None or room.room_id in allowed_rooms

    async def reaction_callback(room: MatrixRoom, event: ReactionEvent) -> None:
        if not _accept(room, event):
            return
        tracker.add(event.event_id, TrackedReaction(room.room_id, event.reacts_to, event.key))
        try:
            await _apply_reaction(
                engine,
                room_id=room.room_id,
                target_event_id=event.reacts_to,
                key=event.key,
                user_id=event.sender,
            )
        except Exception:
            logger.exception("Failed to handle reaction %s in %s.", event.key, room.room_id)

    async def redaction_callback(room: MatrixRoom, event: RedactionEvent) -> None:
        if not _accept(room, event):
            return
        tracked = tracker.pop(event.redacts)
        if tracked is None:
            return
        try:
            await _apply_reaction(
                engine,
                room_id=tracked.room_id,
                target_event_id=tracked.reacts_to,
                key=tracked.key,
                user_id=event.sender,
            )
        except Exception:
            logger.exception("Failed to handle reaction removal in %s.", room.room_id)

    async def message_callback(room: MatrixRoom, event: RoomMessageText) -> None:
        if not _accept(room, event):
            return

        body = (event.body or "").strip()
        if not body.startswith("/"):
            return

        logger.info("Matrix <%s> %s: %r", room.display_name, event.sender, body)
        publisher.remember_room(event.sender, room.room_id)

        try:
            resp = await command_registry.handle(engine, body, user_id=event.sender, room_id=room.room_id)
        except Exception:
            logger.exception("Command handler crashed.")
            resp = "Internal error while handling a command."

        if resp:
            try:
                await _send_text(client, room_id=room.room_id, text=resp)
            except Exception:
                logger.exception("Failed to send command reply.")

    client.add_event_callback(reaction_callback, ReactionEvent)
    client.add_event_callback(redaction_callback, RedactionEvent)
    client.add_event_callback(message_callback, RoomMessageText)

    # ---- Sync loop ----

    try:
        logger.info("Matrix initial sync...")
        await client.sync(timeout=30000, full_state=True)
        logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))

        while not stop_event.is_set():
            await client.sync(timeout=30000, full_state=False)

    except asyncio.CancelledError:
        logger.info("Matrix connector cancelled.")
    except Exception:
        logger.exception("Matrix connector crashed.")
    finally:
        with contextlib.suppress(Exception):
            await client.close()

        logger.info("Matrix connector stopped.")


@dataclass
class MatrixBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal Matrix stop (loop closed).", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_matrix_in_background(state: AppState) -> MatrixBackgroundRunner | None:
    """
    Start Matrix connector in a background thread (so console REPL can run in parallel).

    The console REPL blocks on input(); the Matrix connector needs its own event loop.
    """
    if not getattr(state.settings, "matrix_enabled", False):
        logger.info("Matrix connector disabled, not starting.")
        return None

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_matrix_bot(state, stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Matrix thread did not initialize properly.")
        return None

    logger.info("Matrix background thread started.")
    return MatrixBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
