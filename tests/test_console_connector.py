# tests/test_console_connector.py

from __future__ import annotations

import pytest

from channeling.cli.bootstrap import build_engine
from channeling.connectors.console_connector import (
    CONSOLE_CHANNEL,
    ConsolePublisher,
    LocalMessageContext,
    _handle_local,
)


@pytest.mark.asyncio
async def test_say_react_and_dashboard(state, capsys: pytest.CaptureFixture[str]) -> None:
    context = LocalMessageContext("alice")
    engine = build_engine(state, context, ConsolePublisher())

    reply = await _handle_local(engine, context, "/say the build is red")
    assert reply is not None and reply.startswith("Posted message ref=")
    ref = reply.split("=", 1)[1]

    assert await _handle_local(engine, context, f"/react {ref} ladybug") == ""
    out = capsys.readouterr().out
    assert "the build is red" in out
    assert "`bug` `qa`" in out

    task = await state.task_store.find(CONSOLE_CHANNEL, ref)
    assert task is not None
    assert task.tags == {"bug", "qa"}


@pytest.mark.asyncio
async def test_deleted_message_disappears_from_dashboard(state) -> None:
    context = LocalMessageContext("alice")
    engine = build_engine(state, context, ConsolePublisher())

    msg = context.add_message("temporary")
    await engine.on_reaction_event(CONSOLE_CHANNEL, msg.ref, "ladybug")
    assert len((await engine.build_dashboard("alice")).entries) == 1

    assert await _handle_local(engine, context, f"/delete {msg.ref}") == "Deleted."
    assert (await engine.build_dashboard("alice")).entries == ()


@pytest.mark.asyncio
async def test_local_command_usage_and_passthrough(state) -> None:
    context = LocalMessageContext("alice")
    engine = build_engine(state, context, ConsolePublisher())

    assert "Usage" in (await _handle_local(engine, context, "/say") or "")
    assert "Usage" in (await _handle_local(engine, context, "/react 1") or "")
    assert "not mapped" in (await _handle_local(engine, context, "/react 1 thumbsup") or "")
    assert await _handle_local(engine, context, "/tasks") is None
