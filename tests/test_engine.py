# tests/test_engine.py

from __future__ import annotations

import pytest

from channeling.errors import InvalidActionError, NotFoundError, ReservedStatusError
from channeling.tracking.engine import TrackingEngine, normalize_reaction_name
from channeling.tracking.models import DefaultStatus
from channeling.views.assembler import DashboardView, StatusManagerView

from .fakes import FakeMessageContext, FakePublisher


@pytest.mark.asyncio
async def test_unmapped_reaction_is_ignored(engine: TrackingEngine, state) -> None:
    assert await engine.on_reaction_event("C", "M", "thumbsup") is None
    assert await state.task_store.count() == 0


@pytest.mark.asyncio
async def test_reaction_names_are_normalized(engine: TrackingEngine) -> None:
    assert normalize_reaction_name(":Ladybug: ") == "ladybug"
    task = await engine.on_reaction_event("C", "M", ":ladybug:")
    assert task is not None
    assert task.tags == {"bug", "qa"}


@pytest.mark.asyncio
async def test_add_then_remove_restores_previous_tags(engine: TrackingEngine) -> None:
    await engine.on_reaction_event("C", "M", "memo")
    added = await engine.on_reaction_event("C", "M", "ladybug")
    assert added is not None
    assert added.tags == {"todo", "bug", "qa"}

    removed = await engine.on_reaction_event("C", "M", "ladybug")
    assert removed is not None
    assert removed.tags == {"todo"}


@pytest.mark.asyncio
async def test_ladybug_review_scenario(engine: TrackingEngine, state) -> None:
    task = await engine.on_reaction_event("C", "M", "ladybug")
    assert task is not None
    assert task.tags == {"bug", "qa"}
    assert task.status_name == "New"

    again = await engine.on_reaction_event("C", "M", "ladybug")
    assert again is not None
    assert again.id == task.id
    assert again.tags == frozenset()

    await engine.on_status_create_request("In Review")
    review = [s for s in await state.status_store.list() if s.name == "In Review"][0]

    assert await engine.on_status_transition_request(task.id, review.id) == 1
    (listed,) = await state.task_store.list()
    assert listed.status_name == "In Review"

    assert await engine.on_status_delete_request(review.id) == 1
    (listed,) = await state.task_store.list()
    assert listed.status_name == "New"
    assert listed.status_id == DefaultStatus.NEW


@pytest.mark.asyncio
async def test_any_status_is_reachable_from_any_other(engine: TrackingEngine, state) -> None:
    task = await engine.on_reaction_event("C", "M", "ladybug")
    assert task is not None
    await engine.on_status_create_request("Doing")
    doing = [s for s in await state.status_store.list() if s.name == "Doing"][0]

    for target in (DefaultStatus.COMPLETED, doing.id, DefaultStatus.NEW, DefaultStatus.COMPLETED, doing.id):
        await engine.on_status_transition_request(task.id, int(target))
        got = await state.task_store.get(task.id)
        assert got is not None
        assert got.status_id == int(target)


@pytest.mark.asyncio
async def test_transition_value_round_trip_and_errors(engine: TrackingEngine, state) -> None:
    task = await engine.on_reaction_event("C", "M", "ladybug")
    assert task is not None

    assert await engine.on_status_transition_value(f"{task.id}:1") == 1
    got = await state.task_store.get(task.id)
    assert got is not None
    assert got.status_name == "Completed"

    with pytest.raises(InvalidActionError):
        await engine.on_status_transition_value("garbage")
    with pytest.raises(NotFoundError):
        await engine.on_status_transition_value(f"{task.id}:999")
    # Unknown task: tolerated, zero rows.
    assert await engine.on_status_transition_value("999:0") == 0


@pytest.mark.asyncio
async def test_reserved_delete_rejected_through_engine(engine: TrackingEngine) -> None:
    with pytest.raises(ReservedStatusError):
        await engine.on_status_delete_request(int(DefaultStatus.COMPLETED))


@pytest.mark.asyncio
async def test_build_views(engine: TrackingEngine, context: FakeMessageContext) -> None:
    context.post("C", "M", "login page 500s")
    await engine.on_reaction_event("C", "M", "ladybug")

    dashboard = await engine.build_dashboard("U9")
    assert isinstance(dashboard, DashboardView)
    assert dashboard.user_id == "U9"
    assert [e.text for e in dashboard.entries] == ["login page 500s"]

    manager = await engine.build_status_manager()
    assert isinstance(manager, StatusManagerView)
    assert [e.name for e in manager.entries] == ["New", "Completed"]


@pytest.mark.asyncio
async def test_views_are_rebuilt_from_fresh_context(engine: TrackingEngine, context: FakeMessageContext) -> None:
    context.post("C", "M", "flaky test")
    await engine.on_reaction_event("C", "M", "ladybug")

    await engine.build_dashboard("U1")
    await engine.build_dashboard("U1")
    assert context.calls.count(("message", "M")) == 2


@pytest.mark.asyncio
async def test_refresh_updates_open_manager_and_dashboard(
    engine: TrackingEngine,
    publisher: FakePublisher,
) -> None:
    await engine.refresh_views("U1")
    assert publisher.updated == []
    assert len(publisher.published) == 1

    view_id = await engine.open_status_manager("U1", trigger_id="room-1")
    assert engine.open_manager_for("U1") == view_id

    await engine.on_status_create_request("Blocked")
    await engine.refresh_views("U1")

    (updated_id, manager) = publisher.updated[-1]
    assert updated_id == view_id
    assert "Blocked" in [e.name for e in manager.entries]
    assert publisher.published[-1][0] == "U1"


@pytest.mark.asyncio
async def test_publishing_without_publisher_fails_loudly(state) -> None:
    from channeling.cli.bootstrap import build_engine

    engine = build_engine(state, FakeMessageContext())
    with pytest.raises(RuntimeError):
        await engine.publish_dashboard("U1")
