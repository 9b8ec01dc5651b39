# tests/test_assembler.py

from __future__ import annotations

import pytest

from channeling.tracking.models import Status, Task
from channeling.views.actions import decode_transition
from channeling.views.assembler import ViewAssembler, build_status_entry, status_style

from .fakes import FakeMessageContext

STATUSES = [Status(0, "New"), Status(1, "Completed"), Status(2, "In Review")]


def _task(task_id: int, ref: str, status_id: int = 0, status_name: str = "New", tags=("bug",)) -> Task:
    return Task(
        id=task_id,
        channel="C",
        message_ref=ref,
        status_id=status_id,
        status_name=status_name,
        tags=frozenset(tags),
    )


@pytest.mark.asyncio
async def test_entry_carries_message_author_status_and_tags() -> None:
    ctx = FakeMessageContext()
    ctx.post("C", "m1", "checkout is broken", author_id="U7", name="Grace")
    assembler = ViewAssembler(ctx)

    view = await assembler.build_dashboard("U1", [_task(5, "m1", tags=("qa", "bug"))], STATUSES)

    (entry,) = view.entries
    assert entry.task_id == 5
    assert entry.text == "checkout is broken"
    assert entry.author_name == "Grace"
    assert entry.author_avatar == "https://img/U7"
    assert entry.status_name == "New"
    assert entry.status_style == "_"
    assert entry.tags == ("bug", "qa")


@pytest.mark.asyncio
async def test_options_exclude_current_status_and_encode_both_ids() -> None:
    ctx = FakeMessageContext()
    ctx.post("C", "m1", "x")
    assembler = ViewAssembler(ctx)

    view = await assembler.build_dashboard(
        "U1", [_task(5, "m1", status_id=2, status_name="In Review")], STATUSES
    )

    (entry,) = view.entries
    assert [o.label for o in entry.options] == ["New", "Completed"]
    assert [decode_transition(o.value) for o in entry.options] == [(5, 0), (5, 1)]
    assert entry.status_style == ""


@pytest.mark.asyncio
async def test_tasks_with_missing_message_or_author_are_omitted() -> None:
    ctx = FakeMessageContext()
    ctx.post("C", "kept", "still here")
    ctx.post("C", "ghost-author", "author left", author_id="U-gone")
    del ctx.profiles["U-gone"]
    ctx.post("C", "flaky", "server hiccup")
    ctx.broken.add("flaky")
    assembler = ViewAssembler(ctx)

    tasks = [_task(1, "deleted"), _task(2, "kept"), _task(3, "ghost-author"), _task(4, "flaky")]
    view = await assembler.build_dashboard("U1", tasks, STATUSES)

    assert [e.task_id for e in view.entries] == [2]


@pytest.mark.asyncio
async def test_empty_dashboard() -> None:
    view = await ViewAssembler(FakeMessageContext()).build_dashboard("U1", [], STATUSES)
    assert view.entries == ()


def test_status_manager_marks_only_custom_statuses_deletable() -> None:
    view = ViewAssembler.build_status_manager(STATUSES)

    assert [(e.name, e.deletable) for e in view.entries] == [
        ("New", False),
        ("Completed", False),
        ("In Review", True),
    ]
    assert build_status_entry(Status(7, "QA")).delete_value == "7"


def test_status_styles() -> None:
    assert status_style("New") == "_"
    assert status_style("Completed") == "~"
    assert status_style("Whatever") == ""
