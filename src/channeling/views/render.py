# src/channeling/views/render.py

from __future__ import annotations

from .assembler import DashboardView, StatusManagerView, TaskEntry

DIVIDER = "-" * 24


def _styled(text: str, style: str) -> str:
    return f"{style}{text}{style}" if style else text


def render_task_entry(entry: TaskEntry) -> str:
    tags = " ".join(f"`{t}`" for t in entry.tags) or "-"
    lines = [
        entry.text,
        f"*{entry.author_name}* | *Status:* {_styled(entry.status_name, entry.status_style)} | *Tags:* {tags}",
    ]
    if entry.options:
        moves = ", ".join(f"{o.label}: /move {o.value}" for o in entry.options)
        lines.append(f"Move to -> {moves}")
    return "\n".join(lines)


def render_dashboard(view: DashboardView) -> str:
    """Plain-text dashboard for chat transports (Matrix body, console)."""
    parts = [view.title, DIVIDER]
    if not view.entries:
        parts.append("No tasks yet. React to a message to start tracking it.")
    for entry in view.entries:
        parts.append(render_task_entry(entry))
        parts.append(DIVIDER)
    parts.append("Manage statuses: /statuses")
    return "\n".join(parts)


def render_status_manager(view: StatusManagerView) -> str:
    lines = [view.title, DIVIDER]
    for entry in view.entries:
        if entry.deletable:
            lines.append(f"*{entry.name}*  (delete: /status-del {entry.delete_value})")
        else:
            lines.append(f"*{entry.name}*")
    lines.append(DIVIDER)
    lines.append("Add status: /status-add <name>")
    return "\n".join(lines)
