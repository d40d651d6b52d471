from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from typing import Any

from services.api.app.task_graph import longest_chain


STATUS_PROGRESS = {
    "To Do": 0,
    "TODO": 0,
    "Backlog": 0,
    "In Progress": 50,
    "IN_PROGRESS": 50,
    "Review": 80,
    "REVIEW": 80,
    "Testing": 90,
    "TESTING": 90,
    "Done": 100,
    "DONE": 100,
    "Completed": 100,
    "COMPLETED": 100,
}

# Pixel width of one timeline cell and the days it spans, per zoom level.
CELL_WIDTH = {"days": 80.0, "weeks": 140.0, "months": 200.0}
DAYS_PER_CELL = {"days": 1, "weeks": 7, "months": 30}

DEFAULT_TIMELINE_DAYS = 30


def task_progress(status_name: str) -> int:
    return STATUS_PROGRESS.get(status_name, 0)


def build_hierarchy(tasks: list[dict]) -> list[dict]:
    """
    Nest tasks under their parent.

    A task whose parent is outside the list stays a root. A parent cycle is cut at its
    first task in list order, which becomes a root, so no task drops out of the tree.
    """
    by_id = {t["id"]: t for t in tasks}
    parent_of = {
        t["id"]: t.get("parent") for t in tasks if t.get("parent") in by_id and t.get("parent") != t["id"]
    }
    for task in tasks:
        seen = set()
        cur = parent_of.get(task["id"])
        while cur is not None and cur not in seen:
            if cur == task["id"]:
                del parent_of[task["id"]]
                break
            seen.add(cur)
            cur = parent_of.get(cur)

    roots: list[dict] = []
    for task in tasks:
        parent_id = parent_of.get(task["id"])
        if parent_id is None:
            roots.append(task)
        else:
            by_id[parent_id].setdefault("children", []).append(task)
    return roots



def timeline(tasks: list[dict], start: datetime | None, end: datetime | None, now: datetime | None = None) -> dict:
    dates = [d for t in tasks if t["start"] and t["end"] for d in (t["start"], t["end"])]
    dates += [d for d in (start, end) if d]
    if not dates:
        now = now or datetime.now(tz=UTC)
        return {"start": now, "end": now + timedelta(days=DEFAULT_TIMELINE_DAYS), "duration": DEFAULT_TIMELINE_DAYS}
    lo, hi = min(dates), max(dates)
    return {"start": lo, "end": hi, "duration": math.ceil((hi - lo).total_seconds() / 86400)}


def fill_from_sprint(tasks: list[dict], sprint: dict) -> list[dict]:
    """Undated tasks in a sprint view take the sprint's own start and end."""
    for task in tasks:
        task["start"] = task["start"] or sprint.get("start_date")
        task["end"] = task["end"] or sprint.get("end_date")
    return tasks


def critical_path(tasks: list[dict], dependencies: list[dict]) -> list[Any]:
    return longest_chain(
        [t["id"] for t in tasks],
        [(d["dependent_task_id"], d["blocking_task_id"]) for d in dependencies],
    )


def sprint_milestones(sprints: list[dict]) -> list[dict]:
    out: list[dict] = []
    for s in sprints:
        if s.get("start_date"):
            out.append({"id": str(s["id"]), "title": f"{s['name']} Start", "date": s["start_date"], "type": "sprint_start"})
        if s.get("end_date"):
            out.append({"id": f"{s['id']}_end", "title": f"{s['name']} End", "date": s["end_date"], "type": "sprint_end"})
    return sorted(out, key=lambda m: m["date"])


def resource_allocation(rows: list[dict]) -> list[dict]:
    """
    Group (task, assignee) rows by assignee.

    Only scheduled tasks count: a row without both dates is skipped. Each task's story
    points (1 when unset) are split evenly across its assignees.
    """
    rows = [r for r in rows if r["start_date"] and r["due_date"]]
    assignee_count: dict[Any, int] = {}
    for r in rows:
        assignee_count[r["task_id"]] = assignee_count.get(r["task_id"], 0) + 1

    resources: dict[Any, dict] = {}
    for r in rows:
        entry = resources.setdefault(
            r["user_id"],
            {
                "assignee": {
                    "id": r["user_id"],
                    "first_name": r["first_name"],
                    "last_name": r["last_name"],
                    "email": r["email"],
                    "avatar": r.get("avatar"),
                },
                "tasks": [],
                "workload": 0.0,
            },
        )
        points = r.get("story_points") or 1
        entry["tasks"].append(
            {"id": r["task_id"], "title": r["title"], "start": r["start_date"], "end": r["due_date"], "story_points": points}
        )
        entry["workload"] += points / assignee_count[r["task_id"]]
    return list(resources.values())


def delta_days(delta_px: float, view_mode: str, cell_width: float | None = None) -> int:
    width = cell_width or CELL_WIDTH[view_mode]
    # Half-cells round up, towards later dates.
    return math.floor(delta_px / width * DAYS_PER_CELL[view_mode] + 0.5)


def reschedule(
    start: datetime,
    end: datetime,
    *,
    mode: str,
    delta_px: float,
    view_mode: str = "days",
    cell_width: float | None = None,
) -> tuple[datetime, datetime]:
    """
    Apply a Gantt bar drag to a task's dates.

    Resizing keeps at least one day between start and end; moving shifts both dates.
    """
    shift = timedelta(days=delta_days(delta_px, view_mode, cell_width))
    one_day = timedelta(days=1)
    if mode == "move":
        return start + shift, end + shift
    if mode == "resize_start":
        return min(start + shift, end - one_day), end
    if mode == "resize_end":
        return start, max(end + shift, start + one_day)
    raise ValueError(f"unknown reschedule mode: {mode}")
