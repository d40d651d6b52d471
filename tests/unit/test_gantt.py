from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest


T0 = datetime(2024, 3, 4, 9, 0, tzinfo=UTC)
DAY = timedelta(days=1)


def _task(id_: str, start=None, end=None, parent=None) -> dict:
    return {"id": id_, "start": start, "end": end, "parent": parent}


@pytest.mark.parametrize(
    ("status", "progress"),
    [("To Do", 0), ("Backlog", 0), ("In Progress", 50), ("Review", 80), ("Testing", 90), ("Done", 100), ("Custom", 0)],
)
def test_task_progress(status: str, progress: int) -> None:
    from services.api.app.gantt import task_progress

    assert task_progress(status) == progress


def test_timeline_spans_tasks_and_project_dates() -> None:
    from services.api.app.gantt import timeline

    tasks = [_task("a", T0, T0 + 3 * DAY), _task("b", T0 + 2 * DAY, T0 + 10 * DAY), _task("c")]
    tl = timeline(tasks, T0 - DAY, None)
    assert tl["start"] == T0 - DAY
    assert tl["end"] == T0 + 10 * DAY
    assert tl["duration"] == 11


def test_timeline_rounds_partial_days_up() -> None:
    from services.api.app.gantt import timeline

    tl = timeline([_task("a", T0, T0 + DAY + timedelta(hours=2))], None, None)
    assert tl["duration"] == 2


def test_timeline_defaults_to_thirty_days_from_now() -> None:
    from services.api.app.gantt import timeline

    tl = timeline([_task("a")], None, None, now=T0)
    assert tl == {"start": T0, "end": T0 + 30 * DAY, "duration": 30}


def test_build_hierarchy_nests_children() -> None:
    from services.api.app.gantt import build_hierarchy

    tasks = [_task("epic"), _task("story", parent="epic"), _task("sub", parent="story"), _task("orphan", parent="gone")]
    roots = build_hierarchy(tasks)
    assert [r["id"] for r in roots] == ["epic", "orphan"]
    assert [c["id"] for c in roots[0]["children"]] == ["story"]
    assert [c["id"] for c in roots[0]["children"][0]["children"]] == ["sub"]


def test_critical_path_uses_dependency_rows() -> None:
    from services.api.app.gantt import critical_path

    tasks = [_task("a"), _task("b"), _task("c")]
    deps = [{"dependent_task_id": "b", "blocking_task_id": "a"}, {"dependent_task_id": "c", "blocking_task_id": "b"}]
    assert critical_path(tasks, deps) == ["a", "b", "c"]


def test_sprint_milestones_sorted_by_date() -> None:
    from services.api.app.gantt import sprint_milestones

    sprints = [
        {"id": "s2", "name": "Sprint 2", "start_date": T0 + 14 * DAY, "end_date": T0 + 28 * DAY},
        {"id": "s1", "name": "Sprint 1", "start_date": T0, "end_date": T0 + 14 * DAY},
        {"id": "s0", "name": "Backlog", "start_date": None, "end_date": None},
    ]
    ms = sprint_milestones(sprints)
    assert [m["title"] for m in ms] == ["Sprint 1 Start", "Sprint 1 End", "Sprint 2 Start", "Sprint 2 End"]
    assert ms[1]["id"] == "s1_end"
    assert {m["type"] for m in ms} == {"sprint_start", "sprint_end"}


def test_resource_allocation_splits_points_across_assignees() -> None:
    from services.api.app.gantt import resource_allocation

    def row(task_id, user_id, points):
        return {
            "task_id": task_id,
            "title": task_id,
            "start_date": T0,
            "due_date": T0 + DAY,
            "story_points": points,
            "user_id": user_id,
            "first_name": user_id,
            "last_name": "X",
            "email": f"{user_id}@x.io",
            "avatar": None,
        }

    rows = [row("t1", "u1", 8), row("t1", "u2", 8), row("t2", "u1", None)]
    out = {r["assignee"]["id"]: r for r in resource_allocation(rows)}
    assert out["u1"]["workload"] == pytest.approx(5.0)
    assert out["u2"]["workload"] == pytest.approx(4.0)
    assert [t["story_points"] for t in out["u1"]["tasks"]] == [8, 1]


@pytest.mark.parametrize(
    ("delta_px", "view_mode", "days"),
    [(80, "days", 1), (200, "days", 3), (-200, "days", -2), (140, "weeks", 7), (70, "weeks", 4), (100, "months", 15), (30, "days", 0)],
)
def test_delta_days(delta_px: float, view_mode: str, days: int) -> None:
    from services.api.app.gantt import delta_days

    assert delta_days(delta_px, view_mode) == days


def test_delta_days_honours_custom_cell_width() -> None:
    from services.api.app.gantt import delta_days

    assert delta_days(100, "days", cell_width=50) == 2


def test_reschedule_move_shifts_both_dates() -> None:
    from services.api.app.gantt import reschedule

    start, end = reschedule(T0, T0 + 3 * DAY, mode="move", delta_px=160)
    assert (start, end) == (T0 + 2 * DAY, T0 + 5 * DAY)


def test_reschedule_resize_start_keeps_one_day() -> None:
    from services.api.app.gantt import reschedule

    start, end = reschedule(T0, T0 + 3 * DAY, mode="resize_start", delta_px=800)
    assert (start, end) == (T0 + 2 * DAY, T0 + 3 * DAY)


def test_reschedule_resize_end_keeps_one_day() -> None:
    from services.api.app.gantt import reschedule

    start, end = reschedule(T0, T0 + 3 * DAY, mode="resize_end", delta_px=-800)
    assert (start, end) == (T0, T0 + DAY)
    start, end = reschedule(T0, T0 + 3 * DAY, mode="resize_end", delta_px=140, view_mode="weeks")
    assert end == T0 + 10 * DAY


def test_reschedule_rejects_unknown_mode() -> None:
    from services.api.app.gantt import reschedule

    with pytest.raises(ValueError, match="unknown reschedule mode"):
        reschedule(T0, T0 + DAY, mode="stretch", delta_px=1)


def test_build_hierarchy_breaks_parent_cycle() -> None:
    from services.api.app.gantt import build_hierarchy

    tasks = [_task("a", parent="b"), _task("b", parent="a"), _task("c", parent="b")]
    roots = build_hierarchy(tasks)
    assert [r["id"] for r in roots] == ["a"]
    (b,) = roots[0]["children"]
    assert [c["id"] for c in b["children"]] == ["c"]


def test_fill_from_sprint_only_fills_missing_dates() -> None:
    from services.api.app.gantt import fill_from_sprint

    sprint = {"start_date": T0, "end_date": T0 + 14 * DAY}
    tasks = fill_from_sprint([_task("undated"), _task("dated", start=T0 + DAY, end=T0 + 2 * DAY), _task("half", end=T0 + 3 * DAY)], sprint)
    assert [(t["start"], t["end"]) for t in tasks] == [
        (T0, T0 + 14 * DAY),
        (T0 + DAY, T0 + 2 * DAY),
        (T0, T0 + 3 * DAY),
    ]


def test_resource_allocation_ignores_unscheduled_tasks() -> None:
    from services.api.app.gantt import resource_allocation

    base = {"title": "t", "story_points": 5, "user_id": "u1", "first_name": "U", "last_name": "X", "email": "u1@x.io"}
    rows = [
        {**base, "task_id": "dated", "start_date": T0, "due_date": T0 + DAY},
        {**base, "task_id": "no-due", "start_date": T0, "due_date": None},
        {**base, "task_id": "no-start", "start_date": None, "due_date": T0},
    ]
    (entry,) = resource_allocation(rows)
    assert [t["id"] for t in entry["tasks"]] == ["dated"]
    assert entry["workload"] == pytest.approx(5.0)
    assert resource_allocation(rows[1:]) == []
