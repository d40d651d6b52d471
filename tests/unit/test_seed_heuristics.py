from __future__ import annotations

import random
import uuid
from datetime import UTC, datetime, timedelta


NOW = datetime(2024, 3, 8, 12, 0, tzinfo=UTC)  # a Friday


def _statuses() -> list[dict]:
    return [
        {"id": "todo", "name": "To Do", "category": "TODO", "position": 0},
        {"id": "doing", "name": "In Progress", "category": "IN_PROGRESS", "position": 1},
        {"id": "review", "name": "Review", "category": "IN_PROGRESS", "position": 2},
        {"id": "done", "name": "Done", "category": "DONE", "position": 3},
    ]


def test_base_tasks_use_templates_by_project_name() -> None:
    from db.seeders.tasks import base_tasks_for

    tasks = base_tasks_for({"name": "TaskPilot Web Application"}, NOW)
    assert len(tasks) == 10
    assert tasks[0]["title"] == "Set up development environment"
    assert tasks[0]["start_date"] == NOW - timedelta(days=21)


def test_base_tasks_fall_back_to_generic_plan() -> None:
    from db.seeders.tasks import base_tasks_for

    start = NOW - timedelta(days=60)
    tasks = base_tasks_for({"name": "HR Process Automation", "start_date": start}, NOW)
    assert len(tasks) == 5
    assert tasks[0]["start_date"] == start
    assert tasks[0]["due_date"] == start + timedelta(days=5)


def test_distribution_across_status_categories() -> None:
    from db.seeders.tasks import base_tasks_for, distribute_across_statuses

    base = base_tasks_for({"name": "TaskPilot Web Application"}, NOW)
    placed = distribute_across_statuses(base, _statuses(), random.Random(1))

    cats = [status["category"] for _, status in placed]
    # 10 tasks: ceil(4.0) TODO, ceil(3.5) IN_PROGRESS, rest DONE; done first.
    assert cats == ["DONE"] * 2 + ["IN_PROGRESS"] * 4 + ["TODO"] * 4
    assert [s["id"] for _, s in placed[2:6]] == ["doing", "review", "doing", "review"]
    for task, status in placed:
        if status["category"] == "DONE":
            assert task["remaining_estimate"] == 0
    for (task, status), original in zip(placed, base):
        if status["category"] == "IN_PROGRESS":
            assert task["remaining_estimate"] <= original["remaining_estimate"] * 0.9


def test_distribution_without_todo_status_uses_first_status() -> None:
    from db.seeders.tasks import distribute_across_statuses

    statuses = [s for s in _statuses() if s["category"] != "TODO"]
    base = [{"title": str(i), "remaining_estimate": 60} for i in range(5)]
    placed = distribute_across_statuses(base, statuses, random.Random(3))
    assert len(placed) == 5
    assert placed[-1][1]["id"] == "doing"


def test_assignees_for_complexity() -> None:
    from db.seeders.tasks import assignees_for

    users = [uuid.uuid4() for _ in range(3)]
    assert assignees_for({"story_points": 13}, users) == users[:2]
    assert assignees_for({"story_points": 5}, users) == users[:1]
    assert assignees_for({"story_points": None}, []) == []


def test_completed_at_within_planned_window() -> None:
    from db.seeders.tasks import completed_at_for

    start, due = NOW, NOW + timedelta(days=10)
    done = completed_at_for(start, due, random.Random(7))
    assert start + timedelta(days=8) <= done <= start + timedelta(days=12)


def test_dependency_heuristics() -> None:
    from db.seeders.task_dependencies import dependency_type, should_create_dependency

    auth = {"title": "Implement JWT authentication", "type": "TASK"}
    setup = {"title": "Set up development environment", "type": "TASK"}
    epic = {"title": "User management epic", "type": "EPIC"}
    assert should_create_dependency(auth, setup)
    assert not should_create_dependency(setup, auth)
    assert not should_create_dependency(epic, {"title": "Something", "type": "TASK"})
    assert dependency_type({"title": "Write tests", "type": "TASK"}, setup) == "FINISH_START"
    assert dependency_type(auth, setup) == "BLOCKS"


def test_plan_dependencies_caps_at_half_the_tasks() -> None:
    from db.seeders.task_dependencies import plan_dependencies

    tasks = [
        {"id": i, "task_number": i, "created_at": NOW, "title": title, "type": "TASK"}
        for i, title in enumerate(
            ["Set up environment", "Build API", "Implement login auth", "Dashboard UI", "Test everything", "Deploy release"]
        )
    ]
    planned = plan_dependencies(tasks)
    assert len(planned) == 3
    for d in planned:
        assert d["blocking_task_id"] < d["dependent_task_id"]


def test_watchers_capped_and_unique() -> None:
    from db.seeders.task_watchers import MAX_WATCHERS, determine_watchers

    users = [
        {"id": i, "first_name": f"U{i}", "last_name": "X", "email": f"u{i}@x.io", "bio": bio, "role": role}
        for i, (bio, role) in enumerate(
            [("Frontend developer", "MEMBER"), ("UI designer", "MEMBER"), ("Backend engineer", "MEMBER"), ("QA lead", "MEMBER"), ("Lead", "MANAGER")]
        )
    ]
    task = {"title": "Dashboard UI polish and tests", "type": "BUG", "priority": "HIGH"}
    watchers = determine_watchers(task, users, random.Random(5))
    ids = [w["id"] for w in watchers]
    assert len(ids) == len(set(ids))
    assert 3 <= len(ids) <= MAX_WATCHERS
    assert ids[:2] == [0, 1]


def test_watchers_topped_up_to_three() -> None:
    from db.seeders.task_watchers import determine_watchers

    users = [{"id": i, "first_name": "A", "last_name": "B", "email": f"{i}@x.io", "bio": None, "role": "MEMBER"} for i in range(6)]
    watchers = determine_watchers({"title": "Misc", "type": "TASK", "priority": "LOW"}, users, random.Random(2))
    assert len(watchers) == 3


def test_work_days_skip_weekends() -> None:
    from db.seeders.time_entries import work_days

    days = work_days(NOW)
    assert len(days) == 5
    assert all(d.weekday() < 5 for d in days)
    assert days[-1] == NOW


def test_plan_time_entries_bounds() -> None:
    from db.seeders.time_entries import plan_time_entries

    users = [uuid.uuid4(), uuid.uuid4()]
    task = {"title": "Fix database connection pool issue", "type": "BUG", "original_estimate": 480}
    entries = plan_time_entries(task, users, NOW, random.Random(11))

    assert entries
    assert sum(e["time_spent"] for e in entries) <= 480 * 1.3
    for e in entries:
        assert 0 < e["time_spent"] <= 120
        assert 9 <= e["start_time"].hour <= 16
        assert e["end_time"] - e["start_time"] == timedelta(minutes=e["time_spent"])
        assert e["date"].hour == 0
        assert e["user_id"] in users
    by_day: dict = {}
    for e in entries:
        by_day.setdefault(e["date"], set()).add(e["user_id"])
    assert all(len(u) == 1 for u in by_day.values())


def test_labels_for_project_and_matching() -> None:
    from db.seeders.labels import labels_for_project, match_labels

    names = [lb["name"] for lb in labels_for_project("Backend API Services")]
    assert names[:5] == ["urgent", "blocked", "needs-review", "documentation", "enhancement"]
    assert "backend" in names
    assert [lb["name"] for lb in labels_for_project("Something Else")][5:] == ["feature", "bugfix", "refactoring", "research"]

    assert match_labels("Fix database connection pool issue", names) == ["urgent", "backend", "database"]
    assert match_labels("Nothing relevant here", names) == []


def test_comments_for_task_types() -> None:
    from db.seeders.task_comments import comments_for_task

    rng = random.Random(0)
    assert len(comments_for_task("BUG", rng)) == 3
    assert len(comments_for_task("EPIC", rng)) == 2
    assert len(comments_for_task("TASK", rng)) == 2


def test_sprint_plan_for_project() -> None:
    from db.seeders.sprints import is_scrum_project, sprint_plan_for

    plan = sprint_plan_for("TaskPilot Web Application", NOW)
    assert len(plan) == 5
    assert [s["status"] for s in plan].count("ACTIVE") == 1
    assert plan[0]["start_date"] == NOW - timedelta(weeks=8)
    assert len(sprint_plan_for("HR Process Automation", NOW)) == 2
    assert is_scrum_project("Mobile App - FinanceFlow")
    assert not is_scrum_project("Marketing Site")


def test_linear_transitions_skip_done_to_todo() -> None:
    from db.seeders.workflows import linear_transitions

    statuses = [{"name": "Open", "category": "TODO"}, {"name": "Closed", "category": "DONE"}]
    pairs = [(a["name"], b["name"]) for a, b in linear_transitions(statuses)]
    assert pairs == [("Open", "Closed")]


def test_pick_owner_prefers_admins() -> None:
    from db.seeders.organizations import pick_owner

    users = [{"role": "MEMBER", "id": 1}, {"role": "ADMIN", "id": 2}]
    assert pick_owner(users)["id"] == 2
    assert pick_owner([{"role": "VIEWER", "id": 3}])["id"] == 3


def test_default_inbox_rules() -> None:
    from db.seeders.inbox_rules import default_rules

    assignee = uuid.uuid4()
    rules = default_rules(assignee)
    assert len(rules) == 8
    by_name = {r["name"]: r for r in rules}
    assert by_name["Bug Report Detection"]["actions"]["assignTo"] == str(assignee)
    assert by_name["VIP Customer Priority"]["enabled"] is False
    assert by_name["Spam Detection - Common Patterns"]["stop_on_match"] is True
    assert default_rules()[1]["actions"]["assignTo"] is None
