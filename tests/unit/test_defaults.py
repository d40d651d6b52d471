from __future__ import annotations

import itertools
import uuid
from datetime import UTC, datetime


NOW = datetime(2024, 1, 1, tzinfo=UTC)


def test_default_workflow_rows() -> None:
    from db.defaults import build_default_workflow_rows

    org_id, actor = uuid.uuid4(), uuid.uuid4()
    workflow, statuses, transitions = build_default_workflow_rows(org_id, actor, NOW)

    assert workflow["is_default"] is True
    assert workflow["organization_id"] == org_id
    assert [s["name"] for s in statuses] == ["To Do", "In Progress", "Review", "Done"]
    assert [s["position"] for s in statuses] == [0, 1, 2, 3]
    assert [s["is_default"] for s in statuses] == [True, False, False, False]
    assert all(s["workflow_id"] == workflow["id"] for s in statuses)
    assert len(transitions) == 6
    assert transitions[0]["name"] == "To Do → In Progress"


def test_transition_rows_skip_unknown_statuses() -> None:
    from db.defaults import build_transition_rows

    ids = itertools.count(1)
    statuses = [{"id": "s1", "name": "Open"}, {"id": "s2", "name": "Closed"}]
    rows = build_transition_rows("wf", statuses, [("Open", "Closed"), ("Open", "Missing")], None, NOW, id_factory=lambda: next(ids))

    assert len(rows) == 1
    assert rows[0]["from_status_id"] == "s1"
    assert rows[0]["to_status_id"] == "s2"
    assert rows[0]["id"] == 1


def test_det_uuid_is_stable() -> None:
    from db.seeders.base import det_uuid

    assert det_uuid("users", "a@b.c") == det_uuid("users", "a@b.c")
    assert det_uuid("users", "a@b.c") != det_uuid("users", "x@b.c")


def test_to_sync_url_normalizes_drivers() -> None:
    from db.settings import to_sync_url

    assert to_sync_url("postgresql+asyncpg://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert to_sync_url("postgresql+psycopg2://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert to_sync_url("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"


def test_password_hash_is_salted_bcrypt() -> None:
    import bcrypt

    from db.security import hash_password

    hashed = hash_password("password123", rounds=4)
    assert hashed.startswith("$2b$04$")
    assert hashed != hash_password("password123", rounds=4)
    assert bcrypt.checkpw(b"password123", hashed.encode("utf-8"))
