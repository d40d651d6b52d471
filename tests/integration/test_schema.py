from __future__ import annotations

from alembic.autogenerate import compare_metadata
from alembic.migration import MigrationContext


def _fk_diffs(sync_engine) -> list:
    from db.schema import METADATA

    with sync_engine.connect() as conn:
        diffs = compare_metadata(MigrationContext.configure(conn), METADATA)
    return [d for d in diffs if isinstance(d, tuple) and d[0] in ("add_fk", "remove_fk")]


def test_foreign_keys_match_migrated_database(sync_engine):
    assert _fk_diffs(sync_engine) == []


def test_delete_rules_on_task_references():
    from db import schema

    def rule(column) -> str | None:
        (fk,) = column.foreign_keys
        return fk.ondelete

    t = schema.tasks.c
    assert rule(t.project_id) == "CASCADE"
    assert rule(t.sprint_id) == "SET NULL"
    assert rule(t.parent_task_id) == "SET NULL"
    assert rule(t.status_id) is None
    assert rule(schema.time_entries.c.task_id) == "CASCADE"
    assert rule(schema.task_comments.c.author_id) is None
