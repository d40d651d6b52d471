from __future__ import annotations

from collections import Counter

import httpx
import pytest
import sqlalchemy as sa

from tests.conftest import SEED, migrate


SEEDED_ORGS = ("taskpilot-inc", "tech-innovators")


def _count(conn, table) -> int:
    return conn.execute(sa.select(sa.func.count()).select_from(table)).scalar_one()


def _seeded_projects(schema):
    p, w, o = schema.projects, schema.workspaces, schema.organizations
    return (
        sa.select(p.c.id)
        .join(w, w.c.id == p.c.workspace_id)
        .join(o, o.c.id == w.c.organization_id)
        .where(o.c.slug.in_(SEEDED_ORGS))
    )


def test_seeded_fixture_shape(sync_engine):
    from db import schema
    from db.seeders.users import USERS_DATA

    seeded_emails = [u["email"] for u in USERS_DATA]
    assert len(seeded_emails) == 8
    with sync_engine.connect() as conn:
        users = {
            r.email: r
            for r in conn.execute(sa.select(schema.users).where(schema.users.c.email.in_(seeded_emails))).all()
        }
        assert set(users) == set(seeded_emails)
        assert users["admin@taskpilot.com"].role == "SUPER_ADMIN"
        assert all(u.password and u.password.startswith("$2") for u in users.values())

        slugs = set(conn.execute(sa.select(schema.organizations.c.slug)).scalars())
        assert {*SEEDED_ORGS, "default-organization"} <= slugs

        # One default workflow per organization.
        w = schema.workflows
        defaults = Counter(conn.execute(sa.select(w.c.organization_id).where(w.c.is_default.is_(True))).scalars())
        assert set(defaults.values()) == {1}
        assert len(defaults) == len(slugs)

        # One default sprint per project.
        s = schema.sprints
        per_project = Counter(conn.execute(sa.select(s.c.project_id).where(s.c.is_default.is_(True))).scalars())
        assert set(per_project.values()) == {1}
        assert len(per_project) == _count(conn, schema.projects)


def test_seeded_tasks_are_consistent(sync_engine):
    from db import schema

    t, st, p = schema.tasks, schema.task_statuses, schema.projects
    with sync_engine.connect() as conn:
        rows = conn.execute(
            sa.select(
                t.c.id,
                t.c.project_id,
                t.c.task_number,
                t.c.completed_at,
                t.c.remaining_estimate,
                st.c.category,
                st.c.workflow_id,
                p.c.workflow_id.label("project_workflow"),
            )
            .join(st, st.c.id == t.c.status_id)
            .join(p, p.c.id == t.c.project_id)
            .where(t.c.project_id.in_(_seeded_projects(schema)))
        ).all()
        assert rows
        for r in rows:
            assert r.workflow_id == r.project_workflow
            if r.category == "DONE":
                assert r.completed_at is not None
                assert r.remaining_estimate == 0
            else:
                assert r.completed_at is None

        numbers: dict = {}
        for r in rows:
            numbers.setdefault(r.project_id, []).append(r.task_number)
        for nums in numbers.values():
            assert sorted(nums) == list(range(1, len(nums) + 1))

        seeded_ids = [r.id for r in rows]
        tw = schema.task_watchers
        watchers = Counter(conn.execute(sa.select(tw.c.task_id).where(tw.c.task_id.in_(seeded_ids))).scalars())
        assert watchers and max(watchers.values()) <= 4

        te = schema.time_entries
        assert conn.execute(sa.select(sa.func.min(te.c.time_spent))).scalar_one() > 0
        assert _count(conn, schema.task_comments) > 0
        assert _count(conn, schema.task_labels) > 0


def test_seeding_twice_adds_nothing(sync_engine):
    from db import schema
    from db.seeders import SeederService

    tables = [
        schema.users,
        schema.organizations,
        schema.workspaces,
        schema.projects,
        schema.sprints,
        schema.tasks,
        schema.labels,
    ]
    with sync_engine.connect() as conn:
        before = {tb.name: _count(conn, tb) for tb in tables}

    result = SeederService(sync_engine, SEED).seed_core()
    assert result["tasks"] == 0

    with sync_engine.connect() as conn:
        after = {tb.name: _count(conn, tb) for tb in tables}
    assert after == before


def test_reset_on_fresh_database(sync_url):
    from db import schema
    from db.seeders import SeederService

    admin = sa.create_engine(sync_url, isolation_level="AUTOCOMMIT")
    with admin.connect() as conn:
        conn.execute(sa.text("DROP DATABASE IF EXISTS reset_check"))
        conn.execute(sa.text("CREATE DATABASE reset_check"))
    admin.dispose()

    url = sa.engine.make_url(sync_url).set(database="reset_check").render_as_string(hide_password=False)
    migrate(url)
    engine = sa.create_engine(url)
    try:
        service = SeederService(engine, SEED)
        seeded = service.seed_core()
        assert seeded["users"] == 8
        assert seeded["tasks"] > 0

        cleared = service.clear_core()
        assert cleared["tasks"] == seeded["tasks"]
        with engine.connect() as conn:
            for table in (schema.users, schema.organizations, schema.projects, schema.tasks, schema.workflows):
                assert _count(conn, table) == 0, table.name

        result = service.reset()
        assert result["seeded"] == seeded
    finally:
        engine.dispose()


@pytest.mark.asyncio
async def test_admin_endpoint_runs_seeder(api_app):
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.post("/admin/seed-admin", headers={"X-Admin-Token": "test-admin"})
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["command"] == "admin"
        assert body["result"] == {"admin_user": "admin@taskpilot.com"}

        r = await client.get("/metrics")
        assert 'seeder_runs_total{command="admin",outcome="ok"}' in r.text
