from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import httpx
import pytest
import sqlalchemy as sa


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_healthz(api_app):
    async with _client(api_app) as client:
        r = await client.get("/healthz")
        assert r.status_code == 200
        assert r.json() == {"ok": True}


@pytest.mark.asyncio
async def test_metrics_exposed(api_app):
    async with _client(api_app) as client:
        await client.get("/healthz")
        r = await client.get("/metrics")
        assert r.status_code == 200
        assert "request_latency_ms" in r.text
        assert 'http_requests_total{service="api",route="/healthz",method="GET",status="2xx"}' in r.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_app):
    async with _client(api_app) as client:
        r = await client.get("/healthz", headers={"X-Request-Id": "req-123"})
        assert r.headers["X-Request-Id"] == "req-123"

        r = await client.get("/healthz")
        assert len(r.headers["X-Request-Id"]) == 32


@pytest.mark.asyncio
async def test_write_requires_acting_user(api_app):
    async with _client(api_app) as client:
        r = await client.post("/organizations", json={"name": "No Auth Org"})
        assert r.status_code == 401


@pytest.mark.asyncio
async def test_unknown_acting_user_rejected(api_app):
    async with _client(api_app) as client:
        r = await client.post("/organizations", json={"name": "Ghost Org"}, headers={"X-User-Id": str(uuid.uuid4())})
        assert r.status_code == 401
        r = await client.post("/organizations", json={"name": "Ghost Org"}, headers={"X-User-Id": "not-a-uuid"})
        assert r.status_code == 401


@pytest.mark.asyncio
async def test_extra_fields_rejected(api_app, john_headers):
    async with _client(api_app) as client:
        r = await client.post("/organizations", json={"name": "Extra Org", "plan": "gold"}, headers=john_headers)
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_invalid_enum_rejected(api_app, john_headers):
    async with _client(api_app) as client:
        r = await client.post(
            "/tasks", json={"project_id": str(uuid.uuid4()), "title": "x", "priority": "SUPER"}, headers=john_headers
        )
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_task_due_before_start_rejected(api_app, john_headers):
    async with _client(api_app) as client:
        payload = {
            "project_id": str(uuid.uuid4()),
            "title": "Backwards",
            "start_date": "2024-05-10T00:00:00Z",
            "due_date": "2024-05-01T00:00:00Z",
        }
        r = await client.post("/tasks", json=payload, headers=john_headers)
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_naive_due_date_patch_on_seeded_task(api_app, john_headers, sync_engine):
    from db import schema

    t = schema.tasks
    with sync_engine.connect() as conn:
        task = conn.execute(
            sa.select(t.c.id, t.c.start_date).where(t.c.start_date.is_not(None), t.c.due_date.is_not(None)).limit(1)
        ).one()
    start = task.start_date.astimezone(UTC)

    async with _client(api_app) as client:
        due = (start + timedelta(days=5)).replace(tzinfo=None).isoformat()
        r = await client.patch(f"/tasks/{task.id}", json={"due_date": due}, headers=john_headers)
        assert r.status_code == 200, r.text
        assert datetime.fromisoformat(r.json()["due_date"]) == start + timedelta(days=5)

        early = (start - timedelta(days=1)).replace(tzinfo=None).isoformat()
        r = await client.patch(f"/tasks/{task.id}", json={"due_date": early}, headers=john_headers)
        assert r.status_code == 400


@pytest.mark.asyncio
async def test_time_entry_must_be_positive(api_app, john_headers):
    async with _client(api_app) as client:
        r = await client.post(f"/tasks/{uuid.uuid4()}/time-entries", json={"time_spent": 0}, headers=john_headers)
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_missing_rows_are_404(api_app):
    async with _client(api_app) as client:
        for path in (f"/users/{uuid.uuid4()}", f"/projects/{uuid.uuid4()}", f"/tasks/{uuid.uuid4()}", "/email-templates/nope"):
            r = await client.get(path)
            assert r.status_code == 404, path


@pytest.mark.asyncio
async def test_admin_requires_token(api_app):
    async with _client(api_app) as client:
        r = await client.post("/admin/seed")
        assert r.status_code == 403
        r = await client.post("/admin/seed", headers={"X-Admin-Token": "wrong"})
        assert r.status_code == 403


@pytest.mark.asyncio
async def test_reschedule_rejects_unknown_mode(api_app, john_headers):
    async with _client(api_app) as client:
        r = await client.post(f"/tasks/{uuid.uuid4()}/reschedule", json={"mode": "stretch", "delta_px": 10}, headers=john_headers)
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_email_template_catalogue(api_app):
    async with _client(api_app) as client:
        r = await client.get("/email-templates")
        assert r.status_code == 200
        assert len(r.json()) == 12

        r = await client.get("/email-templates", params={"category": "support"})
        assert {t["category"] for t in r.json()} == {"support"}

        r = await client.get("/email-templates/categories")
        assert [c["value"] for c in r.json()] == ["auto-reply", "welcome", "support", "notification", "custom"]

        r = await client.get("/email-templates/variables")
        assert len(r.json()) == 30


@pytest.mark.asyncio
async def test_email_template_validate_and_render(api_app):
    async with _client(api_app) as client:
        r = await client.post("/email-templates/validate", json={"name": "x", "subject": "{{a}}", "content": "b", "category": "custom"})
        assert r.json() == {"is_valid": True, "errors": []}

        r = await client.post("/email-templates/validate", json={})
        assert r.json()["is_valid"] is False

        r = await client.post(
            "/email-templates/auto-reply-support/render",
            json={"values": {"subject": "Help", "taskNumber": "7", "projectName": "Web"}},
        )
        assert r.status_code == 200
        assert r.json()["subject"] == "Re: Help"
        assert "ticket #7" in r.json()["content"]
