from __future__ import annotations

import uuid

import httpx
import pytest


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


async def _project(client: httpx.AsyncClient, headers: dict, **project) -> dict:
    """Fresh organization -> workspace -> project, so tests never share mutable rows."""
    suffix = uuid.uuid4().hex[:8]
    r = await client.post("/organizations", json={"name": f"Org {suffix}"}, headers=headers)
    assert r.status_code == 201, r.text
    org = r.json()
    r = await client.post("/workspaces", json={"organization_id": org["id"], "name": "Engineering"}, headers=headers)
    assert r.status_code == 201, r.text
    ws = r.json()
    r = await client.post("/projects", json={"workspace_id": ws["id"], "name": f"Project {suffix}", **project}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


async def _statuses(client: httpx.AsyncClient, project: dict) -> dict[str, dict]:
    r = await client.get(f"/workflows/{project['workflow_id']}/statuses")
    return {s["name"]: s for s in r.json()}


async def _task(client: httpx.AsyncClient, headers: dict, project: dict, title: str, **fields) -> dict:
    r = await client.post("/tasks", json={"project_id": project["id"], "title": title, **fields}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_seeded_users_listed(api_app):
    async with _client(api_app) as client:
        r = await client.get("/users", params={"q": "taskpilot.com", "limit": 100})
        assert r.status_code == 200
        emails = {u["email"] for u in r.json()}
        assert {"john.doe@taskpilot.com", "jane.smith@taskpilot.com", "admin@taskpilot.com"} <= emails
        assert all("password" not in u for u in r.json())


@pytest.mark.asyncio
async def test_create_user_and_duplicate_email(api_app):
    email = f"new.{uuid.uuid4().hex[:6]}@example.com"
    payload = {"email": email, "first_name": "New", "last_name": "Person", "password": "s3cret-pass"}
    async with _client(api_app) as client:
        r = await client.post("/users", json=payload)
        assert r.status_code == 201, r.text
        assert r.json()["status"] == "ACTIVE"
        r = await client.post("/users", json=payload)
        assert r.status_code == 409


@pytest.mark.asyncio
async def test_organization_gets_default_workflow_and_owner(api_app, john_headers):
    async with _client(api_app) as client:
        r = await client.post("/organizations", json={"name": "Acme Rockets"}, headers=john_headers)
        assert r.status_code == 201
        org = r.json()
        assert org["slug"].startswith("acme-rockets")

        r = await client.get(f"/organizations/slug/{org['slug']}")
        assert r.json()["id"] == org["id"]

        r = await client.get("/workflows", params={"organization_id": org["id"]})
        workflows = r.json()
        assert len(workflows) == 1 and workflows[0]["is_default"]
        r = await client.get(f"/workflows/{workflows[0]['id']}/statuses")
        assert [s["name"] for s in r.json()] == ["To Do", "In Progress", "Review", "Done"]

        r = await client.get(f"/organizations/{org['id']}/members")
        assert [(m["email"], m["role"]) for m in r.json()] == [("john.doe@taskpilot.com", "OWNER")]

        r = await client.get("/organizations", headers=john_headers)
        assert org["id"] in {o["id"] for o in r.json()}


@pytest.mark.asyncio
async def test_duplicate_slug_is_conflict(api_app, john_headers):
    slug = f"dup-{uuid.uuid4().hex[:6]}"
    async with _client(api_app) as client:
        r = await client.post("/organizations", json={"name": "Dup", "slug": slug}, headers=john_headers)
        assert r.status_code == 201
        r = await client.post("/organizations", json={"name": "Dup", "slug": slug}, headers=john_headers)
        assert r.status_code == 409


@pytest.mark.asyncio
async def test_membership_add_and_remove(api_app, john_headers, jane_headers):
    async with _client(api_app) as client:
        r = await client.post("/organizations", json={"name": "Members Co"}, headers=john_headers)
        org = r.json()
        jane_id = jane_headers["X-User-Id"]
        r = await client.post(f"/organizations/{org['id']}/members", json={"user_id": jane_id, "role": "ADMIN"}, headers=john_headers)
        assert r.status_code == 201
        assert r.json()["role"] == "ADMIN"
        r = await client.post(f"/organizations/{org['id']}/members", json={"user_id": jane_id}, headers=john_headers)
        assert r.status_code == 409

        r = await client.delete(f"/organizations/{org['id']}/members/{jane_id}", headers=john_headers)
        assert r.status_code == 204
        r = await client.delete(f"/organizations/{org['id']}/members/{john_headers['X-User-Id']}", headers=john_headers)
        assert r.status_code == 409


@pytest.mark.asyncio
async def test_project_creates_default_sprint(api_app, john_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        r = await client.get("/sprints", params={"project_id": project["id"]})
        sprints = r.json()
        assert len(sprints) == 1
        assert sprints[0]["is_default"] and sprints[0]["status"] == "PLANNING"

        r = await client.patch(f"/projects/{project['id']}", json={"status": "ACTIVE"}, headers=john_headers)
        assert r.json()["status"] == "ACTIVE"
        r = await client.patch(
            f"/projects/{project['id']}",
            json={"start_date": "2024-06-01T00:00:00Z", "end_date": "2024-05-01T00:00:00Z"},
            headers=john_headers,
        )
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_task_lifecycle(api_app, john_headers, jane_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        statuses = await _statuses(client, project)

        first = await _task(client, john_headers, project, "Write spec", original_estimate=120)
        second = await _task(client, john_headers, project, "Ship it", assignee_ids=[jane_headers["X-User-Id"]])
        assert (first["task_number"], second["task_number"]) == (1, 2)
        assert second["slug"] == f"{project['slug']}-2"
        assert first["status_id"] == statuses["To Do"]["id"]
        assert first["remaining_estimate"] == 120
        assert second["assignee_ids"] == [jane_headers["X-User-Id"]]

        r = await client.put(f"/tasks/{first['id']}/status", json={"status_id": statuses["Done"]["id"]}, headers=john_headers)
        done = r.json()
        assert done["completed_at"] is not None
        assert done["remaining_estimate"] == 0
        r = await client.put(f"/tasks/{first['id']}/status", json={"status_id": statuses["In Progress"]["id"]}, headers=john_headers)
        assert r.json()["completed_at"] is None

        r = await client.put(f"/tasks/{first['id']}/status", json={"status_id": str(uuid.uuid4())}, headers=john_headers)
        assert r.status_code == 400

        r = await client.put(
            f"/tasks/{first['id']}/assignees",
            json={"user_ids": [john_headers["X-User-Id"], jane_headers["X-User-Id"]]},
            headers=john_headers,
        )
        assert len(r.json()["assignee_ids"]) == 2

        r = await client.get("/tasks", params={"project_id": project["id"], "assignee_id": jane_headers["X-User-Id"]})
        page = r.json()
        assert page["total"] == 2

        r = await client.get("/tasks", params={"project_id": project["id"], "limit": 1, "page": 2})
        page = r.json()
        assert page["total"] == 2 and len(page["items"]) == 1 and page["page"] == 2

        r = await client.get("/tasks/by-status", params={"project_id": project["id"]})
        columns = {c["status"]["name"]: [t["id"] for t in c["tasks"]] for c in r.json()}
        assert columns["In Progress"] == [first["id"]]
        assert columns["To Do"] == [second["id"]]

        r = await client.patch(f"/tasks/{first['id']}", json={"parent_task_id": first["id"]}, headers=john_headers)
        assert r.status_code == 400


@pytest.mark.asyncio
async def test_sprint_rules(api_app, john_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        r = await client.post("/sprints", json={"project_id": project["id"], "name": "No dates"}, headers=john_headers)
        undated = r.json()
        r = await client.post(f"/sprints/{undated['id']}/start", headers=john_headers)
        assert r.status_code == 400

        dates = {"start_date": "2024-05-01T00:00:00Z", "end_date": "2024-05-14T00:00:00Z"}
        s1 = (await client.post("/sprints", json={"project_id": project["id"], "name": "S1", **dates}, headers=john_headers)).json()
        s2 = (await client.post("/sprints", json={"project_id": project["id"], "name": "S2", **dates}, headers=john_headers)).json()
        r = await client.post(f"/sprints/{s1['id']}/start", headers=john_headers)
        assert r.json()["status"] == "ACTIVE"
        r = await client.post(f"/sprints/{s2['id']}/start", headers=john_headers)
        assert r.status_code == 409

        r = await client.get("/sprints/active", params={"project_id": project["id"]})
        assert r.json()["id"] == s1["id"]
        r = await client.delete(f"/sprints/{s1['id']}", headers=john_headers)
        assert r.status_code == 400

        task = await _task(client, john_headers, project, "Carry over", sprint_id=s1["id"])
        r = await client.post(f"/sprints/{s1['id']}/complete", headers=john_headers)
        assert r.json()["status"] == "COMPLETED"
        r = await client.get(f"/tasks/{task['id']}")
        default = [s for s in (await client.get("/sprints", params={"project_id": project["id"]})).json() if s["is_default"]][0]
        assert r.json()["sprint_id"] == default["id"]

        r = await client.post(f"/sprints/{s1['id']}/complete", headers=john_headers)
        assert r.status_code == 400
        r = await client.delete(f"/sprints/{s2['id']}", headers=john_headers)
        assert r.status_code == 204


@pytest.mark.asyncio
async def test_comment_tree(api_app, john_headers, jane_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        task = await _task(client, john_headers, project, "Discuss")
        other = await _task(client, john_headers, project, "Elsewhere")

        r = await client.post(f"/tasks/{task['id']}/comments", json={"content": "Top"}, headers=john_headers)
        top = r.json()
        r = await client.post(
            f"/tasks/{task['id']}/comments", json={"content": "Reply", "parent_comment_id": top["id"]}, headers=jane_headers
        )
        assert r.status_code == 201
        r = await client.post(
            f"/tasks/{other['id']}/comments", json={"content": "Wrong task", "parent_comment_id": top["id"]}, headers=jane_headers
        )
        assert r.status_code == 400

        r = await client.get(f"/tasks/{task['id']}/comments")
        tree = r.json()
        assert len(tree) == 1
        assert [c["content"] for c in tree[0]["replies"]] == ["Reply"]

        r = await client.delete(f"/tasks/{task['id']}/comments/{top['id']}", headers=jane_headers)
        assert r.status_code == 403
        r = await client.delete(f"/tasks/{task['id']}/comments/{top['id']}", headers=john_headers)
        assert r.status_code == 204
        r = await client.get(f"/tasks/{task['id']}/comments")
        assert r.json() == []


@pytest.mark.asyncio
async def test_labels(api_app, john_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        task = await _task(client, john_headers, project, "Label me")
        payload = {"project_id": project["id"], "name": "backend", "color": "#8b5cf6"}
        label = (await client.post("/labels", json=payload, headers=john_headers)).json()
        r = await client.post("/labels", json=payload, headers=john_headers)
        assert r.status_code == 409

        r = await client.put(f"/tasks/{task['id']}/labels/{label['id']}", headers=john_headers)
        assert r.status_code == 204
        r = await client.get(f"/tasks/{task['id']}/labels")
        assert [lb["name"] for lb in r.json()] == ["backend"]
        r = await client.delete(f"/tasks/{task['id']}/labels/{label['id']}", headers=john_headers)
        assert r.status_code == 204
        r = await client.delete(f"/tasks/{task['id']}/labels/{label['id']}", headers=john_headers)
        assert r.status_code == 404


@pytest.mark.asyncio
async def test_dependencies(api_app, john_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        a = await _task(client, john_headers, project, "Schema")
        b = await _task(client, john_headers, project, "API")
        c = await _task(client, john_headers, project, "UI")

        async def depend(dependent, blocking):
            return await client.post(
                "/dependencies",
                json={"dependent_task_id": dependent["id"], "blocking_task_id": blocking["id"]},
                headers=john_headers,
            )

        assert (await depend(b, a)).status_code == 201
        assert (await depend(c, b)).status_code == 201
        assert (await depend(a, a)).status_code == 400
        assert (await depend(b, a)).status_code == 409
        assert (await depend(a, c)).status_code == 400

        r = await client.get(f"/tasks/{b['id']}/dependencies")
        deps = r.json()
        assert [d["blocking_task_id"] for d in deps["depends_on"]] == [a["id"]]
        assert [d["dependent_task_id"] for d in deps["blocks"]] == [c["id"]]

        r = await client.get("/dependencies/blocked", params={"project_id": project["id"]})
        assert {t["id"] for t in r.json()} == {b["id"], c["id"]}

        r = await client.get("/dependencies/stats", params={"project_id": project["id"]})
        stats = r.json()
        assert stats["total_dependencies"] == 2
        assert stats["blocked_tasks"] == 2
        assert stats["critical_path"] == [a["id"], b["id"], c["id"]]

        dep_id = deps["blocks"][0]["id"]
        r = await client.delete(f"/dependencies/{dep_id}", headers=john_headers)
        assert r.status_code == 204


@pytest.mark.asyncio
async def test_watchers(api_app, john_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        task = await _task(client, john_headers, project, "Watch me")
        base = f"/tasks/{task['id']}/watchers"

        assert (await client.post(base, headers=john_headers)).status_code == 201
        assert (await client.post(base, headers=john_headers)).status_code == 409
        r = await client.post(f"{base}/toggle", headers=john_headers)
        assert r.json() == {"watching": False}
        r = await client.post(f"{base}/toggle", headers=john_headers)
        assert r.json() == {"watching": True}
        r = await client.get(base)
        assert [w["user_id"] for w in r.json()] == [john_headers["X-User-Id"]]
        assert (await client.delete(base, headers=john_headers)).status_code == 204
        assert (await client.delete(base, headers=john_headers)).status_code == 404


@pytest.mark.asyncio
async def test_time_entries(api_app, john_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        task = await _task(client, john_headers, project, "Track me", original_estimate=100)
        base = f"/tasks/{task['id']}/time-entries"

        await client.post(base, json={"time_spent": 30, "description": "first"}, headers=john_headers)
        await client.post(base, json={"time_spent": 90}, headers=john_headers)
        r = await client.get(base)
        assert r.json()["total_minutes"] == 120
        assert len(r.json()["items"]) == 2

        r = await client.get(f"/tasks/{task['id']}")
        assert r.json()["remaining_estimate"] == 0


@pytest.mark.asyncio
async def test_inbox_default_rules(api_app, john_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        base = f"/projects/{project['id']}/inbox"
        assert (await client.get(base)).status_code == 404

        r = await client.post(base, json={"name": "Support inbox"}, headers=john_headers)
        assert r.status_code == 201
        assert (await client.post(base, json={"name": "Again"}, headers=john_headers)).status_code == 409

        r = await client.post(f"{base}/default-rules", headers=john_headers)
        assert r.json() == {"created": 8, "skipped": 0}
        r = await client.post(f"{base}/default-rules", headers=john_headers)
        assert r.json() == {"created": 0, "skipped": 8}
        r = await client.get(f"{base}/rules")
        assert r.json()[0]["name"] == "Spam Detection - Common Patterns"


@pytest.mark.asyncio
async def test_gantt_and_reschedule(api_app, john_headers, jane_headers):
    async with _client(api_app) as client:
        project = await _project(
            client, john_headers, start_date="2024-05-01T00:00:00Z", end_date="2024-06-30T00:00:00Z"
        )
        statuses = await _statuses(client, project)
        dates = {"start_date": "2024-05-06T00:00:00Z", "due_date": "2024-05-10T00:00:00Z"}
        epic = await _task(client, john_headers, project, "Epic", type="EPIC", story_points=8, assignee_ids=[john_headers["X-User-Id"], jane_headers["X-User-Id"]], **dates)
        child = await _task(client, john_headers, project, "Child", parent_task_id=epic["id"], assignee_ids=[jane_headers["X-User-Id"]], **dates)
        await client.put(f"/tasks/{child['id']}/status", json={"status_id": statuses["Review"]["id"]}, headers=john_headers)
        await client.post(
            "/dependencies", json={"dependent_task_id": child["id"], "blocking_task_id": epic["id"]}, headers=john_headers
        )

        r = await client.get(f"/gantt/projects/{project['id']}")
        assert r.status_code == 200
        data = r.json()
        assert [t["id"] for t in data["tasks"]] == [epic["id"]]
        (nested,) = data["tasks"][0]["children"]
        assert nested["progress"] == 80
        assert nested["dependencies"] == [epic["id"]]
        assert data["critical_path"] == [epic["id"], child["id"]]
        assert data["timeline"]["duration"] == 60

        r = await client.get(f"/gantt/projects/{project['id']}/resources")
        workload = {a["assignee"]["id"]: a["workload"] for a in r.json()}
        assert workload[john_headers["X-User-Id"]] == pytest.approx(4.0)
        assert workload[jane_headers["X-User-Id"]] == pytest.approx(5.0)

        r = await client.post(
            f"/tasks/{child['id']}/reschedule", json={"mode": "move", "delta_px": 160, "view_mode": "days"}, headers=john_headers
        )
        moved = r.json()
        assert moved["start_date"].startswith("2024-05-08")
        assert moved["due_date"].startswith("2024-05-12")

        bare = await _task(client, john_headers, project, "Undated")
        r = await client.post(f"/tasks/{bare['id']}/reschedule", json={"mode": "move", "delta_px": 80}, headers=john_headers)
        assert r.status_code == 400


@pytest.mark.asyncio
async def test_seeded_organizations_visible_to_members(api_app):
    async with _client(api_app) as client:
        users = (await client.get("/users", params={"q": "john.doe"})).json()
        assert users
        orgs = (await client.get("/organizations", headers={"X-User-Id": users[0]["id"]})).json()
        slugs = {o["slug"] for o in orgs}
        assert "taskpilot-inc" in slugs


@pytest.mark.asyncio
async def test_parent_cycles_rejected(api_app, john_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        a = await _task(client, john_headers, project, "A")
        b = await _task(client, john_headers, project, "B")

        r = await client.patch(f"/tasks/{a['id']}", json={"parent_task_id": b["id"]}, headers=john_headers)
        assert r.status_code == 200
        r = await client.patch(f"/tasks/{b['id']}", json={"parent_task_id": a["id"]}, headers=john_headers)
        assert r.status_code == 400

        c = await _task(client, john_headers, project, "C", parent_task_id=a["id"])
        r = await client.patch(f"/tasks/{b['id']}", json={"parent_task_id": c["id"]}, headers=john_headers)
        assert r.status_code == 400

        r = await client.get(f"/gantt/projects/{project['id']}")
        (root,) = r.json()["tasks"]
        assert root["id"] == b["id"]
        assert [t["id"] for t in root["children"]] == [a["id"]]
        assert [t["id"] for t in root["children"][0]["children"]] == [c["id"]]


@pytest.mark.asyncio
async def test_sprint_gantt_and_resources_use_scheduled_dates(api_app, john_headers):
    async with _client(api_app) as client:
        project = await _project(client, john_headers)
        dates = {"start_date": "2024-07-01T00:00:00Z", "end_date": "2024-07-14T00:00:00Z"}
        r = await client.post("/sprints", json={"project_id": project["id"], "name": "July", **dates}, headers=john_headers)
        sprint = r.json()
        me = john_headers["X-User-Id"]
        undated = await _task(client, john_headers, project, "Undated", sprint_id=sprint["id"], story_points=3, assignee_ids=[me])
        await _task(
            client,
            john_headers,
            project,
            "Dated",
            sprint_id=sprint["id"],
            story_points=2,
            assignee_ids=[me],
            start_date="2024-07-03T00:00:00Z",
            due_date="2024-07-05T00:00:00Z",
        )

        r = await client.get(f"/gantt/sprints/{sprint['id']}")
        assert r.status_code == 200
        by_id = {t["id"]: t for t in r.json()["tasks"]}
        assert by_id[undated["id"]]["start"].startswith("2024-07-01")
        assert by_id[undated["id"]]["end"].startswith("2024-07-14")

        r = await client.get(f"/gantt/projects/{project['id']}/resources")
        (entry,) = r.json()
        assert [t["title"] for t in entry["tasks"]] == ["Dated"]
        assert entry["workload"] == pytest.approx(2.0)
