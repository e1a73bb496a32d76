"""Tests for taskmgmt.api.app — HTTP routes, ApiResult envelope, error mapping."""

import uuid

import pytest
from fastapi.testclient import TestClient

from taskmgmt.api.app import create_app
from taskmgmt.api.results import ApiResult
from taskmgmt.engine.config import RulesConfig


@pytest.fixture
def client(session_factory):
    return TestClient(create_app(session_factory=session_factory, rules=RulesConfig()))


@pytest.fixture
def owner():
    return str(uuid.uuid4())


def _create_project(client, owner, name="Alpha"):
    resp = client.post("/v1/projects", json={"name": name, "user_id": owner})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def _create_task(client, owner, project_id, title="Write report", priority="High"):
    resp = client.post(
        "/v1/tasks",
        json={
            "title": title,
            "description": "desc",
            "due_date": "2030-01-01T00:00:00Z",
            "priority": priority,
            "project_id": project_id,
            "user_id": owner,
        },
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


class TestApiResult:

    def test_ok(self):
        result = ApiResult.ok({"a": 1}, message="done")
        assert result.success is True
        assert result.data == {"a": 1}
        assert result.errors == []

    def test_fail(self):
        result = ApiResult.fail("nope", ["detail"])
        assert result.success is False
        assert result.data is None
        assert result.errors == ["detail"]


class TestProjectRoutes:

    def test_create_and_get(self, client, owner):
        project = _create_project(client, owner)
        resp = client.get(f"/v1/projects/{project['id']}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["name"] == "Alpha"
        assert body["data"]["tasks"] == []

    def test_duplicate_is_400(self, client, owner):
        _create_project(client, owner)
        resp = client.post("/v1/projects", json={"name": "Alpha", "user_id": owner})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["message"]

    def test_missing_is_404(self, client):
        resp = client.get(f"/v1/projects/{uuid.uuid4()}")
        assert resp.status_code == 404
        assert resp.json()["success"] is False

    def test_invalid_payload_is_400(self, client, owner):
        resp = client.post("/v1/projects", json={"name": "", "user_id": owner})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert any("name" in e for e in body["errors"])

    def test_list_by_owner(self, client, owner):
        _create_project(client, owner, "A")
        _create_project(client, owner, "B")
        resp = client.get(f"/v1/projects/user/{owner}")
        assert [p["name"] for p in resp.json()["data"]] == ["A", "B"]

    def test_list_by_nil_owner_is_400(self, client):
        resp = client.get(f"/v1/projects/user/{uuid.UUID(int=0)}")
        assert resp.status_code == 400

    def test_rename(self, client, owner):
        project = _create_project(client, owner)
        resp = client.put("/v1/projects", json={"project_id": project["id"], "name": "Beta", "user_id": owner})
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Beta"

    def test_rename_by_other_user_is_400(self, client, owner):
        project = _create_project(client, owner)
        resp = client.put(
            "/v1/projects", json={"project_id": project["id"], "name": "Beta", "user_id": str(uuid.uuid4())}
        )
        assert resp.status_code == 400

    def test_delete_blocked_by_pending_task(self, client, owner):
        project = _create_project(client, owner)
        _create_task(client, owner, project["id"])
        resp = client.delete(f"/v1/projects/{project['id']}")
        assert resp.status_code == 400
        assert client.get(f"/v1/projects/{project['id']}").status_code == 200

    def test_delete(self, client, owner):
        project = _create_project(client, owner)
        assert client.delete(f"/v1/projects/{project['id']}").status_code == 200
        assert client.get(f"/v1/projects/{project['id']}").status_code == 404

    def test_delete_unknown_id_succeeds(self, client):
        missing = uuid.uuid4()
        assert client.delete(f"/v1/projects/{missing}").status_code == 200
        assert client.delete(f"/v1/tasks/{missing}").status_code == 200
        assert client.delete(f"/v1/tasks/comment/{missing}").status_code == 200


class TestTaskRoutes:

    def test_task_lifecycle(self, client, owner):
        project = _create_project(client, owner)
        task = _create_task(client, owner, project["id"])
        assert task["status"] == "Pending"

        resp = client.put(
            "/v1/tasks",
            json={"task_id": task["id"], "status": "Completed", "priority": "High", "user_id": owner},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["completed_at"] is not None

        resp = client.post("/v1/tasks/comment", json={"task_id": task["id"], "content": "done!", "user_id": owner})
        assert resp.status_code == 200
        comment_id = resp.json()["data"]["id"]

        history = client.get(f"/v1/tasks/{task['id']}/history").json()["data"]
        assert len(history) == 3
        assert history[-1]["description"] == "Comentário adicionado: done!"

        comments = client.get(f"/v1/tasks/{task['id']}/comments").json()["data"]
        assert [c["id"] for c in comments] == [comment_id]
        assert client.delete(f"/v1/tasks/comment/{comment_id}").status_code == 200

        assert client.delete(f"/v1/tasks/{task['id']}").status_code == 200
        assert client.get(f"/v1/tasks/{task['id']}").status_code == 404

    def test_priority_change_is_400(self, client, owner):
        project = _create_project(client, owner)
        task = _create_task(client, owner, project["id"], priority="High")
        resp = client.put(
            "/v1/tasks",
            json={"task_id": task["id"], "status": "Pending", "priority": "Low", "user_id": owner},
        )
        assert resp.status_code == 400
        assert client.get(f"/v1/tasks/{task['id']}").json()["data"]["priority"] == "High"

    def test_unknown_project_is_400(self, client, owner):
        resp = client.post(
            "/v1/tasks",
            json={
                "title": "t",
                "due_date": "2030-01-01T00:00:00Z",
                "priority": "Low",
                "project_id": str(uuid.uuid4()),
                "user_id": owner,
            },
        )
        assert resp.status_code == 400

    def test_bad_priority_is_400(self, client, owner):
        project = _create_project(client, owner)
        resp = client.post(
            "/v1/tasks",
            json={
                "title": "t",
                "due_date": "2030-01-01T00:00:00Z",
                "priority": "Urgent",
                "project_id": project["id"],
                "user_id": owner,
            },
        )
        assert resp.status_code == 400

    def test_comment_on_missing_task_is_404(self, client, owner):
        resp = client.post(
            "/v1/tasks/comment", json={"task_id": str(uuid.uuid4()), "content": "x", "user_id": owner}
        )
        assert resp.status_code == 404

    def test_list_by_owner(self, client, owner):
        project = _create_project(client, owner)
        _create_task(client, owner, project["id"], "a")
        resp = client.get(f"/v1/tasks/user/{owner}")
        assert [t["title"] for t in resp.json()["data"]] == ["a"]

    def test_performance_report(self, client, owner):
        project = _create_project(client, owner)
        task = _create_task(client, owner, project["id"])
        client.put(
            "/v1/tasks",
            json={"task_id": task["id"], "status": "Completed", "priority": "High", "user_id": owner},
        )
        rows = client.get("/v1/tasks/report/performance").json()["data"]
        assert rows == [
            {
                "owner_id": owner,
                "owner_name": f"User {owner}",
                "completed": 1,
                "window_days": 30,
                "daily_average": 0.03,
            }
        ]

    def test_deletable_tasks(self, client, owner):
        project = _create_project(client, owner)
        _create_task(client, owner, project["id"], "pending")
        resp = client.get(f"/v1/projects/{project['id']}/deletable-tasks")
        assert resp.status_code == 200
        assert resp.json()["data"] == []
