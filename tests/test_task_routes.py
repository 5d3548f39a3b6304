"""
HTTP-level tests for the task endpoints and identity adapter.
"""

from tracker.models.task import Task


# -----------------------------------------------------------------------------
# Health / identity
# -----------------------------------------------------------------------------
class TestHealthAndAuth:
    """Tests for health check and authentication."""

    def test_health_endpoint(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_login_and_me(self, client, regular_user):
        response = client.post(
            "/api/auth/login", data={"username": "alice", "password": "Secret123!"}
        )
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["username"] == "alice"

    def test_login_wrong_password(self, client, regular_user):
        response = client.post(
            "/api/auth/login", data={"username": "alice", "password": "nope"}
        )
        assert response.status_code == 401

    def test_tasks_require_token(self, client):
        assert client.get("/api/tasks/").status_code == 401


# -----------------------------------------------------------------------------
# Tasks
# -----------------------------------------------------------------------------
class TestTaskEndpoints:
    """Tests for /api/tasks."""

    def test_create_and_get(self, client, user_headers, project, make_task):
        pred = make_task("Survey")
        response = client.post(
            "/api/tasks/",
            json={"project_id": project.id, "name": "Build", "predecessors": [pred.id]},
            headers=user_headers,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["predecessors"] == [pred.id]

        detail = client.get(f"/api/tasks/{body['id']}", headers=user_headers)
        assert detail.status_code == 200
        assert detail.json()["name"] == "Build"

    def test_list_filtered_by_project(self, client, user_headers, project, make_task):
        make_task("One")
        make_task("Two")
        response = client.get(
            "/api/tasks/", params={"project_id": project.id}, headers=user_headers
        )
        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["One", "Two"]

    def test_blocked_start_returns_blockers(self, client, user_headers, make_task):
        a = make_task("Design", status="IN_PROGRESS")
        b = make_task("Build", predecessors=[a])

        response = client.post(
            f"/api/tasks/{b.id}/status", json={"status": "IN_PROGRESS"}, headers=user_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"]["blockers"] == ["Design"]

    def test_status_change_on_completed_is_conflict(self, client, user_headers, make_task):
        task = make_task("Done", status="COMPLETED")
        response = client.post(
            f"/api/tasks/{task.id}/status",
            json={"status": "CANCELLED", "reason": "late"},
            headers=user_headers,
        )
        assert response.status_code == 409

    def test_put_completed_is_conflict(self, client, db, user_headers, make_task):
        task = make_task("Done", status="COMPLETED")
        response = client.put(
            f"/api/tasks/{task.id}", json={"name": "Changed"}, headers=user_headers
        )
        assert response.status_code == 409
        db.expire_all()
        assert db.get(Task, task.id).name == "Done"

    def test_put_progress_completes(self, client, user_headers, make_task):
        task = make_task("Build", status="IN_PROGRESS", progress=80)
        response = client.put(
            f"/api/tasks/{task.id}", json={"progress": 100}, headers=user_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"

    def test_put_rejects_unknown_fields(self, client, user_headers, make_task):
        task = make_task("Build")
        response = client.put(
            f"/api/tasks/{task.id}", json={"colour": "red"}, headers=user_headers
        )
        assert response.status_code == 422

    def test_put_rejects_null_predecessors(self, client, user_headers, make_task):
        task = make_task("Build")
        response = client.put(
            f"/api/tasks/{task.id}", json={"predecessors": None}, headers=user_headers
        )
        assert response.status_code == 422

    def test_batch_accepts_camel_case_ids(self, client, user_headers, make_task):
        t1 = make_task("T1", status="COMPLETED")
        t2 = make_task("T2")
        response = client.post(
            "/api/tasks/batch",
            json={"taskIds": [t1.id, t2.id], "updates": {"priority": "HIGH"}},
            headers=user_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["updated"] == [t2.id]
        assert body["skipped"] == [t1.id]

    def test_batch_rejects_status(self, client, user_headers, make_task):
        t1 = make_task("T1")
        response = client.post(
            "/api/tasks/batch",
            json={"task_ids": [t1.id], "updates": {"status": "CANCELLED"}},
            headers=user_headers,
        )
        assert response.status_code == 422

    def test_missing_task_is_404(self, client, user_headers):
        assert client.get("/api/tasks/777", headers=user_headers).status_code == 404
