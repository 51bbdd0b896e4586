"""HTTP tests for /api/dashboard, /health and the service root."""
from datetime import timedelta

from tms import __version__
from tms.timeutil import today, utcnow


class TestDashboardEndpoint:
    def test_admin_only(self, client, user_headers):
        assert client.get("/api/dashboard", headers=user_headers).status_code == 403

    def test_requires_login(self, client):
        assert client.get("/api/dashboard").status_code == 401

    def test_summary(self, client, factory, admin_headers, user):
        project = factory.project(members=[user], budget=2500)
        factory.task(project, assignees=[user], status="pending")
        factory.task(project, assignees=[user], status="completed")

        resp = client.get("/api/dashboard", headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["clients_count"] == 1
        assert data["projects_count"] == 1
        assert data["tasks_count"] == 2
        assert data["budget_summary"]["total_budget"] == 2500
        assert data["ongoing_clients"] == 1
        john = next(row for row in data["user_summary"] if row["email"] == "john@example.com")
        assert (john["completed_tasks"], john["pending_tasks"]) == (1, 1)
        assert len(data["recent_tasks"]) == 2

    def test_task_filters(self, client, factory, admin_headers, user):
        project = factory.project(due_date=utcnow() + timedelta(days=60))
        factory.task(project, status="pending", due_date=utcnow() + timedelta(days=1))
        factory.task(project, status="pending", due_date=utcnow() + timedelta(days=20))
        factory.task(project, status="completed", due_date=utcnow() + timedelta(days=1))

        resp = client.get("/api/dashboard?task_status=pending", headers=admin_headers)
        assert resp.json()["tasks_count"] == 2

        end = (today() + timedelta(days=5)).isoformat()
        resp = client.get(f"/api/dashboard?task_status=pending&task_end_date={end}", headers=admin_headers)
        assert resp.json()["tasks_count"] == 1
        assert resp.json()["task_summary"] == [{"status": "pending", "count": 1}]

    def test_user_filter(self, client, admin_headers, admin, user):
        resp = client.get(f"/api/dashboard?user_id={user.id}", headers=admin_headers)
        assert [row["email"] for row in resp.json()["user_summary"]] == ["john@example.com"]


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["database"] == "healthy"
        assert body["version"] == __version__

    def test_root(self, client):
        body = client.get("/").json()
        assert body["version"] == __version__
        assert body["health"] == "/health"
