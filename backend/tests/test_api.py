"""
HTTP tests through FastAPI's TestClient.

Each test runs the app against its own SQLite file and authenticates with
tokens shaped like the identity provider's.
"""
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from kudos.core.deps import get_task_service
from kudos.core.errors import PersistenceError
from kudos.core.security import SecurityService
from kudos.database import Database
from kudos.domain.values import new_id
from kudos.main import app


def auth_headers(subject="idp|alice", email="alice@example.com", name="Alice", **kwargs):
    token = SecurityService.create_access_token(subject, email, name, **kwargs)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(tmp_path):
    app.state.database = Database(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", echo=False)
    with TestClient(app) as test_client:
        yield test_client
    del app.state.database
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return auth_headers()


@pytest.fixture
def bob():
    return auth_headers("idp|bob", "bob@example.com", "Bob")


def create_task(client, headers, **fields):
    body = {"title": "Write tests"}
    body.update(fields)
    response = client.post("/api/v1/tasks", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthentication:
    def test_health_needs_no_token(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_token(self, client):
        response = client.get("/api/v1/tasks")
        assert response.status_code in (401, 403)

    def test_garbage_token(self, client):
        response = client.get("/api/v1/tasks", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401

    def test_expired_token(self, client):
        headers = auth_headers(expires_delta=timedelta(minutes=-5))
        response = client.get("/api/v1/tasks", headers=headers)
        assert response.status_code == 401

    def test_first_request_provisions_user(self, client, alice):
        response = client.get("/api/v1/user/me", headers=alice)
        assert response.status_code == 200
        assert response.json()["email"] == "alice@example.com"

        settings = client.get("/api/v1/user/settings", headers=alice).json()
        assert settings["show_points"] is True
        assert settings["theme"] == "SYSTEM"


class TestTaskEndpoints:
    def test_create_and_fetch(self, client, alice):
        task = create_task(client, alice, title="Plan sprint", priority="HIGH")

        assert task["priority"] == "HIGH"
        assert task["completed"] is False
        assert task["completed_at"] is None

        response = client.get(f"/api/v1/tasks/{task['id']}", headers=alice)
        assert response.status_code == 200
        assert response.json()["title"] == "Plan sprint"

    def test_title_too_long(self, client, alice):
        response = client.post("/api/v1/tasks", json={"title": "x" * 201}, headers=alice)
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_unknown_priority(self, client, alice):
        response = client.post("/api/v1/tasks", json={"title": "Hmm", "priority": "CRITICAL"}, headers=alice)
        assert response.status_code == 422

    def test_malformed_id(self, client, alice):
        response = client.get("/api/v1/tasks/42", headers=alice)
        assert response.status_code == 422

    def test_unknown_task(self, client, alice):
        response = client.get(f"/api/v1/tasks/{new_id()}", headers=alice)
        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_other_users_task_is_invisible(self, client, alice, bob):
        task = create_task(client, alice)

        assert client.get(f"/api/v1/tasks/{task['id']}", headers=bob).status_code == 404
        assert client.post(f"/api/v1/tasks/{task['id']}/complete", headers=bob).status_code == 404
        assert client.delete(f"/api/v1/tasks/{task['id']}", headers=bob).status_code == 404
        assert client.get("/api/v1/tasks", headers=bob).json() == []

    def test_patch_and_delete(self, client, alice):
        task = create_task(client, alice, description="draft")

        response = client.patch(
            f"/api/v1/tasks/{task['id']}", json={"description": None, "priority": "LOW"}, headers=alice
        )
        assert response.status_code == 200
        assert response.json()["description"] is None
        assert response.json()["priority"] == "LOW"
        assert response.json()["title"] == "Write tests"

        assert client.delete(f"/api/v1/tasks/{task['id']}", headers=alice).status_code == 200
        assert client.get(f"/api/v1/tasks/{task['id']}", headers=alice).status_code == 404


class TestCompletionEndpoint:
    def test_complete_rewards_user(self, client, alice):
        task = create_task(client, alice)

        response = client.post(f"/api/v1/tasks/{task['id']}/complete", headers=alice)

        assert response.status_code == 200
        body = response.json()
        assert body["task"]["completed"] is True
        assert body["task"]["completed_at"] is not None
        assert body["points_awarded"] == 20
        assert body["total_points"] == 20
        assert body["streak"]["current_streak"] == 1
        assert [a["type"] for a in body["new_achievements"]] == ["first_task"]
        assert "+20 points" in body["praise"]

        ledger = client.get("/api/v1/gamification/points", headers=alice).json()
        assert ledger["total"] == 20
        assert [entry["reason"] for entry in ledger["entries"]] == ["task_completed"]

    def test_second_completion_conflicts(self, client, alice):
        task = create_task(client, alice)
        client.post(f"/api/v1/tasks/{task['id']}/complete", headers=alice)

        response = client.post(f"/api/v1/tasks/{task['id']}/complete", headers=alice)

        assert response.status_code == 409
        assert response.json()["error"] == "AlreadyCompletedError"
        assert client.get("/api/v1/gamification/points", headers=alice).json()["total"] == 20

    def test_streak_follows_callers_day(self, client, alice):
        for day in ("2024-06-01", "2024-06-02"):
            task = create_task(client, alice)
            response = client.post(f"/api/v1/tasks/{task['id']}/complete", params={"today": day}, headers=alice)
            assert response.status_code == 200

        streak = response.json()["streak"]
        assert streak["current_streak"] == 2
        assert streak["longest_streak"] == 2
        assert streak["last_active_date"] == "2024-06-02"

    def test_malformed_day(self, client, alice):
        task = create_task(client, alice)

        response = client.post(f"/api/v1/tasks/{task['id']}/complete", params={"today": "June 1"}, headers=alice)

        assert response.status_code == 422
        assert client.get(f"/api/v1/tasks/{task['id']}", headers=alice).json()["completed"] is False

    def test_settings_hide_points_message(self, client, alice):
        response = client.patch("/api/v1/user/settings", json={"show_points": False}, headers=alice)
        assert response.status_code == 200
        task = create_task(client, alice)

        body = client.post(f"/api/v1/tasks/{task['id']}/complete", headers=alice).json()

        assert not any(message.startswith("+") for message in body["praise"])
        assert body["points_awarded"] == 20

    def test_storage_outage_is_503(self, client, alice):
        failing = MagicMock()
        failing.complete_task = AsyncMock(side_effect=PersistenceError("Storage unavailable"))
        app.dependency_overrides[get_task_service] = lambda: failing

        response = client.post(f"/api/v1/tasks/{new_id()}/complete", headers=alice)

        assert response.status_code == 503
        assert response.json()["error"] == "PersistenceError"

    def test_stats_and_achievements(self, client, alice):
        for priority in ("LOW", "URGENT"):
            task = create_task(client, alice, priority=priority)
            client.post(f"/api/v1/tasks/{task['id']}/complete", headers=alice)
        create_task(client, alice, title="Open one")

        stats = client.get("/api/v1/gamification/stats", headers=alice).json()
        assert stats["total_points"] == 60
        assert stats["completed_tasks"] == 2
        assert stats["open_tasks"] == 1

        achievements = client.get("/api/v1/gamification/achievements", headers=alice).json()
        assert [a["type"] for a in achievements] == ["first_task"]
        assert client.get("/api/v1/gamification/streak", headers=alice).json()["current_streak"] == 1


class TestOrganizingEndpoints:
    def test_categories_and_tags(self, client, alice):
        category = client.post("/api/v1/categories", json={"name": "Work", "color": "#00AAFF"}, headers=alice)
        assert category.status_code == 201
        assert category.json()["color"] == "#00aaff"

        duplicate = client.post("/api/v1/categories", json={"name": "Work"}, headers=alice)
        assert duplicate.status_code == 409

        tag = client.post("/api/v1/tags", json={"name": "deep"}, headers=alice).json()
        task = create_task(client, alice, category_id=category.json()["id"], tag_ids=[tag["id"]])

        filtered = client.get("/api/v1/tasks", params={"tag_id": tag["id"]}, headers=alice).json()
        assert [t["id"] for t in filtered] == [task["id"]]

        assert client.delete(f"/api/v1/categories/{category.json()['id']}", headers=alice).status_code == 200
        assert client.get(f"/api/v1/tasks/{task['id']}", headers=alice).json()["category_id"] is None

    def test_patch_category_style(self, client, alice):
        category = client.post(
            "/api/v1/categories", json={"name": "Home", "color": "#112233", "icon": "house"}, headers=alice
        ).json()
        url = f"/api/v1/categories/{category['id']}"

        renamed = client.patch(url, json={"name": "House"}, headers=alice).json()
        assert renamed["name"] == "House"
        assert renamed["color"] == "#112233"
        assert renamed["icon"] == "house"

        cleared = client.patch(url, json={"color": None}, headers=alice).json()
        assert cleared["color"] is None
        assert cleared["icon"] == "house"

    def test_subtasks_and_notes(self, client, alice):
        task = create_task(client, alice)
        base = f"/api/v1/tasks/{task['id']}"

        first = client.post(f"{base}/subtasks", json={"title": "Outline"}, headers=alice).json()
        second = client.post(f"{base}/subtasks", json={"title": "Draft"}, headers=alice).json()
        assert (first["order"], second["order"]) == (0, 1)

        done = client.post(f"{base}/subtasks/{first['id']}/complete", headers=alice)
        assert done.json()["completed"] is True
        assert client.post(f"{base}/subtasks/{first['id']}/complete", headers=alice).status_code == 409

        note = client.post(f"{base}/notes", json={"content": "Remember the edge cases"}, headers=alice)
        assert note.status_code == 201
        assert len(client.get(f"{base}/notes", headers=alice).json()) == 1

        assert client.delete(base, headers=alice).status_code == 200
        assert client.get(f"{base}/subtasks", headers=alice).status_code == 404


class TestAccountDeletion:
    def test_delete_account_removes_progress(self, client, alice):
        task = create_task(client, alice)
        client.post(f"/api/v1/tasks/{task['id']}/complete", headers=alice)
        first_id = client.get("/api/v1/user/me", headers=alice).json()["id"]

        assert client.delete("/api/v1/user/me", headers=alice).status_code == 200

        # the same identity comes back as a brand new user
        me = client.get("/api/v1/user/me", headers=alice).json()
        assert me["id"] != first_id
        assert client.get("/api/v1/gamification/points", headers=alice).json()["total"] == 0
        assert client.get("/api/v1/tasks", headers=alice).json() == []


class TestProfileAndCorrections:
    def test_update_profile(self, client, alice):
        response = client.patch("/api/v1/user/me", json={"name": "Alice L."}, headers=alice)
        assert response.status_code == 200
        assert response.json()["name"] == "Alice L."
        assert response.json()["email"] == "alice@example.com"

    def test_point_correction(self, client, alice):
        task = create_task(client, alice, priority="HIGH")
        client.post(f"/api/v1/tasks/{task['id']}/complete", headers=alice)

        response = client.post(
            "/api/v1/gamification/points",
            json={"amount": -30, "reason": "completed_by_mistake", "task_id": task["id"]},
            headers=alice,
        )

        assert response.status_code == 201
        assert response.json()["amount"] == -30
        ledger = client.get("/api/v1/gamification/points", headers=alice).json()
        assert ledger["total"] == 0
        assert len(ledger["entries"]) == 2

    def test_zero_point_correction_is_rejected(self, client, alice):
        response = client.post(
            "/api/v1/gamification/points", json={"amount": 0, "reason": "nothing"}, headers=alice
        )
        assert response.status_code == 422
