"""Tests for the HTTP API."""
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from roadmap_core import crud, models
from roadmap_core.api.dependencies import get_engine
from roadmap_core.api.main import app
from roadmap_core.engine import RoadmapEngine

from helpers import finish_tasks, stage_for


@pytest.fixture
def client(db, clock, settings):
    app.dependency_overrides[get_engine] = lambda: RoadmapEngine(db, clock=clock, settings=settings)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestServerInfo:
    """Test root and health endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        assert client.get("/").json()["name"] == "Roadmap Engine API"


class TestCatalogEndpoints:
    """Test catalog listing."""

    def test_list_phases(self, client, phases):
        response = client.get("/api/v1/phases")
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Preparation", "Production", "Launch", "Final"]

    def test_empty_phase_catalog_is_server_error(self, client):
        response = client.get("/api/v1/phases")
        assert response.status_code == 500

    def test_templates_and_stages(self, client, template):
        templates = client.get("/api/v1/templates").json()
        assert [t["name"] for t in templates] == ["SMM launch"]

        stages = client.get(f"/api/v1/templates/{template.id}/stages").json()
        assert [s["name"] for s in stages] == ["Briefing", "Content plan", "Shooting", "Go live"]

        blueprints = client.get(f"/api/v1/template-stages/{template.briefing.id}/tasks").json()
        assert [b["title"] for b in blueprints] == ["A", "B", "C"]
        assert blueprints[0]["required_capability"] == "Editor"

    def test_unknown_template_404(self, client, phases):
        response = client.get(f"/api/v1/templates/{uuid4()}/stages")
        assert response.status_code == 404
        assert "Template not found" in response.json()["detail"]


class TestRoadmapEndpoints:
    """Test project roadmap endpoints."""

    def test_bootstrap(self, client, project, phases):
        response = client.post(f"/api/v1/projects/{project.id}/roadmap/bootstrap")
        assert response.status_code == 200
        assert [p["status"] for p in response.json()["phases"]] == ["active", "locked", "locked", "locked"]

    def test_attach_and_get_roadmap(self, client, db, project, template):
        response = client.post(
            f"/api/v1/projects/{project.id}/roadmap/templates",
            json={"template_id": str(template.id)},
        )
        assert response.status_code == 200
        result = response.json()
        briefing = stage_for(db, project, template.briefing)
        assert result["advanced"] == "stage"
        assert result["next_id"] == str(briefing.id)
        assert len(result["created_stage_ids"]) == 4

        roadmap = client.get(f"/api/v1/projects/{project.id}/roadmap").json()
        assert roadmap["active_stage_id"] == str(briefing.id)
        assert roadmap["phases"][0]["stages"][0]["tasks"][0]["deadline"] == "2026-02-03T00:00:00"

    def test_attach_unknown_project_404(self, client, template):
        response = client.post(
            f"/api/v1/projects/{uuid4()}/roadmap/templates",
            json={"template_id": str(template.id)},
        )
        assert response.status_code == 404

    def test_attach_invalid_body_422(self, client, project, phases):
        response = client.post(f"/api/v1/projects/{project.id}/roadmap/templates", json={})
        assert response.status_code == 422

    def test_manual_stage_and_task(self, client, project, phases, editor):
        response = client.post(
            f"/api/v1/projects/{project.id}/roadmap/stages",
            json={"phase_id": str(phases.preparation.id), "name": "Photo day"},
        )
        assert response.status_code == 201
        stage = response.json()
        assert stage["status"] == "locked"
        assert stage["template_stage_id"] is None

        response = client.post(
            f"/api/v1/stages/{stage['id']}/tasks",
            json={"title": "Shoot", "assignee_id": str(editor.id), "duration_days": 2},
        )
        assert response.status_code == 201
        assert response.json()["assignee_id"] == str(editor.id)

        activated = client.post(f"/api/v1/stages/{stage['id']}/activate").json()
        assert activated["advanced"] == "stage"
        assert activated["tasks_materialized"] == 1

    def test_complete_locked_phase_409(self, client, project, phases):
        client.post(f"/api/v1/projects/{project.id}/roadmap/bootstrap")
        response = client.post(f"/api/v1/projects/{project.id}/roadmap/phases/{phases.launch.id}/complete")

        assert response.status_code == 409
        assert response.json()["detail"]["current_status"] == "locked"


class TestStageEndpoints:
    """Test stage transitions."""

    @pytest.fixture
    def briefing(self, client, db, project, template):
        client.post(f"/api/v1/projects/{project.id}/roadmap/templates", json={"template_id": str(template.id)})
        return stage_for(db, project, template.briefing)

    def test_complete_with_open_tasks_409(self, client, briefing):
        response = client.post(f"/api/v1/stages/{briefing.id}/complete")

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert "not finished" in detail["message"]
        assert detail["requested_status"] == "completed"

    def test_ready_then_complete(self, client, db, briefing, project, template):
        ready = client.get(f"/api/v1/stages/{briefing.id}/ready").json()
        assert ready["all_tasks_terminal"] is False
        assert ready["open_tasks"] == 3

        finish_tasks(db, briefing)
        assert client.get(f"/api/v1/stages/{briefing.id}/ready").json()["all_tasks_terminal"] is True

        result = client.post(f"/api/v1/stages/{briefing.id}/complete").json()
        assert result["advanced"] == "stage"
        assert result["next_id"] == str(stage_for(db, project, template.content_plan).id)

    def test_activate_active_stage_is_noop(self, client, briefing):
        result = client.post(f"/api/v1/stages/{briefing.id}/activate").json()
        assert result["no_op"] is True

    def test_unknown_stage_404(self, client, phases):
        for method, path in [
            ("post", "activate"),
            ("post", "complete"),
            ("get", "ready"),
        ]:
            response = getattr(client, method)(f"/api/v1/stages/{uuid4()}/{path}")
            assert response.status_code == 404

    def test_task_on_template_stage_409(self, client, briefing):
        response = client.post(f"/api/v1/stages/{briefing.id}/tasks", json={"title": "Extra"})
        assert response.status_code == 409

    def test_lock_contention_409_retryable(self, client, briefing, monkeypatch):
        def locked_elsewhere(session, lookup_id, nowait=False):
            raise OperationalError("SELECT ... FOR UPDATE NOWAIT", {}, Exception("could not obtain lock on row"))

        monkeypatch.setattr(crud, "lock_stage", locked_elsewhere)

        response = client.post(f"/api/v1/stages/{briefing.id}/complete")

        assert response.status_code == 409
        assert response.json()["detail"]["retryable"] is True

    def test_invalid_stage_id_422(self, client):

        assert client.post("/api/v1/stages/not-a-uuid/activate").status_code == 422


class TestTaskResponseShape:
    """Test task serialization."""

    def test_materialized_task_fields(self, client, db, project, template, editor):
        client.post(f"/api/v1/projects/{project.id}/roadmap/templates", json={"template_id": str(template.id)})
        roadmap = client.get(f"/api/v1/projects/{project.id}/roadmap").json()

        task = roadmap["phases"][0]["stages"][0]["tasks"][0]
        assert task["status"] == models.TaskStatus.TODO.value
        assert task["priority"] == "Medium"
        assert task["auto_assigned"] is True
        assert task["tags"] == ["Editor"]
