"""
Integration tests for the FastAPI app (TestClient over in-memory SQLite).
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from traitpath.api.main import create_app
from traitpath.db.database import init_db, session_scope
from traitpath.db.models import TraitSkillMapping, UserConversation
from traitpath.db.seed import load_catalog_file


@pytest.fixture
def app(test_settings, sample_catalog_file):
    app = create_app(test_settings)
    init_db(app.state.engine)
    with session_scope(app.state.session_factory) as session:
        load_catalog_file(session, sample_catalog_file)
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def add_conversation(app, **fields):
    with session_scope(app.state.session_factory) as session:
        session.add(UserConversation(**fields))


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "traitpath"

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["components"]["database"] == "ok"
        assert body["config"]["max_path_nodes"] == 5


class TestTriggerCalculation:
    def test_initial_calculation(self, client):
        response = client.post(
            "/api/calculations",
            json={"user_id": "user_demo", "conversation_id": "conv-onboarding-demo"},
        )
        body = response.json()

        assert response.status_code == 200
        assert body["success"] is True
        assert body["mode"] == "initial_calculation"
        assert body["traitSource"] == "stored"
        assert 0 < len(body["learningPath"]) <= 5
        assert all(w["skill_id"] != 7 for w in body["weights"])

    def test_clerk_id_alias(self, client):
        response = client.post(
            "/api/calculations",
            json={"clerk_id": "user_demo", "conversation_id": "conv-onboarding-demo"},
        )
        assert response.status_code == 200

    def test_override_traits(self, client):
        response = client.post(
            "/api/calculations",
            json={
                "user_id": "user_demo",
                "conversation_id": "conv-onboarding-demo",
                "traits": {"stakes_level": {"value": "low_stakes", "rationale": "admin"}},
            },
        )
        assert response.json()["traitSource"] == "override"

    def test_pending_analysis(self, app, client):
        add_conversation(
            app,
            conversation_id="conv-pending",
            clerk_id="user_new",
            scenario_info={"type": "lesson", "skill_ids": [1]},
        )

        response = client.post(
            "/api/calculations",
            json={"user_id": "user_new", "conversation_id": "conv-pending"},
        )

        assert response.status_code == 202
        assert response.json()["pending"] is True

    def test_unknown_conversation(self, client):
        response = client.post(
            "/api/calculations",
            json={"user_id": "user_demo", "conversation_id": "missing"},
        )
        body = response.json()

        assert response.status_code == 404
        assert body["success"] is False
        assert body["details"]["type"] == "NotFoundError"
        assert body["details"]["phase"] == "load_conversation"

    def test_invalid_traits(self, client):
        response = client.post(
            "/api/calculations",
            json={
                "user_id": "user_demo",
                "conversation_id": "conv-onboarding-demo",
                "traits": {"stakes_level": "catastrophic"},
            },
        )

        assert response.status_code == 422
        assert response.json()["details"]["type"] == "InvalidTraitError"

    def test_prerequisite_cycle(self, app, client):
        with session_scope(app.state.session_factory) as session:
            mapping = session.scalars(
                select(TraitSkillMapping).where(TraitSkillMapping.skill_id == 1)
            ).first()
            mapping.prerequisites = [3]

        response = client.post(
            "/api/calculations",
            json={"user_id": "user_demo", "conversation_id": "conv-onboarding-demo"},
        )

        assert response.status_code == 422
        assert response.json()["details"]["phase"] == "path_building"

    def test_missing_user_id(self, client):
        response = client.post("/api/calculations", json={"conversation_id": "conv-onboarding-demo"})
        assert response.status_code == 422


class TestLearningPath:
    def test_after_calculation(self, client):
        client.post(
            "/api/calculations",
            json={"user_id": "user_demo", "conversation_id": "conv-onboarding-demo"},
        )
        client.post(
            "/api/calculations",
            json={"user_id": "user_demo", "conversation_id": "conv-lesson-demo"},
        )

        body = client.get("/api/learning-paths/user_demo").json()

        assert body["mode"] == "practice_update"
        assert body["learning_focus"][0] == 4

    def test_failed_run_keeps_previous_path(self, client):
        client.post(
            "/api/calculations",
            json={"user_id": "user_demo", "conversation_id": "conv-onboarding-demo"},
        )
        before = client.get("/api/learning-paths/user_demo").json()

        client.post(
            "/api/calculations",
            json={
                "user_id": "user_demo",
                "conversation_id": "conv-lesson-demo",
                "traits": {"stakes_level": "catastrophic"},
            },
        )

        assert client.get("/api/learning-paths/user_demo").json() == before

    def test_unknown_user(self, client):
        assert client.get("/api/learning-paths/ghost").status_code == 404
