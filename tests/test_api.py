"""Tests for the REST API."""

import pytest
from fastapi.testclient import TestClient

from flowbuilder.config import get_testing_config
from flowbuilder.factory import create_app
from flowbuilder.storage.database import reset_database_engine

from .conftest import FakeModelClient

PIPELINE = {
    "nodes": [
        {"id": "query", "type": "UserQuery", "config": {}, "position": {"x": 0, "y": 0}},
        {"id": "kb", "type": "KnowledgeBase", "config": {}},
        {"id": "llm", "type": "LLMEngine", "config": {"model": "gpt-4"}},
        {"id": "output", "type": "Output", "config": {"showTimestamp": False}},
    ],
    "edges": [
        {"source": "query", "target": "kb"},
        {"source": "kb", "target": "llm"},
        {"source": "llm", "target": "output"},
    ],
}


@pytest.fixture
def client():
    """Test client backed by a fresh in-memory database."""
    reset_database_engine()
    app = create_app(get_testing_config(), model_client=FakeModelClient())
    with TestClient(app) as test_client:
        yield test_client
    reset_database_engine()


@pytest.fixture
def workflow_id(client):
    response = client.post("/api/v1/workflows", json={"name": "Geography bot", "definition": PIPELINE})
    assert response.status_code == 201
    return response.json()["id"]


class TestHealthEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "Flow Builder" in response.json()["message"]

    def test_health(self, client):
        response = client.get("/health")
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers


class TestWorkflowEndpoints:
    """Test cases for workflow CRUD."""

    def test_create_and_get(self, client, workflow_id):
        response = client.get(f"/api/v1/workflows/{workflow_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Geography bot"
        assert [node["type"] for node in body["definition"]["nodes"]] == [
            "UserQuery", "KnowledgeBase", "LLMEngine", "Output"
        ]

    def test_list(self, client, workflow_id):
        response = client.get("/api/v1/workflows")
        assert [item["id"] for item in response.json()] == [workflow_id]

    def test_update(self, client, workflow_id):
        response = client.put(f"/api/v1/workflows/{workflow_id}", json={"description": "Now documented"})

        assert response.status_code == 200
        assert response.json()["description"] == "Now documented"
        assert response.json()["name"] == "Geography bot"

    def test_delete(self, client, workflow_id):
        assert client.delete(f"/api/v1/workflows/{workflow_id}").json() == {"success": True}
        assert client.get(f"/api/v1/workflows/{workflow_id}").status_code == 404
        assert client.delete(f"/api/v1/workflows/{workflow_id}").status_code == 404

    def test_missing_workflow(self, client):
        response = client.get("/api/v1/workflows/missing")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "WorkflowNotFoundError"

    def test_invalid_workflow(self, client):
        definition = {"nodes": [{"id": "a", "type": "UserQuery"}, {"id": "a", "type": "Output"}], "edges": []}

        response = client.post("/api/v1/workflows", json={"name": "Dupes", "definition": definition})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "WorkflowValidationError"

    def test_validate(self, client):
        definition = {"nodes": [{"id": "llm", "type": "LLMEngine"}], "edges": [{"source": "llm", "target": "x"}]}

        response = client.post("/api/v1/workflows/validate", json={"name": "Draft", "definition": definition})

        assert response.status_code == 200
        assert response.json()["is_valid"] is True
        assert response.json()["warnings"]


class TestExecutionEndpoints:
    """Test cases for running workflows over HTTP."""

    def test_execute_with_documents(self, client, workflow_id):
        upload = client.post(
            f"/api/v1/workflows/{workflow_id}/documents",
            json={"filename": "france.txt", "content": "The capital of France is Paris."},
        )
        assert upload.status_code == 201

        response = client.post(f"/api/v1/workflows/{workflow_id}/execute", json={"query": "capital of France"})

        assert response.status_code == 200
        body = response.json()
        assert body["response"] == "Paris is the capital of France."
        assert body["workflow_id"] == workflow_id

        logs = client.get(f"/api/v1/sessions/{body['session_id']}/logs").json()
        assert [entry["component_type"] for entry in logs] == ["UserQuery", "KnowledgeBase", "LLMEngine", "Output"]
        assert logs[1]["output_data"]["relevantDocuments"] == 1

    def test_list_documents(self, client, workflow_id):
        client.post(f"/api/v1/workflows/{workflow_id}/documents", json={"filename": "a.txt", "content": "alpha"})

        documents = client.get(f"/api/v1/workflows/{workflow_id}/documents").json()

        assert [doc["filename"] for doc in documents] == ["a.txt"]
        assert documents[0]["file_size"] == 5

    def test_execute_missing_workflow(self, client):
        response = client.post("/api/v1/workflows/missing/execute", json={"query": "hi"})
        assert response.status_code == 404

    def test_execute_requires_query(self, client, workflow_id):
        response = client.post(f"/api/v1/workflows/{workflow_id}/execute", json={"query": ""})
        assert response.status_code == 422

    def test_chat_conversation(self, client, workflow_id):
        first = client.post("/api/v1/chat", json={"workflow_id": workflow_id, "message": "hello"})
        assert first.status_code == 200
        session_id = first.json()["session_id"]
        assert first.json()["workflow_step"] == "Workflow Complete"

        second = client.post(
            "/api/v1/chat", json={"workflow_id": workflow_id, "message": "again", "session_id": session_id}
        )
        assert second.json()["session_id"] == session_id

        messages = client.get(f"/api/v1/sessions/{session_id}/messages").json()
        assert [message["message_type"] for message in messages] == ["user", "assistant", "user", "assistant"]
        assert messages[1]["response"] == "Paris is the capital of France."

    def test_chat_unknown_session(self, client, workflow_id):
        response = client.post(
            "/api/v1/chat", json={"workflow_id": workflow_id, "message": "hi", "session_id": "missing"}
        )
        assert response.status_code == 404

    def test_chat_rejects_session_of_other_workflow(self, client, workflow_id):
        other = client.post("/api/v1/workflows", json={"name": "Other bot", "definition": PIPELINE}).json()["id"]
        first = client.post("/api/v1/chat", json={"workflow_id": workflow_id, "message": "hello"})
        session_id = first.json()["session_id"]

        response = client.post(
            "/api/v1/chat", json={"workflow_id": other, "message": "hi", "session_id": session_id}
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "WorkflowValidationError"

        messages = client.get(f"/api/v1/sessions/{session_id}/messages").json()
        assert len(messages) == 2

    def test_unknown_session_messages(self, client):
        assert client.get("/api/v1/sessions/missing/messages").status_code == 404
