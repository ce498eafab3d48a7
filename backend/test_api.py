"""HTTP API tests with the model and renderer replaced by fakes"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeLLMClient, ScriptedCollaborator
from flowchat.api.dependencies import (
    get_collaborator,
    get_generator,
    get_renderer,
    get_session_store,
)
from flowchat.conversation.generator import FlowchartGenerator
from flowchat.conversation.models import GENERIC_FAILURE_MESSAGE, REPHRASE_MESSAGE
from flowchat.conversation.sessions import SessionStore
from flowchat.main import app
from flowchat.renderer.mermaid_ink import RenderResult


class RecordingRenderer:
    def __init__(self):
        self.calls = []

    def render(self, definition, diagram_id):
        self.calls.append((definition, diagram_id))
        return RenderResult(diagram_id, svg="<svg/>")


@pytest.fixture
def collaborator(click_question, start_end_diagram):
    return ScriptedCollaborator(click_question, start_end_diagram)


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def client(collaborator, renderer):
    store = SessionStore(lambda: collaborator)
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_collaborator] = lambda: collaborator
    app.dependency_overrides[get_renderer] = lambda: renderer
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_conversation_flow(client):
    created = client.post("/sessions")
    assert created.status_code == 201
    session = created.json()
    assert session["state"] == "collecting"
    assert len(session["messages"]) == 1

    url = f"/sessions/{session['session_id']}/messages"

    first = client.post(url, json={"content": "A login page"}).json()
    assert first["state"] == "collecting"
    assert first["messages"][-1] == {"role": "assistant", "content": "What happens on click?"}

    second = client.post(url, json={"content": "It shows the dashboard"}).json()
    assert second["is_complete"]
    assert second["diagram"] == "flowchart TD\nA[Start] --> B[End];"
    assert second["diagram_error"] is None
    assert second["validation"]["is_valid"]

    rejected = client.post(url, json={"content": "More"})
    assert rejected.status_code == 409

    fetched = client.get(f"/sessions/{session['session_id']}").json()
    assert fetched == second


def test_empty_message_is_rejected(client):
    session_id = client.post("/sessions").json()["session_id"]
    response = client.post(f"/sessions/{session_id}/messages", json={"content": "  "})
    assert response.status_code == 422


def test_unknown_session(client):
    assert client.get("/sessions/nope").status_code == 404
    assert client.post("/sessions/nope/messages", json={"content": "hi"}).status_code == 404
    assert client.delete("/sessions/nope").status_code == 404


def test_delete_session(client):
    session_id = client.post("/sessions").json()["session_id"]
    assert client.delete(f"/sessions/{session_id}").status_code == 204
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_converse(client):
    response = client.post(
        "/converse", json={"messages": [{"role": "user", "content": "A login page"}]}
    )
    assert response.json() == {"type": "question", "content": "What happens on click?"}


def test_converse_with_malformed_transcript(client, collaborator):
    response = client.post("/converse", json={"messages": "oops"})
    assert response.status_code == 200
    assert response.json()["type"] == "error"
    assert collaborator.calls == []


def test_converse_collaborator_failure(client):
    app.dependency_overrides[get_collaborator] = lambda: ScriptedCollaborator(RuntimeError("x"))
    response = client.post("/converse", json={"messages": [{"role": "user", "content": "hi"}]})
    assert response.json() == {"type": "error", "content": GENERIC_FAILURE_MESSAGE}


FORM = {
    "user_flow_description": "User submits the signup form",
    "api_or_server_side": "api",
    "loaders_or_skeletons": "loaders",
    "api_request_parameters": "POST /api/users",
    "backend_database_connection": "FastAPI with SQLite",
}


def use_generator(output):
    app.dependency_overrides[get_generator] = lambda: FlowchartGenerator(FakeLLMClient(output))


def test_generate_success(client):
    use_generator("flowchart TD\nA[Submit] --> B[Saved]")
    body = client.post("/generate", json=FORM).json()
    assert body["status"] == "success"
    assert body["definition"] == "flowchart TD\nA[Submit] --> B[Saved];"
    assert body["error_message"] is None


def test_generate_invalid_definition(client):
    use_generator("flowchart TD\nA --> B C")
    body = client.post("/generate", json=FORM).json()
    assert body["status"] == "invalid"
    assert body["error_message"].startswith("Invalid flowchart syntax:")


def test_generate_unrecognizable_output(client):
    use_generator("Sorry, I can't do that.")
    body = client.post("/generate", json=FORM).json()
    assert body["status"] == "error"
    assert body["error_message"] == REPHRASE_MESSAGE


def test_generate_empty_output(client):
    use_generator("")
    body = client.post("/generate", json=FORM).json()
    assert body["status"] == "error"
    assert body["error_message"] == GENERIC_FAILURE_MESSAGE


def test_generate_rejects_short_description(client):
    response = client.post("/generate", json={**FORM, "user_flow_description": "short"})
    assert response.status_code == 422


def test_normalize(client):
    body = client.post("/normalize", json={"definition": "graph LR\nA-->B"}).json()
    assert body["status"] == "success"
    assert body["definition"] == "flowchart LR\nA --> B;"


def test_render_uses_session_counter(client, renderer):
    session_id = client.post("/sessions").json()["session_id"]
    definition = "flowchart TD\nA --> B;"

    ids = [
        client.post("/render", json={"definition": definition, "session_id": session_id}).json()["diagram_id"]
        for _ in range(2)
    ]

    assert ids == ["mermaid-chart-0", "mermaid-chart-1"]
    assert renderer.calls[0] == (definition, "mermaid-chart-0")


def test_render_skips_invalid_definitions(client, renderer):
    body = client.post("/render", json={"definition": "A --> B"}).json()
    assert body["svg"] is None
    assert body["error"].startswith("Invalid flowchart syntax:")
    assert body["diagram_id"].startswith("mermaid-chart-")
    assert renderer.calls == []


def test_generate_malformed_model_response(client):
    use_generator(KeyError("choices"))
    response = client.post("/generate", json=FORM)
    assert response.status_code == 200
    assert response.json()["status"] == "error"
    assert response.json()["error_message"] == GENERIC_FAILURE_MESSAGE
