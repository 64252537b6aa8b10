"""Tests for the workspace HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

from promptmux.core.workspace_state import get_workspace_state
from promptmux.main import app


@pytest.fixture
def client(state):
    app.dependency_overrides[get_workspace_state] = lambda: state
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_section(client, name):
    response = client.post("/v1/workspace/sections", json={"name": name})
    assert response.status_code == 200
    return response.json()


def _create_topic(client, section_id, name, content=None):
    response = client.post("/v1/workspace/topics", json={"section_id": section_id, "name": name})
    assert response.status_code == 200
    topic = response.json()
    if content is not None:
        put = client.put(f"/v1/workspace/topics/{topic['id']}/content", json={"content": content})
        assert put.status_code == 204
    return topic


class TestReads:
    def test_workspace_and_active_project(self, client, state):
        workspace = client.get("/v1/workspace").json()
        project = client.get("/v1/workspace/project").json()

        assert workspace["active_project_id"] == state.workspace.active_project_id
        assert project["id"] == workspace["active_project_id"]
        assert project["name"] == "My Project"

    def test_merged_output(self, client):
        intro = _create_section(client, "Intro")
        _create_topic(client, intro["id"], "a", "first")
        _create_topic(client, intro["id"], "b", "second")
        body = _create_section(client, "Body")
        _create_topic(client, body["id"], "c", "third")

        response = client.get("/v1/workspace/merged-output")

        assert response.status_code == 200
        assert response.json()["project_id"] == client.get("/v1/workspace/project").json()["id"]
        assert response.json()["content"] == (
            "// Section: Intro\nfirst\n\nsecond\n\n---\n\n// Section: Body\nthird"
        )


class TestProjects:
    def test_create_activate_rename_delete(self, client):
        created = client.post("/v1/workspace/projects", json={"name": "Second"}).json()

        activated = client.post(f"/v1/workspace/projects/{created['id']}/activate")
        assert activated.status_code == 200
        assert client.get("/v1/workspace/project").json()["id"] == created["id"]

        renamed = client.patch(f"/v1/workspace/projects/{created['id']}", json={"name": "Renamed"})
        assert renamed.status_code == 204
        assert client.get("/v1/workspace/project").json()["name"] == "Renamed"

        deleted = client.delete(f"/v1/workspace/projects/{created['id']}")
        assert deleted.status_code == 204
        assert client.get("/v1/workspace/project").json()["name"] == "My Project"

    def test_delete_last_project_conflict(self, client, state):
        only_id = state.workspace.projects[0].id

        response = client.delete(f"/v1/workspace/projects/{only_id}")

        assert response.status_code == 409
        assert len(client.get("/v1/workspace").json()["projects"]) == 1

    def test_unknown_project_is_404_with_id(self, client):
        response = client.post("/v1/workspace/projects/no-such-project/activate")

        assert response.status_code == 404
        assert "no-such-project" in response.json()["detail"]

    def test_empty_name_rejected(self, client):
        assert client.post("/v1/workspace/projects", json={"name": ""}).status_code == 422


class TestSectionsAndTopics:
    def test_reorder_topics(self, client):
        section = _create_section(client, "S")
        a = _create_topic(client, section["id"], "A")
        _create_topic(client, section["id"], "B")
        _create_topic(client, section["id"], "C")

        response = client.post(
            "/v1/workspace/reorder", json={"kind": "topic", "id": a["id"], "new_index": 3}
        )

        assert response.status_code == 204
        topics = client.get("/v1/workspace/project").json()["sections"][0]["topics"]
        assert [t["name"] for t in topics] == ["B", "C", "A"]
        assert [t["order_index"] for t in topics] == [0, 1, 2]

    def test_reorder_invalid_kind(self, client):
        section = _create_section(client, "S")

        response = client.post(
            "/v1/workspace/reorder", json={"kind": "project", "id": section["id"], "new_index": 0}
        )

        assert response.status_code == 400

    def test_negative_index_rejected(self, client):
        section = _create_section(client, "S")

        response = client.post(
            "/v1/workspace/reorder", json={"kind": "section", "id": section["id"], "new_index": -1}
        )

        assert response.status_code == 422

    def test_rename_and_delete(self, client):
        section = _create_section(client, "Old")
        topic = _create_topic(client, section["id"], "T")

        assert client.patch(f"/v1/workspace/sections/{section['id']}", json={"name": "New"}).status_code == 204
        assert client.patch(f"/v1/workspace/topics/{topic['id']}", json={"name": "T2"}).status_code == 204
        project = client.get("/v1/workspace/project").json()
        assert project["sections"][0]["name"] == "New"
        assert project["sections"][0]["topics"][0]["name"] == "T2"

        assert client.delete(f"/v1/workspace/topics/{topic['id']}").status_code == 204
        assert client.delete(f"/v1/workspace/sections/{section['id']}").status_code == 204
        assert client.get("/v1/workspace/project").json()["sections"] == []

    def test_topic_in_unknown_section(self, client):
        response = client.post("/v1/workspace/topics", json={"section_id": "ghost", "name": "T"})

        assert response.status_code == 404
        assert "ghost" in response.json()["detail"]


class TestHistoryAndDiagrams:
    def test_save_and_delete_refinement(self, client, state):
        project_id = state.workspace.active_project_id
        payload = {
            "target_kind": "project",
            "target_id": project_id,
            "refinement": {"original_content": "a", "refined_content": "b", "kind": "text", "mode": "edit"},
        }

        assert client.post("/v1/workspace/refinements", json=payload).status_code == 204
        history = client.get("/v1/workspace/project").json()["history"]
        assert [r["refined_content"] for r in history] == ["b"]

        deleted = client.delete(f"/v1/workspace/projects/{project_id}/refinements/{history[0]['id']}")
        assert deleted.status_code == 204
        assert client.get("/v1/workspace/project").json()["history"] == []

    def test_save_diagram(self, client):
        response = client.put("/v1/workspace/diagrams/uml", json={"content": "classDiagram"})

        assert response.status_code == 204
        assert client.get("/v1/workspace/project").json()["uml_diagram"] == "classDiagram"

    def test_unknown_diagram_kind(self, client):
        assert client.put("/v1/workspace/diagrams/gantt", json={"content": "x"}).status_code == 400

    def test_undo_redo(self, client):
        _create_section(client, "S")

        assert client.post("/v1/workspace/undo").json() == {"applied": True}
        assert client.get("/v1/workspace/project").json()["sections"] == []
        assert client.post("/v1/workspace/redo").json() == {"applied": True}
        assert client.post("/v1/workspace/redo").json() == {"applied": False}


class TestPersistenceFailure:
    def test_save_failure_is_500(self, client, store):
        store.fail_writes = True

        response = client.post("/v1/workspace/sections", json={"name": "S"})

        assert response.status_code == 500
        assert "disk full" in response.json()["detail"]
