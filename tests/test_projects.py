"""Tests for projects and milestones."""

from sqlmodel import Session

from models.project import Project


def _create_project(client, customer, **overrides) -> dict:
    payload = {
        "client_id": customer.id,
        "name": "Refonte site",
        "estimated_budget": "8000",
        "milestones": [{"name": "Maquettes", "due_date": "2026-03-01"}],
    }
    payload.update(overrides)
    response = client.post("/api/projects", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_project_with_milestones(authenticated_client, customer):
    client, _ = authenticated_client

    data = _create_project(client, customer)

    assert data["status"] == "prospect"
    assert data["client_id"] == customer.id
    assert [m["name"] for m in data["milestones"]] == ["Maquettes"]
    assert data["milestones"][0]["completed_at"] is None


def test_create_project_for_unknown_client(authenticated_client):
    client, _ = authenticated_client

    response = client.post("/api/projects", json={"client_id": "nope", "name": "X"})

    assert response.status_code == 404


def test_update_replaces_milestones(authenticated_client, customer):
    client, _ = authenticated_client
    project = _create_project(client, customer)

    response = client.put(f"/api/projects/{project['id']}", json={
        "name": "Refonte complète",
        "milestones": [{"name": "Recette"}],
    })

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Refonte complète"
    assert [m["name"] for m in data["milestones"]] == ["Recette"]


def test_status_workflow(authenticated_client, customer):
    client, _ = authenticated_client
    project = _create_project(client, customer)

    response = client.post(f"/api/projects/{project['id']}/status", json={"status": "in_progress"})
    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"

    response = client.post(f"/api/projects/{project['id']}/status", json={"status": "completed"})
    assert response.json()["status"] == "completed"

    # Only reopening is allowed from completed
    response = client.post(f"/api/projects/{project['id']}/status", json={"status": "cancelled"})
    assert response.status_code == 400


def test_complete_milestone(authenticated_client, customer):
    client, _ = authenticated_client
    project = _create_project(client, customer)
    milestone_id = project["milestones"][0]["id"]

    response = client.post(f"/api/projects/{project['id']}/milestones/{milestone_id}/complete")

    assert response.status_code == 200
    assert response.json()["milestones"][0]["completed_at"] is not None
    assert client.post(f"/api/projects/{project['id']}/milestones/unknown/complete").status_code == 404


def test_list_and_delete_projects(authenticated_client, customer, session: Session):
    client, _ = authenticated_client
    project = _create_project(client, customer)
    _create_project(client, customer, name="Application mobile", milestones=[])

    response = client.get("/api/projects", params={"search": "mobile"})
    assert response.json()["total"] == 1

    assert client.delete(f"/api/projects/{project['id']}").status_code == 204
    assert session.get(Project, project["id"]) is None
    assert client.get("/api/projects").json()["total"] == 1
