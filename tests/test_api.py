import pytest
from starlette.websockets import WebSocketDisconnect

from timbel.models import User


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_requests_without_valid_token_are_rejected(client, db, headers):
    assert client.get("/users/me").status_code == 401
    assert client.get("/users/me", headers=headers("alice", secret="wrong")).status_code == 401
    assert client.get("/users/me", headers=headers("alice", audience="other")).status_code == 401


def test_first_sign_in_creates_member(client, db, headers):
    response = client.get("/users/me", headers=headers("fresh", full_name="Fresh Face"))

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "fresh"
    assert body["role"] == "MEMBER"
    assert body["full_name"] == "Fresh Face"
    assert db.query(User).filter(User.id == "fresh").count() == 1


def test_update_own_profile(client, people, headers):
    response = client.patch("/users/me", json={"full_name": "Alice Kim"}, headers=headers("alice"))
    assert response.status_code == 200
    assert response.json()["full_name"] == "Alice Kim"


def test_visible_users_and_can_view(client, people, headers):
    response = client.get("/users/visible", headers=headers("leader"))
    assert {u["id"] for u in response.json()} == {"manager", "leader", "alice"}

    assert client.get("/users/carol/can-view", headers=headers("manager")).json()["allowed"] is False
    assert client.get("/users/alice/can-view", headers=headers("manager")).json()["allowed"] is True


def test_save_and_read_weekly_task(client, people, headers):
    payload = {"this_week_tasks": "ship login", "next_week_plan": "tests", "note": ""}

    response = client.put("/weekly-tasks/users/alice/2025/7", json=payload, headers=headers("alice"))
    assert response.json() == {"success": True}

    response = client.put("/weekly-tasks/users/alice/2025/7", json=payload, headers=headers("super"))
    assert response.json() == {"success": False}

    own = client.get("/weekly-tasks/users/alice/2025/7", headers=headers("alice")).json()
    assert own["this_week_tasks"] == "ship login"

    # Denied and missing look the same
    assert client.get("/weekly-tasks/users/alice/2025/7", headers=headers("carol")).json() is None
    assert client.get("/weekly-tasks/users/alice/2025/8", headers=headers("manager")).json() is None

    year = client.get("/weekly-tasks/users/alice/2025", headers=headers("leader")).json()
    assert [t["week_number"] for t in year] == [7]

    visible = client.get("/weekly-tasks/", params={"year": 2025, "week": 7}, headers=headers("manager")).json()
    assert [t["owner"]["id"] for t in visible] == ["alice"]


def test_week_out_of_range(client, people, headers):
    response = client.get("/weekly-tasks/users/alice/2025/54", headers=headers("alice"))
    assert response.status_code == 422


def test_note_flow(client, people, headers):
    client.put(
        "/weekly-tasks/users/alice/2025/7",
        json={"this_week_tasks": "ship login", "next_week_plan": "tests"},
        headers=headers("alice"),
    )
    task_id = client.get("/weekly-tasks/users/alice/2025/7", headers=headers("alice")).json()["id"]

    response = client.post(
        "/notes/",
        json={"weekly_task_id": task_id, "recipient_id": "leader", "content": "Ready for review"},
        headers=headers("alice"),
    )
    assert response.status_code == 201
    question = response.json()
    assert question["status"] == "pending"

    response = client.post(
        "/notes/",
        json={"weekly_task_id": task_id, "recipient_id": "bob", "content": "Looks good", "parent_note_id": question["id"]},
        headers=headers("leader"),
    )
    assert response.status_code == 201
    assert response.json()["recipient_id"] == "alice"

    counts = client.get("/weekly-tasks/users/alice/2025/note-counts", headers=headers("alice")).json()
    assert counts == {"7": {"total": 2, "unread": 1, "has_unresolved": True}}
    assert client.get("/weekly-tasks/users/alice/2025/note-counts", headers=headers("carol")).json() == {}

    forest = client.get(f"/notes/tasks/{task_id}", headers=headers("manager")).json()
    assert len(forest) == 1
    assert forest[0]["children"][0]["content"] == "Looks good"
    assert client.get(f"/notes/tasks/{task_id}", headers=headers("carol")).json() == []

    changes = client.get(f"/notes/tasks/{task_id}/changes", headers=headers("leader")).json()
    assert changes["changed"] is True
    hidden = client.get(f"/notes/tasks/{task_id}/changes", headers=headers("carol")).json()
    assert hidden["changed"] is False

    response = client.patch(f"/notes/{question['id']}/status", json={"status": "resolved"}, headers=headers("leader"))
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "not_sender"

    response = client.patch(f"/notes/{question['id']}/status", json={"status": "resolved"}, headers=headers("alice"))
    assert response.status_code == 200
    assert response.json()["status"] == "resolved"

    assert client.patch(f"/notes/{question['id']}/read", headers=headers("carol")).status_code == 404
    response = client.patch(f"/notes/{question['id']}/read", headers=headers("leader"))
    assert response.status_code == 200
    assert response.json()["is_read"] is True


def test_note_rule_violations_name_the_rule(client, people, headers):
    client.put(
        "/weekly-tasks/users/alice/2025/7",
        json={"this_week_tasks": "ship login", "next_week_plan": "tests"},
        headers=headers("alice"),
    )
    task_id = client.get("/weekly-tasks/users/alice/2025/7", headers=headers("alice")).json()["id"]

    response = client.post(
        "/notes/",
        json={"weekly_task_id": task_id, "recipient_id": "alice", "content": "note to self"},
        headers=headers("alice"),
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "self_recipient"

    response = client.post(
        "/notes/",
        json={"weekly_task_id": task_id, "recipient_id": "alice", "content": "hello"},
        headers=headers("bob"),
    )
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "not_owner"

    response = client.post(
        "/notes/",
        json={"weekly_task_id": task_id, "recipient_id": "leader", "content": "   "},
        headers=headers("alice"),
    )
    assert response.status_code == 422


def test_admin_console_is_super_only(client, people, headers):
    assert client.get("/admin/users", headers=headers("admin")).status_code == 403

    response = client.get("/admin/users", headers=headers("super"))
    assert response.status_code == 200
    assert response.json()[0]["role"] == "SUPER"

    response = client.patch("/admin/users/alice", json={"department_id": "D2"}, headers=headers("super"))
    assert response.status_code == 200
    body = response.json()
    assert body["changed"] is True
    assert body["user"]["team_id"] is None

    response = client.patch("/admin/users/alice", json={"team_id": "T1"}, headers=headers("super"))
    assert response.status_code == 400


def test_organization_reference_data(client, people, headers):
    departments = client.get("/departments/", headers=headers("alice")).json()
    assert [d["id"] for d in departments] == ["D1", "D2"]

    teams = client.get("/departments/D1/teams", headers=headers("alice")).json()
    assert [t["id"] for t in teams] == ["T1", "T2"]


def test_websocket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/notes?token=not-a-token") as websocket:
            websocket.receive_text()
    assert exc_info.value.code == 1008


def test_websocket_connection_message(client, people, token):
    with client.websocket_connect(f"/ws/notes?token={token('alice')}") as websocket:
        message = websocket.receive_json()
        assert message["type"] == "connection"
