"""
Tests for the user API endpoints.

Tests validate:
- {message, data} envelopes and status codes
- Query parameters on the list endpoint (where/sort/select/skip/limit/count)
- Side effects on tasks reported in the message
"""

import json


def create_user(client, name="Ada", email="ada@example.com", pending=None):
    body = {"name": name, "email": email}
    if pending is not None:
        body["pendingTasks"] = pending
    response = client.post("/api/users", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def create_task(client, name="Task", deadline="2025-06-30", **extra):
    response = client.post("/api/tasks", json={"name": name, "deadline": deadline, **extra})
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreateUser:
    """Tests for POST /api/users."""

    def test_create_returns_201_and_document(self, client):
        response = client.post("/api/users", json={"name": "Ada", "email": "ada@example.com"})

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User created."
        data = body["data"]
        assert set(data) == {"_id", "name", "email", "pendingTasks", "dateCreated"}
        assert len(data["_id"]) == 24
        assert data["pendingTasks"] == []

    def test_missing_fields_400(self, client):
        response = client.post("/api/users", json={"name": "Ada"})
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Name and Email are required"
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["data"] == {}

    def test_empty_body_400(self, client):
        response = client.post("/api/users")
        assert response.status_code == 400

    def test_duplicate_email_409(self, client):
        create_user(client)
        response = client.post("/api/users", json={"name": "B", "email": "ADA@example.com"})
        assert response.status_code == 409
        assert response.json()["message"] == "Email already exists"
        assert response.json()["error_code"] == "CONFLICT"

    def test_claims_tasks_and_reports(self, client):
        bob = create_user(client, "Bob", "bob@example.com")
        task = create_task(client, assignedUser=bob["_id"])

        response = client.post(
            "/api/users",
            json={"name": "Ada", "email": "ada@example.com", "pendingTasks": [task["_id"], "bogus"]},
        )

        assert response.status_code == 201
        assert response.json()["message"] == (
            "User created. 1 task reassigned, 1 invalid task ID ignored."
        )
        ada = response.json()["data"]
        assert ada["pendingTasks"] == [task["_id"]]

        bob_now = client.get(f"/api/users/{bob['_id']}").json()["data"]
        assert bob_now["pendingTasks"] == []
        task_now = client.get(f"/api/tasks/{task['_id']}").json()["data"]
        assert task_now["assignedUser"] == ada["_id"]
        assert task_now["assignedUserName"] == "Ada"


class TestListUsers:
    """Tests for GET /api/users."""

    def test_empty(self, client):
        response = client.get("/api/users")
        assert response.status_code == 200
        assert response.json() == {"message": "OK", "data": []}

    def test_where_sort_select(self, client):
        create_user(client, "Carol", "carol@example.com")
        create_user(client, "Ada", "ada@example.com")
        create_user(client, "Bob", "bob@example.com")

        response = client.get(
            "/api/users",
            params={
                "where": json.dumps({"name": {"$ne": "Bob"}}),
                "sort": json.dumps({"name": 1}),
                "select": json.dumps({"name": 1, "_id": 0}),
            },
        )

        assert response.status_code == 200
        assert response.json()["data"] == [{"name": "Ada"}, {"name": "Carol"}]

    def test_skip_limit(self, client):
        for i in range(5):
            create_user(client, f"U{i}", f"u{i}@example.com")

        data = client.get("/api/users", params={"skip": "1", "limit": "2"}).json()["data"]
        assert [u["name"] for u in data] == ["U1", "U2"]

    def test_users_unlimited_by_default(self, client):
        for i in range(3):
            create_user(client, f"U{i}", f"u{i}@example.com")
        assert len(client.get("/api/users").json()["data"]) == 3

    def test_count(self, client):
        create_user(client, "Ada", "ada@example.com")
        create_user(client, "Bob", "bob@example.com")

        response = client.get(
            "/api/users", params={"count": "true", "where": json.dumps({"name": "Ada"})}
        )
        assert response.json() == {"message": "OK", "data": 1}

    def test_invalid_json_param(self, client):
        response = client.get("/api/users", params={"where": "{not json"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid JSON in 'where'"


class TestGetUser:
    """Tests for GET /api/users/{id}."""

    def test_get(self, client):
        user = create_user(client)
        response = client.get(f"/api/users/{user['_id']}")
        assert response.status_code == 200
        assert response.json()["data"] == user

    def test_get_with_select(self, client):
        user = create_user(client)
        response = client.get(f"/api/users/{user['_id']}", params={"select": '{"email": 1}'})
        assert response.json()["data"] == {"_id": user["_id"], "email": "ada@example.com"}

    def test_not_found(self, client):
        response = client.get("/api/users/" + "0" * 24)
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"
        assert response.json()["error_code"] == "NOT_FOUND"


class TestUpdateUser:
    """Tests for PUT /api/users/{id}."""

    def test_replace(self, client):
        user = create_user(client)
        t1 = create_task(client, assignedUser=user["_id"])
        t2 = create_task(client)

        response = client.put(
            f"/api/users/{user['_id']}",
            json={"name": "Ada L.", "email": "ada@example.com", "pendingTasks": [t2["_id"]]},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "User updated. 1 task unassigned."
        assert response.json()["data"]["pendingTasks"] == [t2["_id"]]
        assert client.get(f"/api/tasks/{t1['_id']}").json()["data"]["assignedUser"] == ""

    def test_not_found_before_validation(self, client):
        response = client.put("/api/users/" + "0" * 24, json={})
        assert response.status_code == 404

    def test_conflict(self, client):
        create_user(client, "Bob", "bob@example.com")
        user = create_user(client)
        response = client.put(
            f"/api/users/{user['_id']}", json={"name": "Ada", "email": "bob@example.com"}
        )
        assert response.status_code == 409


class TestDeleteUser:
    """Tests for DELETE /api/users/{id}."""

    def test_delete_returns_snapshot(self, client):
        user = create_user(client)
        task = create_task(client, assignedUser=user["_id"])

        response = client.delete(f"/api/users/{user['_id']}")

        assert response.status_code == 200
        assert response.json()["message"] == "User deleted. 1 task unassigned."
        assert response.json()["data"]["_id"] == user["_id"]
        assert client.get(f"/api/users/{user['_id']}").status_code == 404
        task_now = client.get(f"/api/tasks/{task['_id']}").json()["data"]
        assert task_now["assignedUserName"] == "unassigned"

    def test_delete_missing(self, client):
        assert client.delete("/api/users/" + "0" * 24).status_code == 404
