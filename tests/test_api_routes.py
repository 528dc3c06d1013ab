"""
Yote — API Route Tests
=======================

What:  HTTP-level tests of the /api/tasks and /api/notes surface.
How:   test_client (ASGITransport) against an in-memory SQLite database.

What we test:
    ✅ Success envelopes use the resource keys (task/tasks, note/notes)
    ✅ by-ref, by-ref-list and search queries
    ✅ Error envelopes: 400 / 401 / 403 / 404 with success=false
    ✅ Health check and request id header
"""

import pytest


def _as(user):
    return {"X-User-Id": user.id}


async def _create_task(client, user, **fields):
    response = await client.post("/api/tasks", json=fields, headers=_as(user))
    assert response.status_code == 200, response.text
    return response.json()["task"]


class TestTaskCrud:

    @pytest.mark.asyncio
    async def test_create_and_get(self, test_client, users):
        task = await _create_task(test_client, users["member"], name="Write docs", _flow="f1")

        assert len(task["_id"]) == 32
        assert task["status"] == "open"
        assert task["complete"] is False
        assert task["_user"] == users["member"].id

        response = await test_client.get(f"/api/tasks/{task['_id']}")
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["task"]["name"] == "Write docs"

    @pytest.mark.asyncio
    async def test_create_message(self, test_client, users):
        response = await test_client.post("/api/tasks", json={"name": "x"}, headers=_as(users["member"]))
        assert response.json()["message"] == "Created task"

    @pytest.mark.asyncio
    async def test_protected_fields_ignored_on_create(self, test_client, users):
        task = await _create_task(test_client, users["member"], _id="chosen", name="x")
        assert task["_id"] != "chosen"

    @pytest.mark.asyncio
    async def test_list_all(self, test_client, users):
        await _create_task(test_client, users["member"], name="one")
        await _create_task(test_client, users["member"], name="two")

        body = (await test_client.get("/api/tasks")).json()

        assert body["success"] is True
        assert [task["name"] for task in body["tasks"]] == ["one", "two"]

    @pytest.mark.asyncio
    async def test_update(self, test_client, users):
        task = await _create_task(test_client, users["member"], name="old")

        response = await test_client.put(
            f"/api/tasks/{task['_id']}",
            json={"name": "new", "description": "more"},
            headers=_as(users["member"]),
        )

        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Updated task"
        assert body["task"]["name"] == "new"
        assert body["task"]["description"] == "more"

    @pytest.mark.asyncio
    async def test_complete_and_status(self, test_client, users):
        task = await _create_task(test_client, users["member"], name="t")

        complete = await test_client.put(
            f"/api/tasks/{task['_id']}/complete", json={"complete": True}, headers=_as(users["member"])
        )
        status = await test_client.put(
            f"/api/tasks/{task['_id']}/status", json={"status": "blocked"}, headers=_as(users["member"])
        )

        assert complete.json()["task"]["complete"] is True
        assert status.json()["task"]["status"] == "blocked"

    @pytest.mark.asyncio
    async def test_empty_status_rejected(self, test_client, users):
        task = await _create_task(test_client, users["member"], name="t")
        response = await test_client.put(
            f"/api/tasks/{task['_id']}/status", json={"status": ""}, headers=_as(users["member"])
        )
        assert response.status_code == 422
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_admin_delete(self, test_client, users):
        task = await _create_task(test_client, users["member"], name="bye")

        response = await test_client.delete(f"/api/tasks/{task['_id']}", headers=_as(users["admin"]))

        assert response.json() == {"success": True, "message": "Deleted task"}
        missing = await test_client.get(f"/api/tasks/{task['_id']}")
        assert missing.status_code == 404


class TestErrors:

    @pytest.mark.asyncio
    async def test_not_found(self, test_client):
        response = await test_client.get("/api/tasks/doesnotexist")
        body = response.json()
        assert response.status_code == 404
        assert body["success"] is False
        assert body["message"] == "Task not found."
        assert body["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_create_without_login(self, test_client):
        response = await test_client.post("/api/tasks", json={"name": "x"})
        assert response.status_code == 401
        assert response.json()["message"] == "Login required"

    @pytest.mark.asyncio
    async def test_unknown_user_is_anonymous(self, test_client):
        response = await test_client.post("/api/tasks", json={"name": "x"}, headers={"X-User-Id": "ghost"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_delete_without_admin(self, test_client, users):
        task = await _create_task(test_client, users["member"], name="stay")
        response = await test_client.delete(f"/api/tasks/{task['_id']}", headers=_as(users["member"]))
        assert response.status_code == 403
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/api/tasks/nothing", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert response.json()["request_id"] == "abc123"


class TestRefQueries:

    @pytest.mark.asyncio
    async def test_by_ref(self, test_client, users):
        await _create_task(test_client, users["member"], name="a", _flow="f1")
        await _create_task(test_client, users["member"], name="b", _flow="f2")

        body = (await test_client.get("/api/tasks/by-_flow/f1")).json()

        assert body["success"] is True
        assert [task["name"] for task in body["tasks"]] == ["a"]

    @pytest.mark.asyncio
    async def test_by_several_refs(self, test_client, users):
        await _create_task(test_client, users["member"], name="a", _flow="f1", status="open")
        await _create_task(test_client, users["member"], name="b", _flow="f1", status="done")

        body = (await test_client.get("/api/tasks/by-_flow/f1/status/done")).json()

        assert [task["name"] for task in body["tasks"]] == ["b"]

    @pytest.mark.asyncio
    async def test_odd_trailing_segments(self, test_client):
        response = await test_client.get("/api/tasks/by-category/x/extra")
        body = response.json()
        assert response.status_code == 400
        assert body["success"] is False
        assert body["message"] == "Invalid parameter length"

    @pytest.mark.asyncio
    async def test_null_matches_missing_reference(self, test_client, users):
        await _create_task(test_client, users["member"], name="loose")
        await _create_task(test_client, users["member"], name="bound", _flow="f1")

        body = (await test_client.get("/api/tasks/by-_flow/null")).json()

        assert [task["name"] for task in body["tasks"]] == ["loose"]

    @pytest.mark.asyncio
    async def test_unknown_field(self, test_client):
        response = await test_client.get("/api/tasks/by-category/x")
        assert response.status_code == 400
        assert response.json()["message"] == "Unknown task field: category"

    @pytest.mark.asyncio
    async def test_by_ref_list(self, test_client, users):
        a = await _create_task(test_client, users["member"], name="a")
        b = await _create_task(test_client, users["member"], name="b")
        await _create_task(test_client, users["member"], name="c")

        body = (await test_client.get(f"/api/tasks/by-_id-list?_id={a['_id']}&_id={b['_id']}&")).json()

        assert sorted(task["name"] for task in body["tasks"]) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_by_ref_list_missing_param(self, test_client):
        response = await test_client.get("/api/tasks/by-_id-list")
        assert response.status_code == 400
        assert response.json()["message"] == "Missing query param(s) specified by the ref: _id"

    @pytest.mark.asyncio
    async def test_boolean_filter(self, test_client, users):
        task = await _create_task(test_client, users["member"], name="done")
        await _create_task(test_client, users["member"], name="todo")
        await test_client.put(
            f"/api/tasks/{task['_id']}/complete", json={"complete": True}, headers=_as(users["member"])
        )

        body = (await test_client.get("/api/tasks/by-complete/true")).json()

        assert [t["name"] for t in body["tasks"]] == ["done"]


class TestSearch:

    @pytest.mark.asyncio
    async def test_search_without_pagination(self, test_client, users):
        await _create_task(test_client, users["member"], name="a", status="open")
        await _create_task(test_client, users["member"], name="b", status="done")

        body = (await test_client.get("/api/tasks/search?status=open")).json()

        assert [task["name"] for task in body["tasks"]] == ["a"]
        assert "pagination" not in body

    @pytest.mark.asyncio
    async def test_search_with_pagination(self, test_client, users):
        for name in ("a", "b", "c"):
            await _create_task(test_client, users["member"], name=name)

        body = (await test_client.get("/api/tasks/search?page=2&per=2")).json()

        assert [task["name"] for task in body["tasks"]] == ["c"]
        assert body["pagination"] == {"page": 2, "per": 2}

    @pytest.mark.asyncio
    async def test_search_default_per(self, test_client):
        body = (await test_client.get("/api/tasks/search?page=1")).json()
        assert body["pagination"] == {"page": 1, "per": 20}

    @pytest.mark.asyncio
    async def test_search_bad_page(self, test_client):
        response = await test_client.get("/api/tasks/search?page=zero")
        assert response.status_code == 400


class TestNotes:

    @pytest.mark.asyncio
    async def test_note_copies_flow_and_user(self, test_client, users):
        task = await _create_task(test_client, users["member"], name="t", _flow="f7")

        response = await test_client.post(
            "/api/notes", json={"_task": task["_id"], "content": "hello"}, headers=_as(users["admin"])
        )

        note = response.json()["note"]
        assert response.json()["message"] == "Created note"
        assert note["_flow"] == "f7"
        assert note["_user"] == users["admin"].id

    @pytest.mark.asyncio
    async def test_note_needs_task(self, test_client, users):
        response = await test_client.post("/api/notes", json={"content": "orphan"}, headers=_as(users["member"]))
        assert response.status_code == 404
        assert response.json()["message"] == "NOT FOUND - INVALID TASK ID"

    @pytest.mark.asyncio
    async def test_notes_by_task_carry_commentor(self, test_client, users):
        task = await _create_task(test_client, users["member"], name="t")
        await test_client.post(
            "/api/notes", json={"_task": task["_id"], "content": "hi"}, headers=_as(users["admin"])
        )

        body = (await test_client.get(f"/api/notes/by-_task/{task['_id']}")).json()

        assert body["success"] is True
        assert body["notes"][0]["content"] == "hi"
        assert body["notes"][0]["commentor"]["fullName"] == "Ada Admin"
        assert "created" in body["notes"][0]["commentor"]

    @pytest.mark.asyncio
    async def test_note_default_and_schema(self, test_client, users):
        default = (await test_client.get("/api/notes/default")).json()
        schema = await test_client.get("/api/notes/schema", headers=_as(users["admin"]))

        assert default["defaultObj"]["content"] == ""
        assert "_id" not in default["defaultObj"]
        assert schema.json()["schema"]["content"]["type"] == "Text"


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_health_counts_documents(self, test_client, users):
        await _create_task(test_client, users["member"], name="counted")

        body = (await test_client.get("/health")).json()

        assert body["documents"] == {"users": 2, "tasks": 1, "notes": 0}

    @pytest.mark.asyncio
    async def test_invalid_request_id_replaced(self, test_client):
        response = await test_client.get("/api/tasks", headers={"X-Request-ID": "not a valid id!"})
        assert response.headers["X-Request-ID"] != "not a valid id!"
        assert len(response.headers["X-Request-ID"]) == 8
