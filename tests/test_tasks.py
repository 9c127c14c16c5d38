from datetime import datetime, timezone

from taskapi import crud
from taskapi.database import SessionLocal
from taskapi.models import Task


def _task(client, user, **fields):
    payload = {"title": "Write proposal", "createdBy": user["id"], **fields}
    response = client.post("/api/tasks", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def test_create_then_get(client, user):
    created = _task(
        client, user,
        description="Q2 proposal for client review",
        status="in-progress",
        priority="high",
        deadline="2026-06-20T17:00:00Z",
        estimatedTime=3.5,
        tags=["client-work", "proposal", "client-work"],
    )
    assert created["status"] == "IN_PROGRESS"
    assert created["priority"] == "HIGH"
    assert created["createdBy"] == user["id"]
    assert created["tags"] == ["client-work", "proposal"]
    assert created["dateCompleted"] is None
    assert created["projectIds"] == []

    fetched = client.get(f"/api/tasks/{created['id']}").json()
    assert fetched == created


def test_defaults(client, user):
    created = _task(client, user)
    assert created["status"] == "TODO"
    assert created["priority"] == "NONE"
    assert created["description"] is None
    assert created["tags"] == []


def test_create_requires_title_and_owner(client, user):
    response = client.post("/api/tasks", json={"createdBy": user["id"]})
    assert response.status_code == 400
    assert "title" in response.json()["error"]

    response = client.post("/api/tasks", json={"title": "orphan"})
    assert response.status_code == 400
    assert response.json() == {"error": "User ID is required"}

    response = client.post("/api/tasks", json={"title": "ghost", "createdBy": "missing"})
    assert response.status_code == 404


def test_rejects_unknown_status(client, user):
    response = client.post("/api/tasks", json={"title": "x", "createdBy": user["id"], "status": "someday"})
    assert response.status_code == 400


def test_list_is_scoped_to_owner(client, user, other_user):
    mine = _task(client, user, title="mine")
    _task(client, other_user, title="theirs")

    response = client.get("/api/tasks", params={"userId": user["id"]})
    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == [mine["id"]]

    # header works as well as the query parameter
    response = client.get("/api/tasks", headers={"X-User-Id": other_user["id"]})
    assert [t["title"] for t in response.json()] == ["theirs"]


def test_list_requires_user(client):
    response = client.get("/api/tasks")
    assert response.status_code == 400
    assert response.json() == {"error": "User ID is required"}


def test_list_filters(client, user):
    high = _task(client, user, title="Fix login bug", priority="HIGH", tags=["bugs"])
    _task(client, user, title="Plan offsite", description="book venue", priority="low", status="on-hold")
    done = _task(client, user, title="Review mockups", status="COMPLETE", tags=["design"])

    def ids(**params):
        params["userId"] = user["id"]
        response = client.get("/api/tasks", params=params)
        assert response.status_code == 200, response.text
        return {t["id"] for t in response.json()}

    assert ids(priority="high") == {high["id"]}
    assert ids(status="complete") == {done["id"]}
    assert len(ids(status="ON_HOLD")) == 1
    assert len(ids(search="VENUE")) == 1
    assert ids(search="login") == {high["id"]}
    assert ids(tag=["bugs", "design"]) == {high["id"], done["id"]}

    bad = client.get("/api/tasks", params={"userId": user["id"], "priority": "urgent"})
    assert bad.status_code == 400


def test_search_treats_wildcards_literally(client, user):
    for title in ("100% done", "1000 widgets", "a_b", "axb"):
        _task(client, user, title=title)

    def titles(search):
        response = client.get("/api/tasks", params={"userId": user["id"], "search": search})
        return sorted(t["title"] for t in response.json())

    assert titles("100%") == ["100% done"]
    assert titles("a_b") == ["a_b"]
    assert titles("A_B") == ["a_b"]


def test_update_is_partial_and_touches_modified(client, user):
    created = _task(client, user, description="keep me", priority="low")
    long_ago = datetime(2020, 1, 1, tzinfo=timezone.utc)
    with SessionLocal() as db:
        db.query(Task).filter(Task.id == created["id"]).update({"date_modified": long_ago})
        db.commit()
    assert client.get(f"/api/tasks/{created['id']}").json()["dateModified"].startswith("2020-01-01")

    response = client.put(f"/api/tasks/{created['id']}", json={"title": "Renamed", "actualTimeSpent": 2})
    assert response.status_code == 200
    updated = response.json()
    assert updated["title"] == "Renamed"
    assert updated["description"] == "keep me"
    assert updated["priority"] == "LOW"
    assert updated["actualTimeSpent"] == 2
    modified = datetime.fromisoformat(updated["dateModified"]).replace(tzinfo=None)
    assert modified > datetime(2020, 1, 2)
    assert updated["dateAdded"] == created["dateAdded"]


def test_completion_date_follows_status(client, user):
    created = _task(client, user, status="complete")
    assert created["dateCompleted"] is not None

    reopened = client.put(f"/api/tasks/{created['id']}", json={"status": "in-progress"}).json()
    assert reopened["dateCompleted"] is None

    done = client.put(
        f"/api/tasks/{created['id']}",
        json={"status": "COMPLETE", "dateCompleted": "2026-01-05T10:00:00Z"},
    ).json()
    assert done["dateCompleted"].startswith("2026-01-05T10:00:00")

    # a completion date without a completed status does not stick
    other = _task(client, user, dateCompleted="2026-01-05T10:00:00Z")
    assert other["dateCompleted"] is None


def test_update_and_delete_missing(client, user):
    assert client.put("/api/tasks/nope", json={"title": "x"}).status_code == 404
    response = client.delete("/api/tasks/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Task not found"}


def test_delete_then_get(client, user):
    created = _task(client, user)
    response = client.delete(f"/api/tasks/{created['id']}")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get(f"/api/tasks/{created['id']}").status_code == 404


def test_by_id_calls_respect_caller(client, user, other_user):
    created = _task(client, user)
    headers = {"X-User-Id": other_user["id"]}
    assert client.get(f"/api/tasks/{created['id']}", headers=headers).status_code == 404
    assert client.delete(f"/api/tasks/{created['id']}", headers=headers).status_code == 404
    assert client.get(f"/api/tasks/{created['id']}").status_code == 200


def test_task_linked_to_projects(client, user, other_user):
    project = client.post("/api/projects", json={"title": "Website", "createdBy": user["id"]}).json()
    foreign = client.post("/api/projects", json={"title": "Theirs", "createdBy": other_user["id"]}).json()

    task = _task(client, user, projectIds=[project["id"]])
    assert task["projectIds"] == [project["id"]]

    listed = client.get("/api/tasks", params={"userId": user["id"], "projectId": project["id"]}).json()
    assert [t["id"] for t in listed] == [task["id"]]

    response = client.put(f"/api/tasks/{task['id']}", json={"projectIds": [foreign["id"]]})
    assert response.status_code == 400
    assert foreign["id"] in response.json()["error"]


def test_summary_counts(client, user):
    _task(client, user, title="later today", deadline="2026-03-10T18:00:00Z")
    _task(client, user, title="this morning", deadline="2026-03-10T08:00:00Z")
    _task(client, user, title="two days ago", deadline="2026-03-08T09:00:00+02:00")
    _task(
        client, user,
        title="done", status="complete",
        deadline="2026-03-09T09:00:00Z", dateCompleted="2026-03-10T09:30:00Z",
    )

    now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
    with SessionLocal() as db:
        summary = crud.task_summary(db, user["id"], now=now)

    assert summary["total"] == 4
    assert summary["due_today"] == 2
    assert summary["overdue"] == 2
    assert summary["completed_today"] == 1
    assert summary["by_status"]["TODO"] == 3
    assert summary["by_status"]["COMPLETE"] == 1
    assert summary["by_status"]["CANCELLED"] == 0


def test_summary_endpoint(client, user):
    _task(client, user)
    response = client.get("/api/tasks/summary", params={"userId": user["id"]})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert set(body) == {"total", "dueToday", "overdue", "completedToday", "byStatus"}
