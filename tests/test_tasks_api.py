from datetime import datetime, timedelta, timezone


def _iso(value):
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _create(client, headers, project_id, **body):
    return client.post(f"/api/projects/{project_id}/tasks", json=body, headers=headers)


def test_create_and_list_tasks(client, auth_headers, make_project):
    project = make_project(members=["bob"])

    created = _create(client, auth_headers("bob"), project["_id"], title=" Outline ", deadline="2024-06-01T12:00:00Z")

    assert created.status_code == 201
    task = created.json()["task"]
    assert task["title"] == "Outline"
    assert task["status"] == "todo"
    assert task["createdBy"] == "bob"
    assert task["deadline"] == "2024-06-01T12:00:00.000Z"

    listed = client.get(f"/api/projects/{project['_id']}/tasks", headers=auth_headers("alice")).json()["tasks"]
    assert [item["_id"] for item in listed] == [task["_id"]]


def test_create_validation(client, auth_headers, make_project):
    project = make_project()
    headers = auth_headers()

    assert _create(client, headers, project["_id"], title="").json() == {"error": "Title is required"}
    assert _create(client, headers, project["_id"], title="x", status="blocked").json() == {"error": "Invalid status"}
    assert _create(client, headers, project["_id"], title="x", deadline="soon").json() == {"error": "Invalid deadline"}


def test_outsiders_cannot_see_tasks(client, auth_headers, make_project):
    project = make_project()
    task = _create(client, auth_headers(), project["_id"], title="Secret").json()["task"]

    assert client.get(f"/api/projects/{project['_id']}/tasks", headers=auth_headers("mallory")).status_code == 404
    assert client.patch(f"/api/tasks/{task['_id']}", json={"status": "done"}, headers=auth_headers("mallory")).status_code == 404


def test_patch_status_and_deadline(client, auth_headers, make_project):
    project = make_project()
    headers = auth_headers()
    task = _create(client, headers, project["_id"], title="Slides", deadline="2024-06-01T12:00:00Z").json()["task"]

    moved = client.patch(f"/api/tasks/{task['_id']}", json={"status": "doing"}, headers=headers).json()["task"]
    assert moved["status"] == "doing"
    assert moved["deadline"] == "2024-06-01T12:00:00.000Z"

    cleared = client.patch(f"/api/tasks/{task['_id']}", json={"deadline": None}, headers=headers).json()["task"]
    assert cleared["deadline"] is None

    bad = client.patch(f"/api/tasks/{task['_id']}", json={"status": "later"}, headers=headers)
    assert bad.status_code == 400


def test_assignee_must_belong_to_project(client, auth_headers, make_project):
    project = make_project(members=["bob"])
    headers = auth_headers()
    task = _create(client, headers, project["_id"], title="Review").json()["task"]

    assigned = client.patch(f"/api/tasks/{task['_id']}", json={"assignedTo": "bob"}, headers=headers)
    assert assigned.json()["task"]["assignedTo"] == "bob"

    rejected = client.patch(f"/api/tasks/{task['_id']}", json={"assignedTo": "mallory"}, headers=headers)
    assert rejected.status_code == 400
    assert rejected.json() == {"error": "Assignee must be a project member"}

    unassigned = client.patch(f"/api/tasks/{task['_id']}", json={"assignedTo": None}, headers=headers)
    assert unassigned.json()["task"]["assignedTo"] is None


def test_due_tasks_default_to_next_week(client, auth_headers, make_project):
    project = make_project()
    headers = auth_headers()
    now = datetime.now(timezone.utc)
    _create(client, headers, project["_id"], title="Soon", deadline=_iso(now + timedelta(days=2)))
    _create(client, headers, project["_id"], title="Far", deadline=_iso(now + timedelta(days=20)))
    _create(client, headers, project["_id"], title="Past", deadline=_iso(now - timedelta(days=2)))

    due = client.get("/api/tasks/due", headers=headers).json()["tasks"]

    assert [task["title"] for task in due] == ["Soon"]
    assert due[0]["project"] == {"_id": project["_id"], "name": "Thesis"}


def test_delete_task(client, auth_headers, make_project):
    project = make_project()
    headers = auth_headers()
    task = _create(client, headers, project["_id"], title="Drop me").json()["task"]

    assert client.delete(f"/api/tasks/{task['_id']}", headers=headers).json() == {"ok": True}
    assert client.delete(f"/api/tasks/{task['_id']}", headers=headers).status_code == 404


def test_patch_rejects_blank_title(client, auth_headers, make_project):
    project = make_project()
    headers = auth_headers()
    task = _create(client, headers, project["_id"], title="Slides").json()["task"]

    response = client.patch(f"/api/tasks/{task['_id']}", json={"title": ""}, headers=headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Title is required"}
    listed = client.get(f"/api/projects/{project['_id']}/tasks", headers=headers).json()["tasks"]
    assert listed[0]["title"] == "Slides"
