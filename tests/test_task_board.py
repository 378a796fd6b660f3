from dashboard import task_board
from dashboard.data.api_client import ApiError


def _tasks():
    return [
        {"_id": "a", "title": "Outline", "status": "todo", "deadline": None},
        {"_id": "b", "title": "Draft", "status": "doing", "deadline": "2024-06-01T12:00:00.000Z"},
        {"_id": "c", "title": "Odd", "status": "archived"},
    ]


def test_group_by_status_falls_back_to_todo():
    columns = task_board.group_by_status(_tasks())

    assert [task["_id"] for task in columns["todo"]] == ["a", "c"]
    assert [task["_id"] for task in columns["doing"]] == ["b"]
    assert columns["done"] == []


def test_local_patch_only_touches_board_fields():
    updated = task_board.apply_local_patch(_tasks(), "a", {"status": "done", "title": "ignored"})

    assert updated[0]["status"] == "done"
    assert updated[0]["title"] == "Outline"


def test_commit_uses_server_copy():
    def send(task_id, patch):
        return {"_id": task_id, "title": "Outline", "status": "done", "updatedAt": "now"}

    tasks, error = task_board.commit_task_patch(_tasks(), "a", {"status": "done"}, send)

    assert error is None
    assert tasks[0] == {"_id": "a", "title": "Outline", "status": "done", "updatedAt": "now"}


def test_commit_keeps_optimistic_value_without_server_copy():
    tasks, error = task_board.commit_task_patch(_tasks(), "b", {"status": "done"}, lambda task_id, patch: {})

    assert error is None
    assert tasks[1]["status"] == "done"


def test_failed_commit_restores_snapshot():
    original = _tasks()

    def send(task_id, patch):
        raise ApiError(400, "Assignee must be a project member")

    tasks, error = task_board.commit_task_patch(original, "a", {"assignedTo": "mallory"}, send)

    assert tasks == _tasks()
    assert error == "Assignee must be a project member"
