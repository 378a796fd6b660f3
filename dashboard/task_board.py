from __future__ import annotations

import logging
from copy import deepcopy

from dashboard.constants import TASK_STATUSES

logger = logging.getLogger(__name__)

OPTIMISTIC_FIELDS = {"status", "deadline", "assignedTo"}


def group_by_status(tasks: list[dict]) -> dict[str, list[dict]]:
    columns: dict[str, list[dict]] = {status: [] for status in TASK_STATUSES}
    for task in tasks:
        status = task.get("status") if task.get("status") in columns else "todo"
        columns[status].append(task)
    return columns


def apply_local_patch(tasks: list[dict], task_id: str, patch: dict) -> list[dict]:
    updated = []
    for task in tasks:
        if task.get("_id") == task_id:
            task = {**task, **{key: value for key, value in patch.items() if key in OPTIMISTIC_FIELDS}}
        updated.append(task)
    return updated


def commit_task_patch(tasks: list[dict], task_id: str, patch: dict, send) -> tuple[list[dict], str | None]:
    """Apply `patch` locally first, then send it; restore the snapshot if sending fails.

    `send(task_id, patch)` returns the server's task payload. Returns the
    task list to display and an error message (None on success).
    """
    snapshot = deepcopy(tasks)
    optimistic = apply_local_patch(tasks, task_id, patch)
    try:
        saved = send(task_id, patch)
    except Exception as exc:
        logger.warning("Task %s update failed, restoring previous state: %s", task_id, exc)
        return snapshot, str(exc) or "Could not update task"
    if isinstance(saved, dict) and saved.get("_id") == task_id:
        optimistic = [saved if task.get("_id") == task_id else task for task in optimistic]
    return optimistic, None
