from __future__ import annotations

import secrets
import string
from datetime import datetime
from uuid import uuid4

from sqlalchemy import text as sql_text, bindparam

from backend.db import get_sessionmaker
from backend.timeutils import to_iso, utc_now

PROJECTS_TABLE = "projects"
PROJECT_MEMBERS_TABLE = "project_members"
PERSONAL_EVENTS_TABLE = "personal_events"
PROJECT_EVENTS_TABLE = "project_events"
TASKS_TABLE = "tasks"

TASK_STATUSES = ("todo", "doing", "done")
DEFAULT_PERSONAL_COLOR = "#2563eb"
DEFAULT_PROJECT_COLOR = "#ef4444"
JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits

PERSONAL_EVENT_COLUMNS = "id, owner_id, title, description, start_at, end_at, all_day, color, created_at, updated_at"
PROJECT_EVENT_COLUMNS = (
    "e.id, e.project_id, e.title, e.description, e.start_at, e.end_at, e.all_day, "
    "e.created_by, e.created_at, e.updated_at"
)
TASK_COLUMNS = (
    "t.id, t.project_id, t.title, t.description, t.status, t.created_by, t.assigned_to, "
    "t.deadline, t.created_at, t.updated_at"
)


def _new_id() -> str:
    return uuid4().hex


def _new_join_code() -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(6))


def _now_iso() -> str:
    return to_iso(utc_now())


def _iso_or_none(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_iso(value)
    return str(value)


def _normalize_event_row(row) -> dict:
    if not row:
        return {}
    payload = dict(row)
    payload["all_day"] = bool(payload.get("all_day"))
    payload["description"] = payload.get("description") or ""
    return payload


def _normalize_task_row(row) -> dict:
    if not row:
        return {}
    payload = dict(row)
    payload["description"] = payload.get("description") or ""
    if payload.get("status") not in TASK_STATUSES:
        payload["status"] = "todo"
    return payload


def _window_clauses(start_column: str, end_column: str, range_from, range_to, params: dict) -> list[str]:
    """Half-open overlap test; a missing bound drops its clause."""
    if range_from is not None and range_to is not None and range_to < range_from:
        return ["1 = 0"]
    clauses = []
    if range_to is not None:
        clauses.append(f"{start_column} < :range_to")
        params["range_to"] = to_iso(range_to)
    if range_from is not None:
        clauses.append(f"{end_column} > :range_from")
        params["range_from"] = to_iso(range_from)
    return clauses


# Projects


async def list_project_members(project_ids: list[str]) -> dict[str, list[str]]:
    if not project_ids:
        return {}
    stmt = sql_text(
        f"""
        SELECT project_id, user_id
        FROM {PROJECT_MEMBERS_TABLE}
        WHERE project_id IN :project_ids
        ORDER BY joined_at ASC
        """
    ).bindparams(bindparam("project_ids", expanding=True))
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(stmt, {"project_ids": project_ids})).mappings().all()
    payload: dict[str, list[str]] = {project_id: [] for project_id in project_ids}
    for row in rows:
        payload.setdefault(row["project_id"], []).append(row["user_id"])
    return payload


async def _attach_members(rows) -> list[dict]:
    projects = [dict(row) for row in rows]
    members = await list_project_members([item["id"] for item in projects])
    for item in projects:
        item["members"] = members.get(item["id"], [])
    return projects


async def list_projects_for_user(user_id: str) -> list[dict]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT p.id, p.name, p.description, p.color, p.owner_id, p.join_code,
                       p.created_at, p.updated_at
                FROM {PROJECTS_TABLE} p
                WHERE p.owner_id = :user_id
                   OR EXISTS (
                        SELECT 1 FROM {PROJECT_MEMBERS_TABLE} m
                        WHERE m.project_id = p.id AND m.user_id = :user_id
                   )
                ORDER BY p.updated_at DESC
                """
            ),
            {"user_id": user_id},
        )).mappings().all()
    return await _attach_members(rows)


async def list_accessible_project_ids(user_id: str) -> list[str]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT p.id
                FROM {PROJECTS_TABLE} p
                WHERE p.owner_id = :user_id
                   OR EXISTS (
                        SELECT 1 FROM {PROJECT_MEMBERS_TABLE} m
                        WHERE m.project_id = p.id AND m.user_id = :user_id
                   )
                """
            ),
            {"user_id": user_id},
        )).fetchall()
    return [row[0] for row in rows]


async def get_project(project_id: str) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(
                f"""
                SELECT id, name, description, color, owner_id, join_code, created_at, updated_at
                FROM {PROJECTS_TABLE}
                WHERE id = :id
                """
            ),
            {"id": project_id},
        )).mappings().fetchone()
    if not row:
        return None
    return (await _attach_members([row]))[0]


async def get_accessible_project(project_id: str, user_id: str) -> dict | None:
    project = await get_project(project_id)
    if not project:
        return None
    if project["owner_id"] != user_id and user_id not in project["members"]:
        return None
    return project


async def get_project_by_join_code(join_code: str) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT id FROM {PROJECTS_TABLE} WHERE join_code = :join_code"),
            {"join_code": join_code},
        )).fetchone()
    return await get_project(row[0]) if row else None


async def create_project(user_id: str, payload: dict) -> dict:
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("Name is required")
    now = _now_iso()
    record = {
        "id": _new_id(),
        "name": name,
        "description": (payload.get("description") or "").strip(),
        "color": payload.get("color") or DEFAULT_PROJECT_COLOR,
        "owner_id": user_id,
        "join_code": _new_join_code(),
        "created_at": now,
        "updated_at": now,
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {PROJECTS_TABLE}
                (id, name, description, color, owner_id, join_code, created_at, updated_at)
                VALUES
                (:id, :name, :description, :color, :owner_id, :join_code, :created_at, :updated_at)
                """
            ),
            record,
        )
        await session.commit()
    return {**record, "members": []}


async def add_member(project_id: str, user_id: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {PROJECT_MEMBERS_TABLE} (project_id, user_id, joined_at)
                VALUES (:project_id, :user_id, :joined_at)
                ON CONFLICT(project_id, user_id) DO NOTHING
                """
            ),
            {"project_id": project_id, "user_id": user_id, "joined_at": _now_iso()},
        )
        await session.commit()


async def remove_member(project_id: str, user_id: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"DELETE FROM {PROJECT_MEMBERS_TABLE} WHERE project_id = :project_id AND user_id = :user_id"
            ),
            {"project_id": project_id, "user_id": user_id},
        )
        await session.commit()


# Personal events


async def list_personal_events(owner_id: str, range_from=None, range_to=None) -> list[dict]:
    params = {"owner_id": owner_id}
    clauses = ["owner_id = :owner_id"]
    clauses += _window_clauses("start_at", "end_at", range_from, range_to, params)
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT {PERSONAL_EVENT_COLUMNS}
                FROM {PERSONAL_EVENTS_TABLE}
                WHERE {' AND '.join(clauses)}
                ORDER BY start_at ASC
                """
            ),
            params,
        )).mappings().all()
    return [_normalize_event_row(row) for row in rows]


async def get_personal_event(event_id: str) -> dict:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT {PERSONAL_EVENT_COLUMNS} FROM {PERSONAL_EVENTS_TABLE} WHERE id = :id"),
            {"id": event_id},
        )).mappings().fetchone()
    return _normalize_event_row(row)


async def create_personal_event(owner_id: str, payload: dict) -> dict:
    now = _now_iso()
    record = {
        "id": _new_id(),
        "owner_id": owner_id,
        "title": payload["title"],
        "description": payload.get("description") or "",
        "start_at": _iso_or_none(payload["start"]),
        "end_at": _iso_or_none(payload["end"]),
        "all_day": int(bool(payload.get("all_day"))),
        "color": payload.get("color") or DEFAULT_PERSONAL_COLOR,
        "created_at": now,
        "updated_at": now,
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {PERSONAL_EVENTS_TABLE}
                (id, owner_id, title, description, start_at, end_at, all_day, color, created_at, updated_at)
                VALUES
                (:id, :owner_id, :title, :description, :start_at, :end_at, :all_day, :color, :created_at, :updated_at)
                """
            ),
            record,
        )
        await session.commit()
    return _normalize_event_row(record)


async def _update_row(table: str, row_id: str, patch: dict, allowed: set[str]) -> bool:
    updates = []
    params = {"id": row_id}
    for key, value in patch.items():
        if key not in allowed:
            continue
        updates.append(f"{key} = :{key}")
        if key == "all_day":
            params[key] = int(bool(value))
        elif key in {"start_at", "end_at", "deadline"}:
            params[key] = _iso_or_none(value)
        else:
            params[key] = value
    if not updates:
        return False
    updates.append("updated_at = :updated_at")
    params["updated_at"] = _now_iso()
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(f"UPDATE {table} SET {', '.join(updates)} WHERE id = :id"),
            params,
        )
        await session.commit()
    return True


async def update_personal_event(event_id: str, patch: dict) -> dict:
    await _update_row(
        PERSONAL_EVENTS_TABLE,
        event_id,
        patch,
        {"title", "description", "start_at", "end_at", "all_day", "color"},
    )
    return await get_personal_event(event_id)


async def delete_personal_event(event_id: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(f"DELETE FROM {PERSONAL_EVENTS_TABLE} WHERE id = :id"),
            {"id": event_id},
        )
        await session.commit()


# Project events


async def list_project_events(project_ids: list[str], range_from=None, range_to=None) -> list[dict]:
    if not project_ids:
        return []
    params: dict = {"project_ids": project_ids}
    clauses = ["e.project_id IN :project_ids"]
    clauses += _window_clauses("e.start_at", "e.end_at", range_from, range_to, params)
    stmt = sql_text(
        f"""
        SELECT {PROJECT_EVENT_COLUMNS}, p.name AS project_name
        FROM {PROJECT_EVENTS_TABLE} e
        LEFT JOIN {PROJECTS_TABLE} p ON p.id = e.project_id
        WHERE {' AND '.join(clauses)}
        ORDER BY e.start_at ASC
        """
    ).bindparams(bindparam("project_ids", expanding=True))
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(stmt, params)).mappings().all()
    return [_normalize_event_row(row) for row in rows]


async def get_project_event(project_id: str, event_id: str) -> dict:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(
                f"""
                SELECT {PROJECT_EVENT_COLUMNS}
                FROM {PROJECT_EVENTS_TABLE} e
                WHERE e.id = :id AND e.project_id = :project_id
                """
            ),
            {"id": event_id, "project_id": project_id},
        )).mappings().fetchone()
    return _normalize_event_row(row)


async def create_project_event(project_id: str, user_id: str, payload: dict) -> dict:
    now = _now_iso()
    record = {
        "id": _new_id(),
        "project_id": project_id,
        "title": payload["title"],
        "description": payload.get("description") or "",
        "start_at": _iso_or_none(payload["start"]),
        "end_at": _iso_or_none(payload["end"]),
        "all_day": int(bool(payload.get("all_day"))),
        "created_by": user_id,
        "created_at": now,
        "updated_at": now,
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {PROJECT_EVENTS_TABLE}
                (id, project_id, title, description, start_at, end_at, all_day, created_by, created_at, updated_at)
                VALUES
                (:id, :project_id, :title, :description, :start_at, :end_at, :all_day, :created_by, :created_at, :updated_at)
                """
            ),
            record,
        )
        await session.commit()
    return _normalize_event_row(record)


async def update_project_event(project_id: str, event_id: str, patch: dict) -> dict:
    await _update_row(
        PROJECT_EVENTS_TABLE,
        event_id,
        patch,
        {"title", "description", "start_at", "end_at", "all_day"},
    )
    return await get_project_event(project_id, event_id)


async def delete_project_event(event_id: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(f"DELETE FROM {PROJECT_EVENTS_TABLE} WHERE id = :id"),
            {"id": event_id},
        )
        await session.commit()


# Tasks


async def list_project_tasks(project_id: str) -> list[dict]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT {TASK_COLUMNS}
                FROM {TASKS_TABLE} t
                WHERE t.project_id = :project_id
                ORDER BY t.updated_at DESC
                """
            ),
            {"project_id": project_id},
        )).mappings().all()
    return [_normalize_task_row(row) for row in rows]


async def list_task_deadlines(project_ids: list[str], range_from=None, range_to=None) -> list[dict]:
    """Tasks with a deadline inside [range_from, range_to]; either bound may be missing."""
    if not project_ids:
        return []
    params: dict = {"project_ids": project_ids}
    clauses = ["t.project_id IN :project_ids", "t.deadline IS NOT NULL"]
    if range_from is not None:
        clauses.append("t.deadline >= :range_from")
        params["range_from"] = to_iso(range_from)
    if range_to is not None:
        clauses.append("t.deadline <= :range_to")
        params["range_to"] = to_iso(range_to)
    stmt = sql_text(
        f"""
        SELECT {TASK_COLUMNS}, p.name AS project_name
        FROM {TASKS_TABLE} t
        LEFT JOIN {PROJECTS_TABLE} p ON p.id = t.project_id
        WHERE {' AND '.join(clauses)}
        ORDER BY t.deadline ASC
        """
    ).bindparams(bindparam("project_ids", expanding=True))
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(stmt, params)).mappings().all()
    return [_normalize_task_row(row) for row in rows]


async def get_task(task_id: str) -> dict:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT {TASK_COLUMNS} FROM {TASKS_TABLE} t WHERE t.id = :id"),
            {"id": task_id},
        )).mappings().fetchone()
    return _normalize_task_row(row)


async def create_task(project_id: str, user_id: str, payload: dict) -> dict:
    title = (payload.get("title") or "").strip()
    if not title:
        raise ValueError("Title is required")
    status = payload.get("status") or "todo"
    if status not in TASK_STATUSES:
        raise ValueError("Invalid status")
    now = _now_iso()
    record = {
        "id": _new_id(),
        "project_id": project_id,
        "title": title,
        "description": (payload.get("description") or "").strip(),
        "status": status,
        "created_by": user_id,
        "assigned_to": None,
        "deadline": _iso_or_none(payload.get("deadline")),
        "created_at": now,
        "updated_at": now,
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {TASKS_TABLE}
                (id, project_id, title, description, status, created_by, assigned_to, deadline, created_at, updated_at)
                VALUES
                (:id, :project_id, :title, :description, :status, :created_by, :assigned_to, :deadline, :created_at, :updated_at)
                """
            ),
            record,
        )
        await session.commit()
    return _normalize_task_row(record)


async def update_task(task_id: str, patch: dict) -> dict:
    if "status" in patch and patch["status"] not in TASK_STATUSES:
        raise ValueError("Invalid status")
    await _update_row(
        TASKS_TABLE,
        task_id,
        patch,
        {"title", "description", "status", "deadline", "assigned_to"},
    )
    return await get_task(task_id)


async def delete_task(task_id: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(f"DELETE FROM {TASKS_TABLE} WHERE id = :id"),
            {"id": task_id},
        )
        await session.commit()
