from __future__ import annotations

import logging

from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from backend.db import get_engine

logger = logging.getLogger(__name__)

PROJECTS_TABLE = "projects"
PROJECT_MEMBERS_TABLE = "project_members"
PERSONAL_EVENTS_TABLE = "personal_events"
PROJECT_EVENTS_TABLE = "project_events"
TASKS_TABLE = "tasks"


async def init_db():
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {PROJECTS_TABLE} (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    color TEXT DEFAULT '#ef4444',
                    owner_id TEXT NOT NULL,
                    join_code TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {PROJECT_MEMBERS_TABLE} (
                    project_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    joined_at TEXT NOT NULL,
                    PRIMARY KEY (project_id, user_id)
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {PERSONAL_EVENTS_TABLE} (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    start_at TEXT NOT NULL,
                    end_at TEXT NOT NULL,
                    all_day INTEGER DEFAULT 0,
                    color TEXT DEFAULT '#2563eb',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {PROJECT_EVENTS_TABLE} (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    start_at TEXT NOT NULL,
                    end_at TEXT NOT NULL,
                    all_day INTEGER DEFAULT 0,
                    created_by TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {TASKS_TABLE} (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'todo',
                    created_by TEXT NOT NULL,
                    assigned_to TEXT,
                    deadline TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
        )

    async def ensure_index(index_sql: str) -> None:
        try:
            async with engine.begin() as conn:
                await conn.execute(sql_text(index_sql))
        except SQLAlchemyError as exc:
            logger.warning("Index creation skipped: %s", exc)

    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{PROJECT_MEMBERS_TABLE}_user "
        f"ON {PROJECT_MEMBERS_TABLE} (user_id)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{PERSONAL_EVENTS_TABLE}_owner_start "
        f"ON {PERSONAL_EVENTS_TABLE} (owner_id, start_at)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{PROJECT_EVENTS_TABLE}_project_start "
        f"ON {PROJECT_EVENTS_TABLE} (project_id, start_at)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{TASKS_TABLE}_project_status "
        f"ON {TASKS_TABLE} (project_id, status, updated_at)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{TASKS_TABLE}_deadline "
        f"ON {TASKS_TABLE} (deadline)"
    )
