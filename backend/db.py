from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from backend.settings import get_settings

logger = logging.getLogger(__name__)

ASYNC_DRIVERS = {
    "sqlite://": "sqlite+aiosqlite://",
    "postgres://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
    "postgresql+psycopg2://": "postgresql+asyncpg://",
}
# asyncpg rejects libpq-only query options.
DROPPED_QUERY_KEYS = {"sslmode", "channel_binding", "ssl"}
LOCAL_HOSTS = {"", "localhost", "127.0.0.1"}

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker | None = None


def _swap_driver(url: str) -> str:
    for prefix, replacement in ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix) :]
    return url


def _normalize_database_url(database_url: str) -> str:
    url = _swap_driver(str(database_url or "").strip())
    if not url or url.startswith("sqlite"):
        return url
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    query = parse_qsl(parsed.query, keep_blank_values=True)
    wants_ssl = any(key == "sslmode" for key, _ in query)
    kept = [(key, value) for key, value in query if key not in DROPPED_QUERY_KEYS]
    if wants_ssl:
        kept.append(("ssl", "true"))
    return urlunparse(parsed._replace(query=urlencode(kept)))


def _engine_options(db_url: str) -> dict:
    if db_url.startswith("sqlite"):
        # aiosqlite connections are bound to the loop that opened them.
        return {"poolclass": NullPool, "future": True}
    options: dict = {"pool_pre_ping": True, "future": True, "pool_size": 20, "max_overflow": 10}
    try:
        host = urlparse(db_url).hostname or ""
    except ValueError:
        logger.debug("Failed to parse database URL for SSL hint.")
        host = ""
    if host not in LOCAL_HOSTS:
        options["connect_args"] = {"ssl": True}
    return options


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        db_url = _normalize_database_url(get_settings().database_url)
        _engine = create_async_engine(db_url, **_engine_options(db_url))
        logger.info("Database engine created for %s", db_url.split("://", 1)[0])
    return _engine


def get_sessionmaker() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


def reset_engine() -> None:
    global _engine, _session_factory
    _engine = None
    _session_factory = None
