"""
SQLAlchemy database initialization.

Creates (lazily):
- engine: SQLAlchemy engine using DATABASE_URL
- SessionLocal: session factory for per-request DB sessions
- Base: Declarative base for ORM models

Design:
- Avoid creating the engine at import time to prevent uvicorn import failures
  when environment variables are not yet present. Instead, provide getters
  that initialize on first use.
- Payload JSON is (de)serialized with orjson so the stored text keeps the
  caller's key order and non-ASCII characters verbatim; the raw-payload search
  tier matches against that text.
"""

from typing import Optional, Dict, Any
import os

import orjson
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import NullPool

from ..core.config import get_settings
from ..core.logger import get_logger

logger = get_logger(__name__)

# Global ORM base
Base = declarative_base()

# Module-level cached engine and session factory (lazy init)
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _json_serializer(obj: Any) -> str:
    return orjson.dumps(obj).decode("utf-8")


def _ensure_psycopg2_scheme(url: str) -> str:
    """
    Ensure the SQLAlchemy URL uses the psycopg2 driver explicitly.
    """
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url


def _get_db_url() -> str:
    """
    Resolve the database URL from settings.

    Raises ValueError if it is empty to make failures explicit at first DB access (not import).
    """
    url = (get_settings().DATABASE_URL or "").strip()
    if not url:
        raise ValueError("Database configuration not found. Set DATABASE_URL.")
    return _ensure_psycopg2_scheme(url)


def _effective_db_params(url: str) -> Dict[str, Any]:
    """
    Parse the connection URL into loggable parts, with the password masked.

    Returns a dict with url_redacted, dialect, host, port and database.
    """
    try:
        parsed = make_url(url)
    except ArgumentError:
        return {"url_redacted": "<unparseable>", "dialect": "unknown", "host": None, "port": None, "database": None}
    database = parsed.database
    if parsed.get_backend_name() == "sqlite":
        database = database or ":memory:"
    return {
        "url_redacted": parsed.render_as_string(hide_password=True),
        "dialect": parsed.get_backend_name(),
        "host": parsed.host,
        "port": parsed.port,
        "database": database,
    }


# PUBLIC_INTERFACE
def get_effective_db_params() -> Dict[str, Any]:
    """Return redacted parameters of the active engine (or of DATABASE_URL before first use)."""
    if _engine is not None:
        return _effective_db_params(_engine.url.render_as_string(hide_password=False))
    try:
        return _effective_db_params(_get_db_url())
    except ValueError as exc:
        return {"url_redacted": "<unconfigured>", "dialect": "unknown", "error": str(exc)}


def _unicode_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


# PUBLIC_INTERFACE
def register_sqlite_functions(dbapi_conn: Any) -> None:
    """Replace SQLite's ASCII-only lower() with Python's Unicode-aware str.lower.

    Every case-insensitive match (icontains) compiles to lower(...) LIKE lower(...),
    so this is what makes 'über' find 'Über' on SQLite.
    """
    dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)


def _make_engine(url: str) -> Engine:
    settings = get_settings()
    engine_kwargs: Dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": bool(settings.DB_ECHO),
        "json_serializer": _json_serializer,
        "json_deserializer": orjson.loads,
    }
    # Allow disabling pooling in ephemeral environments to avoid stale connections.
    if os.getenv("DISABLE_DB_POOL", "").lower() in ("1", "true", "yes"):
        engine_kwargs["poolclass"] = NullPool
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_engine(url, **engine_kwargs)

    if is_sqlite:
        file_backed = ":memory:" not in url and url.rstrip("/") != "sqlite:"

        @event.listens_for(engine, "connect")
        def _sqlite_setup(dbapi_conn, _record):
            register_sqlite_functions(dbapi_conn)
            if file_backed:
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.close()

    return engine


def _ensure_engine_initialized() -> None:
    """
    Initialize the SQLAlchemy engine and session factory if not already done.
    This function is idempotent and safe to call multiple times.
    """
    global _engine, _SessionLocal
    if _engine is not None and _SessionLocal is not None:
        return
    db_url = _get_db_url()
    _engine = _make_engine(db_url)
    _SessionLocal = sessionmaker(bind=_engine, autocommit=False, autoflush=False, class_=Session)

    logger.info(
        "SQLAlchemy engine initialized.",
        extra={"echo": bool(get_settings().DB_ECHO), **_effective_db_params(db_url)},
    )


# PUBLIC_INTERFACE
def reconfigure(url: str) -> None:
    """Replace the engine and session factory at runtime (used by tests and scripts)."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    db_url = _ensure_psycopg2_scheme(url)
    _engine = _make_engine(db_url)
    _SessionLocal = sessionmaker(bind=_engine, autocommit=False, autoflush=False, class_=Session)
    logger.info("SQLAlchemy engine reconfigured.", extra=_effective_db_params(db_url))


# PUBLIC_INTERFACE
def init_db() -> None:
    """Create the records table and its full-text index if they don't exist."""
    # Import models so Base.metadata knows about them
    from ..models import sql_models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


# PUBLIC_INTERFACE
def dispose_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


# PUBLIC_INTERFACE
def get_engine() -> Engine:
    """Return the lazily-initialized SQLAlchemy Engine instance."""
    _ensure_engine_initialized()
    assert _engine is not None  # for type checkers
    return _engine


# PUBLIC_INTERFACE
def get_sessionmaker() -> sessionmaker:
    """Return the lazily-initialized SQLAlchemy sessionmaker."""
    _ensure_engine_initialized()
    assert _SessionLocal is not None  # for type checkers
    return _SessionLocal

