from fastapi import APIRouter, HTTPException
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import get_settings
from ..core.logger import get_logger
from ..models.schemas import DatabaseHealth, HealthResponse

router = APIRouter(prefix="/health", tags=["Health"])

_logger = get_logger(__name__)

_FULLTEXT_DIALECTS = ("sqlite", "postgresql")


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=HealthResponse,
    summary="Service liveness",
    description="Returns 200 while the process is serving requests. Never opens a database connection.",
)
def get_health() -> HealthResponse:
    """Liveness probe; safe to call while the database is down."""
    _logger.debug("Liveness probe", extra={"env": get_settings().APP_ENV})
    return HealthResponse(status="ok")


# PUBLIC_INTERFACE
@router.get(
    "/healthz",
    response_model=HealthResponse,
    summary="Service liveness (alias)",
    description="Same as /health, under the path most platforms probe by default.",
)
def get_healthz() -> HealthResponse:
    return get_health()


# PUBLIC_INTERFACE
@router.get(
    "/db",
    response_model=DatabaseHealth,
    summary="Database readiness",
    description=(
        "Runs SELECT 1 and checks that the records table exists. "
        "Responds 503 with the redacted connection URL when the database cannot be reached."
    ),
    responses={503: {"description": "Database unavailable"}},
)
def get_database_health() -> DatabaseHealth:
    """Readiness probe for the configured database.

    The engine is resolved at request time so that importing the app never
    connects anywhere.
    """
    from ..db.sqlalchemy import get_effective_db_params, get_engine
    from ..models.sql_models import RecordRow

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            has_table = inspect(conn).has_table(RecordRow.__tablename__)
    except (SQLAlchemyError, ValueError) as exc:
        url = get_effective_db_params().get("url_redacted")
        _logger.error("Database readiness check failed", exc_info=exc, extra={"effective_url": url})
        raise HTTPException(status_code=503, detail=f"database_unavailable: {exc.__class__.__name__} | effective={url}")

    dialect = engine.dialect.name
    return DatabaseHealth(
        status="ok" if has_table else "schema_missing",
        dialect=dialect,
        records_table=has_table,
        fulltext_index=has_table and dialect in _FULLTEXT_DIALECTS,
    )
