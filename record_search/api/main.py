from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import get_settings
from ..core.errors import RecordSearchError, StorageUnavailable
from ..core.logger import get_logger
from ..models.schemas import ErrorResponse
from ..routers.health import router as health_router
from ..routers.records import router as records_router
from ..routers.search import router as search_router

# Important: avoid creating DB connections at import time.
# The engine/session are created lazily by the first route that needs them.

settings = get_settings()
logger = get_logger(__name__)

# Initialize FastAPI application with metadata and orjson for performance
app = FastAPI(
    title=settings.APP_NAME,
    description="Search and storage service for schema-less tabular records.",
    version="1.0.0",
    default_response_class=ORJSONResponse,
    openapi_tags=[
        {"name": "Health", "description": "Service health and diagnostics"},
        {"name": "Search", "description": "Record search"},
        {"name": "Records", "description": "Record storage, import and administration"},
    ],
)

# CORS configuration driven by settings
origins = settings.cors_origins_list()
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("FastAPI app initialized", extra={"app_name": settings.APP_NAME, "env": settings.APP_ENV})


@app.exception_handler(RecordSearchError)
async def record_search_error_handler(request: Request, exc: RecordSearchError) -> ORJSONResponse:
    """Render service errors as {success: false, error, message} with the error's status code."""
    if isinstance(exc, StorageUnavailable):
        logger.error(
            "Storage unavailable",
            exc_info=exc.__cause__ or exc,
            extra={"path": request.url.path},
        )
    else:
        logger.info("Request rejected", extra={"path": request.url.path, "error": exc.kind, "reason": exc.message})
    body = ErrorResponse(error=exc.kind, message=exc.message)
    return ORJSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.on_event("startup")
async def startup_event():
    """FastAPI startup hook.

    Creates the records table and its full-text index when AUTO_CREATE_SCHEMA is
    enabled. A failure is logged rather than raised so that /health keeps
    answering; /health/db reports the actual connectivity problem.
    """
    if not get_settings().AUTO_CREATE_SCHEMA:
        logger.info("Startup complete (schema creation disabled).")
        return
    from ..db.sqlalchemy import init_db

    try:
        init_db()
        logger.info("Startup complete (schema ensured).")
    except (SQLAlchemyError, ValueError) as exc:
        logger.error("Schema creation failed at startup", exc_info=exc)


@app.on_event("shutdown")
async def shutdown_event():
    """FastAPI shutdown hook: release pooled connections."""
    from ..db.sqlalchemy import dispose_engine

    dispose_engine()
    logger.info("Shutdown complete.")


# Root health remains available (back-compat)
@app.get("/", summary="Health Check (root)", tags=["Health"])
def health_check_root():
    """Root-level health check.

    Returns:
        A simple JSON message indicating the service is healthy.
    """
    return {"message": "Healthy"}


app.include_router(health_router)
app.include_router(search_router)
app.include_router(records_router)


if __name__ == "__main__":
    # Allow running as: python -m record_search.api.main
    import uvicorn  # type: ignore

    uvicorn.run("record_search.api.main:app", host="0.0.0.0", port=settings.PORT, log_level="info")
