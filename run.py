"""
Uvicorn launcher for the FastAPI app.

Reads port from Settings (env/.env) and starts the server on 0.0.0.0.
Binds to port 3001 by default; usable in environments that prefer
`python run.py` over a shell uvicorn command.
"""

import os

import uvicorn  # type: ignore

from record_search.core.config import get_settings
from record_search.core.logger import get_logger

logger = get_logger(__name__)


# PUBLIC_INTERFACE
def main() -> None:
    """Start the FastAPI application with uvicorn."""
    port = int(get_settings().PORT or 3001)
    logger.info("Starting uvicorn server", extra={"port": port})
    uvicorn.run(
        "record_search.api.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("UVICORN_RELOAD", "").lower() in ("1", "true", "yes"),
        log_level="info",
    )


if __name__ == "__main__":
    main()
