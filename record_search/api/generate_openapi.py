"""
Write the service's OpenAPI schema to disk.

Usage:
  python -m record_search.api.generate_openapi [output_path]

The default output is interfaces/openapi.json relative to the working directory.
"""

import sys
from pathlib import Path

import orjson

from ..core.logger import get_logger
from .main import app

logger = get_logger(__name__)

DEFAULT_OUTPUT = "interfaces/openapi.json"


# PUBLIC_INTERFACE
def generate_openapi_file(output_path: str = DEFAULT_OUTPUT) -> str:
    """Render app.openapi() to output_path and return the absolute path written."""
    schema = app.openapi()
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(orjson.dumps(schema, option=orjson.OPT_INDENT_2))
    written = str(out.resolve())
    logger.info("OpenAPI schema written", extra={"output_path": written, "paths": len(schema.get("paths", {}))})
    return written


if __name__ == "__main__":
    generate_openapi_file(*sys.argv[1:2])
