"""
FastAPI dependency providers.

Each request gets components built around one explicit RecordStore handle,
which wraps the lazily-initialized sessionmaker. Nothing here touches the
database until a route actually runs a query.
"""

import hmac
from typing import Optional

from fastapi import Depends, Header, HTTPException

from ..core.config import get_settings
from ..db.sqlalchemy import get_sessionmaker
from ..services.ingest import IngestPipeline
from ..services.mutations import MutationService
from ..services.record_store import RecordStore
from ..services.search_engine import SearchEngine


# PUBLIC_INTERFACE
def get_record_store() -> RecordStore:
    """Store handle bound to the configured database."""
    return RecordStore(get_sessionmaker())


# PUBLIC_INTERFACE
def get_search_engine(store: RecordStore = Depends(get_record_store)) -> SearchEngine:
    return SearchEngine(store, detail_url_prefix=get_settings().DETAIL_URL_PREFIX)


# PUBLIC_INTERFACE
def get_ingest_pipeline(store: RecordStore = Depends(get_record_store)) -> IngestPipeline:
    return IngestPipeline(store)


# PUBLIC_INTERFACE
def get_mutation_service(store: RecordStore = Depends(get_record_store)) -> MutationService:
    return MutationService(store)


# PUBLIC_INTERFACE
def require_write_access(x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")) -> None:
    """Reject write calls without the configured admin key.

    When ADMIN_API_KEY is unset the gate is open: the caller is assumed to
    have been authenticated upstream.
    """
    expected = get_settings().ADMIN_API_KEY
    if not expected:
        return
    if not x_api_key or not hmac.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")
