"""
Pydantic schemas for the record services and the API: the Record domain type,
pagination, search hits, write results and bulk-import reports.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ConfigDict


# ---------------------------------------------------------------------------
# Common/Utility Schemas
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class HealthResponse(BaseModel):
    """Basic health response schema."""
    status: str = Field(..., description="Health status message, e.g., 'ok'")


# PUBLIC_INTERFACE
class DatabaseHealth(HealthResponse):
    """Database connectivity report."""
    dialect: str = Field(..., description="SQLAlchemy dialect in use, e.g. 'sqlite'.")
    records_table: bool = Field(..., description="Whether the records table exists.")
    fulltext_index: bool = Field(..., description="Whether the dialect has a full-text index for search.")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Body returned for every handled service error."""
    success: bool = Field(default=False, description="Always false for errors.")
    error: str = Field(..., description="Error kind, e.g. 'not_found' or 'search_error'.")
    message: str = Field(..., description="Human-readable reason.")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class Record(BaseModel):
    """A stored record: schema-less payload plus derived search text."""
    id: int = Field(..., description="Record identifier, never reused.")
    payload: Dict[str, str] = Field(..., description="Column name to value mapping, in stored order.")
    searchable_text: str = Field(default="", description="Whitespace-joined payload values.")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp.")
    updated_at: Optional[datetime] = Field(default=None, description="Last mutation timestamp.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 1,
                "payload": {"name": "Acme Corp", "city": "Reno"},
                "searchable_text": "Acme Corp Reno",
                "created_at": "2025-01-01T00:00:00Z",
                "updated_at": "2025-01-01T00:00:00Z",
            }
        },
    )


# PUBLIC_INTERFACE
class RecordsPage(BaseModel):
    """One page of records, newest first."""
    records: List[Record] = Field(..., description="Records in the page.")
    total: int = Field(..., ge=0, description="Total number of stored records.")
    page: int = Field(..., ge=1, description="Page number used (clamped).")
    per_page: int = Field(..., ge=1, le=100, description="Page size used (clamped).")
    total_pages: int = Field(..., ge=0, description="ceil(total / per_page).")


# PUBLIC_INTERFACE
class ColumnsResponse(BaseModel):
    """Column names discovered by sampling stored records."""
    columns: List[str] = Field(..., description="Union of payload keys across the sample.")


# PUBLIC_INTERFACE
class Statistics(BaseModel):
    """Administrative summary of the store."""
    total_records: int = Field(..., ge=0)
    total_columns: int = Field(..., ge=0)
    columns: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class SearchHit(BaseModel):
    """A single search result."""
    id: int = Field(..., description="Record identifier.")
    payload: Dict[str, str] = Field(..., description="Record payload.")
    summary: str = Field(..., description="First few 'key: value' entries joined by ' | '.")
    detail_url: str = Field(..., description="Stable link to the record detail page.")


# PUBLIC_INTERFACE
class SearchResponse(BaseModel):
    """Search results for one term."""
    term: str = Field(..., description="Term as received.")
    column: Optional[str] = Field(default=None, description="Column filter applied, if any.")
    count: int = Field(..., ge=0, description="Number of results returned.")
    results: List[SearchHit] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class SaveRequest(BaseModel):
    """Insert (record_id <= 0 or omitted) or update (record_id > 0) a record."""
    record_id: int = Field(default=0, description="Existing record id, or 0 to create.")
    payload: Dict[str, Any] = Field(..., description="Column name to value mapping.")

    model_config = ConfigDict(
        json_schema_extra={"example": {"record_id": 0, "payload": {"name": "Acme Corp", "city": "Reno"}}}
    )


# PUBLIC_INTERFACE
class PayloadIn(BaseModel):
    """Full payload replacement for an existing record."""
    payload: Dict[str, Any] = Field(..., description="Column name to value mapping.")


# PUBLIC_INTERFACE
class FieldEditRequest(BaseModel):
    """Inline edit of one column of one record."""
    value: Optional[str] = Field(default=None, description="New value; empty removes the column.")


# PUBLIC_INTERFACE
class SaveResult(BaseModel):
    """Outcome of a save."""
    success: bool
    record_id: int = Field(..., description="Id of the created or updated record.")
    message: str


# PUBLIC_INTERFACE
class DeleteResult(BaseModel):
    """Outcome of a delete."""
    success: bool
    message: str


# PUBLIC_INTERFACE
class ClearResult(BaseModel):
    """Outcome of clearing every record."""
    success: bool
    deleted_count: int = Field(..., ge=0)
    message: str


# PUBLIC_INTERFACE
class ReindexResult(BaseModel):
    """Outcome of recomputing searchable text."""
    success: bool
    updated_count: int = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class RowError(BaseModel):
    """A rejected row in a bulk insert."""
    row_index: int = Field(..., ge=0, description="0-based position of the row in the batch.")
    reason: str = Field(..., description="Error kind, e.g. 'invalid_payload'.")
    message: str = Field(default="", description="Human-readable detail.")


# PUBLIC_INTERFACE
class BulkInsertRequest(BaseModel):
    """Rows to insert; each row is a column name to value mapping."""
    rows: List[Any] = Field(..., description="Rows to insert. Non-mapping rows are reported as errors.")
    clear_existing: bool = Field(default=False, description="Remove every stored record first.")


# PUBLIC_INTERFACE
class BulkInsertResult(BaseModel):
    """Per-batch insert report. Rows are inserted independently."""
    success: bool = Field(..., description="True when at least one row was inserted.")
    status: Literal["completed", "partial", "failed"]
    message: str
    total_rows: int = Field(..., ge=0)
    inserted_count: int = Field(..., ge=0)
    errors: List[RowError] = Field(default_factory=list)


# PUBLIC_INTERFACE
class ImportValidation(BaseModel):
    """Pre-import checks over parsed rows."""
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    total_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)


# PUBLIC_INTERFACE
class ColumnMapping(BaseModel):
    """How an uploaded header maps onto a stored column."""
    original: str
    display: str
    type: str = "text"


# PUBLIC_INTERFACE
class UploadResult(BulkInsertResult):
    """Bulk insert report for an uploaded file."""
    filename: str
    validation: ImportValidation
    column_mapping: List[ColumnMapping] = Field(default_factory=list)
    preview_data: List[Dict[str, str]] = Field(default_factory=list)
