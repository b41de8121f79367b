from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response

from ..api.deps import (
    get_ingest_pipeline,
    get_mutation_service,
    get_record_store,
    require_write_access,
)
from ..core.config import get_settings
from ..core.errors import FileParseError, NotFound
from ..models.schemas import (
    BulkInsertRequest,
    BulkInsertResult,
    ClearResult,
    ColumnsResponse,
    DeleteResult,
    ErrorResponse,
    FieldEditRequest,
    PayloadIn,
    Record,
    RecordsPage,
    ReindexResult,
    SaveRequest,
    SaveResult,
    Statistics,
    UploadResult,
)
from ..services.export import build_export_table, export_filename, render_csv
from ..services.ingest import IngestPipeline
from ..services.mutations import MutationService
from ..services.record_store import RecordStore

router = APIRouter(prefix="/records", tags=["Records"])

_ERRORS = {
    404: {"model": ErrorResponse, "description": "Record not found."},
    422: {"model": ErrorResponse, "description": "Invalid payload."},
    503: {"model": ErrorResponse, "description": "Database unavailable."},
}


# ---------------------------------------------------------------------------
# Administrative reads
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=RecordsPage,
    summary="List records",
    description="Paginated list of records, newest first. per_page is clamped to 1..100.",
)
def list_records(
    page: int = Query(default=1, description="Page number (values below 1 are treated as 1)."),
    per_page: int = Query(default=20, description="Records per page (clamped to 1..100)."),
    store: RecordStore = Depends(get_record_store),
) -> RecordsPage:
    return store.list(page, per_page)


# PUBLIC_INTERFACE
@router.get(
    "/columns",
    response_model=ColumnsResponse,
    summary="Known columns",
    description="Column names found in a sample of the 100 most recent records. Not exhaustive.",
)
def list_columns(store: RecordStore = Depends(get_record_store)) -> ColumnsResponse:
    return ColumnsResponse(columns=store.column_names())


# PUBLIC_INTERFACE
@router.get("/statistics", response_model=Statistics, summary="Store statistics")
def get_statistics(store: RecordStore = Depends(get_record_store)) -> Statistics:
    return store.statistics()


# PUBLIC_INTERFACE
@router.get(
    "/export",
    summary="Export records as CSV",
    description="Every record as one CSV row; columns are the union of all payload keys.",
    responses={
        200: {"content": {"text/csv": {}}, "description": "CSV attachment."},
        404: {"model": ErrorResponse, "description": "No data to export."},
    },
    dependencies=[Depends(require_write_access)],
)
def export_records(store: RecordStore = Depends(get_record_store)) -> Response:
    columns, rows = build_export_table(store.iter_all())
    if not rows:
        raise NotFound("No data to export")
    return Response(
        content=render_csv(columns, rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


# ---------------------------------------------------------------------------
# Bulk writes
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
@router.post(
    "/bulk",
    response_model=BulkInsertResult,
    summary="Bulk insert rows",
    description=(
        "Insert rows independently. Invalid rows are reported in `errors` (0-based `row_index`) "
        "and skipped; the call still succeeds when any row was inserted."
    ),
    responses={503: _ERRORS[503]},
    dependencies=[Depends(require_write_access)],
)
def bulk_insert(
    body: BulkInsertRequest,
    store: RecordStore = Depends(get_record_store),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> BulkInsertResult:
    if body.clear_existing:
        store.clear_all()
    return pipeline.bulk_insert(body.rows)


# PUBLIC_INTERFACE
@router.post(
    "/upload",
    response_model=UploadResult,
    summary="Import a CSV or XLSX file",
    description="Parse an uploaded CSV or XLSX sheet (first row gives column names) and bulk insert its rows.",
    responses={400: {"model": ErrorResponse, "description": "File rejected."}, 503: _ERRORS[503]},
    dependencies=[Depends(require_write_access)],
)
async def upload_file(
    file: UploadFile = File(..., description="CSV or XLSX file."),
    clear_existing: bool = Form(default=False, description="Remove every stored record first."),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> UploadResult:
    max_bytes = get_settings().MAX_UPLOAD_BYTES
    # Never buffer more than the limit plus one byte.
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise FileParseError(f"File size exceeds maximum allowed size of {max_bytes} bytes")
    return pipeline.import_file(
        file.filename or "",
        content,
        clear_existing=clear_existing,
        max_bytes=max_bytes,
    )


# PUBLIC_INTERFACE
@router.delete(
    "",
    response_model=ClearResult,
    summary="Delete every record",
    description="Irreversibly removes all records. Ids are not reused afterwards.",
    dependencies=[Depends(require_write_access)],
)
def clear_records(store: RecordStore = Depends(get_record_store)) -> ClearResult:
    deleted = store.clear_all()
    return ClearResult(success=True, deleted_count=deleted, message=f"{deleted} records deleted")


# PUBLIC_INTERFACE
@router.post(
    "/reindex",
    response_model=ReindexResult,
    summary="Rebuild searchable text",
    description="Recompute searchable text for records where it is missing, or for all with `all=true`.",
    dependencies=[Depends(require_write_access)],
)
def reindex_records(
    all_records: bool = Query(default=False, alias="all", description="Rebuild every record."),
    store: RecordStore = Depends(get_record_store),
) -> ReindexResult:
    updated = store.rebuild_searchable_text(only_missing=not all_records)
    return ReindexResult(success=True, updated_count=updated)


# ---------------------------------------------------------------------------
# Single-record operations
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=SaveResult,
    summary="Save a record",
    description="Create a record, or update one when `record_id` > 0. Empty fields are dropped.",
    responses=_ERRORS,
    dependencies=[Depends(require_write_access)],
)
def save_record(body: SaveRequest, service: MutationService = Depends(get_mutation_service)) -> SaveResult:
    return service.save(body.record_id, body.payload)


# PUBLIC_INTERFACE
@router.get(
    "/{record_id}",
    response_model=Record,
    summary="Get a record",
    responses={404: _ERRORS[404], 503: _ERRORS[503]},
)
def get_record(record_id: int, store: RecordStore = Depends(get_record_store)) -> Record:
    return store.get(record_id)


# PUBLIC_INTERFACE
@router.put(
    "/{record_id}",
    response_model=SaveResult,
    summary="Replace a record's payload",
    responses=_ERRORS,
    dependencies=[Depends(require_write_access)],
)
def replace_record(
    record_id: int,
    body: PayloadIn,
    service: MutationService = Depends(get_mutation_service),
) -> SaveResult:
    if record_id <= 0:
        raise NotFound("Invalid record ID", record_id=record_id)
    return service.save(record_id, body.payload)


# PUBLIC_INTERFACE
@router.patch(
    "/{record_id}/fields/{column}",
    response_model=Record,
    summary="Edit one field",
    description="Set one column of a record; an empty value removes the column.",
    responses=_ERRORS,
    dependencies=[Depends(require_write_access)],
)
def edit_field(
    record_id: int,
    column: str,
    body: FieldEditRequest,
    service: MutationService = Depends(get_mutation_service),
) -> Record:
    return service.set_field(record_id, column, body.value)


# PUBLIC_INTERFACE
@router.delete(
    "/{record_id}",
    response_model=DeleteResult,
    summary="Delete a record",
    responses={404: _ERRORS[404], 503: _ERRORS[503]},
    dependencies=[Depends(require_write_access)],
)
def delete_record(record_id: int, service: MutationService = Depends(get_mutation_service)) -> DeleteResult:
    if not service.delete(record_id):
        raise NotFound(f"Record {record_id} not found", record_id=record_id)
    return DeleteResult(success=True, message="Record deleted successfully")
