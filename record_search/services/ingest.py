"""
Bulk ingestion of parsed tabular rows.

Rows are inserted one by one, each in its own transaction. A bad row is
reported and skipped; only an unreachable database aborts the batch. There is
no all-or-nothing mode: callers that need one must snapshot and restore
externally. Clearing existing data is an explicit, separate step.
"""

from __future__ import annotations

from typing import Any, List, Sequence

from ..core.errors import FileParseError, InvalidPayload
from ..core.logger import get_logger
from ..models.schemas import (
    BulkInsertResult,
    ColumnMapping,
    ImportValidation,
    RowError,
    UploadResult,
)
from .file_parser import ALLOWED_EXTENSIONS, INVALID_TYPE_MESSAGE, file_extension, parse_upload
from .record_store import RecordStore

logger = get_logger(__name__)

LARGE_DATASET_ROWS = 10_000
PREVIEW_ROWS = 5


def _status(inserted: int, errors: int) -> str:
    if inserted == 0:
        return "failed"
    return "partial" if errors else "completed"


# PUBLIC_INTERFACE
class IngestPipeline:
    """Bulk writer in front of a RecordStore."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def bulk_insert(self, rows: Sequence[Any]) -> BulkInsertResult:
        """Insert every row independently and report per-row failures.

        Raises StorageUnavailable if the database cannot be reached; rows
        inserted before that point stay inserted.
        """
        if not rows:
            return BulkInsertResult(
                success=False,
                status="failed",
                message="No records to insert",
                total_rows=0,
                inserted_count=0,
            )

        inserted = 0
        errors: List[RowError] = []
        for index, row in enumerate(rows):
            try:
                self.store.insert(row)
            except InvalidPayload as exc:
                errors.append(RowError(row_index=index, reason=exc.kind, message=exc.message))
                continue
            inserted += 1

        message = f"{inserted} records inserted successfully"
        if errors:
            message += f". {len(errors)} errors occurred"
        logger.info(
            "Bulk insert finished",
            extra={"total_rows": len(rows), "inserted_count": inserted, "error_count": len(errors)},
        )
        return BulkInsertResult(
            success=inserted > 0,
            status=_status(inserted, len(errors)),
            message=message,
            total_rows=len(rows),
            inserted_count=inserted,
            errors=errors,
        )

    @staticmethod
    def validate_rows(rows: Sequence[Any]) -> ImportValidation:
        """Pre-import report: empty rows and oversized datasets become warnings."""
        if not rows:
            return ImportValidation(valid=False, errors=["No data to validate"], total_rows=0, valid_rows=0)

        empty_rows = sum(
            1 for row in rows if not isinstance(row, dict) or not any(str(v).strip() for v in row.values())
        )
        warnings: List[str] = []
        if empty_rows:
            warnings.append(f"{empty_rows} empty rows found and will be skipped")
        if len(rows) > LARGE_DATASET_ROWS:
            warnings.append("Large dataset detected. Import may take some time.")
        return ImportValidation(
            valid=True,
            warnings=warnings,
            total_rows=len(rows),
            valid_rows=len(rows) - empty_rows,
        )

    def import_file(
        self,
        filename: str,
        content: bytes,
        clear_existing: bool = False,
        max_bytes: int = 5 * 1024 * 1024,
    ) -> UploadResult:
        """Parse an uploaded CSV or XLSX file and bulk insert its rows.

        Raises FileParseError for rejected or unreadable files; nothing is
        cleared or inserted in that case.
        """
        if file_extension(filename) not in ALLOWED_EXTENSIONS:
            raise FileParseError(INVALID_TYPE_MESSAGE)
        if len(content) > max_bytes:
            raise FileParseError(f"File size exceeds maximum allowed size of {max_bytes} bytes")

        rows = parse_upload(filename, content)
        validation = self.validate_rows(rows)

        if clear_existing:
            self.store.clear_all()
        result = self.bulk_insert(rows)

        logger.info("File imported", extra={"upload_filename": filename, "inserted_count": result.inserted_count})
        return UploadResult(
            **result.model_dump(),
            filename=filename,
            validation=validation,
            column_mapping=[ColumnMapping(original=name, display=name) for name in rows[0]],
            preview_data=rows[:PREVIEW_ROWS],
        )
