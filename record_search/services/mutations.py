"""
Single-record writes: save (insert or update), inline field edit and delete.

Input is sanitized here before it reaches the store; the store then
recomputes searchable_text on every write, so neither path can skip it.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..core.errors import InvalidPayload, NotFound
from ..core.logger import get_logger
from ..models.schemas import Record, SaveResult
from .payloads import sanitize_entries, sanitize_key, sanitize_value
from .record_store import RecordStore

logger = get_logger(__name__)


# PUBLIC_INTERFACE
class MutationService:
    """Point writes against a RecordStore."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def save(self, record_id: Optional[int], payload: Mapping[str, Any]) -> SaveResult:
        """Update record_id when it is > 0, otherwise insert a new record.

        Keys and values are trimmed and stripped of control characters;
        entries left empty are dropped. Raises InvalidPayload when nothing
        survives and NotFound when updating a missing record.
        """
        if not isinstance(payload, Mapping):
            raise InvalidPayload("Payload must be a mapping of column names to values")
        cleaned = sanitize_entries(payload.items())
        if not cleaned:
            raise InvalidPayload("No valid data provided")

        if record_id is not None and record_id > 0:
            if not self.store.update(record_id, cleaned):
                raise NotFound(f"Record {record_id} not found", record_id=record_id)
            logger.info("Record updated", extra={"record_id": record_id})
            return SaveResult(success=True, record_id=record_id, message="Record updated successfully")

        new_id = self.store.insert(cleaned)
        logger.info("Record created", extra={"record_id": new_id})
        return SaveResult(success=True, record_id=new_id, message="Record created successfully")

    def set_field(self, record_id: int, column: str, value: Any) -> Record:
        """Replace one column of an existing record and return the result.

        An empty value removes the column. The write goes through the same
        update path as save, so searchable_text is recomputed.
        """
        key = sanitize_key(column)
        if not key:
            raise InvalidPayload("Column name must not be empty")
        current = self.store.get(record_id)

        payload = dict(current.payload)
        clean_value = sanitize_value(value)
        if clean_value:
            payload[key] = clean_value
        else:
            payload.pop(key, None)

        if not self.store.update(record_id, payload):
            raise NotFound(f"Record {record_id} not found", record_id=record_id)
        return self.store.get(record_id)

    def delete(self, record_id: int) -> bool:
        """Delete a record. Ids <= 0 are rejected; missing ids return False."""
        if record_id <= 0:
            raise NotFound("Invalid record ID", record_id=record_id)
        return self.store.delete(record_id)
