"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; api/main.py maps each kind to a status code and a
``{"success": false, "error": ..., "message": ...}`` body. Raw SQLAlchemy
exceptions never cross the service boundary: they are wrapped in
StorageUnavailable.
"""

from typing import Optional


# PUBLIC_INTERFACE
class RecordSearchError(Exception):
    """Base class for every error the record services raise."""

    kind = "record_search_error"
    status_code = 500

    def __init__(self, message: str, *, record_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.record_id = record_id


# PUBLIC_INTERFACE
class InvalidPayload(RecordSearchError):
    """Payload is not a mapping or has no non-empty entries."""

    kind = "invalid_payload"
    status_code = 422


# PUBLIC_INTERFACE
class NotFound(RecordSearchError):
    """Operation referenced a record id that does not exist."""

    kind = "not_found"
    status_code = 404


# PUBLIC_INTERFACE
class StorageUnavailable(RecordSearchError):
    """The backing database could not be reached or rejected the statement."""

    kind = "storage_unavailable"
    status_code = 503


# PUBLIC_INTERFACE
class InvalidSearchTerm(RecordSearchError):
    """Search term failed input validation (e.g. too long)."""

    kind = "search_error"
    status_code = 400


# PUBLIC_INTERFACE
class FileParseError(RecordSearchError):
    """Uploaded tabular file could not be turned into rows."""

    kind = "file_parse_error"
    status_code = 400
