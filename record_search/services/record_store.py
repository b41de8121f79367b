"""
Record store: the canonical table of records.

Every write goes through this class, and it is the only place that computes
searchable_text, so the full-text index never drifts from the payload. Each
single-record operation runs in its own session and transaction; there is no
multi-record transaction guarantee. SQLAlchemy errors are translated into
StorageUnavailable and never retried.
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.errors import NotFound, StorageUnavailable
from ..core.logger import get_logger
from ..models.schemas import Record, RecordsPage, Statistics
from ..models.sql_models import RecordRow, utcnow
from .payloads import build_searchable_text, normalize_payload

logger = get_logger(__name__)

MAX_PER_PAGE = 100
COLUMN_SAMPLE_SIZE = 100
EXPORT_CHUNK_SIZE = 500


def row_to_record(row: RecordRow) -> Record:
    return Record(
        id=int(row.id),
        payload=dict(row.data or {}),
        searchable_text=row.searchable_text or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# PUBLIC_INTERFACE
class RecordStore:
    """Persistent store of schema-less records.

    Args:
        session_factory: SQLAlchemy sessionmaker bound to the database holding
            the 'records' table (see db.sqlalchemy.init_db).
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @property
    def dialect_name(self) -> str:
        """Name of the bound SQLAlchemy dialect, e.g. 'sqlite' or 'postgresql'."""
        bind = self._session_factory.kw.get("bind")
        return bind.dialect.name if bind is not None else "unknown"

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session; storage errors surface as StorageUnavailable."""
        session: Session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageUnavailable(f"Storage unavailable: {exc.__class__.__name__}") from exc
        finally:
            session.close()

    # -- writes -----------------------------------------------------------

    def insert(self, payload: Mapping[str, Any]) -> int:
        """Persist a new record and return its id. Raises InvalidPayload."""
        data = normalize_payload(payload)
        now = utcnow()
        row = RecordRow(
            data=data,
            searchable_text=build_searchable_text(data),
            created_at=now,
            updated_at=now,
        )
        with self.session() as session:
            session.add(row)
            session.flush()
            record_id = int(row.id)
            session.commit()
        logger.debug("Record inserted", extra={"record_id": record_id, "columns": len(data)})
        return record_id

    def update(self, record_id: int, payload: Mapping[str, Any]) -> bool:
        """Replace the payload of record_id. False if no row was changed."""
        data = normalize_payload(payload)
        stmt = (
            update(RecordRow)
            .where(RecordRow.id == record_id)
            .values(data=data, searchable_text=build_searchable_text(data), updated_at=utcnow())
        )
        with self.session() as session:
            result = session.execute(stmt)
            session.commit()
        return bool(result.rowcount)

    def delete(self, record_id: int) -> bool:
        """Delete record_id. Deleting a missing id returns False."""
        with self.session() as session:
            result = session.execute(delete(RecordRow).where(RecordRow.id == record_id))
            session.commit()
        deleted = bool(result.rowcount)
        if deleted:
            logger.info("Record deleted", extra={"record_id": record_id})
        return deleted

    def clear_all(self) -> int:
        """Remove every record. Ids keep counting up afterwards."""
        with self.session() as session:
            result = session.execute(delete(RecordRow))
            session.commit()
        deleted = int(result.rowcount or 0)
        logger.warning("All records cleared", extra={"deleted_count": deleted})
        return deleted

    def rebuild_searchable_text(self, only_missing: bool = True) -> int:
        """Recompute searchable_text from the stored payload.

        With only_missing, only rows whose searchable_text is empty or NULL are
        touched (rows written before the column existed, or by other tools).
        Returns the number of rows updated.
        """
        stmt = select(RecordRow).order_by(RecordRow.id)
        if only_missing:
            stmt = stmt.where(or_(RecordRow.searchable_text.is_(None), RecordRow.searchable_text == ""))
        updated = 0
        with self.session() as session:
            for row in session.execute(stmt).scalars():
                text = build_searchable_text(row.data or {})
                if text != (row.searchable_text or ""):
                    row.searchable_text = text
                    updated += 1
            session.commit()
        logger.info("Searchable text rebuilt", extra={"updated_count": updated, "only_missing": only_missing})
        return updated

    # -- reads ------------------------------------------------------------

    def get(self, record_id: int) -> Record:
        """Return the record or raise NotFound."""
        with self.session() as session:
            row = session.get(RecordRow, record_id)
            if row is None:
                raise NotFound(f"Record {record_id} not found", record_id=record_id)
            return row_to_record(row)

    def exists(self, record_id: int) -> bool:
        with self.session() as session:
            return session.execute(select(RecordRow.id).where(RecordRow.id == record_id)).first() is not None

    def count(self) -> int:
        with self.session() as session:
            return int(session.execute(select(func.count(RecordRow.id))).scalar_one())

    def list(self, page: int = 1, per_page: int = 20) -> RecordsPage:
        """Page through records newest first. page and per_page are clamped."""
        page = max(1, int(page))
        per_page = max(1, min(MAX_PER_PAGE, int(per_page)))
        offset = (page - 1) * per_page
        with self.session() as session:
            total = int(session.execute(select(func.count(RecordRow.id))).scalar_one())
            rows = session.execute(
                select(RecordRow).order_by(RecordRow.id.desc()).offset(offset).limit(per_page)
            ).scalars().all()
            records = [row_to_record(row) for row in rows]
        return RecordsPage(
            records=records,
            total=total,
            page=page,
            per_page=per_page,
            total_pages=math.ceil(total / per_page),
        )

    def iter_all(self, chunk_size: int = EXPORT_CHUNK_SIZE) -> Iterator[Record]:
        """Yield every record newest first, reading chunk_size rows at a time."""
        last_id = None
        while True:
            stmt = select(RecordRow).order_by(RecordRow.id.desc()).limit(chunk_size)
            if last_id is not None:
                stmt = stmt.where(RecordRow.id < last_id)
            with self.session() as session:
                chunk = [row_to_record(row) for row in session.execute(stmt).scalars()]
            if not chunk:
                return
            yield from chunk
            last_id = chunk[-1].id

    def column_names(self) -> List[str]:
        """Union of payload keys over the most recent COLUMN_SAMPLE_SIZE records.

        Not exhaustive: columns that only appear in older records are missed.
        """
        stmt = select(RecordRow.data).order_by(RecordRow.id.desc()).limit(COLUMN_SAMPLE_SIZE)
        seen: Dict[str, None] = {}
        with self.session() as session:
            for data in session.execute(stmt).scalars():
                if isinstance(data, dict):
                    for key in data:
                        seen.setdefault(key, None)
        return list(seen)

    def statistics(self) -> Statistics:
        columns = self.column_names()
        return Statistics(total_records=self.count(), total_columns=len(columns), columns=columns)
