"""
SQLAlchemy ORM models.

Defines the single 'records' table:
- id: integer primary key, never reused (AUTOINCREMENT on SQLite, sequence elsewhere)
- data: JSON payload, stored as text in the caller's key order
- searchable_text: whitespace-joined payload values, recomputed on every write
- created_at / updated_at: timezone-aware timestamps

The full-text index over searchable_text is created per dialect right after the
table itself:
- sqlite: FTS5 external-content table 'records_fts' kept in sync by triggers
- postgresql: GIN index over to_tsvector('simple', searchable_text)
Other dialects get no index and the full-text search tier reports itself unusable.
"""

from datetime import datetime, timezone

from sqlalchemy import DDL, JSON, BigInteger, Column, DateTime, Integer, Text, event

from ..db.sqlalchemy import Base

FTS_TABLE = "records_fts"
PG_TSVECTOR_EXPR = "to_tsvector('simple', coalesce(records.searchable_text, ''))"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordRow(Base):
    """ORM model for one stored record."""
    __tablename__ = "records"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    data = Column(JSON, nullable=False)
    searchable_text = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<RecordRow id={self.id}>"


_SQLITE_FTS_DDL = (
    f"CREATE VIRTUAL TABLE IF NOT EXISTS {FTS_TABLE} "
    "USING fts5(searchable_text, content='records', content_rowid='id')",
    f"CREATE TRIGGER IF NOT EXISTS records_fts_ai AFTER INSERT ON records BEGIN "
    f"INSERT INTO {FTS_TABLE}(rowid, searchable_text) VALUES (new.id, new.searchable_text); END",
    f"CREATE TRIGGER IF NOT EXISTS records_fts_ad AFTER DELETE ON records BEGIN "
    f"INSERT INTO {FTS_TABLE}({FTS_TABLE}, rowid, searchable_text) "
    "VALUES ('delete', old.id, old.searchable_text); END",
    f"CREATE TRIGGER IF NOT EXISTS records_fts_au AFTER UPDATE ON records BEGIN "
    f"INSERT INTO {FTS_TABLE}({FTS_TABLE}, rowid, searchable_text) "
    "VALUES ('delete', old.id, old.searchable_text); "
    f"INSERT INTO {FTS_TABLE}(rowid, searchable_text) VALUES (new.id, new.searchable_text); END",
)

for _stmt in _SQLITE_FTS_DDL:
    event.listen(RecordRow.__table__, "after_create", DDL(_stmt).execute_if(dialect="sqlite"))

event.listen(
    RecordRow.__table__,
    "after_drop",
    DDL(f"DROP TABLE IF EXISTS {FTS_TABLE}").execute_if(dialect="sqlite"),
)

event.listen(
    RecordRow.__table__,
    "after_create",
    DDL(
        "CREATE INDEX IF NOT EXISTS ix_records_searchable_tsv ON records "
        "USING gin (to_tsvector('simple', coalesce(searchable_text, '')))"
    ).execute_if(dialect="postgresql"),
)
