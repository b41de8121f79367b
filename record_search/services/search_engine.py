"""
Tiered record search.

A search walks an ordered list of tiers. Each tier's attempt() returns None
when it does not apply (or its index is unusable) and a list of matches
otherwise; the first non-empty list wins. The column-scoped tier is exclusive:
when a column filter is given its answer is final, even if empty.

Default order:
1. ColumnScopedTier    substring on one payload field (column filter only)
2. FullTextTier        natural-language match on the full-text index
3. SearchableTextTier  substring on searchable_text
4. RawPayloadTier      substring on the serialized payload

Every tier orders by id descending and stops at the result cap in SQL.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from sqlalchemy import String, Text, cast, column, func, literal, select, text
from sqlalchemy.sql.elements import ColumnElement

from ..core.errors import InvalidSearchTerm, StorageUnavailable
from ..core.logger import get_logger
from ..models.schemas import SearchHit
from ..models.sql_models import FTS_TABLE, PG_TSVECTOR_EXPR, RecordRow
from .payloads import build_summary
from .record_store import RecordStore

logger = get_logger(__name__)

MIN_TERM_LENGTH = 2
MAX_TERM_LENGTH = 255
MAX_RESULTS = 50
DEFAULT_DETAIL_URL_PREFIX = "/database-record"

_WORD_RE = re.compile(r"\w+")

Match = Tuple[int, Dict[str, str]]


# PUBLIC_INTERFACE
@runtime_checkable
class SearchTier(Protocol):
    """One strategy in the fallback chain."""

    name: str
    exclusive: bool

    def attempt(self, term: str, column_filter: Optional[str]) -> Optional[List[Match]]:
        """Return matches newest first, or None when the tier does not apply."""
        ...


class _SqlTier:
    """Shared plumbing: run one filtered, capped, newest-first query."""

    name = "sql"
    exclusive = False

    def __init__(self, store: RecordStore, limit: int = MAX_RESULTS) -> None:
        self.store = store
        self.limit = limit

    def _fetch(self, condition: ColumnElement) -> List[Match]:
        stmt = (
            select(RecordRow.id, RecordRow.data)
            .where(condition)
            .order_by(RecordRow.id.desc())
            .limit(self.limit)
        )
        with self.store.session() as session:
            return [(int(row.id), dict(row.data or {})) for row in session.execute(stmt)]


# PUBLIC_INTERFACE
class ColumnScopedTier(_SqlTier):
    """Substring match against a single payload field.

    The SQL prefilter narrows candidates; the decoded payload is then checked
    so that records lacking the column never slip through. On SQLite the key is
    matched through json_each() as a bound value, so column names containing
    quotes or dots need no JSON-path escaping.
    """

    name = "column"
    exclusive = True

    def _condition(self, term: str, column_filter: str) -> ColumnElement:
        if self.store.dialect_name == "sqlite":
            fields = func.json_each(RecordRow.data).table_valued(
                column("key", String), column("value", String)
            ).alias("field")
            return (
                select(literal(1))
                .select_from(fields)
                .where(fields.c.key == column_filter, fields.c.value.icontains(term, autoescape=True))
                .exists()
            )
        return RecordRow.data[column_filter].as_string().icontains(term, autoescape=True)

    def attempt(self, term: str, column_filter: Optional[str]) -> Optional[List[Match]]:
        if not column_filter:
            return None
        candidates = self._fetch(self._condition(term, column_filter))
        needle = term.lower()
        return [
            (record_id, payload)
            for record_id, payload in candidates
            if column_filter in payload and needle in str(payload[column_filter]).lower()
        ]


# PUBLIC_INTERFACE
class FullTextTier(_SqlTier):
    """Natural-language match on the dialect's full-text index.

    The term is split into words that are OR-combined. Hits are returned as
    the index reports them. A failing query marks the index unusable and the
    engine moves on to the substring tiers.
    """

    name = "fulltext"

    def _condition(self, words: Sequence[str]) -> Optional[ColumnElement]:
        dialect = self.store.dialect_name
        if dialect == "sqlite":
            query = " OR ".join(f'"{word}"' for word in words)
            return text(
                f"records.id IN (SELECT rowid FROM {FTS_TABLE} WHERE {FTS_TABLE} MATCH :fts_query)"
            ).bindparams(fts_query=query)
        if dialect == "postgresql":
            query = " | ".join(words)
            return text(f"{PG_TSVECTOR_EXPR} @@ to_tsquery('simple', :fts_query)").bindparams(fts_query=query)
        return None

    def attempt(self, term: str, column_filter: Optional[str]) -> Optional[List[Match]]:
        if column_filter:
            return None
        words = _WORD_RE.findall(term)
        if not words:
            return None
        condition = self._condition(words)
        if condition is None:
            return None
        try:
            return self._fetch(condition)
        except StorageUnavailable as exc:
            logger.warning(
                "Full-text index unusable, falling back to substring search",
                extra={"dialect": self.store.dialect_name, "error": exc.message},
            )
            return None


# PUBLIC_INTERFACE
class SearchableTextTier(_SqlTier):
    """Case-insensitive substring on the derived searchable_text."""

    name = "searchable_text"

    def attempt(self, term: str, column_filter: Optional[str]) -> Optional[List[Match]]:
        if column_filter:
            return None
        return self._fetch(RecordRow.searchable_text.icontains(term, autoescape=True))


# PUBLIC_INTERFACE
class RawPayloadTier(_SqlTier):
    """Case-insensitive substring on the serialized payload (keys included)."""

    name = "raw_payload"

    def attempt(self, term: str, column_filter: Optional[str]) -> Optional[List[Match]]:
        if column_filter:
            return None
        return self._fetch(cast(RecordRow.data, Text).icontains(term, autoescape=True))


# PUBLIC_INTERFACE
def default_tiers(store: RecordStore, limit: int = MAX_RESULTS) -> List[SearchTier]:
    """The standard fallback chain, in the order it is tried."""
    return [
        ColumnScopedTier(store, limit),
        FullTextTier(store, limit),
        SearchableTextTier(store, limit),
        RawPayloadTier(store, limit),
    ]


# PUBLIC_INTERFACE
class SearchEngine:
    """Read-only search over a RecordStore.

    Args:
        store: the record store to query.
        tiers: fallback chain; defaults to default_tiers(store).
        detail_url_prefix: path prefix of the per-record detail page.
    """

    def __init__(
        self,
        store: RecordStore,
        tiers: Optional[Sequence[SearchTier]] = None,
        detail_url_prefix: str = DEFAULT_DETAIL_URL_PREFIX,
    ) -> None:
        self.store = store
        self.tiers = list(tiers) if tiers is not None else default_tiers(store)
        self.detail_url_prefix = detail_url_prefix.rstrip("/")

    def detail_url(self, record_id: int) -> str:
        return f"{self.detail_url_prefix}/{record_id}/"

    def _hit(self, record_id: int, payload: Dict[str, str]) -> SearchHit:
        return SearchHit(
            id=record_id,
            payload=payload,
            summary=build_summary(payload),
            detail_url=self.detail_url(record_id),
        )

    def search(self, term: Optional[str], column_filter: Optional[str] = None) -> List[SearchHit]:
        """Search records for term, optionally within one column.

        Terms shorter than MIN_TERM_LENGTH return [] without querying storage.
        Raises InvalidSearchTerm for over-long terms and StorageUnavailable
        when the database cannot be queried.
        """
        term = (term or "").strip()
        column = (column_filter or "").strip() or None
        if len(term) < MIN_TERM_LENGTH:
            return []
        if len(term) > MAX_TERM_LENGTH:
            raise InvalidSearchTerm(f"Search term is too long (max {MAX_TERM_LENGTH} characters)")

        for tier in self.tiers:
            matches = tier.attempt(term, column)
            if matches is None:
                continue
            if matches or tier.exclusive:
                logger.debug(
                    "Search resolved",
                    extra={"tier": tier.name, "count": len(matches), "column": column, "term_length": len(term)},
                )
                return [self._hit(record_id, payload) for record_id, payload in matches[:MAX_RESULTS]]

        logger.debug("Search found nothing", extra={"column": column, "term_length": len(term)})
        return []
