"""
Flat tabular export of every record.

Columns are 'ID' followed by the union of payload keys in first-seen order;
cells missing from a record are blank.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.schemas import Record

ID_COLUMN = "ID"


# PUBLIC_INTERFACE
def build_export_table(records: Iterable[Record]) -> Tuple[List[str], List[List[str]]]:
    """Return (columns, rows) for the given records."""
    materialized = list(records)
    seen: Dict[str, None] = {}
    for record in materialized:
        for key in record.payload:
            seen.setdefault(key, None)
    columns = list(seen)
    rows = [[str(record.id)] + [record.payload.get(column, "") for column in columns] for record in materialized]
    return [ID_COLUMN] + columns, rows


# PUBLIC_INTERFACE
def render_csv(columns: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(columns)
    writer.writerows(rows)
    return buffer.getvalue()


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"record-search-export-{now.strftime('%Y-%m-%d-%H-%M-%S')}.csv"
