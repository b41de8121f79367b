import csv
import io
from datetime import datetime, timezone

from record_search.models.schemas import Record
from record_search.services.export import build_export_table, export_filename, render_csv


def _record(record_id, payload):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Record(id=record_id, payload=payload, searchable_text="", created_at=now, updated_at=now)


def test_build_export_table_unions_columns_in_first_seen_order():
    columns, rows = build_export_table(
        [
            _record(2, {"name": "Beta LLC", "city": "Provo"}),
            _record(1, {"email": "a@acme.test", "name": "Acme Corp"}),
        ]
    )
    assert columns == ["ID", "name", "city", "email"]
    assert rows == [
        ["2", "Beta LLC", "Provo", ""],
        ["1", "Acme Corp", "", "a@acme.test"],
    ]


def test_build_export_table_accepts_a_generator():
    columns, rows = build_export_table(_record(i, {"n": str(i)}) for i in (3, 2))
    assert columns == ["ID", "n"]
    assert len(rows) == 2


def test_build_export_table_empty():
    assert build_export_table([]) == (["ID"], [])


def test_render_csv_quotes_where_needed():
    text = render_csv(["ID", "notes"], [["1", "a, b"], ["2", 'say "hi"']])
    assert list(csv.reader(io.StringIO(text))) == [["ID", "notes"], ["1", "a, b"], ["2", 'say "hi"']]


def test_export_filename_is_timestamped():
    moment = datetime(2024, 3, 9, 14, 5, 7, tzinfo=timezone.utc)
    assert export_filename(moment) == "record-search-export-2024-03-09-14-05-07.csv"


def test_export_of_stored_records(store, sample_records):
    acme, beta = sample_records
    columns, rows = build_export_table(store.iter_all())
    assert columns == ["ID", "name", "city"]
    assert [row[0] for row in rows] == [str(beta), str(acme)]
