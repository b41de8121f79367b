"""
Upload parsing for tabular files.

Turns uploaded bytes into rows (header name -> cell value):
- CSV: the delimiter is picked by counting candidates in the first line; rows
  whose width differs from the header are skipped.
- XLSX: the active sheet is read values-only (formulas give their cached
  result); rows are cut or padded to the header width.
Header names and cells are trimmed in both formats.
"""

from __future__ import annotations

import csv
import io
import zipfile
from datetime import date, datetime, time
from typing import Any, Dict, List, Sequence, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from ..core.errors import FileParseError
from .payloads import sanitize_key

ALLOWED_EXTENSIONS = ("csv", "xlsx")
CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
INVALID_TYPE_MESSAGE = "Invalid file type. Only CSV and XLSX files are allowed"


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def detect_delimiter(first_line: str) -> str:
    """Most frequent candidate delimiter in first_line; ',' on a tie or none."""
    counts = {d: first_line.count(d) for d in CANDIDATE_DELIMITERS}
    best = max(CANDIDATE_DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] > 0 else ","


def _validate_header(header: Sequence[str]) -> None:
    if not any(header):
        raise FileParseError("Header row is empty")
    if any(not name for name in header):
        raise FileParseError("Header contains an empty column name")
    duplicates = sorted({name for name in header if header.count(name) > 1})
    if duplicates:
        raise FileParseError(f"Duplicate column headers found: {', '.join(duplicates)}")


# PUBLIC_INTERFACE
def parse_csv(content: Union[bytes, str]) -> List[Dict[str, str]]:
    """Parse CSV content into a list of rows keyed by the header row.

    Raises:
        FileParseError: undecodable content, missing header, duplicate or
            empty header names, or no data rows.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise FileParseError("File is not valid UTF-8 text") from exc
    elif content.startswith("\ufeff"):
        content = content[1:]

    if not content.strip():
        raise FileParseError("No data found in the file")

    first_line = content.splitlines()[0]
    reader = csv.reader(io.StringIO(content, newline=""), delimiter=detect_delimiter(first_line))

    try:
        header = [sanitize_key(cell) for cell in next(reader)]
    except StopIteration as exc:
        raise FileParseError("Could not read CSV header") from exc
    except csv.Error as exc:
        raise FileParseError(f"Malformed CSV: {exc}") from exc
    _validate_header(header)

    rows: List[Dict[str, str]] = []
    try:
        for cells in reader:
            if len(cells) != len(header):
                continue
            rows.append({name: cell.strip() for name, cell in zip(header, cells)})
    except csv.Error as exc:
        raise FileParseError(f"Malformed CSV: {exc}") from exc

    if not rows:
        raise FileParseError("No data found in the file")
    return rows


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


# PUBLIC_INTERFACE
def parse_xlsx(content: bytes) -> List[Dict[str, str]]:
    """Parse the active sheet of an .xlsx workbook into rows keyed by its first row.

    Trailing blank header cells are ignored and completely empty rows are
    skipped. Raises FileParseError for unreadable workbooks, bad headers, or a
    sheet without at least a header row and one data row.
    """
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise FileParseError(f"Error reading Excel file: {exc}") from exc

    try:
        sheet = workbook.active
        if sheet is None:
            raise FileParseError("Excel file has no worksheet")
        values = sheet.iter_rows(values_only=True)
        first = next(values, None)
        if first is None:
            raise FileParseError("Excel file must have at least a header row and one data row")

        header = [sanitize_key(_cell_text(cell)) for cell in first]
        while header and not header[-1]:
            header.pop()
        _validate_header(header)

        rows: List[Dict[str, str]] = []
        for cells in values:
            if all(cell is None for cell in cells):
                continue
            padded = list(cells[: len(header)]) + [None] * (len(header) - len(cells))
            rows.append({name: _cell_text(cell) for name, cell in zip(header, padded)})
    finally:
        workbook.close()

    if not rows:
        raise FileParseError("Excel file must have at least a header row and one data row")
    return rows


# PUBLIC_INTERFACE
def parse_upload(filename: str, content: bytes) -> List[Dict[str, str]]:
    """Dispatch to the parser for filename's extension."""
    extension = file_extension(filename)
    if extension == "csv":
        return parse_csv(content)
    if extension == "xlsx":
        return parse_xlsx(content)
    raise FileParseError(INVALID_TYPE_MESSAGE)
