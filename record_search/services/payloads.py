"""
Pure helpers that shape record payloads.

Only the record store calls build_searchable_text; everything else that needs
a payload in canonical form goes through normalize_payload.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Tuple

from ..core.errors import InvalidPayload

SUMMARY_FIELDS = 3
SUMMARY_SEPARATOR = " | "

# C0/C1 control characters; values keep \t and \n, keys keep nothing.
_VALUE_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")
_KEY_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def _scalar_to_text(column: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise InvalidPayload(f"Value for column '{column}' must be a scalar, got {type(value).__name__}")


def normalize_payload(payload: Any) -> Dict[str, str]:
    """Return payload as an ordered str -> str mapping, or raise InvalidPayload.

    Values are converted to their string form but otherwise left untouched, so
    a payload of plain strings round-trips unchanged. The payload must carry at
    least one entry whose key and value are both non-empty.
    """
    if not isinstance(payload, Mapping):
        raise InvalidPayload("Payload must be a mapping of column names to values")
    normalized: Dict[str, str] = {}
    for key, value in payload.items():
        column = key if isinstance(key, str) else str(key)
        normalized[column] = _scalar_to_text(column, value)
    if not any(k.strip() and v.strip() for k, v in normalized.items()):
        raise InvalidPayload("Payload must contain at least one non-empty value")
    return normalized


def build_searchable_text(payload: Mapping[str, Any]) -> str:
    """Join the trimmed, non-empty string values of payload in key order."""
    parts = [value.strip() for value in payload.values() if isinstance(value, str) and value.strip()]
    return " ".join(parts)


def build_summary(payload: Mapping[str, Any]) -> str:
    """First few non-empty entries rendered as 'key: value' and joined by ' | '."""
    parts = []
    for key, value in payload.items():
        if len(parts) >= SUMMARY_FIELDS:
            break
        if value is None or value == "":
            continue
        parts.append(f"{key}: {value}")
    return SUMMARY_SEPARATOR.join(parts)


def sanitize_key(key: Any) -> str:
    return _KEY_CONTROL_RE.sub("", str(key)).strip()


def sanitize_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        value = "true" if value else "false"
    return _VALUE_CONTROL_RE.sub("", str(value)).strip()


def sanitize_entries(entries: Iterable[Tuple[Any, Any]]) -> Dict[str, str]:
    """Sanitize key/value pairs, dropping any whose key or value ends up empty."""
    cleaned: Dict[str, str] = {}
    for key, value in entries:
        clean_key = sanitize_key(key)
        clean_value = sanitize_value(value)
        if clean_key and clean_value:
            cleaned[clean_key] = clean_value
    return cleaned
