import json
import logging
import sys

from record_search.core.logger import _JsonLineFormatter, get_logger


def _record(**extra):
    record = logging.LogRecord(
        name="record_search.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=7,
        msg="Bulk insert %s",
        args=("finished",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_one_json_object_with_extras():
    payload = json.loads(_JsonLineFormatter().format(_record(inserted_count=3, tier="fulltext")))
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "record_search.test"
    assert payload["message"] == "Bulk insert finished"
    assert payload["inserted_count"] == 3
    assert payload["tier"] == "fulltext"


def test_formatter_stringifies_unserializable_values():
    payload = json.loads(_JsonLineFormatter().format(_record(path=object())))
    assert payload["path"].startswith("<object object")


def test_formatter_includes_exception_text():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()
    payload = json.loads(_JsonLineFormatter().format(record))
    assert "RuntimeError: boom" in payload["exc_info"]


def test_get_logger_configures_root_once():
    get_logger("a")
    get_logger("b")
    handlers = [h for h in logging.getLogger().handlers if isinstance(h.formatter, _JsonLineFormatter)]
    assert len(handlers) == 1
