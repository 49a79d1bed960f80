from __future__ import annotations

import json
import logging
import sys

from gravity_bridge.logging import JsonFormatter


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="gravity_bridge.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Published %s",
        args=("text",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_renders_message_and_level() -> None:
    payload = json.loads(JsonFormatter().format(_record()))

    assert payload["message"] == "Published text"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "gravity_bridge.test"
    assert "extra" not in payload


def test_json_formatter_nests_extra_fields() -> None:
    payload = json.loads(JsonFormatter().format(_record(envelope_id="e-1", fragment_count=3)))

    assert payload["extra"] == {"envelope_id": "e-1", "fragment_count": 3}


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exception"]
