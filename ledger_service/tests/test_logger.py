from __future__ import annotations

import json
import logging
import sys

from common.logger import JsonFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="ledger_service.app.services.ledger_service",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="award rejected: %s",
        args=("already_claimed",),
        exc_info=None,
    )
    record.created = 1772355600.25  # 2026-03-01T09:00:00.250Z
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_line_has_utc_timestamp_and_extras(monkeypatch) -> None:
    monkeypatch.delenv("SERVICE_NAME", raising=False)

    line = JsonFormatter().format(
        _record(account_id="A", action_key="news_read:1", reason=None)
    )
    data = json.loads(line)

    assert data["datetime"] == "2026-03-01T09:00:00.250+00:00"
    assert data["level"] == "INFO"
    assert data["message"] == "award rejected: already_claimed"
    assert data["account_id"] == "A"
    assert data["action_key"] == "news_read:1"
    assert "reason" not in data
    assert "service_name" not in data


def test_exception_is_rendered(monkeypatch) -> None:
    monkeypatch.setenv("SERVICE_NAME", "ledger-service")
    try:
        raise RuntimeError("broker down")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    data = json.loads(JsonFormatter().format(record))

    assert data["service_name"] == "ledger-service"
    assert "RuntimeError: broker down" in data["exc_info"]
