"""Tests for structured log output."""

import json
import logging

from orgledger.logging_config import JSONFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="orgledger.api.invitations",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Invitation %s created",
        args=("abc",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_promotes_context_fields():
    line = JSONFormatter().format(_record(user_id="u1", org_id="o1", invitation_id="i1"))
    entry = json.loads(line)
    assert entry["message"] == "Invitation abc created"
    assert entry["level"] == "INFO"
    assert (entry["user_id"], entry["org_id"], entry["invitation_id"]) == ("u1", "o1", "i1")


def test_json_formatter_ignores_unknown_extras():
    entry = json.loads(JSONFormatter().format(_record(request_id="r1", unrelated="x")))
    assert "request_id" not in entry
    assert "unrelated" not in entry
    assert "user_id" not in entry
