from __future__ import annotations

from dashstate._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "status": "ok",
        "details": {"connection_string": "postgres://u:p@db/app", "host": "db"},
        "apiKey": "ABCDEF",
        "password": "pw",
        "components": [{"name": "auth", "Authorization": "Bearer x"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["status"] == "ok"
    assert redacted["apiKey"] == "<redacted>"
    assert redacted["password"] == "<redacted>"
    assert redacted["details"]["connection_string"] == "<redacted>"
    assert redacted["details"]["host"] == "db"
    assert redacted["components"][0]["Authorization"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_caps_sequences() -> None:
    redacted = redact_for_log(list(range(25)), max_items=3)

    assert redacted == [0, 1, 2, "<+22 more>"]
