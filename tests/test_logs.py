from __future__ import annotations

import logging

from logs import MASK, SecretFilter, secrets_from_env


def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("switchboard", logging.INFO, __file__, 1, msg, args, None)


def test_secret_filter_masks_formatted_message() -> None:
    record = _record("calling %s with token %s", "jira", "abc123")
    assert SecretFilter(["abc123"]).filter(record)
    assert record.getMessage() == f"calling jira with token {MASK}"


def test_secret_filter_masks_longest_secret_first() -> None:
    record = _record("token=abc123xyz")
    SecretFilter(["abc", "abc123xyz"]).filter(record)
    assert record.getMessage() == f"token={MASK}"


def test_secret_filter_leaves_clean_records_alone() -> None:
    record = _record("hello %s", "world")
    SecretFilter(["abc123"]).filter(record)
    assert record.args == ("world",)


def test_secrets_from_env(monkeypatch) -> None:
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    monkeypatch.delenv("API_HASH", raising=False)
    redact = {"enabled": True, "patterns": ["BOT_TOKEN", "API_HASH"]}
    assert secrets_from_env(redact) == ["123:abc"]
    assert secrets_from_env({**redact, "enabled": False}) == []
