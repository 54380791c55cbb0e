from __future__ import annotations

import json
import logging
import sys

import pytest

from dupcheck_core import logging_config
from dupcheck_core.logging_config import (
    PACKAGE_LOGGER,
    JsonFormatter,
    LogContext,
    TextFormatter,
    configure_logging,
    get_log_context,
)
from dupcheck_core.utils.logging import log_event


def _record(msg: str, *args: object, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="dupcheck_core.checker",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


def test_text_formatter_layout() -> None:
    output = TextFormatter().format(_record("Spilled %d key(s)", 5))

    assert output.endswith(" | INFO | dupcheck_core.checker | Spilled 5 key(s)")


def test_text_formatter_appends_context() -> None:
    with LogContext(inputs=["keys.txt"], format="lines"):
        output = TextFormatter().format(_record("duplicate check passed"))

    assert output.endswith('duplicate check passed [inputs=["keys.txt"] format="lines"]')


def test_json_formatter_includes_context() -> None:
    with LogContext(inputs=["keys.txt"]):
        payload = json.loads(JsonFormatter().format(_record("hello")))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "dupcheck_core.checker"
    assert payload["message"] == "hello"
    assert payload["context"] == {"inputs": ["keys.txt"]}
    assert payload["timestamp"].endswith("Z")


def test_json_formatter_includes_exception() -> None:
    try:
        raise OSError("disk full")
    except OSError:
        record = _record("merge failed", exc_info=sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))

    assert "OSError: disk full" in payload["exc_info"]
    assert "context" not in payload


def test_log_context_nests_and_restores() -> None:
    assert get_log_context() == {}
    with LogContext(run="a"):
        with LogContext(step="merge"):
            assert get_log_context() == {"run": "a", "step": "merge"}
        assert get_log_context() == {"run": "a"}
    assert get_log_context() == {}


def test_configure_logging_sets_package_level(monkeypatch: pytest.MonkeyPatch) -> None:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    monkeypatch.setattr(logging_config, "_CONFIGURED", False)
    previous = package_logger.level
    root_level = logging.getLogger().level

    try:
        configure_logging(level="debug")

        assert package_logger.level == logging.DEBUG
        assert logging.getLogger().level == root_level
    finally:
        package_logger.setLevel(previous)


def test_log_event_emits_json_fields(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("dupcheck_core.test")

    with caplog.at_level(logging.INFO, logger="dupcheck_core.test"):
        log_event(logger, "duplicate check passed", keys_added=4, bypassed=False)

    message = caplog.records[-1].getMessage()
    assert message.startswith("duplicate check passed")
    fields = json.loads(message[message.index("{"):])
    assert fields["keys_added"] == 4
    assert fields["bypassed"] is False
