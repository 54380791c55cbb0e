from __future__ import annotations

from dupcheck_core.result import Err, Noop, Ok


def test_ok_serializes_value_and_extras() -> None:
    result = Ok({"keys_added": 3}, source="rows.txt")

    assert result.is_ok and not result.is_err and not result.is_noop
    assert result.to_dict() == {
        "status": "ok",
        "value": {"keys_added": 3},
        "source": "rows.txt",
    }


def test_ok_without_value() -> None:
    assert Ok().to_dict() == {"status": "ok"}


def test_err_serializes_code_and_message() -> None:
    result = Err("duplicate_key", "Duplicate key detected: 'x'", key="x")

    assert result.is_err
    assert result.to_dict() == {
        "status": "error",
        "error": "duplicate_key",
        "message": "Duplicate key detected: 'x'",
        "key": "x",
    }


def test_noop_uses_reason() -> None:
    result = Noop("duplicate check disabled", bypassed=True)

    assert result.is_noop
    assert result.to_dict() == {
        "status": "noop",
        "reason": "duplicate check disabled",
        "bypassed": True,
    }
