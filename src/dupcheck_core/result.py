"""
dupcheck_core/result.py

Tagged result values for callers that prefer explicit outcomes to exceptions.

Error Handling Convention:
--------------------------
1. **Exceptions** are the primary interface of the checker:
   - DuplicateKeyError: a key was added twice (expected at runtime)
   - OSError: chunk files could not be created, written or read
   - ConfigValidationError / ValueError / TypeError: misuse or bad settings

2. **Result types** (this module) wrap the same outcomes at the boundary:
   ``DuplicateChecker.try_add``, ``DuplicateChecker.try_finalize``,
   ``check_keys`` and the CLI, so a pipeline step can branch on a value
   instead of catching.

3. Serialized, a Result is a dict with a "status" field:
   - {"status": "ok", "value": {...summary...}}
   - {"status": "error", "error": "duplicate_key", "message": "...", "key": "..."}
   - {"status": "error", "error": "io_error", "message": "..."}
   - {"status": "noop", "reason": "duplicate check disabled", ...}

Usage:
------
    from dupcheck_core import check_keys

    result = check_keys(row_ids)
    if result.is_err and result.error == "duplicate_key":
        print(f"Duplicate row id: {result.extras['key']}")

    output_dict = result.to_dict()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

DUPLICATE_KEY = "duplicate_key"
IO_ERROR = "io_error"


@dataclass
class Result(Generic[T]):
    """
    A result type that represents either success (Ok) or failure (Err).

    Attributes:
        status: "ok" for success, "error" for failure, "noop" for skipped
        value: The success value (only meaningful when status="ok")
        error: Error code (only meaningful when status="error")
        message: Human-readable error message
        extras: Additional context (key, path, summary counters, ...)
    """

    status: str
    value: T | None = None
    error: str | None = None
    message: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_err(self) -> bool:
        return self.status == "error"

    @property
    def is_noop(self) -> bool:
        return self.status == "noop"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for JSON output."""
        d: dict[str, Any] = {"status": self.status}
        if self.status == "ok":
            if self.value is not None:
                d["value"] = self.value
        elif self.status == "error":
            if self.error:
                d["error"] = self.error
            if self.message:
                d["message"] = self.message
        elif self.status == "noop":
            if self.message:
                d["reason"] = self.message
        d.update(self.extras)
        return d


def Ok(value: T = None, **extras: Any) -> Result[T]:  # noqa: N802 - intentional PascalCase
    """Create a successful result."""
    return Result(status="ok", value=value, extras=extras)


def Err(error: str, message: str | None = None, **extras: Any) -> Result[Any]:  # noqa: N802
    """Create a failure result."""
    return Result(status="error", error=error, message=message, extras=extras)


def Noop(reason: str, **extras: Any) -> Result[Any]:  # noqa: N802
    """Create a no-operation result (skipped)."""
    return Result(status="noop", message=reason, extras=extras)
