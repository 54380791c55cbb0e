from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass
class DupcheckError(Exception):
    message: str
    code: str = "dupcheck_error"
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, message: str, *, code: str | None = None, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.context = dict(context or {})

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "error_code": self.code,
            "error_message": self.message,
            "error_context": self.context,
        }


class DuplicateKeyError(DupcheckError):
    """A key was added more than once.

    ``key`` is always the literal key as passed to ``add``, never its
    on-disk escaped form.
    """

    code = "duplicate_key"

    def __init__(self, key: str, *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(f"Duplicate key detected: {key!r}", context=context)
        self.key = key


class ChunkFormatError(DupcheckError):
    code = "chunk_format_error"


class KeyDecodeError(DupcheckError, ValueError):
    code = "key_decode_error"


class ConfigValidationError(DupcheckError):
    code = "config_validation_error"


class YamlParseError(DupcheckError):
    code = "yaml_parse_error"
