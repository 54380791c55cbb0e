"""Checker configuration.

Values are resolved in this order, later sources winning:

1. dataclass defaults
2. a YAML file passed to :func:`load_config`
3. ``DUPCHECK_*`` environment variables
4. explicit arguments (``DuplicateChecker(chunk_size=...)`` or CLI flags)

``DUPCHECK_DISABLE_CHECK`` is the process-wide switch for callers that
already guarantee uniqueness upstream.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dupcheck_core.config_validator import read_yaml, validate_config
from dupcheck_core.exceptions import ConfigValidationError
from dupcheck_core.stability import stable_api
from dupcheck_core.utils.io import COMPRESSION_SUFFIXES

DEFAULT_CHUNK_SIZE = 100_000
DEFAULT_MAX_STREAMS = 50

ENV_DISABLE_CHECK = "DUPCHECK_DISABLE_CHECK"
ENV_CHUNK_SIZE = "DUPCHECK_CHUNK_SIZE"
ENV_MAX_STREAMS = "DUPCHECK_MAX_STREAMS"
ENV_TMPDIR = "DUPCHECK_TMPDIR"
ENV_COMPRESSION = "DUPCHECK_COMPRESSION"

SCHEMA_NAME = "checker_config"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _invalid(field_name: str, message: str, value: Any) -> ConfigValidationError:
    return ConfigValidationError(
        f"Invalid {field_name}: {message}",
        context={"field": field_name, "value": repr(value)},
    )


@stable_api
@dataclasses.dataclass(frozen=True)
class CheckerConfig:
    """Settings for one :class:`~dupcheck_core.checker.DuplicateChecker`.

    Attributes:
        chunk_size: Keys held in memory before the buffer is spilled to disk.
        max_streams: Chunk files opened at once while merging.
        enabled: ``False`` turns ``add`` and ``finalize`` into no-ops.
        temp_dir: Directory for chunk files; the system default when None.
        compression: Chunk file codec ('none', 'gzip', 'zstd').
        exit_sweep: Delete leftover chunk files at interpreter exit.
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_streams: int = DEFAULT_MAX_STREAMS
    enabled: bool = True
    temp_dir: Path | None = None
    compression: str = "none"
    exit_sweep: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int):
            raise _invalid("chunk_size", "must be an integer", self.chunk_size)
        if self.chunk_size < 1:
            raise _invalid("chunk_size", "must be at least 1", self.chunk_size)
        if isinstance(self.max_streams, bool) or not isinstance(self.max_streams, int):
            raise _invalid("max_streams", "must be an integer", self.max_streams)
        if self.max_streams < 2:
            raise _invalid("max_streams", "must be at least 2", self.max_streams)
        if self.compression not in COMPRESSION_SUFFIXES:
            raise _invalid(
                "compression",
                f"must be one of {', '.join(sorted(COMPRESSION_SUFFIXES))}",
                self.compression,
            )
        if self.temp_dir is not None and not isinstance(self.temp_dir, Path):
            object.__setattr__(self, "temp_dir", Path(self.temp_dir))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: Path | None = None) -> CheckerConfig:
        """Build a config from a parsed YAML/JSON mapping, validating it first."""
        validate_config(data, SCHEMA_NAME, config_path=source)
        fields = {f.name for f in dataclasses.fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in fields})

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        *,
        base: CheckerConfig | None = None,
    ) -> CheckerConfig:
        """Apply ``DUPCHECK_*`` environment overrides on top of ``base``."""
        env = os.environ if env is None else env
        config = base if base is not None else cls()
        overrides: dict[str, Any] = {}
        disable = env.get(ENV_DISABLE_CHECK)
        if disable is not None:
            overrides["enabled"] = not _parse_bool(ENV_DISABLE_CHECK, disable)
        chunk_size = env.get(ENV_CHUNK_SIZE)
        if chunk_size:
            overrides["chunk_size"] = _parse_int(ENV_CHUNK_SIZE, chunk_size)
        max_streams = env.get(ENV_MAX_STREAMS)
        if max_streams:
            overrides["max_streams"] = _parse_int(ENV_MAX_STREAMS, max_streams)
        tmpdir = env.get(ENV_TMPDIR)
        if tmpdir:
            overrides["temp_dir"] = Path(tmpdir).expanduser()
        compression = env.get(ENV_COMPRESSION)
        if compression:
            overrides["compression"] = compression.strip().lower()
        return dataclasses.replace(config, **overrides) if overrides else config

    def with_overrides(self, **overrides: Any) -> CheckerConfig:
        """Return a copy with every non-None override applied."""
        applied = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **applied) if applied else self

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["temp_dir"] = str(self.temp_dir) if self.temp_dir is not None else None
        return data


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise _invalid(name, "expected one of 1/0, true/false, yes/no, on/off", raw)


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise _invalid(name, "must be an integer", raw) from None


@stable_api
def load_config(
    path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> CheckerConfig:
    """Resolve a config from an optional YAML file plus the environment."""
    base = CheckerConfig()
    if path is not None:
        data = read_yaml(path)
        base = CheckerConfig.from_mapping(data, source=path)
    return CheckerConfig.from_env(env, base=base)
