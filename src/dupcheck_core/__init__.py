"""Bounded-memory duplicate detection for streams of string keys."""

from dupcheck_core.checker import CheckSummary, DuplicateChecker, check_keys
from dupcheck_core.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_STREAMS,
    CheckerConfig,
    load_config,
)
from dupcheck_core.exceptions import (
    ChunkFormatError,
    ConfigValidationError,
    DupcheckError,
    DuplicateKeyError,
    KeyDecodeError,
    YamlParseError,
)
from dupcheck_core.keycodec import decode_key, encode_key
from dupcheck_core.registry import TEMP_FILES, TempFileRegistry
from dupcheck_core.result import Err, Noop, Ok, Result

__version__ = "0.1.0"

__all__ = [
    "DuplicateChecker",
    "CheckSummary",
    "check_keys",
    "CheckerConfig",
    "load_config",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_MAX_STREAMS",
    "DupcheckError",
    "DuplicateKeyError",
    "ChunkFormatError",
    "KeyDecodeError",
    "ConfigValidationError",
    "YamlParseError",
    "encode_key",
    "decode_key",
    "TempFileRegistry",
    "TEMP_FILES",
    "Result",
    "Ok",
    "Err",
    "Noop",
]
