"""Shared utility functions for dupcheck."""

from dupcheck_core.utils.io import COMPRESSION_SUFFIXES, open_text, read_jsonl, read_lines
from dupcheck_core.utils.logging import log_event

__all__ = [
    "COMPRESSION_SUFFIXES",
    "open_text",
    "read_lines",
    "read_jsonl",
    "log_event",
]
