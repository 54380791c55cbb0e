from __future__ import annotations

import gzip
import io
import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import zstandard as zstd

logger = logging.getLogger("dupcheck_core.utils")

COMPRESSION_SUFFIXES = {
    "none": "",
    "gzip": ".gz",
    "zstd": ".zst",
}


def open_text(path: Path, mode: str, *, errors: str = "strict") -> io.TextIOBase:
    """Open a text stream, transparently handling ``.gz`` and ``.zst`` files.

    Lines are always terminated by a bare ``\\n`` on both read and write.
    """
    if path.suffix == ".gz":
        return gzip.open(path, mode, encoding="utf-8", errors=errors, newline="\n")
    if path.suffix == ".zst":
        try:
            if "r" in mode:
                stream = zstd.ZstdDecompressor().stream_reader(path.open("rb"))
                return io.TextIOWrapper(stream, encoding="utf-8", errors=errors, newline="\n")
            stream = zstd.ZstdCompressor().stream_writer(path.open("wb"))
            return io.TextIOWrapper(stream, encoding="utf-8", errors=errors, newline="\n")
        except zstd.ZstdError as e:
            raise OSError(f"Failed to open zstd file {path}: {e}") from e
    return open(path, mode, encoding="utf-8", errors=errors, newline="\n")


def read_lines(path: Path) -> Iterator[str]:
    """Yield each line of a text file (supports .gz/.zst) without its terminator."""
    with open_text(path, "rt") as f:
        for line in f:
            if line.endswith("\n"):
                line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
            yield line


def read_jsonl(path: Path) -> Iterator[dict[str, Any]]:
    """Read JSONL file (supports .gz/.zst) and yield records.

    Blank lines are ignored; lines that do not parse are logged and skipped.
    """
    with open_text(path, "rt") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                logger.warning("Skipping unparsable JSONL line %s:%d: %s", path, lineno, exc)
                continue
            if isinstance(record, dict):
                yield record
            else:
                logger.warning("Skipping non-object JSONL line %s:%d", path, lineno)
