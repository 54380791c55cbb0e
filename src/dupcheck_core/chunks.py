"""Sorted chunk files on disk.

A chunk file is a decimal entry count on the first line followed by exactly
that many escaped keys, one per line, sorted ascending and unique::

    3
    alpha
    beta
    gam%0Ama

Files are created through :class:`ChunkWriter`, which registers them in a
:class:`~dupcheck_core.registry.TempFileRegistry` before the first byte is
written and removes them again if writing fails.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dupcheck_core.exceptions import ChunkFormatError
from dupcheck_core.registry import TEMP_FILES, TempFileRegistry
from dupcheck_core.stability import stable_api
from dupcheck_core.utils.io import COMPRESSION_SUFFIXES, open_text

logger = logging.getLogger("dupcheck_core.chunks")

CHUNK_PREFIX = "dupcheck_"
CHUNK_SUFFIX = ".txt"

# Keys are arbitrary Python strings, lone surrogates included.
_TEXT_ERRORS = "surrogatepass"


@stable_api
@dataclass(frozen=True)
class ChunkFile:
    """Handle to one immutable chunk file."""

    path: Path
    count: int


def chunk_suffix(compression: str) -> str:
    try:
        return CHUNK_SUFFIX + COMPRESSION_SUFFIXES[compression]
    except KeyError:
        raise ValueError(f"Unknown chunk compression: {compression!r}") from None


def _create_temp_path(temp_dir: Path | None, compression: str) -> Path:
    fd, name = tempfile.mkstemp(
        prefix=CHUNK_PREFIX,
        suffix=chunk_suffix(compression),
        dir=str(temp_dir) if temp_dir is not None else None,
    )
    os.close(fd)
    return Path(name)


@stable_api
class ChunkWriter:
    """Write one chunk file whose entry count is known up front.

    Usage::

        with ChunkWriter(len(keys), temp_dir=tmp) as writer:
            for key in keys:
                writer.write(key)
        chunk = writer.chunk

    Keys must already be escaped and arrive in ascending order. Leaving the
    block with an exception deletes the partial file.
    """

    def __init__(
        self,
        count: int,
        *,
        temp_dir: Path | None = None,
        compression: str = "none",
        registry: TempFileRegistry = TEMP_FILES,
    ) -> None:
        if count < 0:
            raise ValueError("count must be non-negative")
        self.count = count
        self.temp_dir = temp_dir
        self.compression = compression
        self.registry = registry
        self.path: Path | None = None
        self.written = 0
        self._handle: io.TextIOBase | None = None
        self._chunk: ChunkFile | None = None

    @property
    def chunk(self) -> ChunkFile:
        if self._chunk is None:
            raise RuntimeError("Chunk file has not been completed")
        return self._chunk

    def __enter__(self) -> ChunkWriter:
        path = _create_temp_path(self.temp_dir, self.compression)
        self.registry.register(path)
        self.path = path
        try:
            self._handle = open_text(path, "wt", errors=_TEXT_ERRORS)
            self._handle.write(f"{self.count}\n")
        except BaseException:
            self._discard()
            raise
        return self

    def write(self, encoded_key: str) -> None:
        assert self._handle is not None
        self._handle.write(encoded_key)
        self._handle.write("\n")
        self.written += 1

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is not None:
            self._discard()
            return
        try:
            assert self._handle is not None
            self._handle.close()
            self._handle = None
            if self.written != self.count:
                raise ChunkFormatError(
                    f"Chunk header announced {self.count} keys but {self.written} were written",
                    context={"path": str(self.path), "expected": self.count, "written": self.written},
                )
        except BaseException:
            self._discard()
            raise
        assert self.path is not None
        self._chunk = ChunkFile(path=self.path, count=self.count)

    def _discard(self) -> None:
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as exc:
                logger.debug("Ignoring close failure on discarded chunk %s: %s", self.path, exc)
            self._handle = None
        if self.path is not None:
            self.registry.delete(self.path)


@stable_api
def write_chunk(
    encoded_keys: Iterable[str],
    count: int,
    *,
    temp_dir: Path | None = None,
    compression: str = "none",
    registry: TempFileRegistry = TEMP_FILES,
) -> ChunkFile:
    """Write ``count`` sorted, escaped keys to a new chunk file."""
    with ChunkWriter(count, temp_dir=temp_dir, compression=compression, registry=registry) as writer:
        for key in encoded_keys:
            writer.write(key)
    logger.debug("Wrote chunk %s with %d key(s)", writer.chunk.path.name, count)
    return writer.chunk


@stable_api
class ChunkReader:
    """Sequential cursor over the escaped keys of one chunk file."""

    def __init__(self, chunk: ChunkFile) -> None:
        self.chunk = chunk
        self._handle = open_text(chunk.path, "rt", errors=_TEXT_ERRORS)
        try:
            self.remaining = self._read_header()
        except BaseException:
            self._handle.close()
            raise

    def _read_header(self) -> int:
        header = self._handle.readline()
        try:
            count = int(header.strip())
        except ValueError:
            raise ChunkFormatError(
                f"Invalid chunk header in {self.chunk.path.name}: {header[:32]!r}",
                context={"path": str(self.chunk.path)},
            ) from None
        if count < 0 or count != self.chunk.count:
            raise ChunkFormatError(
                f"Chunk {self.chunk.path.name} announces {count} keys, expected {self.chunk.count}",
                context={"path": str(self.chunk.path), "header": count, "expected": self.chunk.count},
            )
        return count

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        if self.remaining <= 0:
            raise StopIteration
        line = self._handle.readline()
        if not line.endswith("\n"):
            raise ChunkFormatError(
                f"Chunk {self.chunk.path.name} ended {self.remaining} key(s) early",
                context={"path": str(self.chunk.path), "missing": self.remaining},
            )
        self.remaining -= 1
        return line[:-1]

    def close(self) -> None:
        self._handle.close()

    def __enter__(self) -> ChunkReader:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
