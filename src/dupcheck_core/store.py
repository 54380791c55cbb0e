from __future__ import annotations

import logging
from collections.abc import Collection
from pathlib import Path

from dupcheck_core.chunks import ChunkFile, ChunkWriter, write_chunk
from dupcheck_core.keycodec import encode_key
from dupcheck_core.registry import TEMP_FILES, TempFileRegistry
from dupcheck_core.stability import stable_api

logger = logging.getLogger("dupcheck_core.store")


@stable_api
class ChunkStore:
    """Owns every chunk file of one checker session.

    ``chunks`` is the ordered list of spilled files still on disk. Every
    file the store creates, spilled or merged, is tracked until
    :meth:`discard` or :meth:`clear` deletes it, and is registered in
    ``registry`` for as long as it exists on disk.
    """

    def __init__(
        self,
        *,
        temp_dir: Path | None = None,
        compression: str = "none",
        registry: TempFileRegistry = TEMP_FILES,
        exit_sweep: bool = True,
    ) -> None:
        self.temp_dir = temp_dir
        self.compression = compression
        self.registry = registry
        self.exit_sweep = exit_sweep
        self.chunks: list[ChunkFile] = []
        self._owned: dict[Path, ChunkFile] = {}

    def _prepare(self) -> None:
        if self.exit_sweep:
            self.registry.install_exit_sweep()
        if self.temp_dir is not None:
            self.temp_dir.mkdir(parents=True, exist_ok=True)

    def writer(self, count: int) -> ChunkWriter:
        """Return a writer for a new chunk; pass its result to :meth:`adopt`."""
        self._prepare()
        return ChunkWriter(
            count,
            temp_dir=self.temp_dir,
            compression=self.compression,
            registry=self.registry,
        )

    def adopt(self, chunk: ChunkFile) -> ChunkFile:
        self._owned[chunk.path] = chunk
        return chunk

    def spill(self, keys: Collection[str]) -> ChunkFile | None:
        """Sort and write ``keys`` to a new chunk and queue it for merging.

        Lines are sorted by their escaped form, the same order the merge
        compares them in.
        """
        if not keys:
            return None
        self._prepare()
        encoded = sorted(encode_key(key) for key in keys)
        chunk = write_chunk(
            encoded,
            len(encoded),
            temp_dir=self.temp_dir,
            compression=self.compression,
            registry=self.registry,
        )
        self.adopt(chunk)
        self.chunks.append(chunk)
        return chunk

    def discard(self, chunk: ChunkFile) -> None:
        self.registry.delete(chunk.path)
        self._owned.pop(chunk.path, None)
        if chunk in self.chunks:
            self.chunks.remove(chunk)

    def clear(self) -> int:
        """Delete every owned file. Returns the number of files removed.

        Files that cannot be deleted are logged and stay registered for the
        exit sweep.
        """
        removed = 0
        for chunk in list(self._owned.values()):
            try:
                self.discard(chunk)
                removed += 1
            except OSError as exc:
                logger.warning("Failed to delete chunk file %s: %s", chunk.path, exc)
                self._owned.pop(chunk.path, None)
        self.chunks.clear()
        return removed
