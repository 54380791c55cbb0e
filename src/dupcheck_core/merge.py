"""k-way merge of sorted chunk files.

The merge works in rounds. Each round splits the current chunk list into
groups of at most ``max_streams`` files and merges every group into one
new chunk, so the file count shrinks by up to a factor of ``max_streams``
per round. A group of one file is carried into the next round untouched.

The last round (a single group) writes nothing: the checker only needs the
duplicate verdict, not the merged key list.
"""

from __future__ import annotations

import heapq
import logging
import math
from collections.abc import Container, Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

from dupcheck_core.chunks import ChunkFile, ChunkReader
from dupcheck_core.exceptions import ChunkFormatError, DuplicateKeyError
from dupcheck_core.keycodec import decode_key
from dupcheck_core.stability import stable_api
from dupcheck_core.store import ChunkStore

logger = logging.getLogger("dupcheck_core.merge")


@stable_api
@dataclass
class MergeStats:
    rounds: int = 0
    files_merged: int = 0


def _require_streams(max_streams: int) -> None:
    if max_streams < 2:
        raise ValueError(f"max_streams must be at least 2, got {max_streams}")


@stable_api
def partition(chunks: Sequence[ChunkFile], max_streams: int) -> list[list[ChunkFile]]:
    """Split ``chunks`` into ``ceil(len(chunks) / max_streams)`` ordered groups."""
    _require_streams(max_streams)
    groups = math.ceil(len(chunks) / max_streams)
    return [list(chunks[i * max_streams : (i + 1) * max_streams]) for i in range(groups)]


@stable_api
def merge_group(
    group: Sequence[ChunkFile],
    store: ChunkStore,
    *,
    materialize: bool,
    keep: Container[Path] = frozenset(),
) -> ChunkFile | None:
    """Merge one group of chunk files, failing on the first repeated key.

    With ``materialize`` the merged keys go to a new chunk owned by
    ``store``; otherwise the group is only checked. The input files are
    deleted once the group has been merged without a duplicate, except
    those whose path is in ``keep``.

    Raises:
        DuplicateKeyError: two streams hold the same key.
        ChunkFormatError: an input file is truncated or out of order.
    """
    total = sum(chunk.count for chunk in group)
    with ExitStack() as stack:
        readers = [stack.enter_context(ChunkReader(chunk)) for chunk in group]
        writer = stack.enter_context(store.writer(total)) if materialize else None

        heap: list[tuple[str, int]] = []
        for index, reader in enumerate(readers):
            first = next(reader, None)
            if first is not None:
                heap.append((first, index))
        heapq.heapify(heap)

        last: str | None = None
        while heap:
            key, index = heap[0]
            if key == last:
                raise DuplicateKeyError(
                    decode_key(key),
                    context={"group_size": len(group)},
                )
            if last is not None and key < last:
                raise ChunkFormatError(
                    f"Chunk {group[index].path.name} is not sorted",
                    context={"path": str(group[index].path)},
                )
            last = key
            if writer is not None:
                writer.write(key)
            following = next(readers[index], None)
            if following is None:
                heapq.heappop(heap)
            else:
                heapq.heapreplace(heap, (following, index))

    merged = store.adopt(writer.chunk) if writer is not None else None
    for chunk in group:
        if chunk.path not in keep:
            store.discard(chunk)
    logger.debug(
        "Merged %d chunk(s) holding %d key(s)%s",
        len(group),
        total,
        f" into {merged.path.name}" if merged is not None else "",
    )
    return merged


@stable_api
def merge_round(
    chunks: Sequence[ChunkFile],
    store: ChunkStore,
    *,
    max_streams: int,
    keep: Container[Path] = frozenset(),
) -> list[ChunkFile]:
    """Run one merge round and return the chunk list for the next one."""
    groups = partition(chunks, max_streams)
    terminal = len(groups) == 1
    survivors: list[ChunkFile] = []
    for group in groups:
        if len(group) == 1:
            survivors.append(group[0])
            continue
        merged = merge_group(group, store, materialize=not terminal, keep=keep)
        if merged is not None:
            survivors.append(merged)
    return survivors


@stable_api
def merge_chunks(
    chunks: Sequence[ChunkFile],
    store: ChunkStore,
    *,
    max_streams: int,
    keep: Container[Path] = frozenset(),
) -> MergeStats:
    """Merge ``chunks`` round by round until at most one file is left.

    Every intermediate file, and every input file not listed in ``keep``,
    is deleted on success.
    On failure the files still on disk remain owned by ``store``.
    """
    _require_streams(max_streams)
    stats = MergeStats()
    pending = list(chunks)
    while len(pending) > 1:
        stats.rounds += 1
        logger.debug("Merge round %d over %d chunk(s)", stats.rounds, len(pending))
        carried = 1 if len(pending) % max_streams == 1 else 0
        stats.files_merged += len(pending) - carried
        pending = merge_round(pending, store, max_streams=max_streams, keep=keep)
    for chunk in pending:
        if chunk.path not in keep:
            store.discard(chunk)
    return stats
