"""Bounded-memory duplicate checking over an arbitrarily long key stream.

Checking happens in two stages. Keys are first collected in an in-memory
set, which rejects a repeated key immediately. When the set reaches the
chunk size it is written to disk as a sorted chunk file and emptied. After
the last key, :meth:`DuplicateChecker.finalize` merges all chunk files and
fails on the first key that occurs in more than one of them.

Example:
    with DuplicateChecker(chunk_size=50_000) as checker:
        for row in rows:
            checker.add(row.id)
        checker.finalize()

A checker is meant for one producer thread.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from typing import Any

from dupcheck_core.config import CheckerConfig
from dupcheck_core.exceptions import DupcheckError, DuplicateKeyError
from dupcheck_core.merge import merge_chunks
from dupcheck_core.registry import TEMP_FILES, TempFileRegistry
from dupcheck_core.result import DUPLICATE_KEY, IO_ERROR, Err, Noop, Ok, Result
from dupcheck_core.stability import stable_api
from dupcheck_core.store import ChunkStore
from dupcheck_core.utils.logging import log_event

logger = logging.getLogger("dupcheck_core.checker")


@stable_api
@dataclasses.dataclass
class CheckSummary:
    """Counters describing one checker session."""

    keys_added: int = 0
    chunks_spilled: int = 0
    merge_rounds: int = 0
    files_merged: int = 0
    bypassed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def _error_result(exc: BaseException) -> Result[Any]:
    if isinstance(exc, DuplicateKeyError):
        return Err(DUPLICATE_KEY, exc.message, key=exc.key)
    if isinstance(exc, DupcheckError):
        return Err(exc.code, exc.message, **exc.context)
    return Err(IO_ERROR, str(exc))


@stable_api
class DuplicateChecker:
    """Detects repeated keys while keeping at most ``chunk_size`` in memory.

    Args:
        chunk_size: Override for ``config.chunk_size``.
        max_streams: Override for ``config.max_streams``.
        config: Base settings; read from the ``DUPCHECK_*`` environment
            when omitted.
        registry: Process-wide temp file registry the chunk files are
            recorded in.
    """

    def __init__(
        self,
        chunk_size: int | None = None,
        max_streams: int | None = None,
        *,
        config: CheckerConfig | None = None,
        registry: TempFileRegistry = TEMP_FILES,
    ) -> None:
        base = config if config is not None else CheckerConfig.from_env()
        self.config = base.with_overrides(chunk_size=chunk_size, max_streams=max_streams)
        self._store = ChunkStore(
            temp_dir=self.config.temp_dir,
            compression=self.config.compression,
            registry=registry,
            exit_sweep=self.config.exit_sweep,
        )
        self._chunk: set[str] = set()
        self._finalized = False
        self._failure: BaseException | None = None
        self.summary = CheckSummary(bypassed=not self.config.enabled)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def buffered(self) -> int:
        """Number of keys currently held in memory."""
        return len(self._chunk)

    @property
    def pending_chunks(self) -> int:
        """Number of spilled chunk files currently held on disk."""
        return len(self._store.chunks)

    def add(self, key: str) -> None:
        """Add a key.

        Raises:
            DuplicateKeyError: ``key`` is already in the in-memory chunk.
            OSError: the full chunk could not be written to disk.
        """
        if not self.config.enabled:
            return
        if not isinstance(key, str):
            raise TypeError(f"keys must be str, not {type(key).__name__}")
        if self._failure is not None:
            # a failed verdict stands until clear()
            return
        if key in self._chunk:
            raise DuplicateKeyError(key)
        self._chunk.add(key)
        self._finalized = False
        self.summary.keys_added += 1
        if len(self._chunk) >= self.config.chunk_size:
            self._spill()

    def _spill(self) -> None:
        chunk = self._store.spill(self._chunk)
        self._chunk.clear()
        if chunk is not None:
            self.summary.chunks_spilled += 1
            logger.debug("Spilled %d key(s) to %s", chunk.count, chunk.path.name)

    def finalize(self) -> None:
        """Check all keys added so far for duplicates.

        Keys added after a successful call are checked together with all
        earlier keys on the next call; without new keys a repeated call
        returns the stored verdict without touching disk. Spilled chunk
        files are kept until :meth:`clear` so later keys can be checked
        against them. A failure deletes every chunk file before it is raised
        and stands until :meth:`clear`.

        Raises:
            DuplicateKeyError: some key occurs in two chunk files.
            OSError: a chunk file could not be read or written.
        """
        if not self.config.enabled:
            return
        if self._finalized:
            if self._failure is not None:
                raise self._failure
            return
        if not self._store.chunks:
            # Nothing was spilled, so add() has already seen every key.
            self._finalized = True
            return
        try:
            self._spill()
            spilled = list(self._store.chunks)
            stats = merge_chunks(
                spilled,
                self._store,
                max_streams=self.config.max_streams,
                keep={chunk.path for chunk in spilled},
            )
        except DuplicateKeyError as exc:
            logger.info("Duplicate key found while merging chunks: %r", exc.key)
            self._abort(exc)
            raise
        except (OSError, DupcheckError) as exc:
            self._abort(exc)
            raise
        self._finalized = True
        self.summary.merge_rounds += stats.rounds
        self.summary.files_merged += stats.files_merged
        log_event(logger, "duplicate check passed", level=logging.DEBUG, **self.summary.to_dict())

    check_for_duplicates = finalize

    def _abort(self, exc: BaseException) -> None:
        self._failure = exc
        self._finalized = True
        self._chunk.clear()
        self._store.clear()

    def try_add(self, key: str) -> Result[None]:
        """Like :meth:`add`, but returns the outcome instead of raising it."""
        try:
            self.add(key)
        except (OSError, DupcheckError) as exc:
            return _error_result(exc)
        return Ok()

    def try_finalize(self) -> Result[dict[str, Any]]:
        """Like :meth:`finalize`, but returns the outcome instead of raising it."""
        if not self.config.enabled:
            return Noop("duplicate check disabled", **self.summary.to_dict())
        try:
            self.finalize()
        except (OSError, DupcheckError) as exc:
            return _error_result(exc)
        return Ok(self.summary.to_dict())

    def clear(self) -> None:
        """Drop all keys and delete every chunk file. Safe to call at any time."""
        self._store.clear()
        self._chunk.clear()
        self._finalized = False
        self._failure = None
        self.summary = CheckSummary(bypassed=not self.config.enabled)

    def close(self) -> None:
        self.clear()

    def __enter__(self) -> DuplicateChecker:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __del__(self) -> None:
        store = getattr(self, "_store", None)
        if store is not None:
            store.clear()


@stable_api
def check_keys(
    keys: Iterable[str],
    config: CheckerConfig | None = None,
    *,
    registry: TempFileRegistry = TEMP_FILES,
) -> Result[dict[str, Any]]:
    """Run a complete session over ``keys`` and return the verdict.

    The value of an ok result is the session summary; a duplicate yields an
    error result with code ``duplicate_key`` and the offending ``key``.
    """
    with DuplicateChecker(config=config, registry=registry) as checker:
        for key in keys:
            result = checker.try_add(key)
            if result.is_err:
                break
        else:
            result = checker.try_finalize()
        if result.is_ok:
            log_event(logger, "duplicate check passed", **checker.summary.to_dict())
        elif result.is_err:
            log_event(
                logger,
                "duplicate check failed",
                error=result.error,
                keys_added=checker.summary.keys_added,
            )
        return result
