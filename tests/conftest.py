"""
Shared pytest fixtures for dupcheck tests.

Provides common fixtures for:
- Isolated chunk directories and temp file registries
- Checker configs and checker factories
- Key and JSONL input files
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Generator, Iterable
from pathlib import Path
from typing import Any

import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if SRC_ROOT.is_dir():
    sys.path.insert(0, str(SRC_ROOT))

from dupcheck_core.checker import DuplicateChecker  # noqa: E402
from dupcheck_core.config import CheckerConfig  # noqa: E402
from dupcheck_core.registry import TempFileRegistry  # noqa: E402
from dupcheck_core.store import ChunkStore  # noqa: E402

REPO_ROOT = Path(__file__).resolve().parents[1]

DUPCHECK_ENV_VARS = (
    "DUPCHECK_DISABLE_CHECK",
    "DUPCHECK_CHUNK_SIZE",
    "DUPCHECK_MAX_STREAMS",
    "DUPCHECK_TMPDIR",
    "DUPCHECK_COMPRESSION",
)


@pytest.fixture(autouse=True)
def _clean_dupcheck_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's DUPCHECK_* settings out of every test."""
    for name in DUPCHECK_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Chunk storage fixtures
# =============================================================================


@pytest.fixture
def chunk_dir(tmp_path: Path) -> Path:
    """Directory that receives every chunk file a test creates."""
    path = tmp_path / "chunks"
    path.mkdir()
    return path


@pytest.fixture
def registry() -> Generator[TempFileRegistry, None, None]:
    """A registry private to one test, swept afterwards."""
    reg = TempFileRegistry()
    yield reg
    reg.sweep()


@pytest.fixture
def store(chunk_dir: Path, registry: TempFileRegistry) -> Generator[ChunkStore, None, None]:
    chunk_store = ChunkStore(temp_dir=chunk_dir, registry=registry, exit_sweep=False)
    yield chunk_store
    chunk_store.clear()


@pytest.fixture
def make_config(chunk_dir: Path) -> Callable[..., CheckerConfig]:
    """Build a config whose chunk files land in ``chunk_dir``."""

    def _make(**overrides: Any) -> CheckerConfig:
        values: dict[str, Any] = {"temp_dir": chunk_dir, "exit_sweep": False}
        values.update(overrides)
        return CheckerConfig(**values)

    return _make


@pytest.fixture
def make_checker(
    make_config: Callable[..., CheckerConfig],
    registry: TempFileRegistry,
) -> Generator[Callable[..., DuplicateChecker], None, None]:
    """Create checkers bound to the test's chunk directory and registry."""
    created: list[DuplicateChecker] = []

    def _make(**overrides: Any) -> DuplicateChecker:
        checker = DuplicateChecker(config=make_config(**overrides), registry=registry)
        created.append(checker)
        return checker

    yield _make
    for checker in created:
        checker.close()


# =============================================================================
# Shared test helpers
# =============================================================================


def chunk_files(directory: Path) -> list[Path]:
    """List the chunk files currently on disk in ``directory``."""
    return sorted(directory.glob("dupcheck_*"))


def create_key_file(path: Path, keys: Iterable[str]) -> Path:
    """Write one key per line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="\n") as f:
        for key in keys:
            f.write(key + "\n")
    return path


def create_sample_jsonl(path: Path, records: list[dict[str, Any]]) -> Path:
    """Create a JSONL file with sample records."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    return path


@pytest.fixture
def repo_root() -> Path:
    return REPO_ROOT
