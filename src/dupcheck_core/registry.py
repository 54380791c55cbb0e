"""Process-wide bookkeeping of chunk temp files.

Every chunk file any checker creates is registered here until it is
deleted. Checkers delete their own files; :meth:`TempFileRegistry.sweep`
only catches what a caller forgot to clear before the process exits.
"""

from __future__ import annotations

import atexit
import logging
import threading
from pathlib import Path

from dupcheck_core.stability import stable_api

logger = logging.getLogger("dupcheck_core.registry")


@stable_api
class TempFileRegistry:
    """Thread-safe set of temp file paths pending deletion."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._paths: set[Path] = set()
        self._exit_hook_installed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._paths

    def register(self, path: Path) -> None:
        with self._lock:
            self._paths.add(path)

    def delete(self, path: Path) -> None:
        """Delete ``path`` from disk and forget it.

        The path stays registered if the unlink fails, so a later sweep can
        retry.
        """
        path.unlink(missing_ok=True)
        with self._lock:
            self._paths.discard(path)

    def sweep(self) -> int:
        """Delete every registered file. Returns the number removed."""
        with self._lock:
            pending = list(self._paths)
            self._paths.clear()
        removed = 0
        for path in pending:
            try:
                path.unlink(missing_ok=True)
                removed += 1
            except OSError as exc:
                logger.warning("Failed to delete temp file %s: %s", path, exc)
        if removed:
            logger.debug("Swept %d leftover temp file(s)", removed)
        return removed

    def install_exit_sweep(self) -> None:
        """Run :meth:`sweep` at interpreter exit. Installs at most once."""
        with self._lock:
            if self._exit_hook_installed:
                return
            self._exit_hook_installed = True
        atexit.register(self.sweep)


TEMP_FILES = TempFileRegistry()
