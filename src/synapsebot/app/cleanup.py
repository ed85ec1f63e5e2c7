"""Periodic removal of files produced by the file tools."""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path

from loguru import logger


class FileJanitor:
    """Delete regular files in one directory once they are older than `max_age` seconds."""

    def __init__(self, directory: Path, max_age: float, *, clock: Callable[[], float] = time.time) -> None:
        self.directory = directory
        self.max_age = max_age
        self._clock = clock

    def sweep(self) -> int:
        if not self.directory.is_dir():
            return 0
        cutoff = self._clock() - self.max_age
        removed = 0
        for path in self.directory.iterdir():
            try:
                if not path.is_file() or path.stat().st_mtime >= cutoff:
                    continue
                path.unlink()
            except OSError as exc:
                logger.warning("files.sweep.skip path={} error={}", path, exc)
                continue
            removed += 1
        if removed:
            logger.info("files.sweep removed={} dir={}", removed, self.directory)
        return removed
