"""
Background reclamation of expired and corrupt records.

The sweeper runs on the event loop's timer (``loop.call_later``), not a
thread. The first run starts after a random delay so that many stores
started together do not all walk their roots at once; each later run is
scheduled ``interval_ms`` after the previous one finished.
"""

from __future__ import annotations

import asyncio
import os
import random
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from diskbox.cache.paths import is_record_name
from diskbox.exceptions import DiskboxError
from diskbox.logging import get_logger, log_context
from diskbox.types import RecordStatus

if TYPE_CHECKING:
    from diskbox.cache.disk_store import DiskStore

logger = get_logger(__name__)

FIRST_RUN_MAX_DELAY_MS = 3000


@dataclass
class SweepReport:
    """Counts from one sweep."""

    scanned: int = 0
    reclaimed: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"scanned": self.scanned, "reclaimed": self.reclaimed, "errors": self.errors}


class Sweeper:
    """Periodically walks a store's root and reclaims dead records.

    Each instance owns its own timer handle, so several stores in one
    process sweep independently.
    """

    def __init__(self, store: DiskStore, interval_ms: int) -> None:
        self.store = store
        self.interval_ms = interval_ms
        self._running = False
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def enabled(self) -> bool:
        return self.interval_ms > 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Schedule the first sweep. Does nothing if disabled or already running."""
        if not self.enabled or self._running:
            return
        self._running = True
        first_delay = random.randint(0, min(self.interval_ms, FIRST_RUN_MAX_DELAY_MS))
        self._schedule(first_delay)

    def stop(self) -> None:
        """Cancel the pending sweep. A sweep already underway finishes but
        is not rescheduled."""
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self, delay_ms: int) -> None:
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay_ms / 1000, self._launch)

    def _launch(self) -> None:
        self._handle = None
        if not self._running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run_and_reschedule())

    async def _run_and_reschedule(self) -> None:
        try:
            await self.run_once()
        except Exception:
            logger.exception("Cache sweep failed", cache_path=str(self.store.root))
        finally:
            if self._task is asyncio.current_task():
                self._task = None

        # stop() followed by start() during the run already scheduled a timer
        if self._running and self._handle is None:
            self._schedule(self.interval_ms)

    def iter_record_files(self) -> Iterator[Path]:
        """Yield regular files under the root named like records.

        Symbolic links are never followed, to files or directories.
        """

        def on_error(e: OSError) -> None:
            logger.warning("Cannot list cache directory", path=str(e.filename), error=e.strerror)

        for dirpath, _dirnames, filenames in os.walk(
            self.store.root, onerror=on_error, followlinks=False
        ):
            for name in filenames:
                if not is_record_name(name):
                    continue
                path = Path(dirpath) / name
                if path.is_symlink() or not path.is_file():
                    continue
                yield path

    async def run_once(self) -> SweepReport:
        """Walk the root once, reclaiming expired and corrupt records.

        A failure on one file is logged and counted; the walk continues.
        """
        report = SweepReport()

        with log_context(operation="sweep"):
            for path in self.iter_record_files():
                report.scanned += 1
                try:
                    status, _ = await self.store.inspect(path)
                except DiskboxError as e:
                    report.errors += 1
                    logger.warning("Skipping unreadable cache record", path=str(path), error=str(e))
                    continue
                if status in (RecordStatus.EXPIRED, RecordStatus.CORRUPT):
                    report.reclaimed += 1

            await self.store.drain()

            logger.info("Cache sweep finished", cache_path=str(self.store.root), **report.to_dict())

        return report
