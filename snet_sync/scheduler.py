"""Periodic scheduling of sync passes."""

import asyncio
from typing import Optional

import structlog

from .syncer import SnetSyncer


logger = structlog.get_logger(__name__)


class SyncScheduler:
    """Runs a pass on start, then one every ``interval_seconds``.

    Passes never overlap. ``stop()`` lets an in-flight pass finish and
    prevents any further pass from being scheduled.
    """

    def __init__(self, syncer: SnetSyncer, interval_seconds: float):
        self.syncer = syncer
        self.interval_seconds = interval_seconds
        self.passes_completed = 0
        self._stop_event = asyncio.Event()
        self._wake_event = asyncio.Event()
        self._pass_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pass_in_progress(self) -> bool:
        return self._pass_lock.locked()

    async def start(self) -> None:
        if self.is_running:
            logger.warning("Sync scheduler already running")
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="snet-sync-scheduler")
        logger.info("SnetSyncer started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Stop scheduling; waits for the current pass, if any, to complete."""
        self._stop_event.set()
        self._wake_event.set()
        if self._task:
            await self._task
            self._task = None
        logger.info("Sync scheduler stopped", passes_completed=self.passes_completed)

    def trigger(self) -> bool:
        """Ask for an early pass. Returns False if one is already running."""
        if self.pass_in_progress or not self.is_running:
            return False
        self._wake_event.set()
        return True

    async def run_once(self) -> None:
        """Run a single pass unless one is already in progress."""
        async with self._pass_lock:
            try:
                await self.syncer.run_sync_pass()
            except Exception as e:
                # run_sync_pass handles entity errors; this only guards the loop
                logger.error("Unexpected error in sync pass", error=str(e), exc_info=True)
            self.passes_completed += 1

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            await self.run_once()
            if self._stop_event.is_set():
                break
            await self._wait_for_next_tick()

    async def _wait_for_next_tick(self) -> None:
        self._wake_event.clear()
        try:
            await asyncio.wait_for(self._wake_event.wait(), timeout=self.interval_seconds)
        except asyncio.TimeoutError:
            pass
