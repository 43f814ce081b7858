"""
Periodic driver of the student updater.

Every tick tries to start the record-sync job; a tick that finds the
previous pass still running does nothing. A successful record-sync pass
chains into the personal-sync pass.
"""

import asyncio
import logging
from typing import Optional

from edurecords.services.sync.record_sync import RecordSyncService, SyncReport
from edurecords.services.sync.restore import RestoreReport, RestoreService
from edurecords.services.sync.run_state import PERSONAL_SYNC, RECORD_SYNC, RESTORE, RunState

logger = logging.getLogger(__name__)


class StudentUpdateScheduler:
    """
    Runs the record-sync pipeline every ``period`` seconds until stopped.
    """

    def __init__(
        self,
        sync_service: RecordSyncService,
        restore_service: RestoreService,
        run_state: RunState,
        period: int = 60
    ):
        self.sync_service = sync_service
        self.restore_service = restore_service
        self.run_state = run_state
        self.period = max(period, 1)
        self._loop_task: Optional[asyncio.Task] = None
        self._shutdown_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def start(self) -> None:
        if self.running:
            return
        logger.info(f"Starting student updater with period {self.period}s")
        self._shutdown_event.clear()
        self._loop_task = asyncio.create_task(self._scheduler_loop(), name="student-updater")

    async def stop(self) -> None:
        logger.info("Stopping student updater")
        self._shutdown_event.set()

        if self._loop_task is not None:
            await asyncio.gather(self._loop_task, return_exceptions=True)
            self._loop_task = None

        await self.run_state.cancel_all()
        logger.info("Student updater stopped")

    def tick(self) -> Optional[asyncio.Task]:
        """Start a record-sync pass unless one is already in flight."""
        return self.run_state.start(RECORD_SYNC, self._run_pipeline)

    def trigger_restore(self) -> Optional[asyncio.Task]:
        """Start a restore unless one is already in flight."""
        return self.run_state.start(RESTORE, self._run_restore)

    async def _scheduler_loop(self) -> None:
        logger.info("Started student updater loop")

        while not self._shutdown_event.is_set():
            self.tick()
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=self.period)
                break
            except asyncio.TimeoutError:
                pass

        logger.info("Student updater loop stopped")

    async def _run_pipeline(self) -> SyncReport:
        report = await self.sync_service.sync_records()
        logger.info("Updated records")

        personal_task = self.run_state.start(PERSONAL_SYNC, self.sync_service.sync_personals)
        if personal_task is not None:
            await personal_task
            logger.info("Updated personal")
        return report

    async def _run_restore(self) -> RestoreReport:
        logger.info("Starting restore")
        return await self.restore_service.restore()
