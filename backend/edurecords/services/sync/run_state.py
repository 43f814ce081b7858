"""
Single-flight slots for the student updater jobs.

Each job name holds at most one task. Claiming a slot and storing the new
task happen without yielding to the event loop, so two ticks can never both
start the same job.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

RECORD_SYNC = "record-sync"
PERSONAL_SYNC = "personal-sync"
RESTORE = "restore"


class RunState:

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def is_running(self, job: str) -> bool:
        task = self._tasks.get(job)
        return task is not None and not task.done()

    def current(self, job: str) -> Optional[asyncio.Task]:
        return self._tasks.get(job)

    def start(self, job: str, factory: Callable[[], Awaitable]) -> Optional[asyncio.Task]:
        """
        Start ``factory()`` as the job's task if its slot is free.

        Returns the new task, or ``None`` when a previous run is still going.
        """
        if self.is_running(job):
            logger.info(f"Job '{job}' already in progress, skipping")
            return None

        task = asyncio.get_running_loop().create_task(factory(), name=job)
        self._tasks[job] = task
        task.add_done_callback(lambda t: self._release(job, t))
        return task

    def _release(self, job: str, task: asyncio.Task) -> None:
        if self._tasks.get(job) is task:
            del self._tasks[job]
        if task.cancelled():
            logger.info(f"Job '{job}' cancelled")
        elif task.exception() is not None:
            logger.error(f"Job '{job}' failed: {task.exception()!r}")

    async def cancel_all(self) -> None:
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        # Failures were already reported by _release
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
