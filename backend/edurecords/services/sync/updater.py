"""
Student updater composition root.

Wires the subject registry, the ledger client, the sync and restore services
and the scheduler together for one running request server.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edurecords.core.config import Settings
from edurecords.core.database import create_session_lock
from edurecords.integrations.ledger.base import LedgerClient
from edurecords.integrations.ledger.factory import create_ledger_client
from edurecords.services.classification import ClassificationEngine
from edurecords.services.record_history import LedgerHistoryReader
from edurecords.services.subjects import SubjectRegistry
from edurecords.services.sync.record_sync import RecordSyncService
from edurecords.services.sync.restore import RestoreService
from edurecords.services.sync.run_state import RunState
from edurecords.services.sync.scheduler import StudentUpdateScheduler

logger = logging.getLogger(__name__)


class StudentUpdateService:

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: Optional[LedgerClient] = None,
        subjects: Optional[SubjectRegistry] = None
    ):
        self.settings = settings
        self.subjects = subjects or SubjectRegistry.from_settings(settings)
        self.ledger = ledger or create_ledger_client(settings, session_factory)
        self.classifier = ClassificationEngine()
        self.run_state = RunState()
        self.session_lock = create_session_lock(settings.DATABASE_MEMORY)

        self.sync_service = RecordSyncService(
            session_factory, self.ledger, self.subjects, self.classifier, session_lock=self.session_lock
        )
        self.restore_service = RestoreService(
            session_factory,
            self.ledger,
            self.subjects,
            default_password=settings.DEFAULT_PASSWORD,
            hash_rounds=settings.PASSWORD_HASH_ROUNDS,
            session_lock=self.session_lock
        )
        self.history_reader = LedgerHistoryReader(self.ledger, self.classifier)
        self.scheduler = StudentUpdateScheduler(
            self.sync_service,
            self.restore_service,
            self.run_state,
            period=settings.UPDATER_PERIOD
        )

    async def start(self) -> None:
        await self.ledger.start()
        await self.scheduler.start()
        logger.info("Student update service started")

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self.ledger.stop()
        logger.info("Student update service stopped")

    def trigger_restore(self) -> Optional[asyncio.Task]:
        return self.scheduler.trigger_restore()
