"""
Record and personal synchronization passes.

A pass takes one snapshot of its work from the staging store, pushes every
student to the ledger concurrently, waits for all of them, and only then
writes the completion marks of the students whose push succeeded, in a
single transaction. Failed students keep their rows pending for the next
pass. The snapshot session is closed before the fan-out so no staging lock
is held while the ledger is written.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edurecords.core.database import session_guard
from edurecords.integrations.ledger.base import LedgerClient, LedgerError
from edurecords.integrations.ledger.models import Personal
from edurecords.services.classification import ClassificationEngine
from edurecords.services.staging import StagingStore
from edurecords.services.subjects import SubjectRegistry
from edurecords.services.sync.merge import MergeOutcome, RecordMerger, group_pending_entries

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    students_total: int = 0
    students_synced: int = 0
    students_failed: int = 0
    rows_completed: int = 0
    failed_student_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'students_total': self.students_total,
            'students_synced': self.students_synced,
            'students_failed': self.students_failed,
            'rows_completed': self.rows_completed,
            'failed_student_ids': self.failed_student_ids,
        }


class RecordSyncService:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: LedgerClient,
        subjects: SubjectRegistry,
        classifier: Optional[ClassificationEngine] = None,
        session_lock: Optional[asyncio.Lock] = None
    ):
        self.session_factory = session_factory
        self.ledger = ledger
        self.session_lock = session_lock
        self.merger = RecordMerger(ledger, subjects, classifier)

    async def sync_records(self) -> SyncReport:
        """Push approved record entries to the ledger and mark the pushed ones complete."""
        report = SyncReport()
        async with session_guard(self.session_lock), self.session_factory() as session:
            entries = await StagingStore(session).find_pending_record_entries()

        groups = group_pending_entries(entries)
        report.students_total = len(groups)
        if not groups:
            report.completed_at = datetime.utcnow()
            return report

        logger.info(f"Updating records of {len(groups)} students ({len(entries)} entries)")
        student_ids = list(groups)
        results = await asyncio.gather(
            *(self.merger.merge_student(student_id, groups[student_id]) for student_id in student_ids),
            return_exceptions=True
        )

        completed_ids: List[int] = []
        for student_id, result in zip(student_ids, results):
            if isinstance(result, BaseException):
                logger.error(f"Record update of student {student_id} raised: {result!r}")
                result = MergeOutcome(student_id, False, error=repr(result))
            if result.success:
                report.students_synced += 1
                completed_ids.extend(result.applied_entry_ids)
            else:
                report.students_failed += 1
                report.failed_student_ids.append(student_id)

        async with session_guard(self.session_lock), self.session_factory() as session:
            report.rows_completed = await StagingStore(session).mark_record_entries_complete(completed_ids)
            await session.commit()

        report.completed_at = datetime.utcnow()
        logger.info(
            f"Record sync finished: {report.students_synced} synced, "
            f"{report.students_failed} failed, {report.rows_completed} entries completed"
        )
        return report

    async def _push_personal(self, student_id: int, personal: Personal) -> bool:
        try:
            return await self.ledger.update_student_personal(student_id, personal)
        except LedgerError as e:
            logger.error(f"Failed to update personal of student {student_id}: {e}")
            return False

    async def sync_personals(self) -> SyncReport:
        """Push profiles flagged as updated and clear the flag of the pushed ones."""
        report = SyncReport()
        synced_ids: List[int] = []
        personals: Dict[int, Personal] = {}

        async with session_guard(self.session_lock), self.session_factory() as session:
            for profile, student in await StagingStore(session).find_updated_profiles():
                if student is None:
                    # Not a student, nothing to push
                    synced_ids.append(profile.id)
                    continue
                personals[student.id] = Personal.from_entity(student, profile)

        report.students_total = len(personals)
        student_ids = list(personals)
        results = await asyncio.gather(
            *(self._push_personal(student_id, personals[student_id]) for student_id in student_ids),
            return_exceptions=True
        )

        for student_id, result in zip(student_ids, results):
            if result is True:
                synced_ids.append(student_id)
                report.students_synced += 1
            else:
                if isinstance(result, BaseException):
                    logger.error(f"Personal update of student {student_id} raised: {result!r}")
                report.students_failed += 1
                report.failed_student_ids.append(student_id)

        async with session_guard(self.session_lock), self.session_factory() as session:
            report.rows_completed = await StagingStore(session).mark_profiles_synced(synced_ids)
            await session.commit()

        report.completed_at = datetime.utcnow()
        if report.students_total:
            logger.info(
                f"Personal sync finished: {report.students_synced} synced, {report.students_failed} failed"
            )
        return report
