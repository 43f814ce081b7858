"""
Score change requests and their verification.

Students and teachers request a change of one subject score in a classroom.
The homeroom teacher of that classroom accepts or rejects it; accepted
requests become approved record entries that the student updater later
pushes to the ledger.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from edurecords.models.classroom import ClassTeacher
from edurecords.models.record import PendingRecordEntry, Record, RecordEntry
from edurecords.services.staging import StagingStore
from edurecords.services.subjects import SubjectRegistry

logger = logging.getLogger(__name__)

MIN_SCORE = 0.0
MAX_SCORE = 10.0


class RecordServiceError(Exception):
    """Base exception for record request errors."""
    pass


class InvalidScoreError(RecordServiceError):
    pass


class SubjectNotFoundError(RecordServiceError):
    pass


class StudentNotFoundError(RecordServiceError):
    pass


class ClassroomNotFoundError(RecordServiceError):
    pass


class ClassTeacherNotFoundError(RecordServiceError):
    pass


class PendingEntryNotFoundError(RecordServiceError):
    pass


class NotHomeroomTeacherError(RecordServiceError):
    pass


class RecordRequestService:

    def __init__(self, session: AsyncSession, subjects: SubjectRegistry):
        self.session = session
        self.subjects = subjects
        self.staging = StagingStore(session)

    async def request_update(
        self,
        requester_id: int,
        student_id: int,
        classroom_id: int,
        subject_id: int,
        first_half_score: float,
        second_half_score: float,
        final_score: float
    ) -> PendingRecordEntry:
        """Create a pending request addressed to the subject's class teacher."""
        for score in (first_half_score, second_half_score, final_score):
            if not MIN_SCORE <= score <= MAX_SCORE:
                raise InvalidScoreError(f"Score {score} outside [{MIN_SCORE}, {MAX_SCORE}]")

        if self.subjects.lookup(subject_id) is None:
            raise SubjectNotFoundError(f"Subject {subject_id} not found")
        if await self.staging.get_student(student_id) is None:
            raise StudentNotFoundError(f"Student {student_id} not found")
        if await self.staging.get_classroom(classroom_id) is None:
            raise ClassroomNotFoundError(f"Classroom {classroom_id} not found")

        result = await self.session.execute(
            select(ClassTeacher).where(
                ClassTeacher.classroom_id == classroom_id,
                ClassTeacher.subject_id == subject_id
            )
        )
        class_teacher = result.scalar_one_or_none()
        if class_teacher is None:
            raise ClassTeacherNotFoundError(
                f"No teacher for subject {subject_id} in classroom {classroom_id}"
            )

        record = await self.staging.get_or_create_record(student_id, classroom_id)
        pending = PendingRecordEntry(
            record_id=record.id,
            subject_id=subject_id,
            first_half_score=first_half_score,
            second_half_score=second_half_score,
            final_score=final_score,
            teacher_id=class_teacher.teacher_id,
            requester_id=requester_id,
            request_date=datetime.utcnow()
        )
        self.session.add(pending)
        await self.session.commit()

        logger.info(f"Record validation requested: student={student_id} classroom={classroom_id} subject={subject_id}")
        return pending

    async def verify(self, teacher_id: int, pending_id: int, accepted: bool) -> Optional[RecordEntry]:
        """
        Accept or reject a pending request. The request is removed either way;
        an accepted one is returned as the approved entry.
        """
        result = await self.session.execute(
            select(PendingRecordEntry)
            .options(selectinload(PendingRecordEntry.record).selectinload(Record.classroom))
            .where(PendingRecordEntry.id == pending_id)
            .execution_options(populate_existing=True)
        )
        pending = result.scalar_one_or_none()
        if pending is None:
            raise PendingEntryNotFoundError(f"Pending record entry {pending_id} not found")

        homeroom_teacher_id = pending.record.classroom.homeroom_teacher_id
        if homeroom_teacher_id is None or homeroom_teacher_id != teacher_id:
            raise NotHomeroomTeacherError(f"Account {teacher_id} is not the homeroom teacher")

        entry = None
        if accepted:
            entry = RecordEntry(
                record_id=pending.record_id,
                subject_id=pending.subject_id,
                first_half_score=pending.first_half_score,
                second_half_score=pending.second_half_score,
                final_score=pending.final_score,
                teacher_id=pending.teacher_id,
                requester_id=pending.requester_id,
                approver_id=teacher_id,
                request_date=pending.request_date,
                approval_date=datetime.utcnow(),
                update_complete=False
            )
            self.session.add(entry)

        await self.session.delete(pending)
        await self.session.commit()

        logger.info(f"Record entry {pending_id} verified by {teacher_id}: {'accepted' if accepted else 'rejected'}")
        return entry
