"""
Staging store operations used by the student updater.

The staging store is the request server's own database, where score change
requests are verified before being pushed to the ledger. All methods work
inside the caller's session; committing is the caller's decision.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from edurecords.models.account import Account, Profile, Student
from edurecords.models.classroom import Classroom
from edurecords.models.record import Record, RecordEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassroomInfo:
    name: str
    year: int
    grade: int


@dataclass(frozen=True)
class PendingEntry:
    """An approved record entry that has not reached the ledger yet."""
    id: int
    student_id: int
    classroom_id: int
    subject_id: int
    first_half_score: float
    second_half_score: float
    final_score: float
    requester_id: Optional[int]
    approver_id: Optional[int]
    approval_date: datetime
    classroom: Optional[ClassroomInfo] = None


class StagingStore:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_pending_record_entries(self) -> List[PendingEntry]:
        """Snapshot of every approved entry not yet marked complete."""
        result = await self.session.execute(
            select(RecordEntry)
            .options(selectinload(RecordEntry.record).selectinload(Record.classroom))
            .where(RecordEntry.update_complete == False)  # noqa: E712
            .where(RecordEntry.approval_date.is_not(None))
            .order_by(RecordEntry.id)
        )
        entries = []
        for entry in result.scalars().all():
            classroom = entry.record.classroom
            entries.append(PendingEntry(
                id=entry.id,
                student_id=entry.record.student_id,
                classroom_id=entry.record.classroom_id,
                subject_id=entry.subject_id,
                first_half_score=entry.first_half_score,
                second_half_score=entry.second_half_score,
                final_score=entry.final_score,
                requester_id=entry.requester_id,
                approver_id=entry.approver_id,
                approval_date=entry.approval_date,
                classroom=ClassroomInfo(classroom.name, classroom.year, classroom.grade) if classroom else None
            ))
        return entries

    async def mark_record_entries_complete(self, entry_ids: Iterable[int]) -> int:
        ids = sorted(set(entry_ids))
        if not ids:
            return 0
        await self.session.execute(
            update(RecordEntry).where(RecordEntry.id.in_(ids)).values(update_complete=True)
        )
        return len(ids)

    async def mark_record_entry_complete(self, entry: PendingEntry) -> None:
        await self.mark_record_entries_complete([entry.id])

    async def find_updated_profiles(self) -> List[Tuple[Profile, Optional[Student]]]:
        """Profiles flagged ``updated`` with their student row, if the account is a student."""
        result = await self.session.execute(
            select(Profile, Student)
            .outerjoin(Student, Student.id == Profile.id)
            .where(Profile.updated == True)  # noqa: E712
            .order_by(Profile.id)
        )
        return [(profile, student) for profile, student in result.all()]

    async def mark_profiles_synced(self, profile_ids: Iterable[int]) -> int:
        ids = sorted(set(profile_ids))
        if not ids:
            return 0
        await self.session.execute(
            update(Profile).where(Profile.id.in_(ids)).values(updated=False)
        )
        return len(ids)

    async def mark_profile_synced(self, profile: Profile) -> None:
        await self.mark_profiles_synced([profile.id])

    async def get_account(self, account_id: int) -> Optional[Account]:
        return await self.session.get(Account, account_id)

    async def get_student(self, student_id: int) -> Optional[Student]:
        return await self.session.get(Student, student_id)

    async def get_classroom(self, classroom_id: int) -> Optional[Classroom]:
        return await self.session.get(Classroom, classroom_id)

    async def find_record(self, student_id: int, classroom_id: int) -> Optional[Record]:
        result = await self.session.execute(
            select(Record).where(
                Record.student_id == student_id,
                Record.classroom_id == classroom_id
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_classroom(self, classroom_id: int, name: str, year: int, grade: int) -> Classroom:
        classroom = await self.get_classroom(classroom_id)
        if classroom is None:
            logger.info(f"Creating classroom: {classroom_id}")
            classroom = Classroom(id=classroom_id, name=name, year=year, grade=grade)
            self.session.add(classroom)
            await self.session.flush()
        return classroom

    async def get_or_create_record(self, student_id: int, classroom_id: int) -> Record:
        record = await self.find_record(student_id, classroom_id)
        if record is None:
            logger.info(f"Creating new record: {student_id} {classroom_id}")
            record = Record(student_id=student_id, classroom_id=classroom_id)
            self.session.add(record)
            await self.session.flush()
        return record

    async def find_complete_entry(self, record_id: int, subject_id: int, first_half: float,
                                  second_half: float, final: float) -> Optional[RecordEntry]:
        result = await self.session.execute(
            select(RecordEntry).where(
                RecordEntry.record_id == record_id,
                RecordEntry.subject_id == subject_id,
                RecordEntry.first_half_score == first_half,
                RecordEntry.second_half_score == second_half,
                RecordEntry.final_score == final,
                RecordEntry.update_complete == True  # noqa: E712
            ).limit(1)
        )
        return result.scalar_one_or_none()
