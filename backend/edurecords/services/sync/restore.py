"""
Restore of the staging database from a full ledger dump.

Used to bootstrap a new request server or to recover a lost database. Two
phases run one after the other, each in its own transaction:

1. personal: create the account, profile and student of every ledger
   profile whose account does not exist yet;
2. records: create missing classrooms and records, then insert one approved
   and already complete entry per subject found in the ledger.

Each account, classroom and subject is restored inside its own savepoint, so
one bad unit is logged and skipped without undoing the others.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edurecords.core.database import session_guard
from edurecords.integrations.ledger.base import LedgerClient
from edurecords.integrations.ledger.models import ClassRecord, Personal, StudentRecord
from edurecords.models.account import AccountRole, Profile, Student
from edurecords.models.record import RecordEntry
from edurecords.services.accounts import AccountProvisioner, generate_username
from edurecords.services.staging import StagingStore
from edurecords.services.subjects import SubjectRegistry

logger = logging.getLogger(__name__)


@dataclass
class RestoreReport:
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    accounts_created: int = 0
    accounts_skipped: int = 0
    classrooms_created: int = 0
    records_created: int = 0
    entries_created: int = 0
    entries_skipped: int = 0
    students_missing: int = 0
    failures: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'accounts_created': self.accounts_created,
            'accounts_skipped': self.accounts_skipped,
            'classrooms_created': self.classrooms_created,
            'records_created': self.records_created,
            'entries_created': self.entries_created,
            'entries_skipped': self.entries_skipped,
            'students_missing': self.students_missing,
            'failures': self.failures,
        }


class RestoreService:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: LedgerClient,
        subjects: SubjectRegistry,
        default_password: str,
        hash_rounds: Optional[int] = None,
        session_lock: Optional[asyncio.Lock] = None
    ):
        self.session_factory = session_factory
        self.ledger = ledger
        self.subjects = subjects
        self.default_password = default_password
        self.hash_rounds = hash_rounds
        self.session_lock = session_lock

    async def restore(self) -> RestoreReport:
        report = RestoreReport()
        logger.info("Restore started")

        personals = await self.ledger.get_all_student_personal()
        await self.restore_personals(personals, report)

        records = await self.ledger.get_all_student_record()
        await self.restore_records(records, report)

        report.completed_at = datetime.utcnow()
        logger.info(f"Restore complete: {report.to_dict()}")
        return report

    async def restore_personals(self, personals: Dict[int, Personal], report: RestoreReport) -> None:
        async with session_guard(self.session_lock), self.session_factory() as session:
            staging = StagingStore(session)
            provisioner = AccountProvisioner(session, hash_rounds=self.hash_rounds)

            for student_id, personal in personals.items():
                logger.info(f"Restoring student: {student_id}")
                try:
                    async with session.begin_nested():
                        created = await self._restore_student(staging, provisioner, student_id, personal)
                except SQLAlchemyError as e:
                    logger.error(f"Failed to restore student {student_id}: {e}")
                    report.failures.append(f"student {student_id}: {e}")
                    continue

                if not created:
                    report.accounts_skipped += 1
                    continue

                report.accounts_created += 1
                logger.info(f"Restored student: {student_id}")

            await session.commit()

    async def _restore_student(
        self,
        staging: StagingStore,
        provisioner: AccountProvisioner,
        student_id: int,
        personal: Personal
    ) -> bool:
        if await staging.get_account(student_id) is not None:
            logger.warning(
                f"Cannot restore personal for student: {student_id} because account already exists"
            )
            return False

        account = await provisioner.create_account(
            generate_username(personal.first_name, personal.last_name),
            self.default_password,
            account_id=student_id,
            role=AccountRole.STUDENT
        )
        session = provisioner.session
        session.add(Profile(
            id=account.id,
            first_name=personal.first_name,
            last_name=personal.last_name,
            male=personal.male,
            avatar=personal.avatar,
            birth_date=personal.birth_date,
            address=personal.address,
            phone="",
            email="",
            updated=False
        ))
        session.add(Student(
            id=account.id,
            ethnic=personal.ethnic,
            father_name=personal.father_name,
            father_job=personal.father_job,
            mother_name=personal.mother_name,
            mother_job=personal.mother_job,
            guardian_name=personal.guardian_name,
            guardian_job=personal.guardian_job,
            home_town=personal.home_town
        ))
        await session.flush()
        return True

    async def restore_records(self, records: Dict[int, StudentRecord], report: RestoreReport) -> None:
        async with session_guard(self.session_lock), self.session_factory() as session:
            staging = StagingStore(session)

            for student_id, record in records.items():
                logger.info(f"Restoring record: {student_id}")
                try:
                    async with session.begin_nested():
                        student = await staging.get_student(student_id)
                except SQLAlchemyError as e:
                    logger.error(f"Failed to look up student {student_id}: {e}")
                    report.failures.append(f"record {student_id}: {e}")
                    continue

                if student is None:
                    logger.warning(
                        f"Cannot restore record for student: {student_id} because student does not exist"
                    )
                    report.students_missing += 1
                    continue

                for classroom_id, class_record in record.class_records.items():
                    await self._restore_class_record(staging, student_id, classroom_id, class_record, report)

            await session.commit()

    async def _restore_class_record(
        self,
        staging: StagingStore,
        student_id: int,
        classroom_id: int,
        class_record: ClassRecord,
        report: RestoreReport
    ) -> None:
        session = staging.session
        logger.info(f"Restoring class record: {student_id} {classroom_id}")

        try:
            async with session.begin_nested():
                if await staging.get_classroom(classroom_id) is None:
                    await staging.get_or_create_classroom(
                        classroom_id, class_record.class_name, class_record.year, class_record.grade
                    )
                    report.classrooms_created += 1
                record = await staging.find_record(student_id, classroom_id)
                if record is None:
                    record = await staging.get_or_create_record(student_id, classroom_id)
                    report.records_created += 1
        except SQLAlchemyError as e:
            logger.error(f"Failed to restore class record {student_id} {classroom_id}: {e}")
            report.failures.append(f"class record {student_id}/{classroom_id}: {e}")
            return

        for subject_id, subject in class_record.subjects.items():
            if self.subjects.lookup(subject_id) is None:
                logger.warning(
                    f"Cannot restore record for student: {student_id} because subject {subject_id} does not exist"
                )
                report.entries_skipped += 1
                continue

            now = datetime.utcnow()
            try:
                async with session.begin_nested():
                    existing = await staging.find_complete_entry(
                        record.id, subject_id,
                        subject.first_half_score, subject.second_half_score, subject.final_score
                    )
                    if existing is None:
                        session.add(RecordEntry(
                            record_id=record.id,
                            subject_id=subject_id,
                            first_half_score=subject.first_half_score,
                            second_half_score=subject.second_half_score,
                            final_score=subject.final_score,
                            update_complete=True,
                            request_date=now,
                            approval_date=now
                        ))
            except SQLAlchemyError as e:
                logger.error(f"Failed to restore subject record {student_id} {classroom_id} {subject_id}: {e}")
                report.failures.append(f"subject {student_id}/{classroom_id}/{subject_id}: {e}")
                continue

            if existing is not None:
                report.entries_skipped += 1
                continue

            report.entries_created += 1
            logger.info(f"Restored subject record: {student_id} {classroom_id} {subject_id}")
