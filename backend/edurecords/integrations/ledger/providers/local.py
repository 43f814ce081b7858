"""
Local ledger mirror.

Stores ledger documents in the request server's own database when no
external ledger is configured. Every call runs in its own session and
transaction, like a round trip to the remote ledger would. Writes are
serialized in-process: SQLite allows a single writer at a time.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edurecords.integrations.ledger.base import LedgerClient, LedgerUnavailableError
from edurecords.integrations.ledger.models import Personal, RecordHistory, StudentRecord
from edurecords.models.ledger_mirror import LedgerPersonal, LedgerRecord, LedgerRecordHistory

logger = logging.getLogger(__name__)


class LocalLedgerClient(LedgerClient):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], identity: str = "local"):
        self.session_factory = session_factory
        self.identity = identity
        self._write_lock = asyncio.Lock()

    async def get_student_record(self, student_id: int) -> StudentRecord:
        try:
            async with self.session_factory() as session:
                row = await session.get(LedgerRecord, student_id)
                return StudentRecord.model_validate(row.data) if row else StudentRecord()
        except SQLAlchemyError as e:
            raise LedgerUnavailableError(f"Failed to read record {student_id}: {e}") from e

    async def update_student_record(self, student_id: int, record: StudentRecord) -> bool:
        data = record.to_json_dict()
        try:
            async with self._write_lock, self.session_factory() as session:
                row = await session.get(LedgerRecord, student_id)
                if row is None:
                    session.add(LedgerRecord(student_id=student_id, data=data))
                else:
                    row.data = data
                session.add(LedgerRecordHistory(
                    student_id=student_id,
                    data=data,
                    timestamp=datetime.utcnow(),
                    updated_by=self.identity
                ))
                await session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Failed to write record {student_id} to local ledger: {e}")
            return False

    async def get_student_personal(self, student_id: int) -> Optional[Personal]:
        try:
            async with self.session_factory() as session:
                row = await session.get(LedgerPersonal, student_id)
                return Personal.model_validate(row.data) if row else None
        except SQLAlchemyError as e:
            raise LedgerUnavailableError(f"Failed to read personal {student_id}: {e}") from e

    async def update_student_personal(self, student_id: int, personal: Personal) -> bool:
        data = personal.to_json_dict()
        try:
            async with self._write_lock, self.session_factory() as session:
                row = await session.get(LedgerPersonal, student_id)
                if row is None:
                    session.add(LedgerPersonal(student_id=student_id, data=data))
                else:
                    row.data = data
                await session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Failed to write personal {student_id} to local ledger: {e}")
            return False

    async def get_student_record_history(self, student_id: int) -> List[RecordHistory]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(LedgerRecordHistory)
                    .where(LedgerRecordHistory.student_id == student_id)
                    .order_by(LedgerRecordHistory.timestamp, LedgerRecordHistory.id)
                )
                return [
                    RecordHistory(
                        timestamp=row.timestamp,
                        record=StudentRecord.model_validate(row.data),
                        updated_by=row.updated_by
                    )
                    for row in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            raise LedgerUnavailableError(f"Failed to read history {student_id}: {e}") from e

    async def get_all_student_personal(self) -> Dict[int, Personal]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(LedgerPersonal))
                return {row.student_id: Personal.model_validate(row.data) for row in result.scalars().all()}
        except SQLAlchemyError as e:
            raise LedgerUnavailableError(f"Failed to dump personals: {e}") from e

    async def get_all_student_record(self) -> Dict[int, StudentRecord]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(LedgerRecord))
                return {row.student_id: StudentRecord.model_validate(row.data) for row in result.scalars().all()}
        except SQLAlchemyError as e:
            raise LedgerUnavailableError(f"Failed to dump records: {e}") from e
