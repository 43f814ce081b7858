"""
Ledger client decorator that logs every call, enabled in development mode.
"""

import logging
from typing import Dict, List, Optional

from edurecords.integrations.ledger.base import LedgerClient
from edurecords.integrations.ledger.models import Personal, RecordHistory, StudentRecord

logger = logging.getLogger(__name__)


class LoggingLedgerClient(LedgerClient):
    """Forwards to ``delegate`` and logs the id and outcome of each call."""

    def __init__(self, delegate: LedgerClient):
        self.delegate = delegate

    async def start(self) -> None:
        logger.info(f"Starting ledger client {type(self.delegate).__name__}")
        await self.delegate.start()

    async def stop(self) -> None:
        logger.info(f"Stopping ledger client {type(self.delegate).__name__}")
        await self.delegate.stop()

    async def get_student_record(self, student_id: int) -> StudentRecord:
        record = await self.delegate.get_student_record(student_id)
        logger.info(f"Get record: {student_id} ({len(record.class_records)} classes)")
        return record

    async def update_student_record(self, student_id: int, record: StudentRecord) -> bool:
        success = await self.delegate.update_student_record(student_id, record)
        logger.info(f"Updated record: {student_id} {success}")
        return success

    async def get_student_personal(self, student_id: int) -> Optional[Personal]:
        personal = await self.delegate.get_student_personal(student_id)
        logger.info(f"Get personal: {student_id} {'found' if personal else 'absent'}")
        return personal

    async def update_student_personal(self, student_id: int, personal: Personal) -> bool:
        success = await self.delegate.update_student_personal(student_id, personal)
        logger.info(f"Updated personal: {student_id} {success}")
        return success

    async def get_student_record_history(self, student_id: int) -> List[RecordHistory]:
        history = await self.delegate.get_student_record_history(student_id)
        logger.info(f"Get record history: {student_id} ({len(history)} versions)")
        return history

    async def get_all_student_personal(self) -> Dict[int, Personal]:
        personals = await self.delegate.get_all_student_personal()
        logger.info(f"Get all personal: {len(personals)} students")
        return personals

    async def get_all_student_record(self) -> Dict[int, StudentRecord]:
        records = await self.delegate.get_all_student_record()
        logger.info(f"Get all record: {len(records)} students")
        return records
