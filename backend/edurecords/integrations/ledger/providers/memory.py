"""
In-memory ledger, used when the request server runs on a memory database.

Nothing survives a restart. Documents are copied on the way in and out so
callers can never mutate the stored state by accident.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from edurecords.integrations.ledger.base import LedgerClient
from edurecords.integrations.ledger.models import Personal, RecordHistory, StudentRecord

logger = logging.getLogger(__name__)


class EphemeralLedgerClient(LedgerClient):

    def __init__(self, identity: str = "ephemeral"):
        self.identity = identity
        self._records: Dict[int, StudentRecord] = {}
        self._personals: Dict[int, Personal] = {}
        self._history: Dict[int, List[RecordHistory]] = {}

    async def start(self) -> None:
        logger.info("Using in-memory ledger, records will not be persisted")

    async def get_student_record(self, student_id: int) -> StudentRecord:
        record = self._records.get(student_id)
        return record.clone() if record else StudentRecord()

    async def update_student_record(self, student_id: int, record: StudentRecord) -> bool:
        snapshot = record.clone()
        self._records[student_id] = snapshot
        self._history.setdefault(student_id, []).append(
            RecordHistory(timestamp=datetime.utcnow(), record=snapshot.clone(), updated_by=self.identity)
        )
        return True

    async def get_student_personal(self, student_id: int) -> Optional[Personal]:
        personal = self._personals.get(student_id)
        return personal.model_copy() if personal else None

    async def update_student_personal(self, student_id: int, personal: Personal) -> bool:
        self._personals[student_id] = personal.model_copy()
        return True

    async def get_student_record_history(self, student_id: int) -> List[RecordHistory]:
        return [history.model_copy(deep=True) for history in self._history.get(student_id, [])]

    async def get_all_student_personal(self) -> Dict[int, Personal]:
        return {student_id: personal.model_copy() for student_id, personal in self._personals.items()}

    async def get_all_student_record(self) -> Dict[int, StudentRecord]:
        return {student_id: record.clone() for student_id, record in self._records.items()}
