"""
Reads that combine a classroom's record with the ledger's history.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from edurecords.integrations.ledger.base import LedgerClient
from edurecords.integrations.ledger.models import Classification, SubjectScore
from edurecords.services.classification import ClassificationEngine

logger = logging.getLogger(__name__)


@dataclass
class HistoricalScore:
    subject_id: int
    score: SubjectScore
    timestamp: datetime
    updated_by: str


class LedgerHistoryReader:

    def __init__(self, ledger: LedgerClient, classifier: Optional[ClassificationEngine] = None):
        self.ledger = ledger
        self.classifier = classifier or ClassificationEngine()

    async def get_classroom_history(self, student_id: int, classroom_id: int) -> List[HistoricalScore]:
        """Every subject score the ledger ever held for this classroom, oldest first."""
        history = await self.ledger.get_student_record_history(student_id)
        scores = []
        for version in sorted(history, key=lambda h: h.timestamp):
            class_record = version.record.class_records.get(classroom_id)
            if class_record is None:
                continue
            for subject_id, score in class_record.subjects.items():
                scores.append(HistoricalScore(subject_id, score, version.timestamp, version.updated_by))
        return scores

    async def classify_classroom(self, student_id: int, classroom_id: int) -> Classification:
        """Classification over the latest historical score of each subject."""
        latest: Dict[int, SubjectScore] = {}
        for item in await self.get_classroom_history(student_id, classroom_id):
            latest[item.subject_id] = item.score
        return self.classifier.classify_subjects(latest)
