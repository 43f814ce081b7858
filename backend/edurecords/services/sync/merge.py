"""
Merge of approved record entries into a student's ledger record.

For each classroom the entries are applied oldest approval first, so the
latest approved change of a subject is the one that sticks. Classifications
are recomputed from the merged scores, and the student's whole record is
written back in one ledger call.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from edurecords.integrations.ledger.base import LedgerClient, LedgerError
from edurecords.integrations.ledger.models import ClassRecord, SubjectScore
from edurecords.services.classification import ClassificationEngine
from edurecords.services.staging import PendingEntry
from edurecords.services.subjects import SubjectRegistry

logger = logging.getLogger(__name__)


@dataclass
class MergeOutcome:
    """Result of pushing one student's entries; ``applied_entry_ids`` may be marked complete on success."""
    student_id: int
    success: bool
    applied_entry_ids: List[int] = field(default_factory=list)
    rejected_entry_ids: List[int] = field(default_factory=list)
    error: Optional[str] = None


def group_pending_entries(entries: Sequence[PendingEntry]) -> Dict[int, Dict[int, List[PendingEntry]]]:
    """student id -> classroom id -> entries"""
    groups: Dict[int, Dict[int, List[PendingEntry]]] = {}
    for entry in entries:
        groups.setdefault(entry.student_id, {}).setdefault(entry.classroom_id, []).append(entry)
    return groups


class RecordMerger:

    def __init__(
        self,
        ledger: LedgerClient,
        subjects: SubjectRegistry,
        classifier: Optional[ClassificationEngine] = None
    ):
        self.ledger = ledger
        self.subjects = subjects
        self.classifier = classifier or ClassificationEngine()

    def merge_class_record(
        self,
        class_record: Optional[ClassRecord],
        entries: Sequence[PendingEntry],
        applied: List[int],
        rejected: List[int]
    ) -> ClassRecord:
        """Apply ``entries`` to a copy of ``class_record`` and reclassify it."""
        merged = class_record.model_copy(deep=True) if class_record else ClassRecord()

        update_class = True
        for entry in sorted(entries, key=lambda e: (e.approval_date, e.id)):
            subject = self.subjects.lookup(entry.subject_id)
            if subject is None:
                logger.warning(
                    f"Skipping record entry {entry.id}: unknown subject {entry.subject_id}"
                )
                rejected.append(entry.id)
                continue

            merged.subjects[entry.subject_id] = SubjectScore(
                name=subject.identifier,
                first_half_score=entry.first_half_score,
                second_half_score=entry.second_half_score,
                final_score=entry.final_score
            )
            applied.append(entry.id)

            if update_class and entry.classroom is not None:
                merged.class_name = entry.classroom.name
                merged.year = entry.classroom.year
                merged.grade = entry.classroom.grade
                update_class = False

        merged.classification = self.classifier.classify_subjects(merged.subjects, include=self.subjects.ids)
        return merged

    async def merge_student(
        self,
        student_id: int,
        entries_per_class: Mapping[int, Sequence[PendingEntry]]
    ) -> MergeOutcome:
        """Read, merge and write back one student's record."""
        if not entries_per_class:
            return MergeOutcome(student_id=student_id, success=True)

        applied: List[int] = []
        rejected: List[int] = []
        try:
            record = (await self.ledger.get_student_record(student_id)).clone()
            for classroom_id, entries in entries_per_class.items():
                applied_before = len(applied)
                merged = self.merge_class_record(
                    record.class_records.get(classroom_id), entries, applied, rejected
                )
                # A classroom whose entries were all rejected keeps its ledger state
                if len(applied) > applied_before:
                    record.class_records[classroom_id] = merged

            if not applied:
                # Nothing valid to write; leave the ledger untouched
                return MergeOutcome(student_id, False, [], rejected, "no applicable entries")

            success = await self.ledger.update_student_record(student_id, record)
        except LedgerError as e:
            logger.error(f"Failed to update record of student {student_id}: {e}")
            return MergeOutcome(student_id, False, [], rejected, str(e))

        if not success:
            logger.warning(f"Ledger rejected record update of student {student_id}")
        return MergeOutcome(student_id, success, applied if success else [], rejected)
