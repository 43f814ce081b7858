"""
Tests for history-enriched ledger reads.
"""

import pytest
import pytest_asyncio

from edurecords.integrations.ledger.models import ClassRecord, StudentRecord, SubjectScore
from edurecords.integrations.ledger.providers.memory import EphemeralLedgerClient
from edurecords.services.record_history import LedgerHistoryReader


def _record(classroom_id, **finals):
    return StudentRecord(class_records={
        classroom_id: ClassRecord(subjects={
            int(subject_id[1:]): SubjectScore(name=subject_id, first_half_score=score,
                                              second_half_score=score, final_score=score)
            for subject_id, score in finals.items()
        })
    })


@pytest_asyncio.fixture
async def ledger():
    client = EphemeralLedgerClient(identity="server-1")
    await client.update_student_record(1, _record(10, s1=5.0))
    await client.update_student_record(1, _record(11, s1=9.0))
    await client.update_student_record(1, _record(10, s1=9.0, s2=8.0))
    return client


class TestLedgerHistoryReader:

    @pytest.mark.asyncio
    async def test_classroom_history(self, ledger):
        """Test every score the classroom ever held is returned oldest first."""
        reader = LedgerHistoryReader(ledger)

        history = await reader.get_classroom_history(1, 10)

        assert [(h.subject_id, h.score.final_score) for h in history] == [(1, 5.0), (1, 9.0), (2, 8.0)]
        assert all(h.updated_by == "server-1" for h in history)

    @pytest.mark.asyncio
    async def test_unknown_student(self, ledger):
        """Test a student without history has no scores."""
        reader = LedgerHistoryReader(ledger)

        assert await reader.get_classroom_history(2, 10) == []

    @pytest.mark.asyncio
    async def test_classify_latest_scores(self, ledger):
        """Test classification uses the latest score of each subject."""
        reader = LedgerHistoryReader(ledger)

        classification = await reader.classify_classroom(1, 10)

        assert classification.final_classify == "EXCELLENT"
