"""
Tests for the distributed ledger gateway client.
"""

import aiohttp
import pytest
from aioresponses import aioresponses
from yarl import URL

from edurecords.integrations.ledger.base import LedgerGatewayError, LedgerUnavailableError
from edurecords.integrations.ledger.models import ClassRecord, Personal, StudentRecord, SubjectScore
from edurecords.integrations.ledger.providers.gateway import GatewayLedgerClient

BASE_URL = "https://ledger.school.edu/api"


@pytest.fixture
def record_payload():
    return {
        "classRecords": {
            "10": {
                "className": "10A1",
                "year": 2023,
                "grade": 10,
                "subjects": {
                    "1": {"name": "math", "firstHalfScore": 7.0, "secondHalfScore": 8.0, "finalScore": 8.5}
                },
                "classification": {
                    "firstHalfClassify": "GOOD",
                    "secondHalfClassify": "EXCELLENT",
                    "finalClassify": "EXCELLENT"
                }
            }
        }
    }


class TestGatewayLedgerClient:
    """Test the gateway wire format and failure mapping."""

    @pytest.mark.asyncio
    async def test_get_student_record(self, record_payload):
        """Test a record is fetched and parsed from camelCase JSON."""
        ledger = GatewayLedgerClient(BASE_URL, timeout=5.0)
        await ledger.start()
        try:
            with aioresponses() as m:
                m.get(f"{BASE_URL}/records/1", payload=record_payload, status=200)

                record = await ledger.get_student_record(1)
        finally:
            await ledger.stop()

        class_record = record.class_records[10]
        assert class_record.class_name == "10A1"
        assert class_record.subjects[1].final_score == 8.5
        assert class_record.classification.final_classify == "EXCELLENT"

    @pytest.mark.asyncio
    async def test_missing_record_is_empty(self):
        """Test a 404 on a single record reads as an empty record."""
        ledger = GatewayLedgerClient(BASE_URL, timeout=5.0)
        await ledger.start()
        try:
            with aioresponses() as m:
                m.get(f"{BASE_URL}/records/2", status=404, body="not found")
                m.get(f"{BASE_URL}/personals/2", status=404, body="not found")

                record = await ledger.get_student_record(2)
                personal = await ledger.get_student_personal(2)
        finally:
            await ledger.stop()

        assert record.class_records == {}
        assert personal is None

    @pytest.mark.asyncio
    async def test_update_student_record(self):
        """Test a record update is a PUT of the whole camelCase document."""
        ledger = GatewayLedgerClient(BASE_URL, timeout=5.0)
        await ledger.start()
        record = StudentRecord(class_records={
            10: ClassRecord(class_name="10A1", subjects={1: SubjectScore(name="math", final_score=9.0)})
        })
        try:
            with aioresponses() as m:
                m.put(f"{BASE_URL}/records/1", status=204)

                success = await ledger.update_student_record(1, record)

                call = m.requests[("PUT", URL(f"{BASE_URL}/records/1"))][0]
        finally:
            await ledger.stop()

        assert success is True
        assert call.kwargs["json"]["classRecords"]["10"]["subjects"]["1"]["finalScore"] == 9.0

    @pytest.mark.asyncio
    async def test_rejected_update_returns_false(self):
        """Test an error status on a write reports an unsuccessful update."""
        ledger = GatewayLedgerClient(BASE_URL, timeout=5.0)
        await ledger.start()
        try:
            with aioresponses() as m:
                m.put(f"{BASE_URL}/personals/1", status=409, body="conflict")

                success = await ledger.update_student_personal(1, Personal(first_name="An"))
        finally:
            await ledger.stop()

        assert success is False

    @pytest.mark.asyncio
    async def test_connection_error_raises_unavailable(self):
        """Test a transport failure on a read raises a ledger error."""
        ledger = GatewayLedgerClient(BASE_URL, timeout=5.0)
        await ledger.start()
        try:
            with aioresponses() as m:
                m.get(f"{BASE_URL}/records/1", exception=aiohttp.ClientConnectionError("refused"))

                with pytest.raises(LedgerUnavailableError):
                    await ledger.get_student_record(1)
        finally:
            await ledger.stop()

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast(self):
        """Test that after repeated failures no request reaches the gateway."""
        ledger = GatewayLedgerClient(BASE_URL, timeout=5.0, failure_threshold=2)
        await ledger.start()
        try:
            with aioresponses() as m:
                m.put(f"{BASE_URL}/records/1", status=503, body="unavailable", repeat=True)

                assert await ledger.update_student_record(1, StudentRecord()) is False
                assert await ledger.update_student_record(1, StudentRecord()) is False
                assert await ledger.update_student_record(1, StudentRecord()) is False

                calls = m.requests[("PUT", URL(f"{BASE_URL}/records/1"))]
        finally:
            await ledger.stop()

        assert len(calls) == 2
        assert ledger.circuit_breaker.metrics.rejected_requests == 1

    @pytest.mark.asyncio
    async def test_dumps(self, record_payload):
        """Test full dumps parse student id keyed maps."""
        ledger = GatewayLedgerClient(BASE_URL, timeout=5.0)
        await ledger.start()
        try:
            with aioresponses() as m:
                m.get(f"{BASE_URL}/records", payload={"1": record_payload, "2": {"classRecords": {}}})
                m.get(f"{BASE_URL}/personals", payload={"1": {"firstName": "An", "lastName": "Nguyen Van"}})
                m.get(f"{BASE_URL}/records/1/history", payload=[
                    {"timestamp": "2024-01-15T10:00:00", "record": record_payload, "updatedBy": "server-1"}
                ])

                records = await ledger.get_all_student_record()
                personals = await ledger.get_all_student_personal()
                history = await ledger.get_student_record_history(1)
        finally:
            await ledger.stop()

        assert set(records) == {1, 2}
        assert personals[1].last_name == "Nguyen Van"
        assert history[0].record.class_records[10].grade == 10

    @pytest.mark.asyncio
    async def test_not_started(self):
        """Test calls before start fail as unavailable."""
        ledger = GatewayLedgerClient(BASE_URL)

        with pytest.raises(LedgerUnavailableError):
            await ledger.get_student_record(1)
        assert await ledger.update_student_record(1, StudentRecord()) is False

    @pytest.mark.asyncio
    async def test_malformed_body_raises_gateway_error(self):
        """Test a body that is not JSON surfaces as a ledger gateway error."""
        ledger = GatewayLedgerClient(BASE_URL, timeout=5.0)
        await ledger.start()
        try:
            with aioresponses() as m:
                m.get(f"{BASE_URL}/records/1", status=200, body="<html>maintenance</html>")

                with pytest.raises(LedgerGatewayError, match="Malformed"):
                    await ledger.get_student_record(1)
        finally:
            await ledger.stop()

    @pytest.mark.asyncio
    async def test_invalid_document_raises_gateway_error(self):
        """Test JSON that does not match the ledger documents surfaces as a ledger gateway error."""
        ledger = GatewayLedgerClient(BASE_URL, timeout=5.0)
        await ledger.start()
        try:
            with aioresponses() as m:
                m.get(f"{BASE_URL}/records/1", payload={"classRecords": {"10": {"year": "last year"}}})
                m.get(f"{BASE_URL}/personals", payload=["not", "a", "map"])

                with pytest.raises(LedgerGatewayError):
                    await ledger.get_student_record(1)
                with pytest.raises(LedgerGatewayError):
                    await ledger.get_all_student_personal()
        finally:
            await ledger.stop()
