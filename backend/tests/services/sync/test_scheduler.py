"""
Tests for single-flight run slots and the periodic updater.
"""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock, Mock

from edurecords.integrations.ledger.providers.memory import EphemeralLedgerClient
from edurecords.services.sync.record_sync import RecordSyncService, SyncReport
from edurecords.services.sync.run_state import PERSONAL_SYNC, RECORD_SYNC, RESTORE, RunState
from edurecords.services.sync.scheduler import StudentUpdateScheduler


class TestRunState:

    @pytest.mark.asyncio
    async def test_second_start_is_skipped(self, caplog):
        """Test a job cannot start while its previous task is unresolved."""
        run_state = RunState()
        release = asyncio.Event()
        factory = AsyncMock(side_effect=release.wait)

        first = run_state.start(RECORD_SYNC, factory)
        with caplog.at_level(logging.INFO):
            second = run_state.start(RECORD_SYNC, factory)

        assert first is not None
        assert second is None
        assert factory.call_count == 1
        assert "already in progress" in caplog.text

        release.set()
        await first
        await asyncio.sleep(0)
        assert not run_state.is_running(RECORD_SYNC)
        assert run_state.start(RECORD_SYNC, factory) is not None

    @pytest.mark.asyncio
    async def test_jobs_have_separate_slots(self):
        """Test different jobs do not block each other."""
        run_state = RunState()
        release = asyncio.Event()

        record_task = run_state.start(RECORD_SYNC, release.wait)
        restore_task = run_state.start(RESTORE, release.wait)

        assert record_task is not None and restore_task is not None
        release.set()
        await asyncio.gather(record_task, restore_task)

    @pytest.mark.asyncio
    async def test_failed_task_releases_slot(self, caplog):
        """Test a failing run is logged and frees the slot."""
        run_state = RunState()
        task = run_state.start(RECORD_SYNC, AsyncMock(side_effect=RuntimeError("commit failed")))

        with caplog.at_level(logging.ERROR):
            with pytest.raises(RuntimeError):
                await task
            await asyncio.sleep(0)

        assert not run_state.is_running(RECORD_SYNC)
        assert run_state.current(RECORD_SYNC) is None
        assert "commit failed" in caplog.text

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        """Test every in-flight job is cancelled."""
        run_state = RunState()
        task = run_state.start(RECORD_SYNC, asyncio.Event().wait)

        await run_state.cancel_all()

        assert task.cancelled()
        assert not run_state.is_running(RECORD_SYNC)


def _scheduler(sync_service=None, restore_service=None, period=60):
    return StudentUpdateScheduler(
        sync_service or Mock(sync_records=AsyncMock(return_value=SyncReport()),
                             sync_personals=AsyncMock(return_value=SyncReport())),
        restore_service or Mock(restore=AsyncMock()),
        RunState(),
        period=period
    )


class TestStudentUpdateScheduler:

    def test_period_floor(self):
        """Test the timer period never drops below one second."""
        assert _scheduler(period=0).period == 1

    @pytest.mark.asyncio
    async def test_pipeline_runs_personal_sync_after_records(self):
        """Test a record pass chains into the personal pass."""
        calls = []
        sync_service = Mock()
        sync_service.sync_records = AsyncMock(side_effect=lambda: calls.append("records") or SyncReport())
        sync_service.sync_personals = AsyncMock(side_effect=lambda: calls.append("personals") or SyncReport())
        scheduler = _scheduler(sync_service)

        await scheduler.tick()

        assert calls == ["records", "personals"]

    @pytest.mark.asyncio
    async def test_failed_record_pass_skips_personal_sync(self):
        """Test the personal pass only follows a completed record pass."""
        sync_service = Mock()
        sync_service.sync_records = AsyncMock(side_effect=RuntimeError("commit failed"))
        sync_service.sync_personals = AsyncMock()
        scheduler = _scheduler(sync_service)

        with pytest.raises(RuntimeError):
            await scheduler.tick()

        sync_service.sync_personals.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_overlapping_tick_makes_no_ledger_calls(self, session_factory, subjects, school, add_entry):
        """Test a tick during an unfinished pass performs zero ledger calls."""
        await add_entry(session_factory, 1, subject_id=1, final_score=7.0)
        ledger = EphemeralLedgerClient()
        release = asyncio.Event()
        original_update = ledger.update_student_record

        async def slow_update(student_id, record):
            await release.wait()
            return await original_update(student_id, record)

        ledger.update_student_record = AsyncMock(side_effect=slow_update)
        ledger.get_student_record = AsyncMock(wraps=ledger.get_student_record)
        scheduler = _scheduler(RecordSyncService(session_factory, ledger, subjects))

        first = scheduler.tick()
        while ledger.update_student_record.await_count == 0:
            await asyncio.sleep(0.01)
        reads_before = ledger.get_student_record.await_count

        second = scheduler.tick()

        assert second is None
        assert ledger.get_student_record.await_count == reads_before
        assert ledger.update_student_record.await_count == 1

        release.set()
        report = await first
        assert report.students_synced == 1

    @pytest.mark.asyncio
    async def test_loop_ticks_until_stopped(self):
        """Test the loop runs a pass immediately and stops promptly."""
        scheduler = _scheduler(period=3600)

        await scheduler.start()
        while scheduler.sync_service.sync_personals.await_count == 0:
            await asyncio.sleep(0.01)
        await asyncio.wait_for(scheduler.stop(), timeout=5)

        assert scheduler.sync_service.sync_records.await_count == 1
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_trigger_restore_single_flight(self):
        """Test a restore cannot be triggered twice at once."""
        release = asyncio.Event()
        restore_service = Mock(restore=AsyncMock(side_effect=release.wait))
        scheduler = _scheduler(restore_service=restore_service)

        first = scheduler.trigger_restore()
        second = scheduler.trigger_restore()

        assert first is not None
        assert second is None
        release.set()
        await first
        restore_service.restore.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_personal_sync_already_running(self):
        """Test the pipeline does not start a second personal pass."""
        release = asyncio.Event()
        scheduler = _scheduler()
        running = scheduler.run_state.start(PERSONAL_SYNC, release.wait)

        await scheduler.tick()

        scheduler.sync_service.sync_personals.assert_not_awaited()
        release.set()
        await running
