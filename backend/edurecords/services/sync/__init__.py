from .run_state import RunState, RECORD_SYNC, PERSONAL_SYNC, RESTORE
from .merge import MergeOutcome, RecordMerger
from .record_sync import RecordSyncService, SyncReport
from .restore import RestoreService, RestoreReport
from .scheduler import StudentUpdateScheduler
from .updater import StudentUpdateService

__all__ = [
    "RunState",
    "RECORD_SYNC",
    "PERSONAL_SYNC",
    "RESTORE",
    "MergeOutcome",
    "RecordMerger",
    "RecordSyncService",
    "SyncReport",
    "RestoreService",
    "RestoreReport",
    "StudentUpdateScheduler",
    "StudentUpdateService",
]
