from .account import Account, AccountRole, Profile, Student
from .classroom import Classroom, ClassTeacher
from .record import Record, RecordEntry, PendingRecordEntry
from .ledger_mirror import LedgerRecord, LedgerRecordHistory, LedgerPersonal

__all__ = [
    "Account",
    "AccountRole",
    "Profile",
    "Student",
    "Classroom",
    "ClassTeacher",
    "Record",
    "RecordEntry",
    "PendingRecordEntry",
    "LedgerRecord",
    "LedgerRecordHistory",
    "LedgerPersonal",
]
