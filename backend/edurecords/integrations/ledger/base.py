"""
Ledger client interface.

A ledger client reads and writes the authoritative per-student documents.
Implementations are chosen once at startup (see ``factory.create_ledger_client``)
and used through this interface only.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from edurecords.integrations.ledger.models import Personal, RecordHistory, StudentRecord


class LedgerError(Exception):
    """Base exception for ledger failures."""
    pass


class LedgerUnavailableError(LedgerError):
    """The ledger could not be reached or did not answer in time."""
    pass


class LedgerGatewayError(LedgerError):
    """The ledger gateway answered with an error status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class LedgerClient(ABC):
    """
    Capability interface over the authoritative student ledger.

    Reads raise ``LedgerError`` on failure. Writes are whole-document
    replacements and report failure by returning ``False``; callers must not
    assume a partial write.
    """

    async def start(self) -> None:
        """Open any underlying connection."""

    async def stop(self) -> None:
        """Release any underlying connection."""

    @abstractmethod
    async def get_student_record(self, student_id: int) -> StudentRecord:
        """Get the student's record; an unknown student yields an empty record."""

    @abstractmethod
    async def update_student_record(self, student_id: int, record: StudentRecord) -> bool:
        """Replace the student's record."""

    @abstractmethod
    async def get_student_personal(self, student_id: int) -> Optional[Personal]:
        """Get the student's personal profile, or ``None`` if absent."""

    @abstractmethod
    async def update_student_personal(self, student_id: int, personal: Personal) -> bool:
        """Replace the student's personal profile."""

    @abstractmethod
    async def get_student_record_history(self, student_id: int) -> List[RecordHistory]:
        """Get every recorded version of the student's record, oldest first."""

    @abstractmethod
    async def get_all_student_personal(self) -> Dict[int, Personal]:
        """Dump every personal profile in the ledger."""

    @abstractmethod
    async def get_all_student_record(self) -> Dict[int, StudentRecord]:
        """Dump every student record in the ledger."""
