"""
Authoritative student ledger access.

Four interchangeable clients implement ``LedgerClient``: an in-memory one,
a local mirror in the request server database, a gateway client for the
distributed ledger, and a logging decorator for development.
"""

from .base import LedgerClient, LedgerError, LedgerUnavailableError, LedgerGatewayError
from .models import (
    SubjectScore, Classification, ClassRecord, StudentRecord, RecordHistory, Personal
)
from .factory import create_ledger_client

__all__ = [
    "LedgerClient",
    "LedgerError",
    "LedgerUnavailableError",
    "LedgerGatewayError",
    "SubjectScore",
    "Classification",
    "ClassRecord",
    "StudentRecord",
    "RecordHistory",
    "Personal",
    "create_ledger_client",
]
