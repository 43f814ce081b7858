from .gateway import GatewayLedgerClient
from .local import LocalLedgerClient
from .logging_client import LoggingLedgerClient
from .memory import EphemeralLedgerClient

__all__ = [
    "GatewayLedgerClient",
    "LocalLedgerClient",
    "LoggingLedgerClient",
    "EphemeralLedgerClient",
]
