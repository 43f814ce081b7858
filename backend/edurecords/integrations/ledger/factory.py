"""
Selects the ledger client variant for the running configuration.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edurecords.core.config import Settings
from edurecords.integrations.ledger.base import LedgerClient
from edurecords.integrations.ledger.providers.gateway import GatewayLedgerClient
from edurecords.integrations.ledger.providers.local import LocalLedgerClient
from edurecords.integrations.ledger.providers.logging_client import LoggingLedgerClient
from edurecords.integrations.ledger.providers.memory import EphemeralLedgerClient

logger = logging.getLogger(__name__)


def create_ledger_client(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession]
) -> LedgerClient:
    """
    Memory database -> ephemeral ledger; no gateway configured -> local
    mirror; otherwise the distributed ledger. Development mode wraps the
    chosen client with call logging.
    """
    client: LedgerClient
    if settings.DATABASE_MEMORY:
        client = EphemeralLedgerClient(identity=settings.LEDGER_IDENTITY)
    elif not settings.LEDGER_GATEWAY_URL:
        client = LocalLedgerClient(session_factory, identity=settings.LEDGER_IDENTITY)
    else:
        client = GatewayLedgerClient(
            base_url=settings.LEDGER_GATEWAY_URL,
            token=settings.LEDGER_GATEWAY_TOKEN,
            timeout=settings.LEDGER_GATEWAY_TIMEOUT,
            failure_threshold=settings.LEDGER_FAILURE_THRESHOLD,
            recovery_timeout=settings.LEDGER_RECOVERY_TIMEOUT
        )

    if settings.DEV_MODE:
        client = LoggingLedgerClient(client)

    logger.info(f"Selected ledger client: {type(client).__name__}")
    return client
