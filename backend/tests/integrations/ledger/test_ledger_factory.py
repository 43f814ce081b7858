"""
Tests for ledger client selection.
"""

from unittest.mock import Mock

from edurecords.core.config import Settings
from edurecords.integrations.ledger.factory import create_ledger_client
from edurecords.integrations.ledger.providers import (
    EphemeralLedgerClient, GatewayLedgerClient, LocalLedgerClient, LoggingLedgerClient
)


class TestCreateLedgerClient:

    def test_memory_database_uses_ephemeral_ledger(self):
        """Test a memory database selects the in-memory ledger even with a gateway configured."""
        settings = Settings(_env_file=None, DATABASE_MEMORY=True, LEDGER_GATEWAY_URL="https://ledger.local")

        client = create_ledger_client(settings, Mock())

        assert isinstance(client, EphemeralLedgerClient)

    def test_no_gateway_uses_local_mirror(self):
        """Test the local mirror is used without a gateway URL."""
        session_factory = Mock()

        client = create_ledger_client(Settings(_env_file=None, LEDGER_IDENTITY="server-a"), session_factory)

        assert isinstance(client, LocalLedgerClient)
        assert client.session_factory is session_factory
        assert client.identity == "server-a"

    def test_gateway_configured(self):
        """Test a gateway URL selects the distributed ledger client."""
        settings = Settings(
            _env_file=None,
            LEDGER_GATEWAY_URL="https://ledger.school.edu/",
            LEDGER_GATEWAY_TOKEN="secret",
            LEDGER_FAILURE_THRESHOLD=3
        )

        client = create_ledger_client(settings, Mock())

        assert isinstance(client, GatewayLedgerClient)
        assert client.base_url == "https://ledger.school.edu"
        assert client.circuit_breaker.config.failure_threshold == 3

    def test_dev_mode_wraps_client(self):
        """Test development mode wraps the selected client with call logging."""
        client = create_ledger_client(Settings(_env_file=None, DEV_MODE=True, DATABASE_MEMORY=True), Mock())

        assert isinstance(client, LoggingLedgerClient)
        assert isinstance(client.delegate, EphemeralLedgerClient)
