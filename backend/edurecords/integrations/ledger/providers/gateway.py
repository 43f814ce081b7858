"""
Distributed ledger client.

Talks JSON over HTTP to the gateway in front of the ledger network. Every
request goes through a circuit breaker so an unreachable or slow gateway
surfaces as a failed read or an unsuccessful write, never as a hung pass.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import aiohttp

from edurecords.core.circuit_breaker import (
    CircuitBreaker, CircuitBreakerError, CircuitBreakerTimeoutError
)
from edurecords.integrations.ledger.base import (
    LedgerClient, LedgerError, LedgerGatewayError, LedgerUnavailableError
)
from edurecords.integrations.ledger.models import (
    Personal, RecordHistory, StudentRecord,
    parse_history, parse_personal_map, parse_record_map
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GatewayLedgerClient(LedgerClient):
    """Ledger client backed by a remote gateway."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        failure_threshold: int = 5,
        recovery_timeout: int = 60
    ):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            timeout=timeout,
            name="ledger-gateway"
        )
        self._http_session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        if self._http_session is not None:
            return
        headers = {
            'User-Agent': 'EduRecords-Request-Server/1.0',
            'Accept': 'application/json',
        }
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        self._http_session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers=headers
        )
        logger.info(f"Connected ledger gateway at {self.base_url}")

    async def stop(self) -> None:
        if self._http_session:
            await self._http_session.close()
            self._http_session = None
            logger.info("Disconnected ledger gateway")

    async def get_student_record(self, student_id: int) -> StudentRecord:
        endpoint = f"/records/{student_id}"
        data = await self._request('GET', endpoint, allow_missing=True)
        return self._parse(endpoint, StudentRecord.model_validate, data) if data is not None else StudentRecord()

    async def update_student_record(self, student_id: int, record: StudentRecord) -> bool:
        return await self._write(f"/records/{student_id}", record.to_json_dict())

    async def get_student_personal(self, student_id: int) -> Optional[Personal]:
        endpoint = f"/personals/{student_id}"
        data = await self._request('GET', endpoint, allow_missing=True)
        return self._parse(endpoint, Personal.model_validate, data) if data is not None else None

    async def update_student_personal(self, student_id: int, personal: Personal) -> bool:
        return await self._write(f"/personals/{student_id}", personal.to_json_dict())

    async def get_student_record_history(self, student_id: int) -> List[RecordHistory]:
        endpoint = f"/records/{student_id}/history"
        data = await self._request('GET', endpoint, allow_missing=True)
        return self._parse(endpoint, parse_history, data or [])

    async def get_all_student_personal(self) -> Dict[int, Personal]:
        return self._parse("/personals", parse_personal_map, await self._request('GET', "/personals") or {})

    async def get_all_student_record(self) -> Dict[int, StudentRecord]:
        return self._parse("/records", parse_record_map, await self._request('GET', "/records") or {})

    def _parse(self, endpoint: str, parse: Callable[[Any], T], data: Any) -> T:
        try:
            return parse(data)
        except (ValueError, TypeError, AttributeError) as e:
            # pydantic ValidationError is a ValueError
            raise LedgerGatewayError(f"Malformed gateway response from {endpoint}: {e}") from e

    async def _write(self, endpoint: str, payload: Dict[str, Any]) -> bool:
        try:
            await self._request('PUT', endpoint, json=payload)
            return True
        except LedgerError as e:
            logger.error(f"Ledger write to {endpoint} failed: {e}")
            return False

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        allow_missing: bool = False
    ) -> Any:
        if not self._http_session:
            raise LedgerUnavailableError("Ledger gateway client not started")
        try:
            return await self.circuit_breaker.call(
                self._send, method, f"{self.base_url}{endpoint}", json, allow_missing
            )
        except (CircuitBreakerError, CircuitBreakerTimeoutError) as e:
            raise LedgerUnavailableError(str(e)) from e
        except aiohttp.ClientError as e:
            raise LedgerUnavailableError(f"HTTP client error: {e}") from e

    async def _send(self, method: str, url: str, json: Optional[Dict[str, Any]], allow_missing: bool) -> Any:
        async with self._http_session.request(method, url, json=json) as response:
            if response.status == 404 and allow_missing:
                return None
            if response.status >= 400:
                error_text = await response.text()
                raise LedgerGatewayError(
                    f"Gateway request failed: {response.status} - {error_text}",
                    status=response.status
                )
            if response.status == 204:
                return None
            try:
                return await response.json(content_type=None)
            except ValueError as e:
                raise LedgerGatewayError(f"Malformed gateway response: {e}", status=response.status) from e
