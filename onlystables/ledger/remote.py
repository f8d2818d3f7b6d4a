"""HTTP client for the ledger endpoints of a deployed onlystables API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..core.errors import ConfigurationError, PersistenceError, ValidationError
from .models import LedgerEntry, LedgerWriteResult, TransactionRecord
from .service import normalize_initiator

logger = logging.getLogger(__name__)


class RemoteLedgerClient:
    """Same ``write``/``query`` surface as ``TransactionLedger``, over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ConfigurationError("ONLYSTABLES_API_URL is required for the remote ledger")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            raise PersistenceError(f"Ledger request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text}

        if response.status_code == 400:
            raise ValidationError(body.get("error") or "Invalid ledger request")
        if response.status_code >= 400 or not body.get("success"):
            raise PersistenceError(
                body.get("error") or f"Ledger request failed with status {response.status_code}",
                details={"status": response.status_code},
            )
        return body

    async def write(self, record: TransactionRecord) -> LedgerWriteResult:
        body = await self._request("POST", "/api/transactions", json=record.to_payload())
        return LedgerWriteResult(entity_id=body["entityId"], chain_tx_hash=body.get("backendTxHash"))

    async def query(self, initiator: Optional[str], limit: Any = None) -> List[LedgerEntry]:
        params: Dict[str, Any] = {"initiator": normalize_initiator(initiator)}
        if limit is not None:
            params["limit"] = limit
        body = await self._request("GET", "/api/transactions", params=params)
        return [LedgerEntry.model_validate(item) for item in body.get("data") or []]


__all__ = ["RemoteLedgerClient"]
