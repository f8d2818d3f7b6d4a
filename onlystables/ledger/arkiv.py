"""
Arkiv entity-store client over plain JSON-RPC.

Writes are signed transactions to the Arkiv storage processor address whose
calldata is an RLP-encoded operation list. Reads use the ``arkiv_query``
method with the attribute query language.

Example usage:
    store = ArkivClient(rpc_url="https://mendoza.hoodi.arkiv.network/rpc", private_key="0x...")
    created = await store.create_entity(b"{}", {"type": "transaction"},
                                        content_type="application/json",
                                        expires_in_seconds=3600)
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Mapping, Optional

import httpx
import rlp
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from ..core.errors import ConfigurationError, PersistenceError
from .store import CreatedEntity, Entity, EntityQuery, EntityStore, InMemoryEntityStore

logger = logging.getLogger(__name__)

# ASCII "arkiv", left-padded to 20 bytes.
ARKIV_PROCESSOR_ADDRESS = "0x00000000000000000000000000000061726b6976"


def _hex_to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(str(value), 16)


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def build_query_string(query: EntityQuery) -> str:
    clauses = [f"{key} = {_quote(value)}" for key, value in query.equals.items()]
    clauses.append(f"$owner = {query.owner.lower()}")
    return " && ".join(clauses)


def encode_create_operation(
    payload: bytes,
    attributes: Mapping[str, str],
    content_type: str,
    blocks_to_live: int,
) -> bytes:
    """RLP calldata: [creates, updates, deletes, extends] with a single create."""

    string_attributes = [[key.encode(), str(value).encode()] for key, value in attributes.items()]
    create = [blocks_to_live, content_type.encode(), payload, string_attributes, []]
    return rlp.encode([[create], [], [], []])


def _decode_payload(raw: Any) -> Optional[bytes]:
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    text = str(raw)
    if text.startswith("0x"):
        try:
            return bytes.fromhex(text[2:])
        except ValueError:
            return text.encode()
    return text.encode()


def _decode_attributes(item: Dict[str, Any]) -> Dict[str, str]:
    attributes: Dict[str, str] = {}
    for group in ("stringAttributes", "numericAttributes", "attributes"):
        for attribute in item.get(group) or []:
            key = attribute.get("key")
            if key is not None:
                value = attribute.get("value")
                attributes[key] = "" if value is None else str(value)
    return attributes


def parse_query_result(result: Any) -> List[Entity]:
    items = result.get("data") if isinstance(result, dict) else result
    entities = []
    for item in items or []:
        entities.append(
            Entity(
                key=str(item.get("key", "")),
                attributes=_decode_attributes(item),
                payload=_decode_payload(item.get("value", item.get("payload"))),
                content_type=item.get("contentType") or "application/json",
                owner=item.get("owner"),
            )
        )
    return entities


class ArkivClient(EntityStore):
    """Async JSON-RPC client for one Arkiv network, signing as one account."""

    def __init__(
        self,
        rpc_url: str,
        private_key: Optional[str] = None,
        *,
        timeout: float = 30.0,
        block_time_seconds: int = 2,
        receipt_timeout_seconds: float = 60.0,
        poll_interval_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not rpc_url:
            raise ConfigurationError("ARKIV_RPC_URL is required")
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.block_time_seconds = max(1, int(block_time_seconds))
        self.receipt_timeout_seconds = receipt_timeout_seconds
        self.poll_interval_seconds = (
            poll_interval_seconds if poll_interval_seconds is not None else float(self.block_time_seconds)
        )
        self._private_key = private_key
        self._account: Optional[LocalAccount] = None
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._request_id = 0

    def _get_account(self) -> LocalAccount:
        """Created on first use so a missing key only fails the calls that need it."""
        if self._account is None:
            if not self._private_key:
                raise ConfigurationError("ARKIV_PRIVATE_KEY is not configured")
            key = self._private_key if self._private_key.startswith("0x") else "0x" + self._private_key
            self._account = Account.from_key(key)
        return self._account

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        client = await self._get_client()
        self._request_id += 1
        try:
            response = await client.post(
                self.rpc_url,
                json={"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise PersistenceError(f"Arkiv {method} failed: {e.response.text}") from e
        except httpx.RequestError as e:
            raise PersistenceError(f"Arkiv request failed: {str(e)}") from e
        except ValueError as e:
            raise PersistenceError(f"Arkiv {method} returned a non-JSON response") from e

        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise PersistenceError(f"Arkiv {method} error: {message}", details={"error": error})
        return data.get("result")

    async def owner_address(self) -> str:
        return self._get_account().address

    def _blocks_to_live(self, expires_in_seconds: int) -> int:
        return max(1, -(-int(expires_in_seconds) // self.block_time_seconds))

    async def create_entity(
        self,
        payload: bytes,
        attributes: Mapping[str, str],
        *,
        content_type: str,
        expires_in_seconds: int,
    ) -> CreatedEntity:
        account = self._get_account()
        calldata = encode_create_operation(
            payload, attributes, content_type, self._blocks_to_live(expires_in_seconds)
        )

        chain_id = _hex_to_int(await self._rpc("eth_chainId", []))
        nonce = _hex_to_int(await self._rpc("eth_getTransactionCount", [account.address, "pending"]))
        gas_price = _hex_to_int(await self._rpc("eth_gasPrice", []))
        tx = {
            "from": account.address,
            "to": to_checksum_address(ARKIV_PROCESSOR_ADDRESS),
            "data": "0x" + calldata.hex(),
            "value": 0,
        }
        gas = _hex_to_int(await self._rpc("eth_estimateGas", [{**tx, "value": "0x0"}]))

        signed = account.sign_transaction(
            {
                "to": tx["to"],
                "data": tx["data"],
                "value": 0,
                "nonce": nonce,
                "gas": gas,
                "gasPrice": gas_price,
                "chainId": chain_id,
            }
        )
        tx_hash = await self._rpc("eth_sendRawTransaction", ["0x" + bytes(signed.raw_transaction).hex()])
        receipt = await self._wait_for_receipt(tx_hash)

        if _hex_to_int(receipt.get("status", "0x1")) == 0:
            raise PersistenceError("Arkiv create transaction reverted", details={"txHash": tx_hash})

        key = self._entity_key_from_receipt(receipt)
        if key is None:
            raise PersistenceError("Arkiv receipt did not contain an entity key", details={"txHash": tx_hash})
        logger.info("Created Arkiv entity %s in tx %s", key, tx_hash)
        return CreatedEntity(key=key, tx_hash=tx_hash)

    async def _wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        deadline = time.monotonic() + self.receipt_timeout_seconds
        while True:
            receipt = await self._rpc("eth_getTransactionReceipt", [tx_hash])
            if receipt:
                return receipt
            if time.monotonic() >= deadline:
                raise PersistenceError(
                    f"Timed out waiting for Arkiv transaction {tx_hash}", details={"txHash": tx_hash}
                )
            await asyncio.sleep(self.poll_interval_seconds)

    @staticmethod
    def _entity_key_from_receipt(receipt: Dict[str, Any]) -> Optional[str]:
        for log in receipt.get("logs") or []:
            if str(log.get("address", "")).lower() != ARKIV_PROCESSOR_ADDRESS:
                continue
            topics = log.get("topics") or []
            if len(topics) >= 2:
                return str(topics[1]).lower()
        return None

    async def query_entities(self, query: EntityQuery) -> List[Entity]:
        options = {
            "includeData": {
                "key": True,
                "attributes": True,
                "payload": True,
                "contentType": True,
                "owner": True,
            },
            "orderBy": [{"name": query.order_by, "type": "string", "desc": query.descending}],
            "resultsPerPage": query.limit,
        }
        result = await self._rpc("arkiv_query", [build_query_string(query), options])
        entities = parse_query_result(result)
        logger.debug("Arkiv query returned %d entities", len(entities))
        return entities[: query.limit]


def create_entity_store(settings) -> EntityStore:
    """Build the configured backend. Called once from the application lifespan."""

    backend = (settings.ledger_backend or "arkiv").lower()
    if backend == "memory":
        return InMemoryEntityStore()
    if backend != "arkiv":
        raise ConfigurationError(f"Unknown ledger backend {backend!r}; expected 'arkiv' or 'memory'")
    return ArkivClient(
        rpc_url=settings.arkiv_rpc_url,
        private_key=settings.arkiv_private_key or None,
        timeout=float(settings.request_timeout_seconds),
        block_time_seconds=settings.arkiv_block_time_seconds,
        receipt_timeout_seconds=settings.arkiv_receipt_timeout_seconds,
    )


__all__ = [
    "ARKIV_PROCESSOR_ADDRESS",
    "ArkivClient",
    "build_query_string",
    "create_entity_store",
    "encode_create_operation",
    "parse_query_result",
]
