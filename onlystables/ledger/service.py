"""
Transaction ledger: write completed payments, query them back per initiator.

All records are owned by the ledger's own signer, so every query is scoped to
one initiator address. A query without a well-formed initiator is refused
before the backend is touched.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional

from ..core.errors import (
    InvalidInitiatorFormatError,
    MissingFieldError,
    MissingInitiatorError,
    OnlyStablesError,
    PersistenceError,
    ValidationError,
)
from .models import LedgerEntry, LedgerWriteResult, TransactionRecord, utc_timestamp
from .store import Entity, EntityQuery, EntityStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 50
RECORD_TYPE = "transaction"
CONTENT_TYPE = "application/json"

_INITIATOR_RE = re.compile(r"^0x[a-f0-9]{40}$")

REQUIRED_FIELDS = (
    "recipient",
    "amount",
    "token",
    "destinationChainId",
    "destinationChainName",
    "sourceChainId",
    "sourceChainName",
    "requestId",
    "initiator",
)

_RECORD_FIELDS = REQUIRED_FIELDS + ("txHash", "purpose", "createdAt")


def normalize_limit(raw: Any) -> int:
    """Default for missing or non-finite input, then floor and clamp to [1, 50]."""

    if raw is None or isinstance(raw, bool):
        return DEFAULT_LIMIT
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if not math.isfinite(value):
        return DEFAULT_LIMIT
    return min(max(math.floor(value), 1), MAX_LIMIT)


def normalize_initiator(raw: Optional[str]) -> str:
    initiator = (raw or "").strip().lower()
    if not initiator:
        raise MissingInitiatorError()
    if not _INITIATOR_RE.fullmatch(initiator):
        raise InvalidInitiatorFormatError()
    return initiator


def _optional_text(body: Mapping[str, Any], name: str) -> Optional[str]:
    value = body.get(name)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Field {name} must be a string")
    return value


def record_from_body(body: Mapping[str, Any]) -> TransactionRecord:
    """Validate a write-endpoint body and normalise it into a record."""

    for name in REQUIRED_FIELDS:
        value = body.get(name)
        if value is None or (isinstance(value, str) and value == ""):
            raise MissingFieldError(name)

    return TransactionRecord(
        recipient=str(body["recipient"]).lower(),
        amount=str(body["amount"]),
        token=str(body["token"]).upper(),
        destination_chain_id=str(body["destinationChainId"]),
        destination_chain_name=str(body["destinationChainName"]).lower(),
        source_chain_id=str(body["sourceChainId"]),
        source_chain_name=str(body["sourceChainName"]).lower(),
        request_id=str(body["requestId"]),
        tx_hash=_optional_text(body, "txHash"),
        purpose=_optional_text(body, "purpose"),
        created_at=_optional_text(body, "createdAt") or utc_timestamp(),
        initiator=str(body["initiator"]).lower(),
    )


def build_attributes(record: TransactionRecord) -> Dict[str, str]:
    payload = record.to_payload()
    attributes = {"type": RECORD_TYPE}
    for name in _RECORD_FIELDS:
        value = payload.get(name)
        if value is None and name == "txHash":
            continue
        attributes[name] = "" if value is None else str(value)
    return attributes


def parse_entity(entity: Entity) -> LedgerEntry:
    """Decode an entity, preferring the JSON payload and falling back to attributes."""

    decoded: Dict[str, Any] = {}
    if entity.payload:
        try:
            candidate = json.loads(entity.payload.decode("utf-8"))
            if isinstance(candidate, dict):
                decoded = candidate
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Unable to parse ledger payload for %s: %s", entity.key, exc)

    def value(name: str) -> str:
        found = decoded.get(name)
        if found is None:
            found = entity.attributes.get(name, "")
        return "" if found is None else str(found)

    return LedgerEntry(
        entity_id=entity.key,
        recipient=value("recipient"),
        amount=value("amount"),
        token=value("token"),
        destination_chain_id=value("destinationChainId"),
        destination_chain_name=value("destinationChainName"),
        source_chain_id=value("sourceChainId"),
        source_chain_name=value("sourceChainName"),
        request_id=value("requestId"),
        tx_hash=value("txHash") or None,
        purpose=value("purpose") or None,
        created_at=value("createdAt"),
        initiator=value("initiator"),
    )


class TransactionLedger:
    def __init__(self, store: EntityStore, ttl_seconds: int):
        self.store = store
        self.ttl_seconds = int(ttl_seconds)

    async def write(self, record: TransactionRecord) -> LedgerWriteResult:
        if not record.initiator:
            raise MissingFieldError("initiator")
        if not record.request_id:
            raise MissingFieldError("requestId")
        if record.initiator != record.initiator.lower():
            record = record.model_copy(update={"initiator": record.initiator.lower()})

        payload = json.dumps(record.to_payload()).encode("utf-8")
        try:
            created = await self.store.create_entity(
                payload,
                build_attributes(record),
                content_type=CONTENT_TYPE,
                expires_in_seconds=self.ttl_seconds,
            )
        except OnlyStablesError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Failed to persist transaction: {exc}") from exc

        logger.info("Ledger write request_id=%s entity=%s", record.request_id, created.key)
        return LedgerWriteResult(entity_id=created.key, chain_tx_hash=created.tx_hash)

    async def query(self, initiator: Optional[str], limit: Any = None) -> List[LedgerEntry]:
        normalized = normalize_initiator(initiator)
        safe_limit = normalize_limit(limit)

        try:
            owner = await self.store.owner_address()
            entities = await self.store.query_entities(
                EntityQuery(
                    equals={"type": RECORD_TYPE, "initiator": normalized},
                    owner=owner,
                    order_by="createdAt",
                    descending=True,
                    limit=safe_limit,
                )
            )
        except OnlyStablesError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Failed to load transaction history: {exc}") from exc

        return [parse_entity(entity) for entity in entities[:safe_limit]]


__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "REQUIRED_FIELDS",
    "TransactionLedger",
    "build_attributes",
    "normalize_initiator",
    "normalize_limit",
    "parse_entity",
    "record_from_body",
]
