"""Ledger record models. JSON uses camelCase field names."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class TransactionRecord(_CamelModel):
    """A completed payment as stored in the ledger."""

    recipient: str
    amount: str
    token: str
    destination_chain_id: str
    destination_chain_name: str
    source_chain_id: str
    source_chain_name: str
    request_id: str
    tx_hash: Optional[str] = None
    purpose: Optional[str] = None
    created_at: str = Field(default_factory=utc_timestamp)
    initiator: str

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class LedgerEntry(TransactionRecord):
    """A record as returned by a query, with the backend's entity identifier."""

    entity_id: str


class LedgerWriteResult(_CamelModel):
    entity_id: str
    chain_tx_hash: Optional[str] = None


__all__ = ["TransactionRecord", "LedgerEntry", "LedgerWriteResult", "utc_timestamp"]
