"""
Entity-store abstraction behind the ledger.

An entity is an opaque payload plus a flat map of indexed string attributes,
owned by the address that wrote it and expiring after a time-to-live.
"""

from __future__ import annotations

import asyncio
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class Entity:
    key: str
    attributes: Mapping[str, str]
    payload: Optional[bytes] = None
    content_type: str = "application/json"
    owner: Optional[str] = None


@dataclass(frozen=True)
class CreatedEntity:
    key: str
    tx_hash: Optional[str] = None


@dataclass(frozen=True)
class EntityQuery:
    """Equality predicates joined with AND, scoped to one owner."""

    equals: Mapping[str, str]
    owner: str
    order_by: str = "createdAt"
    descending: bool = True
    limit: int = 10


class EntityStore(ABC):
    @abstractmethod
    async def owner_address(self) -> str:
        """Address that owns entities written through this store."""

    @abstractmethod
    async def create_entity(
        self,
        payload: bytes,
        attributes: Mapping[str, str],
        *,
        content_type: str,
        expires_in_seconds: int,
    ) -> CreatedEntity:
        pass

    @abstractmethod
    async def query_entities(self, query: EntityQuery) -> List[Entity]:
        pass

    async def aclose(self) -> None:
        return None


@dataclass
class _StoredEntity:
    entity: Entity
    expires_at: float
    sequence: int = field(default=0)


class InMemoryEntityStore(EntityStore):
    """Process-local store for development and tests. Honours TTLs."""

    def __init__(
        self,
        owner: str = "0x" + "0" * 40,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._owner = owner.lower()
        self._clock = clock
        self._entities: Dict[str, _StoredEntity] = {}
        self._sequence = 0
        self._lock = asyncio.Lock()

    async def owner_address(self) -> str:
        return self._owner

    async def create_entity(
        self,
        payload: bytes,
        attributes: Mapping[str, str],
        *,
        content_type: str,
        expires_in_seconds: int,
    ) -> CreatedEntity:
        async with self._lock:
            self._sequence += 1
            key = "0x" + secrets.token_hex(32)
            self._entities[key] = _StoredEntity(
                entity=Entity(
                    key=key,
                    attributes=dict(attributes),
                    payload=payload,
                    content_type=content_type,
                    owner=self._owner,
                ),
                expires_at=self._clock() + expires_in_seconds,
                sequence=self._sequence,
            )
        return CreatedEntity(key=key, tx_hash=None)

    async def query_entities(self, query: EntityQuery) -> List[Entity]:
        now = self._clock()
        async with self._lock:
            expired = [key for key, stored in self._entities.items() if stored.expires_at <= now]
            for key in expired:
                del self._entities[key]

            matches = [
                stored
                for stored in self._entities.values()
                if (stored.entity.owner or "").lower() == query.owner.lower()
                and all(stored.entity.attributes.get(k) == v for k, v in query.equals.items())
            ]

        matches.sort(
            key=lambda stored: (str(stored.entity.attributes.get(query.order_by, "")), stored.sequence),
            reverse=query.descending,
        )
        return [stored.entity for stored in matches[: query.limit]]


__all__ = ["Entity", "CreatedEntity", "EntityQuery", "EntityStore", "InMemoryEntityStore"]
