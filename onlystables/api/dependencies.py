"""Process-wide service container, built once in the application lifespan."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial

from fastapi import Request

from ..config import Settings
from ..core.intent import IntentParser, LLMPaymentExtractor
from ..ledger import TransactionLedger, create_entity_store
from ..ledger.store import EntityStore
from ..providers.llm import get_llm_provider

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    extractor: LLMPaymentExtractor
    parser: IntentParser
    entity_store: EntityStore
    ledger: TransactionLedger

    @classmethod
    def build(cls, settings: Settings) -> "ServiceContainer":
        # Credentials are not checked here; the provider and the Arkiv account
        # are created on first use.
        extractor = LLMPaymentExtractor(
            partial(get_llm_provider, settings),
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
        store = create_entity_store(settings)
        logger.info(
            "Services ready (llm_provider=%s, ledger_backend=%s)",
            settings.llm_provider, settings.ledger_backend,
        )
        return cls(
            settings=settings,
            extractor=extractor,
            parser=IntentParser(extractor),
            entity_store=store,
            ledger=TransactionLedger(store, settings.transaction_ttl_seconds),
        )

    async def aclose(self) -> None:
        await self.extractor.aclose()
        await self.entity_store.aclose()


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_extractor(request: Request) -> LLMPaymentExtractor:
    return get_container(request).extractor


def get_ledger(request: Request) -> TransactionLedger:
    return get_container(request).ledger


__all__ = ["ServiceContainer", "get_container", "get_extractor", "get_ledger"]
