"""Assemble a payment session (parser, swap provider, wallet, ledger) from settings."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Optional, Union

from .config import Settings
from .core.chains import SOURCE_CHAIN, build_contract_map
from .core.intent import IntentParser, LLMPaymentExtractor, PaymentExtractor, RemoteParseClient
from .core.payment import PaymentOrchestrator
from .ledger import RemoteLedgerClient, TransactionLedger, create_entity_store
from .providers.llm import get_llm_provider
from .providers.onlyswaps import OnlySwapsProvider, load_swap_constants
from .wallet import LocalAccountSigner, WalletSigner

Ledger = Union[TransactionLedger, RemoteLedgerClient]


def build_extractor(settings: Settings) -> PaymentExtractor:
    """Use the deployed API when one is configured, else call the model directly."""
    if settings.onlystables_api_url:
        return RemoteParseClient(
            settings.onlystables_api_url, timeout=float(settings.request_timeout_seconds)
        )
    return LLMPaymentExtractor(
        partial(get_llm_provider, settings),
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )


def build_ledger(settings: Settings) -> Ledger:
    if settings.onlystables_api_url:
        return RemoteLedgerClient(
            settings.onlystables_api_url, timeout=float(settings.request_timeout_seconds)
        )
    return TransactionLedger(create_entity_store(settings), settings.transaction_ttl_seconds)


@dataclass
class PaymentSession:
    orchestrator: PaymentOrchestrator
    extractor: PaymentExtractor
    ledger: Ledger

    async def aclose(self) -> None:
        await self.orchestrator.aclose()
        if isinstance(self.extractor, LLMPaymentExtractor):
            await self.extractor.aclose()
        if isinstance(self.ledger, TransactionLedger):
            await self.ledger.store.aclose()


def build_payment_session(
    settings: Settings,
    wallet: Optional[WalletSigner] = None,
) -> PaymentSession:
    """Contract constants are checked here, before any payment is attempted."""

    contracts = build_contract_map(load_swap_constants(settings))
    extractor = build_extractor(settings)
    ledger = build_ledger(settings)
    if wallet is None:
        wallet = LocalAccountSigner(
            settings.wallet_private_key,
            settings.rpc_url_for,
            SOURCE_CHAIN.chain_id,
        )
    swap_provider = OnlySwapsProvider(
        settings.onlyswaps_fees_url,
        contracts[SOURCE_CHAIN.key].router_address,
        timeout_s=float(settings.request_timeout_seconds),
    )
    orchestrator = PaymentOrchestrator(
        IntentParser(extractor),
        swap_provider,
        wallet,
        ledger,
        contracts,
        source_chain=SOURCE_CHAIN,
        reset_delay_seconds=settings.status_reset_delay_seconds,
    )
    return PaymentSession(orchestrator=orchestrator, extractor=extractor, ledger=ledger)


__all__ = ["PaymentSession", "build_extractor", "build_ledger", "build_payment_session"]
