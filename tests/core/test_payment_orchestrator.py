"""
Tests for the Payment Orchestrator

State transitions, wallet preconditions, error wording and the detached
ledger write.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock

import pytest

from onlystables.core.chains import ROUTER_CONSTANT, build_contract_map
from onlystables.core.errors import (
    AttemptInProgressError,
    InvalidTransitionError,
    PersistenceError,
    SwapProviderError,
    UnsupportedChainError,
    ValidationError,
    WalletRejectedError,
)
from onlystables.core.intent import IntentParser, PaymentExtractor
from onlystables.core.payment import PaymentOrchestrator, PaymentStatus, format_user_error
from onlystables.core.payment.formatting import (
    GENERIC_RETRY_MESSAGE,
    HISTORY_SAVE_FAILED_MESSAGE,
    WALLET_REJECTED_MESSAGE,
)
from onlystables.ledger.models import LedgerWriteResult
from onlystables.providers.onlyswaps import FeeQuote, SwapExecutionResult
from onlystables.providers.onlyswaps.constants import STABLE_TOKEN_ADDRESSES
from onlystables.wallet import WalletSigner

RECIPIENT = "0x1111111111111111111111111111111111111111"
WALLET = "0xAbCdEf0000000000000000000000000000000001"
REQUEST_ID = "0x" + "ab" * 32


# =============================================================================
# Fixtures
# =============================================================================

class StubExtractor(PaymentExtractor):
    def __init__(self, fields: Dict[str, Any]):
        self.fields = fields

    async def extract(self, user_input: str) -> Dict[str, Any]:
        return dict(self.fields)


class FakeWallet(WalletSigner):
    def __init__(self, chain_id: int = 56, address: Optional[str] = WALLET, allow_switch: bool = True):
        self._address = address
        self._chain_id = chain_id
        self.allow_switch = allow_switch
        self.switch_requests = []

    @property
    def address(self):
        return self._address

    async def chain_id(self) -> int:
        return self._chain_id

    async def switch_chain(self, chain_id: int) -> None:
        self.switch_requests.append(chain_id)
        if not self.allow_switch:
            raise WalletRejectedError()
        self._chain_id = chain_id

    async def send_transaction(self, tx):
        raise AssertionError("swap provider is mocked")

    async def wait_for_receipt(self, tx_hash, timeout=120.0):
        raise AssertionError("swap provider is mocked")


class RpcBackedWallet(FakeWallet):
    """Reads the network over the wire, so each check yields to the loop."""

    async def chain_id(self) -> int:
        await asyncio.sleep(0)
        return await super().chain_id()


def _fields(**overrides):
    fields = {
        "recipient": RECIPIENT,
        "amount": "2.5",
        "token": "USDT",
        "destinationChain": "arbitrum",
        "purpose": "for dinner",
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def contracts():
    return build_contract_map({**STABLE_TOKEN_ADDRESSES, ROUTER_CONSTANT: "0x" + "9" * 40})


@pytest.fixture
def swap_provider():
    provider = AsyncMock()
    provider.fetch_recommended_fees.return_value = FeeQuote(
        solver_fee=10_000, network_fee=5_000, total_fee=15_000, transfer_amount=2_500_000
    )
    provider.swap.return_value = SwapExecutionResult(
        request_id=REQUEST_ID, success=True, tx_hash="0x" + "cd" * 32
    )
    return provider


@pytest.fixture
def ledger():
    mock = AsyncMock()
    mock.write.return_value = LedgerWriteResult(entity_id="0xentity", chain_tx_hash="0xabc")
    return mock


def _orchestrator(contracts, swap_provider, ledger, wallet=None, fields=None):
    return PaymentOrchestrator(
        IntentParser(StubExtractor(fields or _fields())),
        swap_provider,
        wallet if wallet is not None else FakeWallet(),
        ledger,
        contracts,
        reset_delay_seconds=0,
    )


# =============================================================================
# Happy path
# =============================================================================

class TestSuccessfulPayment:

    @pytest.mark.asyncio
    async def test_success_flow(self, contracts, swap_provider, ledger):
        orchestrator = _orchestrator(contracts, swap_provider, ledger)

        outcome = await orchestrator.submit("send 2.5 USDT to arbitrum")

        assert outcome.status == PaymentStatus.SUCCESS
        assert outcome.request_id == REQUEST_ID
        assert orchestrator.status == PaymentStatus.SUCCESS
        assert [t.to_status for t in orchestrator.history] == [
            PaymentStatus.PARSING,
            PaymentStatus.EXECUTING,
            PaymentStatus.SUCCESS,
        ]

        fee_request = swap_provider.fetch_recommended_fees.await_args.args[0]
        assert fee_request.source_chain_id == 56
        assert fee_request.destination_chain_id == 42161
        assert fee_request.amount == 2_500_000
        assert fee_request.source_token == STABLE_TOKEN_ADDRESSES["USDT_BSC"]
        assert fee_request.destination_token == STABLE_TOKEN_ADDRESSES["USDT_ARBITRUM"]

        swap_request = swap_provider.swap.await_args.args[1]
        assert swap_request.recipient == RECIPIENT
        assert swap_request.fee == 15_000
        assert swap_request.dest_chain_id == 42161

        await orchestrator.drain()
        record = ledger.write.await_args.args[0]
        assert record.amount == "2.5"
        assert record.request_id == REQUEST_ID
        assert record.destination_chain_name == "arbitrum"
        assert record.destination_chain_id == "42161"
        assert record.source_chain_id == "56"
        assert record.source_chain_name == "bnb"
        assert record.initiator == WALLET.lower()
        assert record.purpose == "for dinner"
        assert record.created_at.endswith("Z")

        await orchestrator.wait_until_idle()
        assert orchestrator.status == PaymentStatus.IDLE

    @pytest.mark.asyncio
    async def test_conversation_log(self, contracts, swap_provider, ledger):
        orchestrator = _orchestrator(contracts, swap_provider, ledger)

        await orchestrator.submit("send 2.5 USDT to arbitrum")
        await orchestrator.drain()

        roles = [m.role for m in orchestrator.messages]
        assert roles == ["user", "assistant", "assistant"]
        summary, success = orchestrator.messages[1].content, orchestrator.messages[2].content
        assert "2.5 USDT" in summary
        assert RECIPIENT in summary
        assert "BNB Smart Chain -> Arbitrum One" in summary
        assert "0.015 USDT" in summary
        assert "for dinner" in summary
        assert REQUEST_ID in success

    @pytest.mark.asyncio
    async def test_ledger_outage_keeps_success(self, contracts, swap_provider, ledger):
        ledger.write.side_effect = PersistenceError("Arkiv request failed")
        orchestrator = _orchestrator(contracts, swap_provider, ledger)

        outcome = await orchestrator.submit("send 2.5 USDT to arbitrum")
        await orchestrator.drain()

        assert outcome.status == PaymentStatus.SUCCESS
        assert PaymentStatus.ERROR not in [t.to_status for t in orchestrator.history]
        notices = [m for m in orchestrator.messages if m.content == HISTORY_SAVE_FAILED_MESSAGE]
        assert len(notices) == 1

    @pytest.mark.asyncio
    async def test_switches_wallet_to_source_chain(self, contracts, swap_provider, ledger):
        wallet = FakeWallet(chain_id=8453)
        orchestrator = _orchestrator(contracts, swap_provider, ledger, wallet=wallet)

        outcome = await orchestrator.submit("send 2.5 USDT to arbitrum")

        assert outcome.status == PaymentStatus.SUCCESS
        assert wallet.switch_requests == [56]


# =============================================================================
# Failures
# =============================================================================

class TestFailedPayment:

    @pytest.mark.asyncio
    async def test_declined_switch_stops_before_parsing(self, contracts, swap_provider, ledger):
        wallet = FakeWallet(chain_id=1, allow_switch=False)
        orchestrator = _orchestrator(contracts, swap_provider, ledger, wallet=wallet)

        outcome = await orchestrator.submit("send 2.5 USDT to arbitrum")

        assert outcome.status == PaymentStatus.ERROR
        assert outcome.error_message == "Please switch your wallet to BNB Smart Chain to send payments."
        assert [t.to_status for t in orchestrator.history] == [PaymentStatus.ERROR]
        swap_provider.fetch_recommended_fees.assert_not_awaited()
        swap_provider.swap.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_wallet(self, contracts, swap_provider, ledger):
        wallet = FakeWallet(address=None)
        orchestrator = _orchestrator(contracts, swap_provider, ledger, wallet=wallet)

        outcome = await orchestrator.submit("send 2.5 USDT to arbitrum")

        assert outcome.status == PaymentStatus.ERROR
        assert "Connect your wallet" in outcome.error_message

    @pytest.mark.asyncio
    async def test_unsupported_chain_message_verbatim(self, contracts, swap_provider, ledger):
        orchestrator = _orchestrator(
            contracts, swap_provider, ledger, fields=_fields(destinationChain="polygon")
        )

        outcome = await orchestrator.submit("send 2.5 USDT on polygon")

        assert outcome.status == PaymentStatus.ERROR
        assert outcome.error_message.startswith('Unsupported chain "polygon". Supported chains: Base')
        assert orchestrator.history[-1].from_status == PaymentStatus.PARSING
        swap_provider.fetch_recommended_fees.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_swap_failure(self, contracts, swap_provider, ledger):
        swap_provider.swap.return_value = SwapExecutionResult(
            request_id=None, success=False, error_message="Swap transaction reverted"
        )
        orchestrator = _orchestrator(contracts, swap_provider, ledger)

        outcome = await orchestrator.submit("send 2.5 USDT to arbitrum")

        assert outcome.status == PaymentStatus.ERROR
        assert outcome.error_message == "Swap transaction reverted"
        assert orchestrator.history[-1].from_status == PaymentStatus.EXECUTING
        ledger.write.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejected_signature(self, contracts, swap_provider, ledger):
        swap_provider.swap.side_effect = Exception("MetaMask: User denied transaction signature.")
        orchestrator = _orchestrator(contracts, swap_provider, ledger)

        outcome = await orchestrator.submit("send 2.5 USDT to arbitrum")

        assert outcome.error_message == WALLET_REJECTED_MESSAGE

    @pytest.mark.asyncio
    async def test_log_level_follows_error_category(self, contracts, swap_provider, ledger, caplog):
        caplog.set_level(logging.INFO, logger="onlystables.core.payment.orchestrator")
        swap_provider.swap.side_effect = SwapProviderError("Swap transaction reverted")

        rejected = _orchestrator(contracts, swap_provider, ledger, wallet=FakeWallet(address=None))
        await rejected.submit("send 2.5 USDT to arbitrum")
        failed = _orchestrator(contracts, swap_provider, ledger)
        await failed.submit("send 2.5 USDT to arbitrum")

        levels = {r.getMessage().split(":")[0]: r.levelno for r in caplog.records if "Payment attempt" in r.getMessage()}
        assert levels == {"Payment attempt rejected": logging.INFO, "Payment attempt failed": logging.WARNING}
        await rejected.aclose()
        await failed.aclose()

    @pytest.mark.asyncio
    async def test_error_returns_to_idle(self, contracts, swap_provider, ledger):
        swap_provider.fetch_recommended_fees.side_effect = SwapProviderError("Fee quote failed")
        orchestrator = _orchestrator(contracts, swap_provider, ledger)

        await orchestrator.submit("send 2.5 USDT to arbitrum")
        assert orchestrator.status == PaymentStatus.ERROR

        await orchestrator.wait_until_idle()
        assert orchestrator.status == PaymentStatus.IDLE
        assert orchestrator.can_submit is True


# =============================================================================
# State machine
# =============================================================================

class TestTransitions:

    def test_transition_map(self):
        t = PaymentOrchestrator.TRANSITIONS
        assert t[PaymentStatus.IDLE] == {PaymentStatus.PARSING, PaymentStatus.ERROR}
        assert t[PaymentStatus.PARSING] == {PaymentStatus.EXECUTING, PaymentStatus.ERROR}
        assert t[PaymentStatus.EXECUTING] == {PaymentStatus.SUCCESS, PaymentStatus.ERROR}
        assert t[PaymentStatus.SUCCESS] == {PaymentStatus.IDLE}
        assert t[PaymentStatus.ERROR] == {PaymentStatus.IDLE}

    def test_invalid_transition_raises(self, contracts, swap_provider, ledger):
        orchestrator = _orchestrator(contracts, swap_provider, ledger)

        with pytest.raises(InvalidTransitionError):
            orchestrator.transition_to(PaymentStatus.SUCCESS)
        assert orchestrator.status == PaymentStatus.IDLE

    @pytest.mark.asyncio
    async def test_concurrent_submit_is_refused(self, contracts, swap_provider, ledger):
        release = asyncio.Event()

        async def slow_quote(request):
            await release.wait()
            return FeeQuote(solver_fee=0, network_fee=0, total_fee=0, transfer_amount=request.amount)

        swap_provider.fetch_recommended_fees.side_effect = slow_quote
        orchestrator = _orchestrator(contracts, swap_provider, ledger)

        first = asyncio.create_task(orchestrator.submit("send 2.5 USDT to arbitrum"))
        await asyncio.sleep(0)
        while orchestrator.status == PaymentStatus.IDLE:
            await asyncio.sleep(0)

        with pytest.raises(AttemptInProgressError):
            await orchestrator.submit("send again")

        release.set()
        assert (await first).status == PaymentStatus.SUCCESS
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_submit_is_refused_while_wallet_check_is_pending(self, contracts, swap_provider, ledger):
        wallet = RpcBackedWallet()
        orchestrator = _orchestrator(contracts, swap_provider, ledger, wallet=wallet)

        first, second = await asyncio.gather(
            orchestrator.submit("send 2.5 USDT to arbitrum"),
            orchestrator.submit("send again"),
            return_exceptions=True,
        )

        assert first.status == PaymentStatus.SUCCESS
        assert isinstance(second, AttemptInProgressError)
        assert [m.content for m in orchestrator.messages if m.role == "user"] == ["send 2.5 USDT to arbitrum"]
        assert swap_provider.swap.await_count == 1
        await orchestrator.aclose()

    @pytest.mark.asyncio
    async def test_blank_text_leaves_status_idle(self, contracts, swap_provider, ledger):
        orchestrator = _orchestrator(contracts, swap_provider, ledger)

        with pytest.raises(ValidationError):
            await orchestrator.submit("   ")

        assert orchestrator.status == PaymentStatus.IDLE
        assert orchestrator.can_submit
        assert orchestrator.messages == []


# =============================================================================
# Error wording
# =============================================================================

class TestFormatUserError:

    def test_rejection(self):
        assert format_user_error(Exception("user rejected the request")) == WALLET_REJECTED_MESSAGE
        assert format_user_error(WalletRejectedError()) == WALLET_REJECTED_MESSAGE
        assert format_user_error(WalletRejectedError("Signature declined")) == WALLET_REJECTED_MESSAGE

    def test_unsupported_chain_is_full_message(self):
        exc = UnsupportedChainError("polygon", ["Base"] * 40)
        assert format_user_error(exc) == exc.message

    def test_first_line_only(self):
        assert format_user_error(Exception("Fee quote failed\nstack trace here")) == "Fee quote failed"

    def test_long_message_replaced(self):
        assert format_user_error(Exception("x" * 181)) == GENERIC_RETRY_MESSAGE
        assert format_user_error(Exception("x" * 180)) == "x" * 180
