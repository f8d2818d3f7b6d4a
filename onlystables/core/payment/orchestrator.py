"""
Payment Orchestrator

Drives one payment attempt at a time through
idle -> parsing -> executing -> success | error, then back to idle after a
short delay. Keeps the conversation log for the session.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Set

from ..amounts import from_minor_units
from ..chains import SOURCE_CHAIN, ChainConfig, ChainContracts
from ..errors import (
    AttemptInProgressError,
    ChainSwitchRequiredError,
    ErrorCategory,
    InvalidTransitionError,
    SwapProviderError,
    ValidationError,
    WalletNotConnectedError,
)
from ..intent.parser import IntentParser, PaymentIntent
from ...ledger.models import LedgerWriteResult, TransactionRecord, utc_timestamp
from ...providers.onlyswaps.client import (
    FeeQuote,
    FeeQuoteRequest,
    OnlySwapsProvider,
    SwapRequest,
)
from ...wallet.signer import WalletSigner
from .formatting import (
    HISTORY_SAVE_FAILED_MESSAGE,
    format_user_error,
    processing_message,
    success_message,
)
from .models import ChatMessage, PaymentOutcome, PaymentStatus, StatusTransition

_USER_CORRECTABLE = (
    ErrorCategory.VALIDATION,
    ErrorCategory.UNSUPPORTED_CHAIN,
    ErrorCategory.WALLET,
)


class LedgerWriter(Protocol):
    async def write(self, record: TransactionRecord) -> LedgerWriteResult: ...


class PaymentOrchestrator:
    """
    Runs payment attempts for one wallet session.

    Features:
    - Validates status transitions against an allowed transition map
    - Refuses a new attempt while one is running
    - Returns to idle automatically after success or error
    - Writes the ledger record in a detached task after a successful swap
    """

    TRANSITIONS: Dict[PaymentStatus, Set[PaymentStatus]] = {
        PaymentStatus.IDLE: {
            PaymentStatus.PARSING,
            PaymentStatus.ERROR,  # Wallet preconditions failed
        },
        PaymentStatus.PARSING: {
            PaymentStatus.EXECUTING,
            PaymentStatus.ERROR,
        },
        PaymentStatus.EXECUTING: {
            PaymentStatus.SUCCESS,
            PaymentStatus.ERROR,
        },
        PaymentStatus.SUCCESS: {
            PaymentStatus.IDLE,
        },
        PaymentStatus.ERROR: {
            PaymentStatus.IDLE,
        },
    }

    def __init__(
        self,
        parser: IntentParser,
        swap_provider: OnlySwapsProvider,
        wallet: Optional[WalletSigner],
        ledger: LedgerWriter,
        contracts: Mapping[str, ChainContracts],
        *,
        source_chain: ChainConfig = SOURCE_CHAIN,
        reset_delay_seconds: float = 3.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.parser = parser
        self.swap_provider = swap_provider
        self.wallet = wallet
        self.ledger = ledger
        self.contracts = contracts
        self.source_chain = source_chain
        self.reset_delay_seconds = reset_delay_seconds
        self.logger = logger or logging.getLogger(__name__)

        self.status = PaymentStatus.IDLE
        self.messages: List[ChatMessage] = []
        self.history: List[StatusTransition] = []

        self._reset_task: Optional[asyncio.Task] = None
        self._ledger_tasks: Set[asyncio.Task] = set()
        # Claimed before the first await of an attempt, released when it returns.
        self._attempt_active = False

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @property
    def can_submit(self) -> bool:
        return self.status == PaymentStatus.IDLE and not self._attempt_active

    def can_transition_to(self, to_status: PaymentStatus) -> bool:
        return to_status in self.TRANSITIONS.get(self.status, set())

    def transition_to(self, to_status: PaymentStatus, reason: Optional[str] = None) -> StatusTransition:
        from_status = self.status
        if not self.can_transition_to(to_status):
            allowed = sorted(s.value for s in self.TRANSITIONS.get(from_status, set()))
            raise InvalidTransitionError(
                from_state=from_status,
                to_state=to_status,
                message=f"Invalid transition from {from_status.value} to {to_status.value}. Allowed: {allowed}",
            )

        transition = StatusTransition(from_status=from_status, to_status=to_status, reason=reason)
        self.status = to_status
        self.history.append(transition)
        self.logger.info(
            f"Payment status: {from_status.value} -> {to_status.value}"
            f"{f' ({reason})' if reason else ''}"
        )

        if to_status in (PaymentStatus.SUCCESS, PaymentStatus.ERROR):
            self._schedule_reset()
        return transition

    def _schedule_reset(self) -> None:
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        self._reset_task = asyncio.create_task(self._reset_after_delay())

    async def _reset_after_delay(self) -> None:
        await asyncio.sleep(self.reset_delay_seconds)
        if self.status in (PaymentStatus.SUCCESS, PaymentStatus.ERROR):
            self.transition_to(PaymentStatus.IDLE, reason="Auto reset")

    async def wait_until_idle(self) -> None:
        if self._reset_task is not None:
            await self._reset_task

    async def drain(self) -> None:
        """Wait for outstanding ledger writes."""
        if self._ledger_tasks:
            await asyncio.gather(*list(self._ledger_tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
            try:
                await self._reset_task
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def _say(self, content: str) -> ChatMessage:
        message = ChatMessage(role="assistant", content=content)
        self.messages.append(message)
        return message

    def _fail(self, exc: BaseException) -> PaymentOutcome:
        user_message = format_user_error(exc)
        if getattr(exc, "category", None) in _USER_CORRECTABLE:
            self.logger.info(f"Payment attempt rejected: {exc}")
        else:
            self.logger.warning(f"Payment attempt failed: {exc!r}", exc_info=exc)
        self._say(user_message)
        self.transition_to(PaymentStatus.ERROR, reason=type(exc).__name__)
        return PaymentOutcome(status=PaymentStatus.ERROR, error_message=user_message)

    # ------------------------------------------------------------------
    # Attempt
    # ------------------------------------------------------------------

    async def _check_wallet(self) -> None:
        if self.wallet is None or not self.wallet.address:
            raise WalletNotConnectedError()

        if await self.wallet.chain_id() == self.source_chain.chain_id:
            return
        try:
            await self.wallet.switch_chain(self.source_chain.chain_id)
        except Exception as exc:
            raise ChainSwitchRequiredError(self.source_chain.display_name) from exc
        if await self.wallet.chain_id() != self.source_chain.chain_id:
            raise ChainSwitchRequiredError(self.source_chain.display_name)

    def _tokens_for(self, intent: PaymentIntent) -> tuple:
        source = self.contracts[self.source_chain.key]
        destination = self.contracts[intent.destination_chain.key]
        return source, destination

    async def submit(self, raw_text: str) -> PaymentOutcome:
        """Run one payment attempt for ``raw_text``.

        Raises ``AttemptInProgressError`` if an attempt has not yet returned to
        idle, and ``ValidationError`` for blank text; neither touches the status.
        Every other failure ends in the error status with a message in the
        conversation log.
        """
        if not self.can_submit:
            raise AttemptInProgressError()
        text = (raw_text or "").strip()
        if not text:
            raise ValidationError("Please describe the payment you want to make.")

        self._attempt_active = True
        try:
            return await self._run_attempt(text)
        finally:
            self._attempt_active = False

    async def _run_attempt(self, text: str) -> PaymentOutcome:
        self.messages.append(ChatMessage(role="user", content=text))

        try:
            await self._check_wallet()
        except Exception as exc:
            return self._fail(exc)

        self.transition_to(PaymentStatus.PARSING)
        try:
            intent = await self.parser.parse(text)
            source, destination = self._tokens_for(intent)
            quote = await self.swap_provider.fetch_recommended_fees(
                FeeQuoteRequest(
                    source_token=source.stable_token_address,
                    destination_token=destination.stable_token_address,
                    source_chain_id=self.source_chain.chain_id,
                    destination_chain_id=intent.destination_chain.chain_id,
                    amount=intent.amount_minor_units,
                )
            )
        except Exception as exc:
            return self._fail(exc)

        self.transition_to(PaymentStatus.EXECUTING)
        self._say(self._processing_summary(intent, quote))
        try:
            result = await self.swap_provider.swap(
                self.wallet,
                SwapRequest(
                    recipient=intent.recipient,
                    src_token=source.stable_token_address,
                    dest_token=destination.stable_token_address,
                    amount=intent.amount_minor_units,
                    fee=quote.total_fee,
                    dest_chain_id=intent.destination_chain.chain_id,
                ),
            )
            if not result.success or not result.request_id:
                raise SwapProviderError(result.error_message or "Swap failed without a request id")
        except Exception as exc:
            return self._fail(exc)

        amount = from_minor_units(intent.amount_minor_units, intent.token.decimals)
        self._say(
            success_message(
                result.request_id, amount, intent.token.symbol, intent.destination_chain.display_name
            )
        )
        self.transition_to(PaymentStatus.SUCCESS, reason=f"request {result.request_id}")
        self._spawn_ledger_write(intent, result.request_id, result.tx_hash, self.wallet.address)
        return PaymentOutcome(
            status=PaymentStatus.SUCCESS, request_id=result.request_id, tx_hash=result.tx_hash
        )

    def _processing_summary(self, intent: PaymentIntent, quote: FeeQuote) -> str:
        return processing_message(
            intent.amount_minor_units,
            intent.token.decimals,
            intent.token.symbol,
            intent.recipient,
            self.source_chain.display_name,
            intent.destination_chain.display_name,
            quote.total_fee,
            intent.purpose,
        )

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def build_record(
        self,
        intent: PaymentIntent,
        request_id: str,
        tx_hash: Optional[str],
        initiator: str,
    ) -> TransactionRecord:
        return TransactionRecord(
            recipient=intent.recipient,
            amount=from_minor_units(intent.amount_minor_units, intent.token.decimals),
            token=intent.token.symbol,
            destination_chain_id=str(intent.destination_chain.chain_id),
            destination_chain_name=intent.destination_chain.key,
            source_chain_id=str(self.source_chain.chain_id),
            source_chain_name=self.source_chain.key,
            request_id=request_id,
            tx_hash=tx_hash,
            purpose=intent.purpose,
            created_at=utc_timestamp(),
            initiator=initiator.lower(),
        )

    def _spawn_ledger_write(self, intent: PaymentIntent, request_id: str, tx_hash: Optional[str], initiator: str) -> None:
        record = self.build_record(intent, request_id, tx_hash, initiator)
        task = asyncio.create_task(self._write_record(record))
        self._ledger_tasks.add(task)
        task.add_done_callback(self._ledger_tasks.discard)

    async def _write_record(self, record: TransactionRecord) -> Any:
        try:
            result = await self.ledger.write(record)
        except Exception as exc:
            self.logger.warning(f"Failed to save payment {record.request_id} to history: {exc!r}")
            self._say(HISTORY_SAVE_FAILED_MESSAGE)
            return None
        self.logger.info(f"Saved payment {record.request_id} as {result.entity_id}")
        return result


__all__ = ["PaymentOrchestrator", "LedgerWriter"]
