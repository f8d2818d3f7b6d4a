"""Turn a free-text payment request into a validated ``PaymentIntent``."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from ..amounts import to_minor_units
from ..chains import ChainConfig, Token, is_evm_address, resolve_chain, resolve_token
from ..errors import (
    InvalidAmountError,
    InvalidRecipientFormatError,
    MissingAmountError,
    MissingRecipientError,
)
from .extraction import PaymentExtractor

logger = logging.getLogger(__name__)

_ADDRESS_SEARCH_RE = re.compile(r"0x[a-fA-F0-9]{40}")
# Strips anything that looks like a hex address, including malformed lengths,
# so its digits are never mistaken for an amount.
_ADDRESS_STRIP_RE = re.compile(r"0x[a-fA-F0-9]+")
_NUMBER_RE = re.compile(r"[0-9]+(?:\.[0-9]+)?")


@dataclass(frozen=True)
class PaymentIntent:
    """A validated, chain-specific payment instruction."""

    recipient: str
    amount_minor_units: int
    token: Token
    destination_chain: ChainConfig
    purpose: Optional[str] = None


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def find_recipient(text: str) -> Optional[str]:
    match = _ADDRESS_SEARCH_RE.search(text or "")
    return match.group(0) if match else None


def find_amount(text: str) -> Optional[str]:
    """First number in the text once addresses are removed.

    This is first-number precedence: "pay 2 friends 50 USDT" yields "2". The
    model normally supplies the amount, so this only runs as a repair.
    """

    stripped = _ADDRESS_STRIP_RE.sub(" ", text or "")
    match = _NUMBER_RE.search(stripped)
    return match.group(0) if match else None


def _amount_text(value: Any) -> str:
    if isinstance(value, bool):
        raise InvalidAmountError(value)
    if isinstance(value, (int, float)):
        # str() first so floats keep their shortest repr instead of binary noise
        return format(Decimal(str(value)), "f")
    return str(value).strip()


class IntentParser:
    """Single-attempt parse: extract, repair, validate, normalise."""

    def __init__(self, extractor: PaymentExtractor):
        self.extractor = extractor

    async def parse(self, raw_text: str) -> PaymentIntent:
        fields = await self.extractor.extract(raw_text)
        return self.build_intent(raw_text, fields)

    def build_intent(self, raw_text: str, fields: Dict[str, Any]) -> PaymentIntent:
        """Repair and validate extracted fields against the original text.

        Checks run in a fixed order so the first problem the user sees is the
        most fundamental one.
        """

        recipient = fields.get("recipient")
        if _blank(recipient):
            recipient = find_recipient(raw_text)
            if recipient:
                logger.info("Recovered recipient from raw text")

        amount = fields.get("amount")
        if _blank(amount):
            amount = find_amount(raw_text)
            if amount:
                logger.info("Recovered amount %s from raw text", amount)

        if _blank(recipient):
            raise MissingRecipientError()
        recipient = str(recipient).strip()
        if not is_evm_address(recipient):
            raise InvalidRecipientFormatError(recipient)

        if _blank(amount):
            raise MissingAmountError()

        chain = resolve_chain(fields.get("destinationChain"))

        minor_units = to_minor_units(_amount_text(amount), resolve_token().decimals)
        if minor_units <= 0:
            raise InvalidAmountError(amount)

        purpose = fields.get("purpose")
        purpose = purpose.strip() if isinstance(purpose, str) and purpose.strip() else None

        return PaymentIntent(
            recipient=recipient.lower(),
            amount_minor_units=minor_units,
            token=resolve_token(fields.get("token")),
            destination_chain=chain,
            purpose=purpose,
        )


__all__ = ["PaymentIntent", "IntentParser", "find_recipient", "find_amount"]
