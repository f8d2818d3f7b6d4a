"""
Tests for the intent parser: extraction, repair and validation order.
"""

from typing import Any, Dict

import pytest

from onlystables.core.chains import DEFAULT_CHAIN, USDT
from onlystables.core.errors import (
    InvalidAmountError,
    InvalidRecipientFormatError,
    MissingAmountError,
    MissingRecipientError,
    ParsingServiceError,
    UnsupportedChainError,
)
from onlystables.core.intent import IntentParser, PaymentExtractor, find_amount, find_recipient

RECIPIENT = "0x1111111111111111111111111111111111111111"
MIXED_CASE = "0xABCDEFabcdefABCDEFabcdefABCDEFabcdefABCD"


class StubExtractor(PaymentExtractor):
    def __init__(self, fields: Dict[str, Any]):
        self.fields = fields
        self.calls = []

    async def extract(self, user_input: str) -> Dict[str, Any]:
        self.calls.append(user_input)
        return dict(self.fields)


class FailingExtractor(PaymentExtractor):
    async def extract(self, user_input: str) -> Dict[str, Any]:
        raise ParsingServiceError("Failed to parse input with AI", status_code=429)


def _fields(**overrides):
    fields = {
        "recipient": RECIPIENT,
        "amount": "5",
        "token": "USDT",
        "destinationChain": "base",
        "purpose": None,
    }
    fields.update(overrides)
    return fields


@pytest.mark.asyncio
async def test_scenario_arbitrum_with_purpose():
    text = f"send {RECIPIENT} 2.5 USDT on arbitrum for dinner"
    extractor = StubExtractor(
        _fields(amount="2.5", destinationChain="arbitrum", purpose="for dinner")
    )

    intent = await IntentParser(extractor).parse(text)

    assert extractor.calls == [text]
    assert intent.recipient == RECIPIENT
    assert intent.amount_minor_units == 2_500_000
    assert intent.token is USDT
    assert intent.destination_chain.key == "arbitrum"
    assert intent.purpose == "for dinner"


@pytest.mark.asyncio
async def test_scenario_no_chain_defaults_to_base():
    text = f"Pay {MIXED_CASE} 100 USD"
    extractor = StubExtractor(_fields(recipient=MIXED_CASE, amount="100", destinationChain=None))

    intent = await IntentParser(extractor).parse(text)

    assert intent.destination_chain is DEFAULT_CHAIN
    assert intent.purpose is None
    assert intent.recipient == MIXED_CASE.lower()
    assert intent.amount_minor_units == 100_000_000


@pytest.mark.asyncio
async def test_repairs_missing_recipient_and_amount_from_text():
    text = f"please pay {RECIPIENT} 42.75 on base"
    extractor = StubExtractor(_fields(recipient=None, amount=None))

    intent = await IntentParser(extractor).parse(text)

    assert intent.recipient == RECIPIENT
    assert intent.amount_minor_units == 42_750_000


@pytest.mark.asyncio
async def test_amount_repair_ignores_address_digits():
    text = f"Pay {RECIPIENT} usd for coffee"
    extractor = StubExtractor(_fields(amount=None, purpose="for coffee"))

    with pytest.raises(MissingAmountError):
        await IntentParser(extractor).parse(text)


def test_amount_repair_takes_first_number():
    # First-number precedence is kept on purpose; "2" wins over "50".
    assert find_amount(f"pay 2 friends 50 USDT {RECIPIENT}") == "2"
    assert find_recipient(f"to {RECIPIENT} now") == RECIPIENT
    assert find_recipient("no address here") is None


@pytest.mark.asyncio
async def test_numeric_amount_from_model_is_accepted():
    intent = await IntentParser(StubExtractor(_fields(amount=10.5))).parse("x")
    assert intent.amount_minor_units == 10_500_000


@pytest.mark.asyncio
async def test_blank_purpose_becomes_none_and_is_trimmed():
    parser = IntentParser(StubExtractor(_fields(purpose="   ")))
    assert (await parser.parse(RECIPIENT)).purpose is None

    parser = IntentParser(StubExtractor(_fields(purpose="  for rent ")))
    assert (await parser.parse(RECIPIENT)).purpose == "for rent"


@pytest.mark.asyncio
async def test_missing_recipient():
    with pytest.raises(MissingRecipientError):
        await IntentParser(StubExtractor(_fields(recipient=None))).parse("send 5 USDT")


@pytest.mark.asyncio
async def test_invalid_recipient_format():
    with pytest.raises(InvalidRecipientFormatError):
        await IntentParser(StubExtractor(_fields(recipient="0x1234"))).parse("send 5 to 0x1234")


@pytest.mark.asyncio
async def test_unsupported_chain_message_is_authoritative():
    parser = IntentParser(StubExtractor(_fields(destinationChain="polygon")))

    with pytest.raises(UnsupportedChainError) as excinfo:
        await parser.parse(f"send 5 to {RECIPIENT} on polygon")

    assert "polygon" in excinfo.value.message
    assert "Base" in excinfo.value.message


@pytest.mark.parametrize("amount", ["0", "0.0000001", "-3", "abc"])
@pytest.mark.asyncio
async def test_invalid_amount(amount):
    with pytest.raises(InvalidAmountError):
        await IntentParser(StubExtractor(_fields(amount=amount))).parse("x")


@pytest.mark.asyncio
async def test_validation_order_recipient_before_amount_before_chain():
    parser = IntentParser(
        StubExtractor(_fields(recipient="0xnothex", amount=None, destinationChain="polygon"))
    )
    with pytest.raises(InvalidRecipientFormatError):
        await parser.parse("no numbers")

    parser = IntentParser(StubExtractor(_fields(amount=None, destinationChain="polygon")))
    with pytest.raises(MissingAmountError):
        await parser.parse("nothing numeric")

    parser = IntentParser(StubExtractor(_fields(amount="0", destinationChain="polygon")))
    with pytest.raises(UnsupportedChainError):
        await parser.parse("x")


@pytest.mark.asyncio
async def test_upstream_failure_propagates():
    with pytest.raises(ParsingServiceError) as excinfo:
        await IntentParser(FailingExtractor()).parse("send 5")

    assert excinfo.value.status_code == 429


@pytest.mark.asyncio
async def test_intent_is_frozen():
    intent = await IntentParser(StubExtractor(_fields())).parse("x")
    with pytest.raises(Exception):
        intent.amount_minor_units = 1
