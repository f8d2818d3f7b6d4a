"""Extraction instruction and few-shot examples sent to the language model."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple

from ..chains import CHAINS, DEFAULT_CHAIN, USDT

# (user input, expected JSON) pairs. Keep these in sync with the parser's
# validation rules: null for anything the user did not say.
FEW_SHOT_EXAMPLES: List[Tuple[str, Dict[str, Any]]] = [
    (
        "send 0xce1770953208a6c61a30d5205e3a74e8af4a226e 5 USDT on base chain",
        {"recipient": "0xce1770953208a6c61a30d5205e3a74e8af4a226e", "amount": "5", "token": "USDT", "destinationChain": "base", "purpose": None},
    ),
    (
        "Pay 0x1234567890123456789012345678901234567890 10.5 USDT to avalanche for rent",
        {"recipient": "0x1234567890123456789012345678901234567890", "amount": "10.5", "token": "USDT", "destinationChain": "avalanche", "purpose": "for rent"},
    ),
    (
        "Transfer 100 USDT to address 0xabcdefabcdefabcdefabcdefabcdefabcdefabcd on avalanche payment for services",
        {"recipient": "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd", "amount": "100", "token": "USDT", "destinationChain": "avalanche", "purpose": "payment for services"},
    ),
    (
        "Send 0x1111111111111111111111111111111111111111 2.5 USDT on arbitrum network for dinner",
        {"recipient": "0x1111111111111111111111111111111111111111", "amount": "2.5", "token": "USDT", "destinationChain": "arbitrum", "purpose": "for dinner"},
    ),
    (
        "I want to send 50 USDT to 0x2222222222222222222222222222222222222222 on Base",
        {"recipient": "0x2222222222222222222222222222222222222222", "amount": "50", "token": "USDT", "destinationChain": "base", "purpose": None},
    ),
    (
        "Send 0x3333333333333333333333333333333333333333 25 USDT on arbitrum monthly subscription payment",
        {"recipient": "0x3333333333333333333333333333333333333333", "amount": "25", "token": "USDT", "destinationChain": "arbitrum", "purpose": "monthly subscription payment"},
    ),
    (
        "send 100 USDT to 0x4444444444444444444444444444444444444444 on bsc",
        {"recipient": "0x4444444444444444444444444444444444444444", "amount": "100", "token": "USDT", "destinationChain": "bnb", "purpose": None},
    ),
    (
        "Pay 0x5991fd6ecc5634c4de497b47eb0aa0065fffb214 usd for coffee",
        {"recipient": "0x5991fd6ecc5634c4de497b47eb0aa0065fffb214", "amount": None, "token": "USDT", "destinationChain": None, "purpose": "for coffee"},
    ),
    (
        "Send 50 to 0x1234567890123456789012345678901234567890 on polygon",
        {"recipient": "0x1234567890123456789012345678901234567890", "amount": "50", "token": "USDT", "destinationChain": "polygon", "purpose": None},
    ),
    (
        "Pay 0xabcdefabcdefabcdefabcdefabcdefabcdefabcd 100 USD",
        {"recipient": "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd", "amount": "100", "token": "USDT", "destinationChain": None, "purpose": None},
    ),
]


def _chain_lines() -> str:
    lines = []
    for chain in CHAINS.values():
        lines.append(f"- {chain.key} ({chain.display_name})")
    return "\n".join(lines)


def _example_lines() -> str:
    blocks = []
    for index, (user_input, expected) in enumerate(FEW_SHOT_EXAMPLES, start=1):
        blocks.append(
            f"Example {index}:\nInput: {json.dumps(user_input)}\nOutput: {json.dumps(expected)}"
        )
    return "\n\n".join(blocks)


def build_extraction_prompt() -> str:
    return f"""You extract stablecoin payment details from a single user message and reply with one JSON object.

FIELDS:
- "recipient": the Ethereum address the money goes to. It starts with 0x and has exactly 40 hexadecimal characters after it. It can appear anywhere in the message. Use null if there is none.
- "amount": the amount to send as a string, e.g. "5" or "10.5". Use null if the user gave no amount.
- "token": always "{USDT.symbol}". "usd", "usdt", "dollars" or no token at all all mean {USDT.symbol}.
- "destinationChain": the lowercase identifier of the chain the recipient is paid on.
- "purpose": a short note about what the payment is for, e.g. "for rent" or "monthly subscription payment". Use null if none was given.

SUPPORTED CHAINS (answer with the identifier on the left when the user names any of these or a common alias such as bsc, binance smart chain, avax, arb, eth mainnet):
{_chain_lines()}

If the user names a chain that is NOT in this list (for example polygon or solana), return that name in lowercase exactly as written so it can be rejected. If the user names no chain, return null; the default chain ({DEFAULT_CHAIN.key}) is applied later.

{_example_lines()}

Reply with the JSON object only, with exactly these five keys and no commentary."""


EXTRACTION_PROMPT = build_extraction_prompt()

__all__ = ["EXTRACTION_PROMPT", "FEW_SHOT_EXAMPLES", "build_extraction_prompt"]
