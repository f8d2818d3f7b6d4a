"""User-facing wording for payment failures and progress messages."""

from __future__ import annotations

import re
from typing import Optional

from ..amounts import from_minor_units
from ..errors import UnsupportedChainError, WalletRejectedError

WALLET_REJECTED_MESSAGE = "Transaction was rejected in your wallet."
GENERIC_RETRY_MESSAGE = "Something went wrong while processing your payment. Please try again."
HISTORY_SAVE_FAILED_MESSAGE = "Payment sent, but we couldn't save it to your history."
MAX_ERROR_LENGTH = 180

_REJECTION_RE = re.compile(r"user (rejected|denied)", re.IGNORECASE)


def format_user_error(exc: BaseException) -> str:
    """Short message for the conversation log.

    Chain errors keep their full text since they list the alternatives.
    """

    if isinstance(exc, UnsupportedChainError):
        return exc.message

    if isinstance(exc, WalletRejectedError):
        return WALLET_REJECTED_MESSAGE

    text = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    if _REJECTION_RE.search(text):
        return WALLET_REJECTED_MESSAGE

    first_line = text.strip().splitlines()[0] if text.strip() else GENERIC_RETRY_MESSAGE
    if len(first_line) > MAX_ERROR_LENGTH:
        return GENERIC_RETRY_MESSAGE
    return first_line


def processing_message(
    amount_minor_units: int,
    decimals: int,
    symbol: str,
    recipient: str,
    source_name: str,
    destination_name: str,
    total_fee_minor_units: int,
    purpose: Optional[str],
) -> str:
    lines = [
        "Got it! Processing your payment:",
        "",
        f"Amount: {from_minor_units(amount_minor_units, decimals)} {symbol}",
        f"Recipient: {recipient}",
        f"Route: {source_name} -> {destination_name}",
        f"Total fee: {from_minor_units(total_fee_minor_units, decimals)} {symbol}",
    ]
    if purpose:
        lines.append(f"Purpose: {purpose}")
    lines.extend(["", "Submitting transaction..."])
    return "\n".join(lines)


def success_message(request_id: str, amount: str, symbol: str, destination_name: str) -> str:
    return (
        "Payment submitted successfully!\n\n"
        f"Request ID: {request_id}\n"
        "Status: Pending confirmation\n\n"
        f"{amount} {symbol} is on its way to {destination_name}."
    )


__all__ = [
    "GENERIC_RETRY_MESSAGE",
    "HISTORY_SAVE_FAILED_MESSAGE",
    "MAX_ERROR_LENGTH",
    "WALLET_REJECTED_MESSAGE",
    "format_user_error",
    "processing_message",
    "success_message",
]
