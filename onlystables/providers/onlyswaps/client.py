"""Async client for OnlySwaps: fee quotes over HTTP, swaps through the router contract."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from eth_abi import encode
from eth_utils import to_checksum_address

from ...core.errors import SwapProviderError
from ...wallet.signer import WalletSigner
from .constants import APPROVE_SELECTOR, SWAP_REQUESTED_TOPIC, SWAP_SELECTOR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeQuoteRequest:
    source_token: str
    destination_token: str
    source_chain_id: int
    destination_chain_id: int
    amount: int


@dataclass(frozen=True)
class FeeQuote:
    """Recommended fees in token minor units."""

    solver_fee: int
    network_fee: int
    total_fee: int
    transfer_amount: int


@dataclass(frozen=True)
class SwapRequest:
    recipient: str
    src_token: str
    dest_token: str
    amount: int
    fee: int
    dest_chain_id: int


@dataclass(frozen=True)
class SwapExecutionResult:
    request_id: Optional[str]
    success: bool
    error_message: Optional[str] = None
    tx_hash: Optional[str] = None


def _as_int(value: Any, field: str) -> int:
    try:
        return int(str(value), 0) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as exc:
        raise SwapProviderError(f"Fee API returned a non-integer {field}: {value!r}") from exc


def _hex(value: Any) -> str:
    if isinstance(value, str):
        return value.lower() if value.startswith("0x") else "0x" + value.lower()
    return "0x" + bytes(value).hex()


def parse_fee_quote(payload: Dict[str, Any], amount: int) -> FeeQuote:
    fees = payload.get("fees") or {}
    solver = _as_int(fees.get("solver", 0), "solver fee")
    network = _as_int(fees.get("network", 0), "network fee")
    total = _as_int(fees.get("total", solver + network), "total fee")
    transfer = _as_int(payload.get("transferAmount", amount), "transfer amount")
    return FeeQuote(solver_fee=solver, network_fee=network, total_fee=total, transfer_amount=transfer)


def build_approve_calldata(spender: str, amount: int) -> str:
    encoded = encode(["address", "uint256"], [to_checksum_address(spender), amount])
    return "0x" + (APPROVE_SELECTOR + encoded).hex()


def build_swap_calldata(request: SwapRequest) -> str:
    encoded = encode(
        ["address", "address", "uint256", "uint256", "uint256", "address"],
        [
            to_checksum_address(request.src_token),
            to_checksum_address(request.dest_token),
            request.amount,
            request.fee,
            request.dest_chain_id,
            to_checksum_address(request.recipient),
        ],
    )
    return "0x" + (SWAP_SELECTOR + encoded).hex()


def extract_request_id(receipt: Dict[str, Any], router_address: str) -> Optional[str]:
    """Pull the request id out of the router's ``SwapRequested`` log, if any."""

    router = router_address.lower()
    for log in receipt.get("logs") or []:
        if str(log.get("address", "")).lower() != router:
            continue
        topics = log.get("topics") or []
        if len(topics) >= 2 and _hex(topics[0]) == "0x" + SWAP_REQUESTED_TOPIC.hex():
            return _hex(topics[1])
    return None


class OnlySwapsProvider:
    """Fee quotation and swap submission against one router deployment."""

    def __init__(
        self,
        fees_url: str,
        router_address: str,
        *,
        timeout_s: float = 20.0,
        receipt_timeout_s: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.fees_url = fees_url.rstrip("/")
        self.router_address = router_address
        self.timeout_s = timeout_s
        self.receipt_timeout_s = receipt_timeout_s
        self._transport = transport

    async def fetch_recommended_fees(self, request: FeeQuoteRequest) -> FeeQuote:
        payload = {
            "sourceToken": request.source_token,
            "destinationToken": request.destination_token,
            "sourceChainId": request.source_chain_id,
            "destinationChainId": request.destination_chain_id,
            "amount": str(request.amount),
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.fees_url, timeout=self.timeout_s, transport=self._transport
            ) as client:
                response = await client.post("/fees", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Fee API returned %s: %s", exc.response.status_code, exc.response.text)
            raise SwapProviderError(
                f"Fee quote failed with status {exc.response.status_code}",
                details={"status": exc.response.status_code, "body": exc.response.text},
            ) from exc
        except httpx.RequestError as exc:
            raise SwapProviderError(f"Fee quote request failed: {exc}") from exc
        except ValueError as exc:
            raise SwapProviderError("Fee API returned a non-JSON response") from exc

        quote = parse_fee_quote(data, request.amount)
        logger.info(
            "Fee quote %s->%s amount=%s total_fee=%s",
            request.source_chain_id, request.destination_chain_id, request.amount, quote.total_fee,
        )
        return quote

    async def swap(self, signer: WalletSigner, request: SwapRequest) -> SwapExecutionResult:
        """Approve the router for amount plus fee, then request the cross-chain swap.

        A reverted transaction is reported as an unsuccessful result. Wallet and
        transport errors propagate to the caller.
        """

        approve_hash = await signer.send_transaction(
            {
                "to": request.src_token,
                "data": build_approve_calldata(self.router_address, request.amount + request.fee),
            }
        )
        approve_receipt = await signer.wait_for_receipt(approve_hash, timeout=self.receipt_timeout_s)
        if approve_receipt.get("status") == 0:
            return SwapExecutionResult(
                request_id=None,
                success=False,
                error_message="Token approval transaction reverted",
                tx_hash=approve_hash,
            )

        swap_hash = await signer.send_transaction(
            {"to": self.router_address, "data": build_swap_calldata(request)}
        )
        receipt = await signer.wait_for_receipt(swap_hash, timeout=self.receipt_timeout_s)
        if receipt.get("status") == 0:
            return SwapExecutionResult(
                request_id=None,
                success=False,
                error_message="Swap transaction reverted",
                tx_hash=swap_hash,
            )

        request_id = extract_request_id(receipt, self.router_address)
        if request_id is None:
            return SwapExecutionResult(
                request_id=None,
                success=False,
                error_message="Swap transaction did not emit a request id",
                tx_hash=swap_hash,
            )
        logger.info("Swap submitted request_id=%s tx=%s", request_id, swap_hash)
        return SwapExecutionResult(request_id=request_id, success=True, tx_hash=swap_hash)


__all__ = [
    "FeeQuoteRequest",
    "FeeQuote",
    "SwapRequest",
    "SwapExecutionResult",
    "OnlySwapsProvider",
    "build_approve_calldata",
    "build_swap_calldata",
    "extract_request_id",
    "parse_fee_quote",
]
