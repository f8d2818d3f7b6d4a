"""Exported OnlySwaps contract constants, keyed by the names chain configs refer to."""

from __future__ import annotations

from typing import Dict

from eth_utils import event_signature_to_log_topic, function_signature_to_4byte_selector

from ...core.chains import ROUTER_CONSTANT

# Stable-token contract per chain. Filecoin has no native USDT; the bridged
# USDFC stablecoin stands in for it.
STABLE_TOKEN_ADDRESSES: Dict[str, str] = {
    "USDT_ETHEREUM": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
    "USDT_BSC": "0x55d398326f99059fF775485246999027B3197955",
    "USDT_ARBITRUM": "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
    "USDT_OPTIMISM": "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58",
    "USDT_AVALANCHE": "0x9702230A8Ea53601f5cD2dc00fDBc13d4dF4A8c7",
    "USDT_BASE": "0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2",
    "USDT_LINEA": "0xA219439258ca9da29E9Cc4cE5596924745e12B93",
    "USDT_SCROLL": "0xf55BEC9cafDbE8730f096Aa55dad6D22d44099Df",
    "USDT_FILECOIN": "0x80B98d3aa09ffff255c3ba4A241111Ff1262F045",
}

APPROVE_SIGNATURE = "approve(address,uint256)"
SWAP_SIGNATURE = "requestCrossChainSwap(address,address,uint256,uint256,uint256,address)"
SWAP_REQUESTED_EVENT = "SwapRequested(bytes32,uint256,uint256)"

APPROVE_SELECTOR = function_signature_to_4byte_selector(APPROVE_SIGNATURE)
SWAP_SELECTOR = function_signature_to_4byte_selector(SWAP_SIGNATURE)
SWAP_REQUESTED_TOPIC = event_signature_to_log_topic(SWAP_REQUESTED_EVENT)


def load_swap_constants(settings) -> Dict[str, str]:
    """Router address plus every stable-token constant, with env overrides applied."""

    constants = dict(STABLE_TOKEN_ADDRESSES)
    constants.update(settings.token_address_overrides())
    router = (settings.onlyswaps_router_address or "").strip()
    if router:
        constants[ROUTER_CONSTANT] = router
    return constants


__all__ = [
    "STABLE_TOKEN_ADDRESSES",
    "APPROVE_SELECTOR",
    "SWAP_SELECTOR",
    "SWAP_REQUESTED_TOPIC",
    "load_swap_constants",
]
