"""Static chain metadata, alias resolution and the per-chain swap contract map."""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .amounts import USDT_DECIMALS
from .errors import ConfigurationError, UnsupportedChainError

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_ALIAS_SEPARATORS_RE = re.compile(r"[\s\-_]+")


@dataclass(frozen=True)
class ChainConfig:
    """Canonical configuration for a supported destination chain."""

    key: str
    chain_id: int
    display_name: str
    stable_token_key: str  # name of the exported stable-token address constant


@dataclass(frozen=True)
class Token:
    symbol: str
    decimals: int


@dataclass(frozen=True)
class ChainContracts:
    """Contract addresses needed to swap into or out of a chain."""

    router_address: str
    stable_token_address: str


USDT = Token(symbol="USDT", decimals=USDT_DECIMALS)

# Table order is the order used when listing supported chains to the user.
_CHAINS: Tuple[ChainConfig, ...] = (
    ChainConfig("base", 8453, "Base", "USDT_BASE"),
    ChainConfig("avalanche", 43114, "Avalanche", "USDT_AVALANCHE"),
    ChainConfig("arbitrum", 42161, "Arbitrum One", "USDT_ARBITRUM"),
    ChainConfig("optimism", 10, "Optimism", "USDT_OPTIMISM"),
    ChainConfig("ethereum", 1, "Ethereum", "USDT_ETHEREUM"),
    ChainConfig("bnb", 56, "BNB Smart Chain", "USDT_BSC"),
    ChainConfig("filecoin", 314, "Filecoin", "USDT_FILECOIN"),
    ChainConfig("linea", 59144, "Linea", "USDT_LINEA"),
    ChainConfig("scroll", 534352, "Scroll", "USDT_SCROLL"),
)

CHAINS: Mapping[str, ChainConfig] = MappingProxyType({chain.key: chain for chain in _CHAINS})

CHAINS_BY_ID: Mapping[int, ChainConfig] = MappingProxyType({chain.chain_id: chain for chain in _CHAINS})

_ALIASES: Dict[str, Tuple[str, ...]] = {
    "base": ("base chain", "base network", "base mainnet", "coinbase base"),
    "avalanche": (
        "avax",
        "avalanche c chain",
        "avax c chain",
        "avalanche mainnet",
        "avalanche network",
        "c chain",
    ),
    "arbitrum": ("arbitrum one", "arb", "arbitrum network", "arbitrum mainnet", "arb one"),
    "optimism": ("op", "op mainnet", "optimism mainnet", "optimism network"),
    "ethereum": (
        "eth",
        "eth mainnet",
        "ethereum mainnet",
        "ethereum network",
        "mainnet",
        "main net",
        "l1",
    ),
    "bnb": (
        "bsc",
        "bnb chain",
        "bnb smart chain",
        "binance smart chain",
        "binance chain",
        "binance",
        "bsc mainnet",
        "bep20",
    ),
    "filecoin": ("fil", "filecoin mainnet", "fevm", "filecoin evm"),
    "linea": ("linea mainnet", "linea network"),
    "scroll": ("scroll mainnet", "scroll network"),
}


def _normalize_alias(raw: str) -> str:
    """Lower-case, trim and collapse whitespace/hyphen/underscore runs to one space."""
    return _ALIAS_SEPARATORS_RE.sub(" ", raw.strip().lower()).strip()


def _build_alias_table() -> Mapping[str, str]:
    table: Dict[str, str] = {}
    for chain in _CHAINS:
        table[chain.key] = chain.key
    for key, aliases in _ALIASES.items():
        for alias in aliases:
            normalized = _normalize_alias(alias)
            existing = table.get(normalized)
            if existing is not None and existing != key:
                raise ValueError(f"Alias {alias!r} maps to both {existing} and {key}")
            table[normalized] = key
    return MappingProxyType(table)


CHAIN_ALIASES: Mapping[str, str] = _build_alias_table()

DEFAULT_CHAIN = CHAINS["base"]
SOURCE_CHAIN = CHAINS["bnb"]


def supported_chain_names() -> list[str]:
    return [chain.display_name for chain in _CHAINS]


def resolve_chain(raw_name: Optional[str]) -> ChainConfig:
    """Resolve a free-text chain name to its canonical configuration.

    Blank input falls back to the default chain. Anything we cannot map raises
    ``UnsupportedChainError`` listing every supported chain.
    """

    if raw_name is None or not str(raw_name).strip():
        return DEFAULT_CHAIN

    key = CHAIN_ALIASES.get(_normalize_alias(str(raw_name)))
    if key is None:
        raise UnsupportedChainError(str(raw_name).strip(), supported_chain_names())
    return CHAINS[key]


def resolve_token(raw_token: Optional[str] = None) -> Token:
    """Only USDT is supported, so every token mention collapses onto it."""
    return USDT


def is_evm_address(value: Optional[str]) -> bool:
    return bool(value) and bool(_EVM_ADDRESS_RE.fullmatch(value))


# ─────────────────────────────────────────────────────────────────────────────
# Swap contract map
# ─────────────────────────────────────────────────────────────────────────────

ROUTER_CONSTANT = "ROUTER_ADDRESS"


def build_contract_map(constants: Mapping[str, str]) -> Mapping[str, ChainContracts]:
    """Build the per-chain contract map from the swap library's exported constants.

    Called once when a payment runtime is assembled. Any missing or malformed
    constant raises ``ConfigurationError`` immediately rather than on the first
    payment to the affected chain.
    """

    router = constants.get(ROUTER_CONSTANT)
    if not is_evm_address(router):
        raise ConfigurationError(
            f"Swap constant {ROUTER_CONSTANT} is missing or not an address "
            "(set ONLYSWAPS_ROUTER_ADDRESS)"
        )

    contracts: Dict[str, ChainContracts] = {}
    missing = []
    for chain in _CHAINS:
        token_address = constants.get(chain.stable_token_key)
        if not is_evm_address(token_address):
            missing.append(chain.stable_token_key)
            continue
        contracts[chain.key] = ChainContracts(
            router_address=router,
            stable_token_address=token_address,
        )

    if missing:
        raise ConfigurationError(
            f"Swap constants missing or malformed: {', '.join(missing)}",
            details={"missing": missing},
        )
    return MappingProxyType(contracts)


__all__ = [
    "ChainConfig",
    "ChainContracts",
    "Token",
    "USDT",
    "CHAINS",
    "CHAINS_BY_ID",
    "CHAIN_ALIASES",
    "DEFAULT_CHAIN",
    "SOURCE_CHAIN",
    "ROUTER_CONSTANT",
    "supported_chain_names",
    "resolve_chain",
    "resolve_token",
    "is_evm_address",
    "build_contract_map",
]
