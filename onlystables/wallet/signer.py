"""
Wallet signers used by a payment session.

The orchestrator only needs four things from a wallet: the connected address,
the active network, a way to ask for a network switch, and a way to send a
transaction and wait for it. ``LocalAccountSigner`` provides them from a local
private key over ``web3``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3

from ..core.chains import CHAINS_BY_ID
from ..core.errors import (
    ChainSwitchRequiredError,
    ConfigurationError,
    WalletNotConnectedError,
)

logger = logging.getLogger(__name__)


class WalletSigner(ABC):
    """Minimal wallet surface consumed by ``PaymentOrchestrator``."""

    @property
    @abstractmethod
    def address(self) -> Optional[str]:
        pass

    @abstractmethod
    async def chain_id(self) -> int:
        pass

    @abstractmethod
    async def switch_chain(self, chain_id: int) -> None:
        """Ask the wallet to move to ``chain_id``.

        Raise ``WalletRejectedError`` if the user declines, or any other error if
        the wallet cannot switch.
        """

    @abstractmethod
    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        """Sign and broadcast ``tx``. Returns the transaction hash as 0x hex.

        Raise ``WalletRejectedError`` if the user declines to sign.
        """

    @abstractmethod
    async def wait_for_receipt(self, tx_hash: str, timeout: float = 120.0) -> Dict[str, Any]:
        pass


Web3Factory = Callable[[str], AsyncWeb3]


def _default_web3(rpc_url: str) -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider(rpc_url))


class LocalAccountSigner(WalletSigner):
    """Sign with a local key; the active network is whichever RPC we point at."""

    def __init__(
        self,
        private_key: str,
        rpc_url_for: Callable[[int], Optional[str]],
        initial_chain_id: int,
        *,
        web3_factory: Web3Factory = _default_web3,
    ) -> None:
        if not private_key:
            raise ConfigurationError("WALLET_PRIVATE_KEY is not configured")
        self._account = Account.from_key(private_key)
        self._rpc_url_for = rpc_url_for
        self._web3_factory = web3_factory
        self._chain_id = initial_chain_id
        self._w3: Optional[AsyncWeb3] = None

    @property
    def address(self) -> Optional[str]:
        return self._account.address

    def _web3(self) -> AsyncWeb3:
        if self._w3 is None:
            rpc_url = self._rpc_url_for(self._chain_id)
            if not rpc_url:
                raise WalletNotConnectedError(f"No RPC endpoint configured for chain {self._chain_id}")
            self._w3 = self._web3_factory(rpc_url)
        return self._w3

    async def chain_id(self) -> int:
        return self._chain_id

    async def switch_chain(self, chain_id: int) -> None:
        if chain_id == self._chain_id:
            return
        rpc_url = self._rpc_url_for(chain_id)
        if not rpc_url:
            chain = CHAINS_BY_ID.get(chain_id)
            raise ChainSwitchRequiredError(chain.display_name if chain else f"chain {chain_id}")
        logger.info("Switching local signer from chain %s to %s", self._chain_id, chain_id)
        self._chain_id = chain_id
        self._w3 = self._web3_factory(rpc_url)

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        w3 = self._web3()
        prepared = dict(tx)
        prepared["from"] = self._account.address
        prepared["to"] = AsyncWeb3.to_checksum_address(prepared["to"])
        prepared.setdefault("value", 0)
        prepared.setdefault("chainId", self._chain_id)
        if "nonce" not in prepared:
            prepared["nonce"] = await w3.eth.get_transaction_count(self._account.address, "pending")
        if "gasPrice" not in prepared and "maxFeePerGas" not in prepared:
            prepared["gasPrice"] = await w3.eth.gas_price
        if "gas" not in prepared:
            prepared["gas"] = await w3.eth.estimate_gas(prepared)

        signed = self._account.sign_transaction(prepared)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        return "0x" + bytes(tx_hash).hex()

    async def wait_for_receipt(self, tx_hash: str, timeout: float = 120.0) -> Dict[str, Any]:
        receipt = await self._web3().eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        return dict(receipt)


__all__ = ["WalletSigner", "LocalAccountSigner"]
