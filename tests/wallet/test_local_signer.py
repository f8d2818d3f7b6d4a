from types import SimpleNamespace

import pytest
from eth_account import Account

from onlystables.core.errors import ChainSwitchRequiredError, ConfigurationError
from onlystables.wallet import LocalAccountSigner

PRIVATE_KEY = "0x" + "11" * 32
RPC_URLS = {56: "https://bsc.example", 42161: "https://arb.example"}


async def _value(value):
    return value


class FakeEth:
    def __init__(self):
        self.sent = []
        self.estimated = []

    @property
    def gas_price(self):
        return _value(1_000_000_000)

    async def get_transaction_count(self, address, block_identifier):
        return 3

    async def estimate_gas(self, tx):
        self.estimated.append(tx)
        return 60_000

    async def send_raw_transaction(self, raw):
        self.sent.append(raw)
        return b"\x12" * 32

    async def wait_for_transaction_receipt(self, tx_hash, timeout):
        return {"status": 1, "transactionHash": tx_hash}


class Web3Recorder:
    def __init__(self):
        self.urls = []
        self.instances = []

    def __call__(self, rpc_url):
        self.urls.append(rpc_url)
        w3 = SimpleNamespace(eth=FakeEth())
        self.instances.append(w3)
        return w3


def _signer(factory=None, rpc_urls=RPC_URLS):
    return LocalAccountSigner(
        PRIVATE_KEY,
        rpc_urls.get,
        56,
        web3_factory=factory or Web3Recorder(),
    )


def test_missing_key_is_configuration_error():
    with pytest.raises(ConfigurationError) as excinfo:
        LocalAccountSigner("", RPC_URLS.get, 56)

    assert excinfo.value.message == "WALLET_PRIVATE_KEY is not configured"


def test_address_comes_from_key():
    assert _signer().address == Account.from_key(PRIVATE_KEY).address


@pytest.mark.asyncio
async def test_switch_without_rpc_requires_manual_switch():
    signer = _signer(rpc_urls={56: "https://bsc.example"})

    with pytest.raises(ChainSwitchRequiredError):
        await signer.switch_chain(42161)

    assert await signer.chain_id() == 56


@pytest.mark.asyncio
async def test_switch_repoints_web3():
    factory = Web3Recorder()
    signer = _signer(factory)

    await signer.switch_chain(42161)

    assert await signer.chain_id() == 42161
    assert factory.urls == ["https://arb.example"]


@pytest.mark.asyncio
async def test_send_transaction_fills_and_signs():
    factory = Web3Recorder()
    signer = _signer(factory)

    tx_hash = await signer.send_transaction(
        {"to": "0x1111111111111111111111111111111111111111", "data": "0x"}
    )

    eth = factory.instances[0].eth
    assert tx_hash == "0x" + "12" * 32
    assert len(eth.sent) == 1
    estimated = eth.estimated[0]
    assert estimated["nonce"] == 3
    assert estimated["chainId"] == 56
    assert estimated["gasPrice"] == 1_000_000_000
    assert estimated["value"] == 0

    receipt = await signer.wait_for_receipt(tx_hash)
    assert receipt["status"] == 1
