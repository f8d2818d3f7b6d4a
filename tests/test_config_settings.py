import pytest

from onlystables.config import DEFAULT_TRANSACTION_TTL_SECONDS, Settings


def test_private_key_alias(monkeypatch):
    """Wallet key should load from the legacy PRIVATE_KEY variable when present."""

    monkeypatch.delenv("WALLET_PRIVATE_KEY", raising=False)
    monkeypatch.setenv("PRIVATE_KEY", "0xlegacy")

    settings = Settings()

    assert settings.wallet_private_key == "0xlegacy"


def test_wallet_key_direct_env(monkeypatch):
    """Environment-provided wallet key remains the primary source."""

    monkeypatch.setenv("WALLET_PRIVATE_KEY", "0xprimary")
    monkeypatch.setenv("PRIVATE_KEY", "0xlegacy")

    settings = Settings()

    assert settings.wallet_private_key == "0xprimary"


def test_transaction_ttl_default_and_override(monkeypatch):
    monkeypatch.delenv("ARKIV_TRANSACTION_TTL", raising=False)
    assert Settings().transaction_ttl_seconds == DEFAULT_TRANSACTION_TTL_SECONDS

    monkeypatch.setenv("ARKIV_TRANSACTION_TTL", "3600")
    assert Settings().transaction_ttl_seconds == 3600


def test_token_address_overrides():
    settings = Settings(onlyswaps_token_addresses='{"USDT_BASE": "0xabc"}')
    assert settings.token_address_overrides() == {"USDT_BASE": "0xabc"}

    assert Settings(onlyswaps_token_addresses="").token_address_overrides() == {}

    with pytest.raises(ValueError):
        Settings(onlyswaps_token_addresses="[1, 2]").token_address_overrides()


def test_rpc_url_for_source_chain_and_extras():
    settings = Settings(
        source_chain_rpc_url="https://bsc.example",
        rpc_urls={8453: "https://base.example"},
    )

    assert settings.rpc_url_for(56) == "https://bsc.example"
    assert settings.rpc_url_for(8453) == "https://base.example"
    assert settings.rpc_url_for(10) is None


def test_has_llm_key_follows_provider():
    assert Settings(llm_provider="claude", anthropic_api_key="k", openai_api_key="").has_llm_key
    assert not Settings(llm_provider="openai", openai_api_key="").has_llm_key
