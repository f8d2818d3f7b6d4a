import json
import os

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

# Five years, the long-lived expiry used for ledger records.
DEFAULT_TRANSACTION_TTL_SECONDS = 60 * 60 * 24 * 365 * 5


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up legacy environment variable aliases."""

        super().model_post_init(__context)

        if not self.wallet_private_key:
            fallback = os.getenv("PRIVATE_KEY")
            if fallback:
                object.__setattr__(self, "wallet_private_key", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    request_timeout_seconds: int = Field(default=30, description="Outbound request timeout")

    # LLM Provider Settings
    llm_provider: str = Field(default="openai", description="Provider used for payment extraction")
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_base_url: str = Field(default="https://api.openai.com", description="OpenAI-compatible API base URL")
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    llm_model: str = Field(default="gpt-4o-mini", description="Model used for payment extraction")
    anthropic_model: str = Field(default="claude-sonnet-4-20250514", description="Model used when the Anthropic provider is selected")
    llm_temperature: float = Field(default=0.1, description="Extraction sampling temperature")
    llm_max_tokens: int = Field(default=400, description="Maximum tokens for the extraction response")

    # Ledger (Arkiv entity store)
    ledger_backend: str = Field(default="arkiv", description="Ledger backend: 'arkiv' or 'memory'")
    arkiv_rpc_url: str = Field(
        default="https://mendoza.hoodi.arkiv.network/rpc",
        description="Arkiv JSON-RPC endpoint",
    )
    arkiv_private_key: str = Field(default="", description="Key that signs ledger writes and owns ledger entities")
    arkiv_transaction_ttl: Optional[int] = Field(
        default=None,
        description="Override for the ledger record time-to-live in seconds",
        validation_alias=AliasChoices("arkiv_transaction_ttl", "ARKIV_TRANSACTION_TTL"),
    )
    arkiv_block_time_seconds: int = Field(default=2, description="Arkiv block time used to convert TTLs to blocks")
    arkiv_receipt_timeout_seconds: float = Field(default=60.0, description="Max seconds to wait for a ledger write receipt")

    # OnlySwaps
    onlyswaps_fees_url: str = Field(
        default="https://fees.onlyswaps.dcipher.network",
        description="OnlySwaps recommended-fees API",
    )
    onlyswaps_router_address: str = Field(default="", description="OnlySwaps router contract address")
    onlyswaps_token_addresses: str = Field(
        default="",
        description="JSON object overriding stable-token address constants, keyed by constant name",
    )

    # Session / wallet
    source_chain_rpc_url: str = Field(
        default="https://bsc-dataseed1.binance.org",
        description="RPC endpoint of the fixed source chain (BNB Smart Chain)",
    )
    rpc_urls: Dict[int, str] = Field(
        default_factory=dict,
        description="Additional RPC endpoints keyed by chain id, used when a wallet switches network",
    )
    wallet_private_key: str = Field(default="", description="Local signer key used by the CLI payment session")
    onlystables_api_url: str = Field(default="", description="Base URL of a deployed onlystables API")
    status_reset_delay_seconds: float = Field(default=3.0, description="Delay before success/error returns to idle")

    @property
    def has_openai_key(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def has_anthropic_key(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def has_llm_key(self) -> bool:
        """Check if we have an API key for the configured LLM provider"""
        if self.llm_provider.lower() in ["anthropic", "claude"]:
            return self.has_anthropic_key
        elif self.llm_provider.lower() in ["openai", "gpt"]:
            return self.has_openai_key
        return False

    @property
    def has_arkiv_key(self) -> bool:
        return bool(self.arkiv_private_key)

    @property
    def transaction_ttl_seconds(self) -> int:
        if self.arkiv_transaction_ttl:
            return int(self.arkiv_transaction_ttl)
        return DEFAULT_TRANSACTION_TTL_SECONDS

    def token_address_overrides(self) -> Dict[str, str]:
        raw = (self.onlyswaps_token_addresses or "").strip()
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError("ONLYSWAPS_TOKEN_ADDRESSES must be a JSON object") from exc
        if not isinstance(data, dict):
            raise ValueError("ONLYSWAPS_TOKEN_ADDRESSES must be a JSON object")
        return {str(key): str(value) for key, value in data.items()}

    def rpc_url_for(self, chain_id: int) -> Optional[str]:
        from .core.chains import SOURCE_CHAIN  # Local import to avoid circular dependency

        if chain_id == SOURCE_CHAIN.chain_id and self.source_chain_rpc_url:
            return self.source_chain_rpc_url
        return self.rpc_urls.get(chain_id)


# Global settings instance
settings = Settings()
