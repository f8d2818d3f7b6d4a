import time
from typing import Any, List, Optional

import anthropic
from anthropic import AsyncAnthropic

from .base import (
    LLMProvider, LLMMessage, LLMResponse,
    LLMProviderError, LLMProviderAPIError, LLMProviderAuthError, LLMProviderRateLimitError,
)


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider.

    Claude has no JSON response mode, so ``json_mode`` prefills the assistant
    turn with ``{`` and the opening brace is restored on the way out.
    """

    def __init__(self, api_key: str, model: Optional[str] = None, **kwargs):
        if not model:
            raise ValueError("AnthropicProvider requires a model to be specified")

        super().__init__(api_key, model, **kwargs)

    def _setup_client(self, **kwargs) -> None:
        try:
            self.client = AsyncAnthropic(api_key=self.api_key, timeout=kwargs.get("timeout", 30.0))
        except Exception as e:
            self.logger.error(f"Failed to initialize Anthropic client: {e}")
            raise LLMProviderAuthError(f"Failed to initialize Anthropic client: {e}")

    async def aclose(self) -> None:
        await self.client.close()

    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> LLMResponse:
        start_time = time.time()

        system_message = None
        anthropic_messages = []
        for msg in messages:
            if msg.role == "system":
                system_message = msg.content
            else:
                anthropic_messages.append({"role": msg.role, "content": msg.content})
        if json_mode:
            anthropic_messages.append({"role": "assistant", "content": "{"})

        request_params = {
            "model": self.model,
            "messages": anthropic_messages,
            "max_tokens": max_tokens or 1000,
        }
        if system_message:
            request_params["system"] = system_message
        if temperature is not None:
            request_params["temperature"] = temperature
        request_params.update(kwargs)

        try:
            response = await self.client.messages.create(**request_params)
        except anthropic.AuthenticationError as e:
            raise LLMProviderAuthError(
                f"Authentication failed: {e}", status_code=e.status_code, body=e.body
            ) from e
        except anthropic.RateLimitError as e:
            raise LLMProviderRateLimitError(
                f"Rate limit exceeded: {e}", status_code=e.status_code, body=e.body
            ) from e
        except anthropic.APIStatusError as e:
            raise LLMProviderAPIError(
                f"API error: {e}", status_code=e.status_code, body=e.body
            ) from e
        except anthropic.APIError as e:
            raise LLMProviderAPIError(f"API error: {e}") from e

        content = "".join(
            block.text for block in (response.content or []) if getattr(block, "type", None) == "text"
        )
        if json_mode:
            content = "{" + content

        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=content or None,
            tokens_used=usage.output_tokens if usage else None,
            model=self.model,
            finish_reason=getattr(response, "stop_reason", None),
            response_time_ms=self._measure_time(start_time),
        )


__all__ = ["AnthropicProvider", "LLMProviderError"]
