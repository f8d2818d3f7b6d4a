"""Async provider for OpenAI-compatible chat completion APIs."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

import httpx

from .base import (
    LLMMessage,
    LLMProvider,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderError,
    LLMProviderRateLimitError,
    LLMResponse,
)


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"message": response.text}


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions over plain HTTP."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> None:
        self.base_url = (base_url or "https://api.openai.com").rstrip("/")
        self.timeout = timeout
        self._chat_completions_path = "/v1/chat/completions"
        self._transport = transport
        super().__init__(api_key, model, **kwargs)

    def _setup_client(self, **kwargs: Any) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, json: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(path, json=json)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            body = _error_body(exc.response)
            if status in (401, 403):
                raise LLMProviderAuthError(
                    "OpenAI authentication failed", status_code=status, body=body
                ) from exc
            if status == 429:
                raise LLMProviderRateLimitError(
                    "OpenAI rate limit exceeded", status_code=status, body=body
                ) from exc
            raise LLMProviderAPIError(
                f"OpenAI API error ({status})", status_code=status, body=body
            ) from exc
        except httpx.RequestError as exc:
            raise LLMProviderAPIError(f"OpenAI request error: {exc}") from exc
        except ValueError as exc:
            raise LLMProviderError("OpenAI returned a non-JSON response") from exc

    def _build_payload(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int],
        temperature: Optional[float],
        json_mode: bool,
        extra: Dict[str, Any],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if temperature is not None:
            payload["temperature"] = temperature
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        payload.update(extra)
        return payload

    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> LLMResponse:
        start_time = time.time()

        payload = self._build_payload(messages, max_tokens, temperature, json_mode, kwargs)
        data = await self._post(self._chat_completions_path, json=payload)

        choices = data.get("choices") or []
        if not choices:
            return self._create_response(None, response_time_ms=self._measure_time(start_time))

        choice = choices[0]
        message = choice.get("message") or {}
        usage = data.get("usage") or {}
        return self._create_response(
            content=message.get("content"),
            tokens_used=usage.get("total_tokens"),
            finish_reason=choice.get("finish_reason"),
            response_time_ms=self._measure_time(start_time),
        )
