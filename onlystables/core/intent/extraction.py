"""
Payment field extraction.

Two interchangeable extractors return the raw model JSON for a user message:

- ``LLMPaymentExtractor`` calls the language model directly (used by the
  parse endpoint).
- ``RemoteParseClient`` calls a deployed parse endpoint over HTTP (used by
  payment sessions that do not hold an LLM credential).

Both raise ``ParsingServiceError`` with the upstream status and error body
attached. Neither retries.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import httpx

from ..errors import ConfigurationError, ParsingServiceError
from ...providers.llm import LLMMessage, LLMProvider, LLMProviderError
from .prompts import EXTRACTION_PROMPT

logger = logging.getLogger(__name__)


class PaymentExtractor(ABC):
    """Turns free text into a best-effort dict of payment fields."""

    @abstractmethod
    async def extract(self, user_input: str) -> Dict[str, Any]:
        pass


def decode_model_json(content: Any) -> Dict[str, Any]:
    """Decode the model's reply into a JSON object or raise ``ParsingServiceError``."""

    if isinstance(content, dict):
        return content
    if not content:
        raise ParsingServiceError("No response from AI model", status_code=500)
    try:
        parsed = json.loads(content)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ParsingServiceError(
            "AI returned invalid JSON format",
            status_code=500,
            details={"rawResponse": content},
        ) from exc
    if not isinstance(parsed, dict):
        raise ParsingServiceError(
            "Invalid response structure from AI",
            status_code=500,
            details={"rawResponse": content},
        )
    return parsed


class LLMPaymentExtractor(PaymentExtractor):
    """Extract payment fields with a single structured-output model call."""

    def __init__(
        self,
        provider_factory: Callable[[], LLMProvider],
        *,
        temperature: float = 0.1,
        max_tokens: int = 400,
        prompt: str = EXTRACTION_PROMPT,
    ) -> None:
        self._provider_factory = provider_factory
        self._provider: Optional[LLMProvider] = None
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.prompt = prompt

    def _get_provider(self) -> LLMProvider:
        if self._provider is None:
            try:
                self._provider = self._provider_factory()
            except ConfigurationError as exc:
                raise ParsingServiceError(exc.message, status_code=500) from exc
        return self._provider

    async def aclose(self) -> None:
        if self._provider is not None:
            await self._provider.aclose()
            self._provider = None

    async def extract(self, user_input: str) -> Dict[str, Any]:
        provider = self._get_provider()
        messages = [
            LLMMessage(role="system", content=self.prompt),
            LLMMessage(role="user", content=user_input),
        ]
        try:
            response = await provider.generate_response(
                messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                json_mode=True,
            )
        except LLMProviderError as exc:
            logger.error(
                "Payment extraction failed upstream (status=%s): %s body=%s",
                exc.status_code, exc, exc.body,
            )
            raise ParsingServiceError(
                "Failed to parse input with AI",
                status_code=exc.status_code or 502,
                details={"upstream": exc.body if exc.body is not None else str(exc)},
            ) from exc

        parsed = decode_model_json(response.content)
        logger.info("Extracted payment fields: %s", parsed)
        return parsed


class RemoteParseClient(PaymentExtractor):
    """Call ``POST /api/parse-payment`` on a deployed onlystables API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ConfigurationError("ONLYSTABLES_API_URL is required for remote parsing")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def extract(self, user_input: str) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post("/api/parse-payment", json={"userInput": user_input})
        except httpx.RequestError as exc:
            raise ParsingServiceError(f"Parse request failed: {exc}", status_code=503) from exc

        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text}

        if response.status_code >= 400 or not body.get("success"):
            logger.error("Parse endpoint failed (status=%s): %s", response.status_code, body)
            raise ParsingServiceError(
                body.get("error") or "Failed to parse payment request",
                status_code=response.status_code,
                details=body,
            )
        return decode_model_json(body.get("data"))


__all__ = [
    "PaymentExtractor",
    "LLMPaymentExtractor",
    "RemoteParseClient",
    "decode_model_json",
]
