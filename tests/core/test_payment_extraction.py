import json

import httpx
import pytest

from onlystables.config import Settings
from onlystables.core.errors import ConfigurationError, ParsingServiceError
from onlystables.core.intent import (
    EXTRACTION_PROMPT,
    FEW_SHOT_EXAMPLES,
    LLMPaymentExtractor,
    RemoteParseClient,
)
from onlystables.providers.llm import OpenAIProvider, get_llm_provider

FIELDS = {
    "recipient": "0x1111111111111111111111111111111111111111",
    "amount": "2.5",
    "token": "USDT",
    "destinationChain": "arbitrum",
    "purpose": "for dinner",
}


def _completion(content):
    return {
        "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {"total_tokens": 120},
    }


def _extractor(handler):
    transport = httpx.MockTransport(handler)
    return LLMPaymentExtractor(lambda: OpenAIProvider(api_key="sk-test", transport=transport))


def test_prompt_carries_ten_examples_and_every_chain():
    assert len(FEW_SHOT_EXAMPLES) == 10
    for key in ("base", "avalanche", "arbitrum", "optimism", "ethereum", "bnb", "filecoin", "linea", "scroll"):
        assert f"- {key} (" in EXTRACTION_PROMPT


@pytest.mark.asyncio
async def test_llm_extractor_sends_structured_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion(json.dumps(FIELDS)))

    extractor = _extractor(handler)
    result = await extractor.extract("send it")
    await extractor.aclose()

    assert result == FIELDS
    assert seen["path"] == "/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    body = seen["body"]
    assert body["response_format"] == {"type": "json_object"}
    assert body["temperature"] == 0.1
    assert body["messages"][0] == {"role": "system", "content": EXTRACTION_PROMPT}
    assert body["messages"][1] == {"role": "user", "content": "send it"}


@pytest.mark.asyncio
async def test_llm_extractor_passes_upstream_status_and_body():
    def handler(request):
        return httpx.Response(429, json={"error": {"message": "slow down"}})

    with pytest.raises(ParsingServiceError) as excinfo:
        await _extractor(handler).extract("send it")

    assert excinfo.value.status_code == 429
    assert excinfo.value.details["upstream"] == {"error": {"message": "slow down"}}


@pytest.mark.asyncio
async def test_llm_extractor_rejects_invalid_json():
    def handler(request):
        return httpx.Response(200, json=_completion("not json at all"))

    with pytest.raises(ParsingServiceError) as excinfo:
        await _extractor(handler).extract("send it")

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "AI returned invalid JSON format"


@pytest.mark.asyncio
async def test_llm_extractor_rejects_empty_content():
    def handler(request):
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(ParsingServiceError) as excinfo:
        await _extractor(handler).extract("send it")

    assert excinfo.value.message == "No response from AI model"


@pytest.mark.asyncio
async def test_missing_key_surfaces_on_first_call_as_500():
    settings = Settings(openai_api_key="", llm_provider="openai")
    extractor = LLMPaymentExtractor(lambda: get_llm_provider(settings))

    with pytest.raises(ParsingServiceError) as excinfo:
        await extractor.extract("send it")

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "OpenAI API key not configured"


def test_get_llm_provider_requires_key():
    with pytest.raises(ConfigurationError):
        get_llm_provider(Settings(anthropic_api_key=""), provider_name="claude")


@pytest.mark.asyncio
async def test_remote_parse_client_returns_data():
    def handler(request):
        assert request.url.path == "/api/parse-payment"
        assert json.loads(request.content) == {"userInput": "pay"}
        return httpx.Response(200, json={"success": True, "data": FIELDS})

    client = RemoteParseClient("https://pay.example", transport=httpx.MockTransport(handler))
    assert await client.extract("pay") == FIELDS


@pytest.mark.asyncio
async def test_remote_parse_client_raises_with_status():
    def handler(request):
        return httpx.Response(500, json={"error": "OpenAI API key not configured"})

    client = RemoteParseClient("https://pay.example", transport=httpx.MockTransport(handler))
    with pytest.raises(ParsingServiceError) as excinfo:
        await client.extract("pay")

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "OpenAI API key not configured"
