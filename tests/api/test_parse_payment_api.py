from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from onlystables.api.dependencies import get_extractor
from onlystables.config import Settings
from onlystables.core.errors import ParsingServiceError
from onlystables.main import create_app


@pytest.fixture
def extractor():
    return AsyncMock()


@pytest.fixture
def client(extractor):
    app = create_app(Settings(ledger_backend="memory", openai_api_key="sk-test"))
    app.dependency_overrides[get_extractor] = lambda: extractor
    with TestClient(app) as test_client:
        yield test_client


def test_returns_extracted_fields(client, extractor):
    fields = {
        "recipient": "0x1111111111111111111111111111111111111111",
        "amount": "5",
        "token": "USDT",
        "destinationChain": "base",
        "purpose": None,
    }
    extractor.extract.return_value = fields

    resp = client.post("/api/parse-payment", json={"userInput": "send 5 usdt to 0x1111111111111111111111111111111111111111"})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": fields}


@pytest.mark.parametrize("body", [{}, {"userInput": ""}, {"userInput": 42}, ["send"]])
def test_rejects_missing_input(client, extractor, body):
    resp = client.post("/api/parse-payment", json=body)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid input. Please provide a userInput string."}
    extractor.extract.assert_not_awaited()


def test_upstream_status_is_forwarded(client, extractor):
    extractor.extract.side_effect = ParsingServiceError(
        "Failed to parse input with AI",
        status_code=429,
        details={"upstream": "rate limited"},
    )

    resp = client.post("/api/parse-payment", json={"userInput": "pay bob"})

    assert resp.status_code == 429
    assert resp.json() == {"error": "Failed to parse input with AI", "details": {"upstream": "rate limited"}}


def test_unexpected_failure_is_500(client, extractor):
    extractor.extract.side_effect = RuntimeError("boom")

    resp = client.post("/api/parse-payment", json={"userInput": "pay bob"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}
