import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..core.errors import ParsingServiceError
from ..core.intent import LLMPaymentExtractor
from .dependencies import get_extractor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/parse-payment")
async def parse_payment(
    request: Request,
    extractor: LLMPaymentExtractor = Depends(get_extractor),
) -> Any:
    """Extract payment fields from free text. Validation happens in the caller's parser."""

    try:
        body = await request.json()
    except ValueError:
        body = None

    user_input = body.get("userInput") if isinstance(body, dict) else None
    if not user_input or not isinstance(user_input, str):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid input. Please provide a userInput string."},
        )

    try:
        data: Dict[str, Any] = await extractor.extract(user_input)
    except ParsingServiceError as exc:
        logger.error("parse-payment failed: %s details=%s", exc.message, exc.details)
        content: Dict[str, Any] = {"error": exc.message}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)
    except Exception:
        logger.exception("Unexpected parse-payment failure")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return {"success": True, "data": data}
