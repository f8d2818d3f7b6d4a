import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from ..core.errors import ValidationError
from ..ledger import TransactionLedger, record_from_body
from .dependencies import get_ledger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/transactions")
async def create_transaction(
    request: Request,
    ledger: TransactionLedger = Depends(get_ledger),
) -> Any:
    try:
        body = await request.json()
    except ValueError:
        return _error(400, "Request body must be a JSON object")
    if not isinstance(body, dict):
        return _error(400, "Request body must be a JSON object")

    try:
        record = record_from_body(body)
        result = await ledger.write(record)
    except ValidationError as exc:
        return _error(400, exc.message)
    except Exception:
        logger.exception("Failed to persist transaction")
        return _error(500, "Failed to persist transaction history item")

    return {"success": True, "entityId": result.entity_id, "backendTxHash": result.chain_tx_hash}


@router.get("/transactions")
async def list_transactions(
    initiator: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    ledger: TransactionLedger = Depends(get_ledger),
) -> Any:
    """History for one initiator address, newest first."""

    try:
        entries = await ledger.query(initiator, limit)
    except ValidationError as exc:
        return _error(400, exc.message)
    except Exception:
        logger.exception("Failed to load transactions")
        return _error(500, "Failed to load transaction history")

    return {"success": True, "data": [entry.model_dump(by_alias=True) for entry in entries]}
