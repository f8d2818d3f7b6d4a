"""Payment session models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional


class PaymentStatus(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    EXECUTING = "executing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ChatMessage:
    """One line of the payment conversation."""

    role: Literal["user", "assistant"]
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class StatusTransition:
    from_status: PaymentStatus
    to_status: PaymentStatus
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of one ``submit`` call."""

    status: PaymentStatus
    request_id: Optional[str] = None
    tx_hash: Optional[str] = None
    error_message: Optional[str] = None


__all__ = ["PaymentStatus", "ChatMessage", "StatusTransition", "PaymentOutcome"]
