from .formatting import format_user_error
from .models import ChatMessage, PaymentOutcome, PaymentStatus, StatusTransition
from .orchestrator import LedgerWriter, PaymentOrchestrator

__all__ = [
    "ChatMessage",
    "LedgerWriter",
    "PaymentOrchestrator",
    "PaymentOutcome",
    "PaymentStatus",
    "StatusTransition",
    "format_user_error",
]
