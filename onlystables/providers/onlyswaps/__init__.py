from .client import (
    FeeQuote,
    FeeQuoteRequest,
    OnlySwapsProvider,
    SwapExecutionResult,
    SwapRequest,
)
from .constants import STABLE_TOKEN_ADDRESSES, load_swap_constants

__all__ = [
    "FeeQuote",
    "FeeQuoteRequest",
    "OnlySwapsProvider",
    "STABLE_TOKEN_ADDRESSES",
    "SwapExecutionResult",
    "SwapRequest",
    "load_swap_constants",
]
