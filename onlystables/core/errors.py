"""
Error taxonomy for the payment pipeline.

Every failure is scoped to a single payment attempt or API request. Errors
carry a category so callers can decide how to surface them: validation and
chain errors go to the user as-is, upstream and persistence errors are logged
in full and shown as a short message.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories used when surfacing an error."""

    VALIDATION = "validation"
    UNSUPPORTED_CHAIN = "unsupported_chain"
    UPSTREAM = "upstream"
    WALLET = "wallet"
    PERSISTENCE = "persistence"
    CONFIGURATION = "configuration"
    STATE = "state"


class OnlyStablesError(Exception):
    """Base class for all pipeline errors."""

    category: ErrorCategory = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationError(OnlyStablesError):
    """Malformed or missing user-supplied field."""

    category = ErrorCategory.VALIDATION


class MissingRecipientError(ValidationError):
    def __init__(self, message: str = "Could not find a recipient address in your request. Please include a 0x address."):
        super().__init__(message)


class InvalidRecipientFormatError(ValidationError):
    def __init__(self, recipient: str):
        super().__init__(
            f"Invalid recipient address: {recipient}. Addresses must be 0x followed by 40 hex characters."
        )
        self.recipient = recipient


class MissingAmountError(ValidationError):
    def __init__(self, message: str = "Could not find an amount in your request. Please say how much USDT to send."):
        super().__init__(message)


class InvalidAmountError(ValidationError):
    def __init__(self, amount: Any):
        super().__init__(f"Invalid amount: {amount}. The amount must be a number greater than zero.")
        self.amount = amount


class MissingInitiatorError(ValidationError):
    def __init__(self, message: str = "initiator parameter is required"):
        super().__init__(message)


class InvalidInitiatorFormatError(ValidationError):
    def __init__(self, message: str = "Invalid initiator address format"):
        super().__init__(message)


class MissingFieldError(ValidationError):
    def __init__(self, field: str):
        super().__init__(f"Missing required field: {field}")
        self.field = field


# ---------------------------------------------------------------------------
# Chains
# ---------------------------------------------------------------------------

class UnsupportedChainError(OnlyStablesError):
    """Requested chain is not one we can route to. The message lists the alternatives."""

    category = ErrorCategory.UNSUPPORTED_CHAIN

    def __init__(self, chain: str, supported: list[str]):
        super().__init__(
            f'Unsupported chain "{chain}". Supported chains: {", ".join(supported)}.'
        )
        self.chain = chain
        self.supported = list(supported)


# ---------------------------------------------------------------------------
# Upstream services
# ---------------------------------------------------------------------------

class UpstreamServiceError(OnlyStablesError):
    """Language-model or swap-library failure."""

    category = ErrorCategory.UPSTREAM


class ParsingServiceError(UpstreamServiceError):
    """The extraction service failed or returned something unusable."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)
        self.status_code = status_code


class SwapProviderError(UpstreamServiceError):
    """Fee quotation or swap submission failed."""


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------

class WalletPreconditionError(OnlyStablesError):
    """Wallet missing, on the wrong network, or the user rejected a request."""

    category = ErrorCategory.WALLET


class WalletNotConnectedError(WalletPreconditionError):
    def __init__(self, message: str = "Connect your wallet to send a payment."):
        super().__init__(message)


class ChainSwitchRequiredError(WalletPreconditionError):
    def __init__(self, chain_name: str):
        super().__init__(f"Please switch your wallet to {chain_name} to send payments.")
        self.chain_name = chain_name


class WalletRejectedError(WalletPreconditionError):
    def __init__(self, message: str = "User rejected the request."):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Persistence / configuration / state
# ---------------------------------------------------------------------------

class PersistenceError(OnlyStablesError):
    """Ledger write or query failed at the backend."""

    category = ErrorCategory.PERSISTENCE


class ConfigurationError(OnlyStablesError):
    """A required credential or constant is absent."""

    category = ErrorCategory.CONFIGURATION


class InvalidTransitionError(OnlyStablesError):
    """Attempted a payment status transition that is not allowed."""

    category = ErrorCategory.STATE

    def __init__(self, from_state: Any, to_state: Any, message: str):
        super().__init__(message)
        self.from_state = from_state
        self.to_state = to_state


class AttemptInProgressError(OnlyStablesError):
    """A payment attempt is already running for this session."""

    category = ErrorCategory.STATE

    def __init__(self, message: str = "A payment is already in progress. Please wait for it to finish."):
        super().__init__(message)


__all__ = [
    "ErrorCategory",
    "OnlyStablesError",
    "ValidationError",
    "MissingRecipientError",
    "InvalidRecipientFormatError",
    "MissingAmountError",
    "InvalidAmountError",
    "MissingInitiatorError",
    "InvalidInitiatorFormatError",
    "MissingFieldError",
    "UnsupportedChainError",
    "UpstreamServiceError",
    "ParsingServiceError",
    "SwapProviderError",
    "WalletPreconditionError",
    "WalletNotConnectedError",
    "ChainSwitchRequiredError",
    "WalletRejectedError",
    "PersistenceError",
    "ConfigurationError",
    "InvalidTransitionError",
    "AttemptInProgressError",
]
