from .extraction import LLMPaymentExtractor, PaymentExtractor, RemoteParseClient, decode_model_json
from .parser import IntentParser, PaymentIntent, find_amount, find_recipient
from .prompts import EXTRACTION_PROMPT, FEW_SHOT_EXAMPLES

__all__ = [
    "EXTRACTION_PROMPT",
    "FEW_SHOT_EXAMPLES",
    "IntentParser",
    "LLMPaymentExtractor",
    "PaymentExtractor",
    "PaymentIntent",
    "RemoteParseClient",
    "decode_model_json",
    "find_amount",
    "find_recipient",
]
