from .client import OracleClient
from .normalize import normalize
from .prompts import build_instruction
from .retry import RetryExhausted, RetryPolicy, retry_async

__all__ = [
    "OracleClient",
    "normalize",
    "build_instruction",
    "RetryExhausted",
    "RetryPolicy",
    "retry_async",
]
