"""
Error taxonomy for the Concierge Orchestrator
Lower layers raise these; only the endpoint handler translates them to HTTP
"""

from enum import Enum
from typing import List, Optional


class ConciergeError(Exception):
    """Base class for all concierge pipeline failures"""


class InvalidRequestError(ConciergeError):
    """Client-caused failure (malformed body, oversized history)"""


class RateLimitExceededError(ConciergeError):
    """A rate limiter denied the request"""

    def __init__(self, message: str, remaining: int, reset_after: float):
        super().__init__(message)
        self.message = message
        self.remaining = max(0, int(remaining))
        self.reset_after = max(0.0, float(reset_after))


class ServiceMisconfiguredError(ConciergeError):
    """Required configuration is missing; fatal, never retried"""

    def __init__(self, missing: List[str]):
        super().__init__(f"Service misconfigured, missing: {', '.join(missing)}")
        self.missing = missing


class ProviderErrorKind(str, Enum):
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed_response"


class ProviderError(ConciergeError):
    """
    Failure talking to the LLM provider.

    ``status_code`` is only set for ``HTTP_STATUS`` failures. The retrier
    treats a missing status code as a transient failure.
    """

    def __init__(self, kind: ProviderErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"ProviderError(kind={self.kind.value!r}, status_code={self.status_code!r})"


class ToolExecutionError(ConciergeError):
    """A tool handler could not reach or complete its capability"""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name
