"""
Base classes for concierge tool handlers.

A tool handler is the capability behind one function the model may call.
The orchestrator never inspects what a tool does; it hands over parsed
arguments plus the request-scoped context and receives a result dict.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ToolContext:
    """
    Request-scoped context passed to every tool invocation.

    Built once per request by the request gate and discarded with it, so
    concurrent requests never observe each other's cart.
    """

    session_id: Optional[str] = None
    user_email: Optional[str] = None
    cart_items: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "userEmail": self.user_email,
            "cart": {"items": list(self.cart_items)},
        }


class ToolHandler(ABC):
    """Abstract capability behind a single named tool."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Function name the model uses to request this tool."""

    @property
    @abstractmethod
    def definition(self) -> Dict[str, Any]:
        """
        Tool schema in the provider's function format:

            {"type": "function",
             "function": {"name": ..., "description": ..., "parameters": {...}}}
        """

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
        """
        Run the tool.

        Args:
            arguments: Parsed tool-call arguments (``{}`` when the model sent garbage)
            context: Cart and session context of the current request

        Returns:
            JSON-serialisable result dict

        Raises:
            ToolExecutionError: If the capability cannot be reached or fails
        """
