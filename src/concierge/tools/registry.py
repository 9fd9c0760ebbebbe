"""
Tool registry: explicit name -> handler mapping resolved once at startup
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from .base import ToolHandler

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Holds every tool the model is allowed to call for this service."""

    def __init__(self, handlers: Optional[List[ToolHandler]] = None):
        self._handlers: Dict[str, ToolHandler] = {}
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: ToolHandler) -> None:
        if handler.name in self._handlers:
            raise ValueError(f"Tool '{handler.name}' is already registered")
        self._handlers[handler.name] = handler
        logger.debug(f"Registered tool '{handler.name}'")

    def get(self, name: str) -> Optional[ToolHandler]:
        return self._handlers.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._handlers)

    def definitions(self) -> List[Dict[str, Any]]:
        """Tool schemas in registration order, ready for the provider payload"""
        return [handler.definition for handler in self._handlers.values()]

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[ToolHandler]:
        return iter(self._handlers.values())

    def __contains__(self, name: object) -> bool:
        return name in self._handlers
