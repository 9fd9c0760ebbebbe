"""
Tool module for the Concierge Orchestrator

This module provides the tool capability layer:
- ToolHandler contract and request-scoped ToolContext
- ToolRegistry resolved once at startup
- HTTP tool server client and handler
"""

from .base import ToolContext, ToolHandler
from .registry import ToolRegistry
from .server_client import HttpToolHandler, ToolServerClient

__all__ = ["ToolContext", "ToolHandler", "ToolRegistry", "HttpToolHandler", "ToolServerClient"]
