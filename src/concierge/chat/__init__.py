"""
Chat module for the Concierge Orchestrator

This module handles concierge chat functionality including:
- Request gating and sanitization
- Tool dispatch between the two provider passes
- Response shaping
"""

from .handler import ConciergeHandler
from .function_calling import ToolDispatcher
from .gate import RequestGate
from .models import ConciergeResponse, ChatMessage, CartItem

__all__ = ["ConciergeHandler", "ToolDispatcher", "RequestGate", "ConciergeResponse", "ChatMessage", "CartItem"]
