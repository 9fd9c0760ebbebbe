"""
LLM provider client module for the Concierge Orchestrator

This module provides the chat-completion client used for both passes:
- Pass 1 with tool_choice=auto
- Pass 2 with tool_choice=none
"""

from .openai_client import ChatCompletionClient, ToolChoice, DEFAULT_RETRY_POLICY

__all__ = ["ChatCompletionClient", "ToolChoice", "DEFAULT_RETRY_POLICY"]
