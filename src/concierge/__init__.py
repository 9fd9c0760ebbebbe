"""
Concierge Orchestrator

Server-side orchestrator that turns a chat turn into an assistant reply,
running requested tools between two chat-completion passes.
"""

__version__ = "1.0.0"
