"""
Tool dispatch for the concierge chat flow
Executes the tool calls requested in pass 1 and folds their results into the transcript
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from ..tools import ToolContext, ToolRegistry
from .models import MessageRole, ToolCall

logger = logging.getLogger(__name__)

BUNDLE_TOOL_NAME = "recommend_bundles"
NAVIGATION_TOOL_NAME = "navigate_site"


def parse_tool_arguments(arguments_json: str) -> Dict[str, Any]:
    """Malformed or non-object argument payloads become an empty dict"""
    try:
        arguments = json.loads(arguments_json or "{}")
    except (json.JSONDecodeError, TypeError):
        logger.warning("Tool call arguments are not valid JSON, using {}")
        return {}
    return arguments if isinstance(arguments, dict) else {}


def extract_tool_calls(message: Dict[str, Any]) -> List[ToolCall]:
    """Tool calls requested by an assistant message, in provider order"""
    raw_calls = message.get("tool_calls") if isinstance(message, dict) else None
    if not isinstance(raw_calls, list):
        return []
    return [ToolCall.from_provider(raw) for raw in raw_calls]


@dataclass
class ToolDispatchResult:
    tool_messages: List[Dict[str, Any]] = field(default_factory=list)
    bundle_offer: Optional[Any] = None
    navigation_url: Optional[str] = None
    tools_used: List[str] = field(default_factory=list)


def find_navigation_url(tool_messages: List[Dict[str, Any]]) -> Optional[str]:
    """First successful navigation result wins; scanning stops there"""
    for message in tool_messages:
        if message.get("name") != NAVIGATION_TOOL_NAME:
            continue
        try:
            payload = json.loads(message.get("content") or "{}")
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict) and payload.get("success") and payload.get("url"):
            return str(payload["url"])
    return None


class ToolDispatcher:
    """
    Runs every tool call from one assistant message.

    Calls are independent, so they execute concurrently, but results are
    folded back in the order the provider requested them so that
    ``tool_call_id`` correlation stays deterministic.
    """

    def __init__(self, tool_registry: ToolRegistry):
        self.tool_registry = tool_registry

    async def _execute(self, call: ToolCall, context: ToolContext) -> Dict[str, Any]:
        handler = self.tool_registry.get(call.function_name)
        if handler is None:
            logger.warning(f"Model requested unknown tool: {call.function_name}")
            return {"success": False, "error": f"Unknown tool: {call.function_name}"}

        arguments = parse_tool_arguments(call.arguments_json)
        logger.info(f"Executing tool call: {call.function_name} ({call.id})")
        result = await handler.execute(arguments, context)
        logger.info(f"Tool call {call.function_name} completed")
        return result

    async def dispatch(self, tool_calls: List[ToolCall], context: ToolContext) -> ToolDispatchResult:
        """
        Execute tool calls and build the tool-role transcript messages.

        Args:
            tool_calls: Calls from the pass-1 assistant message
            context: Request-scoped cart/session context for the tools

        Returns:
            ToolDispatchResult with tool messages (provider order), the captured
            bundle offer and the navigation directive, if any

        Raises:
            ToolExecutionError: If any handler fails, raised only after every
                other call has settled
        """
        results = await asyncio.gather(
            *(self._execute(call, context) for call in tool_calls),
            return_exceptions=True,
        )
        for call, result in zip(tool_calls, results):
            if isinstance(result, BaseException):
                logger.error(f"Tool call {call.function_name} ({call.id}) failed: {result}")
                raise result

        dispatch = ToolDispatchResult()
        for call, result in zip(tool_calls, results):
            if call.function_name == BUNDLE_TOOL_NAME and isinstance(result, dict) and result.get("discountOffer"):
                dispatch.bundle_offer = result["discountOffer"]

            dispatch.tool_messages.append({
                "role": MessageRole.TOOL.value,
                "name": call.function_name,
                "tool_call_id": call.id,
                "content": json.dumps(result, default=str),
            })
            dispatch.tools_used.append(call.function_name)

        dispatch.navigation_url = find_navigation_url(dispatch.tool_messages)
        return dispatch
