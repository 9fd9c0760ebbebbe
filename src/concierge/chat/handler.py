"""
Concierge request handler
Runs the two-pass pipeline: gate, pass 1, tool dispatch, pass 2, response shaping
"""

import logging
from typing import Dict, Any, List

from ..provider import ChatCompletionClient, ToolChoice
from .function_calling import ToolDispatcher, extract_tool_calls
from .gate import AdmittedRequest, RequestGate
from .models import ConciergeResponse, MessageRole
from .response_shaper import first_message, shape_direct_response, shape_tool_response

logger = logging.getLogger(__name__)


class ConciergeHandler:
    """
    Handles concierge endpoint functionality.

    Every failure propagates; translating them into HTTP responses is the
    endpoint's job.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        gate: RequestGate,
        provider: ChatCompletionClient,
        dispatcher: ToolDispatcher,
    ):
        self.config = config
        self.gate = gate
        self.provider = provider
        self.dispatcher = dispatcher

    def _build_messages(self, request: AdmittedRequest) -> List[Dict[str, Any]]:
        """System prompt first, then the caller's sanitized transcript"""
        messages = [{"role": MessageRole.SYSTEM.value, "content": self.config["system_prompt"]}]
        messages.extend(message.to_provider_dict() for message in request.messages)
        return messages

    async def handle_request(self, body: Any, client_ip: str) -> ConciergeResponse:
        """
        Turn one chat turn into a concierge reply.

        Args:
            body: Parsed JSON request body
            client_ip: Caller token for rate limiting

        Returns:
            ConciergeResponse for the caller
        """
        request = await self.gate.admit(body, client_ip)
        messages = self._build_messages(request)

        # First pass (let model decide tools)
        first = await self.provider.call(messages, ToolChoice.AUTO)
        assistant_message = first_message(first)
        tool_calls = extract_tool_calls(assistant_message)

        if not tool_calls:
            return shape_direct_response(assistant_message)

        dispatch = await self.dispatcher.dispatch(tool_calls, request.tool_context())
        logger.info(f"Executed {len(dispatch.tools_used)} tool calls: {', '.join(dispatch.tools_used)}")

        # Second pass for final text; tools disabled so calls cannot recurse
        second = await self.provider.call(
            [*messages, assistant_message, *dispatch.tool_messages],
            ToolChoice.NONE,
        )
        return shape_tool_response(second, dispatch)
