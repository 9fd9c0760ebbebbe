"""
Shapes provider output into the single ConciergeResponse returned per request
"""

from typing import Any, Dict

from .function_calling import ToolDispatchResult
from .models import ConciergeResponse

FALLBACK_TEXT = "OK."


def first_message(response: Any) -> Dict[str, Any]:
    """``choices[0].message`` of a provider response, or ``{}``"""
    choices = response.get("choices") if isinstance(response, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return {}
    message = choices[0].get("message")
    return message if isinstance(message, dict) else {}


def message_text(message: Dict[str, Any]) -> str:
    content = message.get("content")
    if isinstance(content, str) and content:
        return content
    return FALLBACK_TEXT


def shape_direct_response(message: Dict[str, Any]) -> ConciergeResponse:
    """No tools were invoked: pass-1 content is the answer"""
    return ConciergeResponse(text=message_text(message))


def shape_tool_response(second_pass: Dict[str, Any], dispatch: ToolDispatchResult) -> ConciergeResponse:
    """Tools were invoked: pass-2 content plus whatever the tools surfaced"""
    return ConciergeResponse(
        text=message_text(first_message(second_pass)),
        bundle_offer=dispatch.bundle_offer,
        navigation_url=dispatch.navigation_url,
    )
