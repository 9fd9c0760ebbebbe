"""
Request gate for the concierge endpoint
Rate limiting, configuration check, and input sanitization before any model call
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import ensure_configured
from ..errors import InvalidRequestError, RateLimitExceededError
from ..ratelimit import RateLimiter
from ..tools import ToolContext, ToolRegistry
from .models import CartItem, ChatMessage, MessageRole

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000
MAX_HISTORY_LENGTH = 50
MAX_CAPSULE_ID_LENGTH = 100
MAX_IDENTIFIER_LENGTH = 100
MAX_EMAIL_LENGTH = 254

ALLOWED_ROLES = {role.value for role in MessageRole}

GLOBAL_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
LOCAL_LIMIT_MESSAGE = "Too many rapid concierge requests. Please wait a few seconds."


def sanitize_string(value: Any, max_length: int) -> str:
    """Stringify (None becomes "") and truncate; never rejects"""
    text = "" if value is None else str(value)
    return text[:max_length]


def _finite_number(value: Any) -> Optional[float]:
    # bool is an int subclass but never a quantity or a price
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def sanitize_message(raw: Any) -> ChatMessage:
    """Clamp content and coerce unknown roles to ``user``"""
    data = raw if isinstance(raw, dict) else {}
    role = data.get("role")
    return ChatMessage(
        role=role if isinstance(role, str) and role in ALLOWED_ROLES else MessageRole.USER,
        content=sanitize_string(data.get("content"), MAX_MESSAGE_LENGTH),
        name=_optional_string(data.get("name"), MAX_IDENTIFIER_LENGTH),
        tool_call_id=_optional_string(data.get("tool_call_id"), MAX_IDENTIFIER_LENGTH),
    )


def sanitize_messages(raw_messages: List[Any]) -> List[ChatMessage]:
    return [sanitize_message(raw) for raw in raw_messages]


def sanitize_cart_item(raw: Any) -> CartItem:
    """Malformed fields fall back to safe defaults instead of failing"""
    data = raw if isinstance(raw, dict) else {}
    quantity = _finite_number(data.get("quantity"))
    price = _finite_number(data.get("price"))
    return CartItem(
        capsule_id=sanitize_string(data.get("capsuleId") or "", MAX_CAPSULE_ID_LENGTH),
        quantity=max(1, int(quantity)) if quantity is not None else 1,
        price=max(0.0, price) if price is not None else 0.0,
    )


def sanitize_cart_items(raw_items: Any) -> List[CartItem]:
    if not isinstance(raw_items, list):
        return []
    return [sanitize_cart_item(item) for item in raw_items]


def _optional_string(value: Any, max_length: int) -> Optional[str]:
    if not isinstance(value, str) or not value:
        return None
    return value[:max_length]


@dataclass
class AdmittedRequest:
    """Sanitized, request-scoped view of an inbound concierge call"""
    messages: List[ChatMessage]
    cart_items: List[CartItem] = field(default_factory=list)
    session_id: Optional[str] = None
    user_email: Optional[str] = None

    def tool_context(self) -> ToolContext:
        return ToolContext(
            session_id=self.session_id,
            user_email=self.user_email,
            cart_items=[item.to_context_dict() for item in self.cart_items],
        )


class RequestGate:
    """
    Admits or refuses a raw request before any provider call is made.

    Checks run in a fixed order: global limiter, local limiter,
    configuration, body shape, message sanitization, history length,
    cart coercion.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        tool_registry: ToolRegistry,
        global_limiter: RateLimiter,
        local_limiter: RateLimiter,
    ):
        self.config = config
        self.tool_registry = tool_registry
        self.global_limiter = global_limiter
        self.local_limiter = local_limiter

    async def check_rate_limits(self, client_ip: str):
        decision = await self.global_limiter.check(client_ip)
        if not decision.allowed:
            logger.warning(f"Global rate limit hit for {client_ip}")
            raise RateLimitExceededError(GLOBAL_LIMIT_MESSAGE, decision.remaining, decision.reset_after_seconds)

        decision = await self.local_limiter.check(client_ip)
        if not decision.allowed:
            logger.warning(f"Local rate limit hit for {client_ip}")
            raise RateLimitExceededError(LOCAL_LIMIT_MESSAGE, decision.remaining, decision.reset_after_seconds)

    async def admit(self, body: Any, client_ip: str) -> AdmittedRequest:
        """
        Validate and sanitize one request.

        Args:
            body: Parsed JSON body (anything; malformed bodies arrive as ``{}``)
            client_ip: Caller token used as the rate-limit key

        Returns:
            AdmittedRequest with sanitized messages and cart context

        Raises:
            RateLimitExceededError: If either limiter denies the caller
            ServiceMisconfiguredError: If required configuration is missing
            InvalidRequestError: If messages are missing or the history is too long
        """
        await self.check_rate_limits(client_ip)
        ensure_configured(self.config, self.tool_registry)

        raw_messages = body.get("messages") if isinstance(body, dict) else None
        if not isinstance(raw_messages, list):
            raise InvalidRequestError("Messages array is required")

        messages = sanitize_messages(raw_messages)
        if len(messages) > MAX_HISTORY_LENGTH:
            raise InvalidRequestError(f"Message history too long (max {MAX_HISTORY_LENGTH})")

        return AdmittedRequest(
            messages=messages,
            cart_items=sanitize_cart_items(body.get("cartItems")),
            session_id=_optional_string(body.get("sessionId"), MAX_IDENTIFIER_LENGTH),
            user_email=_optional_string(body.get("userEmail"), MAX_EMAIL_LENGTH),
        )
