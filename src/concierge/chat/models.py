"""
Request and response contracts for the concierge endpoint
"""

import enum
import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, enum.Enum):
    """Message role enum."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ChatMessage(BaseModel):
    """One transcript entry as sent to the provider"""
    role: MessageRole
    content: str
    name: Optional[str] = None
    tool_call_id: Optional[str] = None

    def to_provider_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class CartItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    capsule_id: str = Field("", max_length=100, alias="capsuleId")
    quantity: int = Field(1, ge=1)
    price: float = Field(0.0, ge=0.0)

    def to_context_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ToolCall(BaseModel):
    """A tool invocation requested by the provider in pass 1"""
    id: str
    function_name: str
    arguments_json: str = "{}"

    @classmethod
    def from_provider(cls, raw: Any) -> "ToolCall":
        raw = raw if isinstance(raw, dict) else {}
        function = raw.get("function") if isinstance(raw.get("function"), dict) else {}
        arguments = function.get("arguments")
        return cls(
            id=str(raw.get("id") or ""),
            function_name=str(function.get("name") or ""),
            arguments_json=json.dumps(arguments) if isinstance(arguments, dict) else str(arguments or "{}"),
        )


class ConciergeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    bundle_offer: Optional[Any] = Field(None, alias="bundleOffer")
    navigation_url: Optional[str] = Field(None, alias="navigationUrl")

    def to_json(self) -> Dict[str, Any]:
        # Fields never set (the no-tool path) are left out of the body
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class ApiErrorResponse(BaseModel):
    error: str
    hint: Optional[str] = None


class InvalidRequestResponse(BaseModel):
    ok: bool = False
    error: str


class RateLimitResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = False
    error: str
    remaining: int = Field(..., ge=0)
    reset_after: int = Field(..., ge=0, alias="resetAfter")
