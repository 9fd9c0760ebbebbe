"""
Shared fixtures for the concierge test suite.
"""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from concierge.ratelimit import RateLimitDecision
from concierge.tools import ToolContext, ToolHandler, ToolRegistry


class FakeToolHandler(ToolHandler):
    """In-process tool that records its calls and returns a canned result."""

    def __init__(self, name: str, result: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self._name = name
        self.result = result if result is not None else {"success": True}
        self.error = error
        self.calls: List[tuple] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def definition(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self._name,
                "description": f"Fake {self._name}",
                "parameters": {"type": "object", "properties": {}},
            },
        }

    async def execute(self, arguments: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
        self.calls.append((arguments, context))
        if self.error is not None:
            raise self.error
        return self.result


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def make_tool():
    return FakeToolHandler


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def app_config() -> Dict[str, Any]:
    return {
        "openai_api_key": "sk-test",
        "model": "gpt-test",
        "provider_base_url": "https://provider.test/v1",
        "provider_timeout": 30.0,
        "max_tokens": 700,
        "temperature": 0.6,
        "system_prompt": "You are the shop concierge.",
        "tool_server_url": "",
        "redis_url": "redis://localhost:6379",
        "redis_password": None,
        "use_redis_rate_limit": False,
        "global_rate_limit_requests": 10,
        "global_rate_limit_window": 60.0,
        "local_rate_limit_requests": 3,
        "local_rate_limit_window": 10.0,
        "cors_origins": ["http://localhost:3000"],
    }


@pytest.fixture
def tool_registry() -> ToolRegistry:
    return ToolRegistry([
        FakeToolHandler("recommend_bundles", {"discountOffer": {"code": "BUNDLE10", "percent": 10}}),
        FakeToolHandler("navigate_site", {"success": True, "url": "/x"}),
    ])


@pytest.fixture
def allow_limiter():
    """Limiter mock that always admits the caller."""
    limiter = AsyncMock()
    limiter.backend_name = "mock"
    limiter.check.return_value = RateLimitDecision(allowed=True, remaining=9, reset_after=60.0)
    return limiter
