"""
HTTP client for the LLM provider's chat-completion endpoint
Bounded per-attempt timeout, typed failures, retry with backoff
"""

import asyncio
import logging
from enum import Enum
from typing import Dict, Any, Awaitable, Callable, List, Optional

import httpx

from ..errors import ProviderError, ProviderErrorKind
from ..retry import RetryPolicy, retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_POLICY = RetryPolicy(
    max_attempts=2,
    initial_delay=1.0,
    retryable_statuses=frozenset({408, 429, 500, 502, 503}),
)


class ToolChoice(str, Enum):
    AUTO = "auto"
    NONE = "none"


class ChatCompletionClient:
    """Issues chat-completion requests to an OpenAI-compatible provider"""

    def __init__(
        self,
        api_key: str,
        model: str,
        tools: List[Dict[str, Any]],
        max_tokens: int = 700,
        temperature: float = 0.6,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.model = model
        self.tools = tools
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_policy = retry_policy
        self.client = http_client  # Created lazily when not injected
        self._owns_client = http_client is None
        self._sleep = sleep

    async def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self._owns_client = True
            self.client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10
                )
            )
        return self.client

    def build_payload(self, messages: List[Dict[str, Any]], tool_choice: ToolChoice) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "tools": self.tools,
            "tool_choice": ToolChoice(tool_choice).value,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    async def call(self, messages: List[Dict[str, Any]], tool_choice: ToolChoice) -> Dict[str, Any]:
        """
        Request one chat completion.

        Args:
            messages: Full transcript, system prompt first
            tool_choice: ``auto`` lets the model request tools, ``none`` forces text

        Returns:
            The provider's JSON response (``choices[0].message`` holds the reply)

        Raises:
            ProviderError: When the request fails fatally or retries are exhausted
        """
        payload = self.build_payload(messages, tool_choice)
        logger.info(f"Calling {self.model} with {len(messages)} messages (tool_choice={payload['tool_choice']})")
        return await retry_with_backoff(lambda: self._attempt(payload), self.retry_policy, sleep=self._sleep)

    async def _attempt(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = await self._get_client()
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await asyncio.wait_for(
                client.post(f"{self.base_url}/chat/completions", json=payload, headers=headers),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError(
                ProviderErrorKind.TIMEOUT,
                f"Provider request timeout after {self.timeout:g}s"
            )
        except httpx.TimeoutException as e:
            raise ProviderError(ProviderErrorKind.TIMEOUT, f"Provider request timed out: {e}")
        except httpx.HTTPError as e:
            raise ProviderError(ProviderErrorKind.NETWORK, f"Provider request failed: {e}")

        if not response.is_success:
            logger.error(f"Provider API error: HTTP {response.status_code} {response.text[:500]}")
            raise ProviderError(
                ProviderErrorKind.HTTP_STATUS,
                f"Provider returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(ProviderErrorKind.MALFORMED_RESPONSE, f"Provider returned invalid JSON: {e}")

        if not isinstance(data, dict):
            raise ProviderError(ProviderErrorKind.MALFORMED_RESPONSE, "Provider response is not a JSON object")

        return data

    async def close(self):
        """Close the HTTP client"""
        if self.client and self._owns_client:
            await self.client.aclose()
            logger.info("Provider HTTP client closed")
        self.client = None
