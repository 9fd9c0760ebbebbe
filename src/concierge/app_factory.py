"""
Application factory for the Concierge Orchestrator
Handles component initialization and lifecycle management
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional

from .chat import ConciergeHandler, RequestGate, ToolDispatcher
from .config import missing_configuration
from .provider import ChatCompletionClient
from .ratelimit import InMemoryRateLimiter, RateLimiter, RedisRateLimiter
from .tools import HttpToolHandler, ToolRegistry, ToolServerClient

logger = logging.getLogger(__name__)


@dataclass
class Components:
    handler: ConciergeHandler
    tool_registry: ToolRegistry
    provider: ChatCompletionClient
    global_limiter: RateLimiter
    local_limiter: RateLimiter
    tool_server: Optional[ToolServerClient] = None


async def build_tool_registry(tool_server: Optional[ToolServerClient]) -> ToolRegistry:
    """Resolve the tool server's listing into a registry, once"""
    registry = ToolRegistry()
    if tool_server is None:
        logger.warning("⚠️ TOOL_SERVER_URL not set, no tools registered")
        return registry

    for definition in await tool_server.get_tools():
        try:
            registry.register(HttpToolHandler(definition, tool_server))
        except ValueError as e:
            logger.warning(f"Skipping tool: {e}")

    logger.info(f"Registered {len(registry)} tools: {', '.join(registry.names)}")
    return registry


async def create_global_rate_limiter(config: Dict[str, Any]) -> RateLimiter:
    """
    Redis-backed limiter when reachable, in-memory otherwise.

    The in-memory fallback keeps the same policy but only counts requests
    seen by this process.
    """
    max_requests = config["global_rate_limit_requests"]
    window = config["global_rate_limit_window"]

    if config["use_redis_rate_limit"]:
        limiter = RedisRateLimiter(
            redis_url=config["redis_url"],
            password=config["redis_password"],
            max_requests=max_requests,
            window_seconds=window,
        )
        try:
            await limiter.initialize()
            return limiter
        except Exception as e:
            logger.warning(f"⚠️ Redis rate limiter unavailable, falling back to in-memory: {e}")

    limiter = InMemoryRateLimiter(max_requests, window)
    await limiter.initialize()
    return limiter


async def initialize_components(config: Dict[str, Any]) -> Components:
    """
    Initialize all application components

    Returns:
        Components bundle with the concierge handler and its collaborators
    """
    logger.info("Starting Concierge Orchestrator...")
    logger.info(f"Using model: {config['model']}")

    tool_server = ToolServerClient(config["tool_server_url"]) if config["tool_server_url"] else None
    tool_registry = await build_tool_registry(tool_server)

    global_limiter = await create_global_rate_limiter(config)
    local_limiter = InMemoryRateLimiter(
        config["local_rate_limit_requests"],
        config["local_rate_limit_window"],
    )
    await local_limiter.initialize()

    provider = ChatCompletionClient(
        api_key=config["openai_api_key"],
        model=config["model"],
        tools=tool_registry.definitions(),
        max_tokens=config["max_tokens"],
        temperature=config["temperature"],
        base_url=config["provider_base_url"],
        timeout=config["provider_timeout"],
    )

    gate = RequestGate(config, tool_registry, global_limiter, local_limiter)
    handler = ConciergeHandler(config, gate, provider, ToolDispatcher(tool_registry))

    missing = missing_configuration(config, tool_registry)
    if missing:
        # Requests will be refused with a 500 until this is fixed
        logger.error(f"💥 Concierge is misconfigured, missing: {', '.join(missing)}")
    else:
        logger.info("✅ Concierge Orchestrator started successfully")

    return Components(
        handler=handler,
        tool_registry=tool_registry,
        provider=provider,
        global_limiter=global_limiter,
        local_limiter=local_limiter,
        tool_server=tool_server,
    )


async def cleanup_components(components: Components):
    """Cleanup all application components"""
    logger.info("Shutting down Concierge Orchestrator...")

    try:
        await components.provider.close()
    except Exception as e:
        logger.error(f"Error closing provider client: {e}")

    if components.tool_server:
        try:
            await components.tool_server.close()
        except Exception as e:
            logger.error(f"Error closing tool server client: {e}")

    for limiter in (components.global_limiter, components.local_limiter):
        try:
            await limiter.close()
        except Exception as e:
            logger.error(f"Error closing {limiter.backend_name} rate limiter: {e}")
