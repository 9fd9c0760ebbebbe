"""
Configuration management for the Concierge Orchestrator
Handles configuration loading from environment variables and .env files
"""

import os
import logging
import uuid
from pathlib import Path
from typing import Dict, Any, List, Optional

from dotenv import load_dotenv

from .errors import ServiceMisconfiguredError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _read_system_prompt() -> str:
    prompt = os.getenv("CONCIERGE_SYSTEM_PROMPT", "")
    prompt_file = os.getenv("CONCIERGE_SYSTEM_PROMPT_FILE")
    if not prompt and prompt_file:
        try:
            prompt = Path(prompt_file).read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"💥 Could not read system prompt file {prompt_file}: {e}")
            prompt = ""
    return prompt.strip()


def load_configuration() -> Dict[str, Any]:
    """Load configuration from the environment"""
    return {
        "openai_api_key": os.getenv("OPENAI_API_KEY", ""),
        "model": os.getenv("OPENAI_MODEL", "gpt-4.1-mini"),
        "provider_base_url": os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        "provider_timeout": float(os.getenv("OPENAI_TIMEOUT", "30")),
        "max_tokens": int(os.getenv("CONCIERGE_MAX_TOKENS", "700")),
        "temperature": float(os.getenv("CONCIERGE_TEMPERATURE", "0.6")),
        "system_prompt": _read_system_prompt(),
        "tool_server_url": os.getenv("TOOL_SERVER_URL", ""),
        "redis_url": os.getenv("REDIS_URL", "redis://localhost:6379"),
        "redis_password": os.getenv("REDIS_PASSWORD"),
        "use_redis_rate_limit": os.getenv("USE_REDIS_RATE_LIMIT", "true").lower() == "true",
        "global_rate_limit_requests": int(os.getenv("RATE_LIMIT_GLOBAL_REQUESTS", "10")),
        "global_rate_limit_window": float(os.getenv("RATE_LIMIT_GLOBAL_WINDOW", "60")),
        "local_rate_limit_requests": int(os.getenv("RATE_LIMIT_LOCAL_REQUESTS", "3")),
        "local_rate_limit_window": float(os.getenv("RATE_LIMIT_LOCAL_WINDOW", "10")),
        "cors_origins": os.getenv("CORS_ORIGINS", "http://localhost:3000").split(","),
    }


def missing_configuration(config: Dict[str, Any], tool_registry: Optional[Any]) -> List[str]:
    """Names of required settings that are absent or empty"""
    missing = []
    if not config.get("openai_api_key"):
        missing.append("OPENAI_API_KEY")
    if not config.get("system_prompt"):
        missing.append("CONCIERGE_SYSTEM_PROMPT")
    if tool_registry is None or len(tool_registry) == 0:
        missing.append("tool registry")
    return missing


def ensure_configured(config: Dict[str, Any], tool_registry: Optional[Any]):
    """
    Raise if the service cannot answer requests.

    Raises:
        ServiceMisconfiguredError: naming each missing setting
    """
    missing = missing_configuration(config, tool_registry)
    if missing:
        raise ServiceMisconfiguredError(missing)


def setup_middleware(app, config: Dict[str, Any]):
    """Setup middleware for the FastAPI app"""
    from fastapi.middleware.cors import CORSMiddleware
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.requests import Request as StarletteRequest

    # Custom middleware for distributed tracing
    class DistributedTracingMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: StarletteRequest, call_next):
            # Extract trace ID from incoming request or generate new one
            trace_id = request.headers.get("X-Trace-ID") or str(uuid.uuid4())
            request.state.trace_id = trace_id

            logger.info(f"[TRACE:{trace_id}] Concierge request: {request.method} {request.url.path}")

            response = await call_next(request)
            response.headers["X-Trace-ID"] = trace_id

            logger.info(f"[TRACE:{trace_id}] Concierge response: {response.status_code}")

            return response

    app.add_middleware(DistributedTracingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config["cors_origins"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Trace-ID"],
        expose_headers=["X-Trace-ID", "Retry-After"],
    )
