"""
API endpoint handlers for the Concierge Orchestrator
Contains the concierge error translation, health check, and tool listing
"""

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.responses import JSONResponse

from .chat import ConciergeHandler
from .chat.models import ApiErrorResponse, InvalidRequestResponse, RateLimitResponse
from .config import missing_configuration
from .errors import InvalidRequestError, RateLimitExceededError

logger = logging.getLogger(__name__)

SERVICE_NAME = "concierge-orchestrator"
SERVICE_VERSION = "1.0.0"

GENERIC_ERROR = ApiErrorResponse(
    error="Service error",
    hint="Failed to process concierge request. Please try again.",
)


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


async def read_json_body(request: Request) -> Any:
    """Parsed body, or ``{}`` when it is not valid JSON"""
    try:
        return await request.json()
    except ValueError:
        return {}


async def concierge_endpoint_handler(components, request: Request) -> JSONResponse:
    """
    Run the concierge pipeline and translate its outcome to HTTP.

    This is the only place failures are caught. Client errors become 400,
    limiter denials 429, and everything else a generic 500 without internals.
    """
    if components is None:
        logger.error("Concierge request received before components were initialized")
        return JSONResponse(content=GENERIC_ERROR.model_dump(), status_code=500)

    handler: ConciergeHandler = components.handler
    client_ip = get_client_ip(request)
    body = await read_json_body(request)

    try:
        response = await handler.handle_request(body, client_ip)
        return JSONResponse(content=response.to_json())

    except InvalidRequestError as e:
        logger.info(f"Rejected concierge request from {client_ip}: {e}")
        return JSONResponse(
            content=InvalidRequestResponse(error=str(e)).model_dump(),
            status_code=400,
        )

    except RateLimitExceededError as e:
        reset_after = int(e.reset_after)
        return JSONResponse(
            content=RateLimitResponse(
                error=e.message,
                remaining=e.remaining,
                reset_after=reset_after,
            ).model_dump(by_alias=True),
            status_code=429,
            headers={"Retry-After": str(reset_after)},
        )

    except Exception as e:
        logger.error(f"Concierge POST error: {e!r}", exc_info=True)
        return JSONResponse(content=GENERIC_ERROR.model_dump(), status_code=500)


async def health_check_handler(components, config: Dict[str, Any]) -> Dict[str, Any]:
    """Health check with configuration and collaborator status"""
    base_status = {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}

    if components is None:
        base_status["status"] = "starting"
        return base_status

    missing = missing_configuration(config, components.tool_registry)
    if missing:
        base_status["status"] = "misconfigured"
        base_status["missing_configuration"] = missing

    base_status["provider"] = {
        "model": components.provider.model,
        "configured": bool(config.get("openai_api_key")),
    }
    base_status["rate_limiting"] = {
        "global_backend": components.global_limiter.backend_name,
        "local_backend": components.local_limiter.backend_name,
    }
    base_status["tools"] = {"registered": len(components.tool_registry)}

    return base_status


async def list_tools_handler(components) -> Dict[str, Any]:
    """Names of the tools the model may call"""
    if components is None:
        return {"tools": []}
    return {"tools": components.tool_registry.names}
