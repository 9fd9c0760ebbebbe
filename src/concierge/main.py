"""
Concierge Orchestrator Service
Turns a shopper's chat turn into a grounded reply, calling tools between two LLM passes
"""

import os
import logging
from contextlib import asynccontextmanager
from typing import Dict, Any, Optional

from fastapi import FastAPI, Request

# Configure logging
logging.basicConfig(level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
logger = logging.getLogger(__name__)

from .config import load_configuration, setup_middleware
from .app_factory import initialize_components, cleanup_components
from .endpoints import (
    SERVICE_VERSION,
    concierge_endpoint_handler,
    health_check_handler,
    list_tools_handler,
)


def create_app(app_config: Optional[Dict[str, Any]] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Components are initialized in the lifespan unless ``app.state.components``
    was set beforehand (tests inject their own).
    """
    app_config = app_config if app_config is not None else load_configuration()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_components = getattr(app.state, "components", None) is None
        if owns_components:
            app.state.components = await initialize_components(app_config)

        yield

        if owns_components:
            await cleanup_components(app.state.components)
            app.state.components = None

    app = FastAPI(
        title="Concierge Orchestrator",
        description="Two-pass LLM concierge with tool calling",
        version=SERVICE_VERSION,
        lifespan=lifespan
    )
    app.state.config = app_config
    app.state.components = None

    setup_middleware(app, app_config)

    @app.post("/concierge")
    async def concierge(request: Request):
        """Main concierge endpoint: gate, two LLM passes, tool dispatch"""
        return await concierge_endpoint_handler(app.state.components, request)

    @app.get("/tools")
    async def list_tools():
        """List registered tools"""
        return await list_tools_handler(app.state.components)

    @app.get("/health")
    async def health_check():
        """Health check endpoint with configuration status"""
        return await health_check_handler(app.state.components, app_config)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8003)))
