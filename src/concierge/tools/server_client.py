"""
HTTP client for the external concierge tool server
Lists tool schemas and executes tool calls on behalf of the orchestrator
"""

import json
import logging
from typing import Dict, Any, List, Optional
from datetime import datetime, timedelta

import httpx

from ..errors import ToolExecutionError
from .base import ToolContext, ToolHandler

logger = logging.getLogger(__name__)


def to_function_definition(tool: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a tool server listing entry to the provider's function format.

    Entries already in ``{"type": "function", "function": {...}}`` form are
    passed through; MCP-style ``{name, description, inputSchema}`` entries
    are wrapped.
    """
    if tool.get("type") == "function" and isinstance(tool.get("function"), dict):
        return tool

    schema = tool.get("inputSchema") or tool.get("input_schema") or {}
    if not isinstance(schema, dict) or schema.get("type") != "object":
        schema = {"type": "object", "properties": {}}

    return {
        "type": "function",
        "function": {
            "name": tool.get("name", ""),
            "description": tool.get("description", ""),
            "parameters": schema,
        },
    }


class ToolServerClient:
    """HTTP client for communicating with the tool server"""

    def __init__(self, base_url: str, timeout: float = 15.0, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = http_client  # Will be initialized lazily
        self._owns_client = http_client is None
        self._tools_cache: Optional[List[Dict[str, Any]]] = None
        self._cache_expiry: Optional[datetime] = None

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

    async def get_tools(self) -> List[Dict[str, Any]]:
        """Get tool schemas from the tool server, in provider function format"""
        now = datetime.now()
        if self._tools_cache and self._cache_expiry and now < self._cache_expiry:
            logger.info("Using cached tools")
            return self._tools_cache

        try:
            logger.info(f"Fetching tools from tool server at {self.base_url}")
            client = await self._get_client()
            response = await client.get(f"{self.base_url}/tools")
            response.raise_for_status()

            data = response.json()
            raw_tools = data.get("tools", []) if isinstance(data, dict) else []
            tools = [
                to_function_definition(tool) for tool in raw_tools
                if isinstance(tool, dict)
            ]
            tools = [tool for tool in tools if tool["function"].get("name")]

            # Cache tools for 5 minutes
            self._tools_cache = tools
            self._cache_expiry = now + timedelta(minutes=5)

            logger.info(f"Retrieved {len(tools)} tools from tool server")
            return tools

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error getting tools from tool server: {e}")
            return []

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
        """
        Execute a tool on the tool server.

        Args:
            tool_name: Registered tool name
            arguments: Parsed arguments from the model
            context: Request-scoped cart/session context

        Returns:
            Result dict; ``{"success": False, "error": ...}`` when the server
            reports a failed execution

        Raises:
            ToolExecutionError: If the server cannot be reached or answers non-2xx
        """
        logger.info(f"Calling tool {tool_name} via HTTP")
        client = await self._get_client()

        payload = {
            "name": tool_name,
            "arguments": arguments,
            "context": context.to_dict(),
        }

        try:
            response = await client.post(f"{self.base_url}/tools/call", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Error executing tool {tool_name} via HTTP: {e}")
            raise ToolExecutionError(tool_name, str(e))
        except ValueError as e:
            raise ToolExecutionError(tool_name, f"invalid JSON from tool server: {e}")

        if not isinstance(data, dict):
            return {"content": data}

        if not data.get("success", True):
            logger.warning(f"Tool execution failed: {data.get('error')}")
            return {"success": False, "error": data.get("error", "Unknown error")}

        result = data.get("result", data)

        # Extract text content from MCP TextContent format
        if isinstance(result, list) and result and isinstance(result[0], dict) and result[0].get("type") == "text":
            text_content = result[0].get("text", "")
            try:
                parsed = json.loads(text_content)
            except json.JSONDecodeError:
                return {"content": text_content}
            return parsed if isinstance(parsed, dict) else {"content": parsed}

        logger.info(f"Tool {tool_name} executed successfully via HTTP")
        return result if isinstance(result, dict) else {"content": result}

    async def close(self):
        """Close the HTTP client"""
        if self.client and self._owns_client:
            await self.client.aclose()
            logger.info("Tool server HTTP client closed")
        self.client = None


class HttpToolHandler(ToolHandler):
    """Tool handler backed by the tool server"""

    def __init__(self, definition: Dict[str, Any], server: ToolServerClient):
        self._definition = definition
        self._server = server

    @property
    def name(self) -> str:
        return self._definition["function"]["name"]

    @property
    def definition(self) -> Dict[str, Any]:
        return self._definition

    async def execute(self, arguments: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
        return await self._server.call_tool(self.name, arguments, context)
