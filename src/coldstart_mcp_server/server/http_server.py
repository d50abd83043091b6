import sys
from typing import Any, Dict, Optional
import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
import json
import logging
from ..config.settings import settings
from ..security import security_manager, AuthenticationError, AuthorizationError, RateLimitError
from ..api_client.client_factory import (
    create_xray_client_from_request,
    set_request_context,
    clear_request_context
)
from .server import mcp_server

logger = logging.getLogger(__name__)

MCP_PROTOCOL_VERSION = "2024-11-05"

def _json_response(payload: Dict[str, Any], status_code: int = 200) -> Response:
    return Response(
        content=json.dumps(payload, default=json_serializer),
        status_code=status_code,
        media_type="application/json"
    )

def json_serializer(obj):
    """Custom JSON serializer for non-serializable objects."""
    if hasattr(obj, 'isoformat'):
        return obj.isoformat()
    if hasattr(obj, 'model_dump'):
        return obj.model_dump(by_alias=True, mode="json")
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

class HTTPMCPServer:
    """
    HTTP MCP Server that serves JSON-RPC and plain tool calls over HTTP.
    """

    def __init__(self):
        self.app = FastAPI(
            title=settings.SERVER_NAME,
            version=settings.SERVER_VERSION,
            description="Cold Start MCP Server - HTTP Transport"
        )
        self.setup_middleware()
        self.setup_routes()

    def setup_middleware(self):
        """Setup FastAPI middleware for security."""

        if settings.BEHIND_PROXY:
            allowed_hosts = [host.strip() for host in settings.ALLOWED_HOSTS.split(",")]
            self.app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)

        if settings.HTTP_CORS_ENABLED:
            origins = [origin.strip() for origin in settings.HTTP_CORS_ORIGINS.split(",")]
            self.app.add_middleware(
                CORSMiddleware,
                allow_origins=origins,
                allow_credentials=True,
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            )

        @self.app.middleware("http")
        async def authenticate_request(request: Request, call_next):
            if request.url.path in ["/", "/health", "/docs", "/openapi.json"]:
                return await call_next(request)
            try:
                await security_manager.authenticate(request)
            except (AuthenticationError, AuthorizationError, RateLimitError) as e:
                return _json_response({"error": str(e.detail)}, e.status_code)
            return await call_next(request)

        # Added last, so it wraps authentication
        @self.app.middleware("http")
        async def limit_request_size(request: Request, call_next):
            if request.method == "POST":
                content_length = request.headers.get("content-length")
                if content_length and int(content_length) > settings.MAX_PAYLOAD_SIZE:
                    return _json_response({"error": "Request payload too large"}, 413)
            return await call_next(request)

    def setup_routes(self):
        """Setup FastAPI routes for MCP protocol."""

        @self.app.get("/")
        async def root():
            return {
                "name": settings.SERVER_NAME,
                "version": settings.SERVER_VERSION,
                "protocol": "mcp",
                "transport": "http",
                "authentication": {
                    "enabled": settings.HTTP_AUTH_ENABLED,
                    "method": settings.HTTP_AUTH_METHOD if settings.HTTP_AUTH_ENABLED else None
                },
                "capabilities": self.get_capabilities()
            }

        @self.app.get("/health")
        async def health_check():
            return {"status": "healthy", "service": settings.SERVER_NAME}

        @self.app.get("/tools")
        async def list_tools_http():
            """HTTP endpoint to list all available tools."""
            tools = self.list_tools()
            return {"tools": tools, "count": len(tools)}

        @self.app.post("/tools/{tool_name}")
        async def call_tool_http(tool_name: str, request: Request):
            """HTTP endpoint to call a specific tool."""
            body = await request.body()
            try:
                arguments = json.loads(body.decode('utf-8')) if body else {}
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                return _json_response({"error": f"Invalid JSON: {str(e)}"}, 400)

            if mcp_server._tool_manager.get_tool(tool_name) is None:
                return _json_response({
                    "error": f"Tool not found: {tool_name}",
                    "available_tools": [tool["name"] for tool in self.list_tools()]
                }, 404)

            try:
                result = await self.execute_tool(tool_name, arguments, request)
            except HTTPException as e:
                return _json_response({"error": str(e.detail)}, e.status_code)
            except Exception as e:
                logger.error(f"Error calling tool {tool_name}: {e}")
                return _json_response({"error": str(e)}, 500)

            return _json_response({
                "tool": tool_name,
                "arguments": arguments,
                "result": result
            })

        @self.app.post("/mcp")
        async def handle_mcp_request(request: Request):
            """Handle MCP JSON-RPC requests."""
            body = await request.body()
            if not body:
                return _json_response({"error": "Empty request body"}, 400)

            try:
                rpc_request = json.loads(body.decode('utf-8'))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                return _json_response({"error": f"Invalid JSON: {str(e)}"}, 400)

            response = await self.process_mcp_request(rpc_request, request)
            return _json_response(response)

    def list_tools(self):
        return [
            {
                "name": tool.name,
                "description": tool.description or "",
                "inputSchema": tool.parameters
            }
            for tool in mcp_server._tool_manager.list_tools()
        ]

    async def execute_tool(self, tool_name: str, arguments: Dict[str, Any], request: Optional[Request] = None) -> Any:
        """Run a registered tool with a tracing client built from the request headers."""
        tool = mcp_server._tool_manager.get_tool(tool_name)
        if request is not None:
            set_request_context(create_xray_client_from_request(request))
        try:
            if tool.is_async:
                return await tool.fn(**arguments)
            return tool.fn(**arguments)
        finally:
            if request is not None:
                clear_request_context()

    async def process_mcp_request(self, rpc_request: dict, request: Request = None) -> dict:
        """Process an MCP JSON-RPC request."""
        method = rpc_request.get("method")
        params = rpc_request.get("params") or {}
        request_id = rpc_request.get("id")

        def error(code: int, message: str) -> dict:
            return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}

        if method == "initialize":
            return {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {
                    "protocolVersion": MCP_PROTOCOL_VERSION,
                    "capabilities": self.get_capabilities(),
                    "serverInfo": {
                        "name": settings.SERVER_NAME,
                        "version": settings.SERVER_VERSION
                    }
                }
            }

        elif method == "tools/list":
            return {"jsonrpc": "2.0", "id": request_id, "result": {"tools": self.list_tools()}}

        elif method == "tools/call":
            tool_name = params.get("name")
            arguments = params.get("arguments") or {}

            if mcp_server._tool_manager.get_tool(tool_name) is None:
                return error(-32601, f"Tool not found: {tool_name}")

            try:
                result = await self.execute_tool(tool_name, arguments, request)
            except Exception as e:
                logger.error(f"Tool execution error in {tool_name}: {e}")
                return error(-32603, f"Tool execution error: {str(e)}")

            return {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {
                    "content": [
                        {
                            "type": "text",
                            "text": json.dumps(result, default=json_serializer, indent=2)
                        }
                    ],
                    "isError": isinstance(result, dict) and result.get("status") == "error"
                }
            }

        return error(-32601, f"Method not found: {method}")

    def get_capabilities(self) -> dict:
        """Get server capabilities."""
        return {
            "tools": {"listChanged": False},
            "resources": {},
            "experimental": {
                "toolCount": len(mcp_server._tool_manager.list_tools())
            }
        }

    async def run(self):
        """Run the HTTP server."""
        config = uvicorn.Config(
            app=self.app,
            host=settings.SERVER_HOST,
            port=settings.SERVER_PORT,
            log_level="debug" if settings.ENABLE_DEBUG_MESSAGES else "info",
            access_log=settings.ENABLE_DEBUG_MESSAGES
        )

        server = uvicorn.Server(config)

        print(f"Starting {settings.SERVER_NAME} v{settings.SERVER_VERSION}", file=sys.stderr)
        print(f"Server running on http://{settings.SERVER_HOST}:{settings.SERVER_PORT}", file=sys.stderr)
        print(f"MCP endpoint: http://{settings.SERVER_HOST}:{settings.SERVER_PORT}/mcp", file=sys.stderr)

        if settings.HTTP_AUTH_ENABLED:
            print(f"Authentication: ENABLED ({settings.HTTP_AUTH_METHOD.upper()})", file=sys.stderr)
            if settings.HTTP_IP_WHITELIST:
                print(f"IP Whitelist: {settings.HTTP_IP_WHITELIST}", file=sys.stderr)
            if settings.HTTP_RATE_LIMIT_ENABLED:
                print(f"Rate Limit: {settings.MAX_REQUESTS_PER_MINUTE} requests/minute", file=sys.stderr)
        else:
            print("Authentication: DISABLED (set HTTP_AUTH_ENABLED=true to enable)", file=sys.stderr)

        print(f"X-Ray region: {settings.AWS_REGION or 'boto3 default'} (override per request with X-AWS-Region)", file=sys.stderr)
        print("=" * 60, file=sys.stderr)

        await server.serve()

# Create server instance
http_server = HTTPMCPServer()
