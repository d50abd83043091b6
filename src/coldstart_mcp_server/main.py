import sys
import logging
import asyncio

# This import initializes the server and registers the tools.
# It's important that it comes before the server is run.
from coldstart_mcp_server.server.server import mcp_server
from coldstart_mcp_server.config.settings import settings

QUIET_LOGGERS = ("mcp", "mcp.server", "mcp.server.fastmcp", "fastapi", "uvicorn", "botocore", "boto3", "urllib3")

def configure_logging():
    """Quiet by default; ENABLE_DEBUG_MESSAGES turns on DEBUG output with timestamps."""
    if not settings.ENABLE_DEBUG_MESSAGES:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        logging.basicConfig(level=logging.WARNING, format='%(levelname)s: %(message)s')
    else:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# Expose the server object for MCP CLI auto-discovery
server = mcp_server

def run_stdio():
    """
    Runs the MCP server using the stdio transport.
    """
    if settings.ENABLE_DEBUG_MESSAGES:
        print(f"Starting {mcp_server.name} v{mcp_server.version} with stdio transport...", file=sys.stderr)

    try:
        mcp_server.run(transport="stdio")
    except Exception as e:
        if settings.ENABLE_DEBUG_MESSAGES:
            print(f"Failed to run MCP server: {e}", file=sys.stderr)
        sys.exit(1)

async def run_http():
    """
    Runs the MCP server using HTTP transport.
    """
    from coldstart_mcp_server.server.http_server import http_server

    try:
        await http_server.run()
    except Exception as e:
        print(f"Failed to run HTTP server: {e}", file=sys.stderr)
        sys.exit(1)

def run():
    """
    Runs the MCP server using the configured transport method.
    """
    configure_logging()
    transport = settings.TRANSPORT_TYPE.lower()

    if transport == "stdio":
        run_stdio()
    elif transport == "http":
        try:
            asyncio.run(run_http())
        except KeyboardInterrupt:
            if settings.ENABLE_DEBUG_MESSAGES:
                print("Server shutdown requested", file=sys.stderr)
    else:
        print(f"Unsupported transport type: {transport}. Use 'stdio' or 'http'", file=sys.stderr)
        sys.exit(1)

if __name__ == "__main__":
    run()
