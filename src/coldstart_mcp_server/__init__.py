"""Cold start latency analysis for AWS Lambda over X-Ray traces, served over MCP."""

__version__ = "0.3.0"
