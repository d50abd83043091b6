"""
Resources package for the Cold Start MCP Server.

Contains resources that provide guidance and documentation to LLMs.
"""

from . import coldstart_resources

__all__ = ['coldstart_resources']
