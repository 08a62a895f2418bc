"""
AgenticHub - MCP registry and agent-skill catalog aggregation.

Fetches server listings from MCP registries, enriches them with repository
statistics, builds an agent-skill catalog, and reads/writes the MCP server
entries of locally installed AI-agent clients.
"""

__version__ = "1.0.0"

from .errors import HubError, HubErrorCode

__all__ = ["HubError", "HubErrorCode"]
