"""Registries, catalog and dispatch server."""

from .registry import ResourceDescriptor, ResourceRegistry, ToolDescriptor, ToolRegistry
from .server import MCPError, MCPServer

__all__ = [
    "MCPError",
    "MCPServer",
    "ResourceDescriptor",
    "ResourceRegistry",
    "ToolDescriptor",
    "ToolRegistry",
]
