"""Tools agents can invoke."""

from chainsmith.tools.base import DEFAULT_PARAMETERS, FunctionTool, Tool, normalize_tool_name
from chainsmith.tools.mcp import McpTool, McpToolkit

__all__ = [
    "DEFAULT_PARAMETERS",
    "FunctionTool",
    "McpTool",
    "McpToolkit",
    "Tool",
    "normalize_tool_name",
]
