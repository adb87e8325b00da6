"""Command layer — base classes, registry, and output shaping."""

from livecode.tool.base import BaseTool, ToolError, ToolOk, ToolResult
from livecode.tool.registry import ToolRegistry
from livecode.tool.truncation import clean_terminal_output, truncate_output

__all__ = [
    "BaseTool",
    "ToolResult",
    "ToolOk",
    "ToolError",
    "ToolRegistry",
    "clean_terminal_output",
    "truncate_output",
]
