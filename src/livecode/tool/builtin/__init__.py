"""Built-in commands."""

from livecode.tool.builtin.python import (
    INTERACTIVE_PREFIX,
    CloseSessionTool,
    ExecutePythonTool,
    GetOutputTool,
    SendInputTool,
    SessionRunningTool,
    SessionTool,
    create_python_tools,
)

__all__ = [
    "INTERACTIVE_PREFIX",
    "ExecutePythonTool",
    "SendInputTool",
    "GetOutputTool",
    "SessionRunningTool",
    "CloseSessionTool",
    "SessionTool",
    "create_python_tools",
]
