"""Python execution commands — run code and talk to interactive programs.

All commands share one SessionManager. ``execute_python_code`` either
returns the program's output directly (it finished quickly) or an
``INTERACTIVE_SESSION:<id>`` handle; the remaining commands operate on
that handle until the caller closes it. Session failures (unknown id,
closed terminal, spawn errors) surface as error results via BaseTool.
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, Field

from livecode.pty.manager import BatchOutcome, SessionManager
from livecode.tool.base import BaseTool, P, ToolError, ToolOk, ToolResult
from livecode.tool.truncation import clean_terminal_output

INTERACTIVE_PREFIX = "INTERACTIVE_SESSION:"


class SessionTool(BaseTool[P]):
    """A command bound to one SessionManager."""

    def __init__(self, manager: SessionManager) -> None:
        self.manager = manager


class ExecutePythonParams(BaseModel):
    code: str = Field(description="Python source to run with `python -c`.")


class ExecutePythonTool(SessionTool[ExecutePythonParams]):
    """Run code; finished programs return output, waiting ones a session."""

    name: ClassVar[str] = "execute_python_code"
    description: ClassVar[str] = (
        "Run a Python program in a terminal. If it finishes right away its "
        "output is returned. If it is still running (e.g. waiting on input()) "
        "the result is 'INTERACTIVE_SESSION:<id>'; use send_python_input and "
        "get_python_output with that id, then close_python_session."
    )
    param_model: ClassVar[type[BaseModel]] = ExecutePythonParams

    async def execute(self, params: ExecutePythonParams) -> ToolResult:
        outcome = await self.manager.start(params.code)

        if isinstance(outcome, BatchOutcome):
            output = clean_terminal_output(outcome.output)
            if not outcome.success:
                return ToolError(output=output, brief=f"exit={outcome.exit_code}")
            return ToolOk(output=output, brief="exit=0")

        return ToolOk(
            output=f"{INTERACTIVE_PREFIX}{outcome.session_id}",
            brief="Interactive session",
        )


class SessionParams(BaseModel):
    session_id: str = Field(description="ID from INTERACTIVE_SESSION:<id>.")


class SendInputParams(SessionParams):
    input: str = Field(description="Text to type into the program.")
    newline: bool = Field(
        default=True, description="Append a newline (press Enter) if missing."
    )


class SendInputTool(SessionTool[SendInputParams]):
    name: ClassVar[str] = "send_python_input"
    description: ClassVar[str] = "Type input into a running interactive program."
    param_model: ClassVar[type[BaseModel]] = SendInputParams

    async def execute(self, params: SendInputParams) -> ToolResult:
        text = params.input
        if params.newline and not text.endswith("\n"):
            text += "\n"
        self.manager.feed(params.session_id, text)
        return ToolOk(output="ok", brief=f"sent {len(text)} chars")


class GetOutputTool(SessionTool[SessionParams]):
    name: ClassVar[str] = "get_python_output"
    description: ClassVar[str] = (
        "Fetch new output from an interactive program. When the program has "
        "ended the output ends with a '[Program ...]' line."
    )
    param_model: ClassVar[type[BaseModel]] = SessionParams

    async def execute(self, params: SessionParams) -> ToolResult:
        chunks = self.manager.drain(params.session_id)
        return ToolOk(
            output=clean_terminal_output("".join(chunks)),
            brief=f"{len(chunks)} chunks",
        )


class SessionRunningTool(SessionTool[SessionParams]):
    name: ClassVar[str] = "is_python_session_running"
    description: ClassVar[str] = "Report whether an interactive program is still running."
    param_model: ClassVar[type[BaseModel]] = SessionParams

    async def execute(self, params: SessionParams) -> ToolResult:
        status = self.manager.status(params.session_id)
        return ToolOk(output="false" if status.exited else "true", brief=status.value)


class CloseSessionTool(SessionTool[SessionParams]):
    name: ClassVar[str] = "close_python_session"
    description: ClassVar[str] = (
        "Close an interactive session. Always call this once the program "
        "has ended or is no longer needed."
    )
    param_model: ClassVar[type[BaseModel]] = SessionParams

    async def execute(self, params: SessionParams) -> ToolResult:
        await self.manager.close(params.session_id)
        return ToolOk(output="ok")


def create_python_tools(manager: SessionManager) -> list[BaseTool]:
    """Build every Python command bound to ``manager``."""
    return [
        ExecutePythonTool(manager),
        SendInputTool(manager),
        GetOutputTool(manager),
        SessionRunningTool(manager),
        CloseSessionTool(manager),
    ]
