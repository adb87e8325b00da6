"""Command base classes: validated parameters in, (content, is_error) out."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from livecode.pty.errors import SessionError
from livecode.tool.truncation import truncate_output

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BaseModel)


@dataclass
class ToolResult:
    output: str = ""
    brief: str = ""  # One-line summary for status displays
    is_error: bool = False


@dataclass
class ToolOk(ToolResult):
    is_error: bool = False


@dataclass
class ToolError(ToolResult):
    is_error: bool = True


class BaseTool(ABC, Generic[P]):
    """A named command over the session manager.

    Subclasses set ``name``, ``description`` and ``param_model`` and
    implement ``execute``. Callers never see exceptions: bad arguments,
    session failures (unknown id, dead terminal, failed spawn) and
    unexpected errors all come back as error content. Session failures
    are expected outcomes and are reported by their message alone.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    param_model: ClassVar[type[BaseModel]]

    async def __call__(self, arguments: dict[str, Any]) -> tuple[str, bool]:
        try:
            params = self.param_model.model_validate(arguments)
        except ValidationError as e:
            return f"Invalid parameters: {e}", True

        try:
            result = await self.execute(params)  # type: ignore[arg-type]
        except SessionError as e:
            logger.debug("%s failed: %s", self.name, e)
            return str(e), True
        except Exception as e:
            logger.error("Command %s crashed: %s", self.name, e, exc_info=True)
            return f"Error executing {self.name}: {e}", True

        if result.brief:
            logger.debug("%s -> %s", self.name, result.brief)
        return truncate_output(result.output), result.is_error

    @abstractmethod
    async def execute(self, params: P) -> ToolResult: ...

    def to_openai_spec(self) -> dict[str, Any]:
        """Function-calling spec: name, description, JSON schema of params."""
        parameters = {
            key: value
            for key, value in self.param_model.model_json_schema().items()
            if key not in ("title", "$defs")
        }
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }
