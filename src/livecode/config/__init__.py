"""Configuration — Pydantic models for livecode settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


class SessionConfig(BaseModel):
    """Interpreter session policy.

    ``grace_period`` decides batch vs interactive: a program still running
    after it elapses becomes an interactive session. A slow program that
    would have finished on its own is therefore reported as interactive,
    and a fast program that prompts for input inside the window is still
    interactive because it has not exited.
    """

    interpreter: str = Field(default="python3", description="Interpreter executable")
    grace_period: float = Field(
        default=0.1,
        gt=0,
        description="Seconds to wait after spawn before classifying the run",
    )
    exit_settle: float = Field(
        default=0.2,
        ge=0,
        description="Max seconds to wait for trailing output after the child exits",
    )
    kill_on_close: bool = Field(
        default=True,
        description="SIGKILL a still-running child when its session is closed",
    )
    echo_input: bool = Field(
        default=False, description="Let the terminal echo fed input back as output"
    )
    read_chunk_size: int = Field(default=1024, gt=0)
    env: dict[str, str] = Field(
        default_factory=dict, description="Extra environment for the child"
    )


class LiveCodeConfig(BaseModel):
    """Top-level livecode configuration."""

    session: SessionConfig = Field(default_factory=SessionConfig)
    poll_interval: float = Field(
        default=0.1, gt=0, description="Seconds between output polls in the CLI"
    )

    @classmethod
    def load(cls, config_path: str | None = None) -> LiveCodeConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            LIVECODE_PYTHON         - Interpreter executable
            LIVECODE_GRACE_PERIOD   - Batch/interactive grace period (seconds)
            LIVECODE_KILL_ON_CLOSE  - Kill running children on close (1/0)
            LIVECODE_POLL_INTERVAL  - CLI output poll interval (seconds)
        """
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        session = config_data.get("session", {})

        env_python = os.environ.get("LIVECODE_PYTHON")
        if env_python:
            session["interpreter"] = env_python

        env_grace = os.environ.get("LIVECODE_GRACE_PERIOD")
        if env_grace:
            session["grace_period"] = float(env_grace)

        env_kill = os.environ.get("LIVECODE_KILL_ON_CLOSE")
        if env_kill:
            session["kill_on_close"] = env_kill.strip().lower() in _TRUTHY

        if session:
            config_data["session"] = session

        env_poll = os.environ.get("LIVECODE_POLL_INTERVAL")
        if env_poll:
            config_data["poll_interval"] = float(env_poll)

        return cls.model_validate(config_data)
