"""CLI entry point for livecode."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import threading
from pathlib import Path
from typing import TextIO

import typer

from livecode import __version__
from livecode.config import LiveCodeConfig
from livecode.pty import (
    EXIT_MARKERS,
    FINISHED_MARKER,
    BatchOutcome,
    SessionError,
    SessionManager,
)

logger = logging.getLogger(__name__)

# Canonical-mode end-of-file character (Ctrl-D)
EOF_CHAR = "\x04"

app = typer.Typer(
    name="livecode",
    help="Run Python code in a terminal and interact with it.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@app.command()
def run(
    code: str | None = typer.Argument(None, help="Python source to run."),
    file: Path | None = typer.Option(
        None, "--file", "-f", help="Read the Python source from a file."
    ),
    python: str | None = typer.Option(
        None, "--python", "-p", help="Interpreter to use (default: from env/config)."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Run a program; if it waits for input, relay stdin to it."""
    setup_logging(verbose)

    if file is not None:
        if not file.is_file():
            typer.echo(f"Error: File not found: {file}", err=True)
            raise typer.Exit(1)
        code = file.read_text(encoding="utf-8")
    if not code:
        typer.echo("Error: Pass CODE or --file.", err=True)
        raise typer.Exit(1)

    config = LiveCodeConfig.load(config_file)
    if python:
        config.session.interpreter = python

    try:
        ok = asyncio.run(_run(code, config, sys.stdin))
    except SessionError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if not ok:
        raise typer.Exit(1)


async def _run(code: str, config: LiveCodeConfig, stdin: TextIO) -> bool:
    """Run ``code`` to completion. Returns True if the program succeeded."""
    manager = SessionManager(config.session)
    try:
        outcome = await manager.start(code)
        if isinstance(outcome, BatchOutcome):
            typer.echo(outcome.output, nl=False)
            return outcome.success

        session_id = outcome.session_id
        relay = threading.Thread(
            target=_relay_stdin,
            args=(manager, session_id, stdin),
            name="stdin-relay",
            daemon=True,
        )
        relay.start()

        while True:
            marker = None
            for chunk in manager.drain(session_id):
                if chunk in EXIT_MARKERS:
                    marker = chunk
                else:
                    typer.echo(chunk, nl=False)
            if marker is not None:
                typer.echo(marker, err=True)
                return marker == FINISHED_MARKER
            await asyncio.sleep(config.poll_interval)
    finally:
        await manager.cleanup()


def _relay_stdin(manager: SessionManager, session_id: str, stdin: TextIO) -> None:
    """Forward stdin lines to the session, then signal end of input."""
    last = "\n"
    try:
        for line in stdin:
            manager.feed(session_id, line)
            last = line
        # VEOF ends a pending partial line first, so it takes two to reach EOF
        manager.feed(session_id, EOF_CHAR if last.endswith("\n") else EOF_CHAR * 2)
    except SessionError as e:
        logger.debug("Stopped relaying input: %s", e)


@app.command()
def tools() -> None:
    """Print the command layer's function specs as JSON."""
    from livecode.tool.builtin import create_python_tools
    from livecode.tool.registry import ToolRegistry

    registry = ToolRegistry()
    registry.register_many(create_python_tools(SessionManager()))
    typer.echo(json.dumps(registry.get_specs(), indent=2))


@app.command()
def version() -> None:
    """Print the livecode version."""
    typer.echo(f"livecode v{__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
