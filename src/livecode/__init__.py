"""livecode — run Python code interactively behind a pseudo-terminal."""

__version__ = "0.1.0"
