"""Output shaping — clean and bound program output before it reaches the assistant."""

from __future__ import annotations

import os
import re
import tempfile

MAX_LINES = 2000
MAX_BYTES = 50 * 1024  # 50KB

OUTPUT_DIR = "~/.livecode/tool-output"

# CSI sequences (colours, cursor moves) and OSC sequences (window titles)
_ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")


def truncate_output(
    text: str,
    max_lines: int = MAX_LINES,
    max_bytes: int = MAX_BYTES,
    save_full: bool = True,
) -> str:
    """Keep the tail of ``text`` within line and byte limits.

    Program output is cut from the top, since tracebacks and final results
    land at the bottom. When ``save_full`` is set the untouched text is
    written under ``OUTPUT_DIR`` and the notice points at it.
    """
    if not text:
        return text

    lines = text.split("\n")
    total_bytes = len(text.encode("utf-8", errors="replace"))
    if len(lines) <= max_lines and total_bytes <= max_bytes:
        return text

    skipped_lines = max(len(lines) - max_lines, 0)
    kept = "\n".join(lines[skipped_lines:])

    encoded = kept.encode("utf-8", errors="replace")
    skipped_bytes = 0
    if len(encoded) > max_bytes:
        skipped_bytes = len(encoded) - max_bytes
        # Drop from the front; "ignore" trims a split multi-byte char
        kept = encoded[-max_bytes:].decode("utf-8", errors="ignore")

    parts = []
    if skipped_lines:
        parts.append(f"{skipped_lines} lines skipped")
    if skipped_bytes:
        parts.append(f"{skipped_bytes} bytes skipped")
    notice = (
        f"[Output truncated: {', '.join(parts)}. "
        f"Total: {len(lines)} lines, {total_bytes} bytes]"
    )
    if save_full:
        notice += f"\n[Full output saved to: {_save_to_temp(text)}]"

    return f"{notice}\n{kept}"


def _save_to_temp(text: str) -> str:
    out_dir = os.path.expanduser(OUTPUT_DIR)
    os.makedirs(out_dir, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix="livecode-", suffix=".txt", dir=out_dir)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def strip_ansi(text: str) -> str:
    """Strip ANSI escape sequences from text."""
    return _ANSI_RE.sub("", text)


def sanitize_binary_output(text: str) -> str:
    """Drop control characters other than tab, newline and carriage return.

    Also drops C1 controls and the interlinear annotation format chars.
    """
    return "".join(ch for ch in text if ch in "\t\n\r" or _printable(ord(ch)))


def _printable(cp: int) -> bool:
    return cp >= 0x20 and not 0x7F <= cp < 0xA0 and not 0xFFF9 <= cp < 0xFFFC


def clean_terminal_output(text: str) -> str:
    """Normalise raw terminal text for display outside a terminal."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return sanitize_binary_output(strip_ansi(text))
