"""Renders command results as aligned text tables, key/value blocks, or JSON.

Tables, detail blocks, and success lines go to stdout.  Progress and error
lines go to stderr so ``--json`` output can be piped straight into other
tools.  ANSI colors are used only when the target stream is a TTY.
"""

import json
import sys
from typing import Any, List, Optional, Sequence, TextIO, Tuple

_COLORS = {
    "red": "\033[91m",
    "green": "\033[92m",
    "yellow": "\033[93m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "reset": "\033[0m",
}

# Gap between table columns
_PADDING = 2


def _colorize(text: str, color: str, stream: Optional[TextIO] = None) -> str:
    """Apply ANSI color codes.  Returns plain text when the stream is not a TTY."""
    stream = stream or sys.stdout
    if not stream.isatty():
        return text
    return f"{_COLORS.get(color, '')}{text}{_COLORS['reset']}"


def format_table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    """Lay out rows in left-aligned columns under a dashed header rule.

    Column width is the longest cell in that column (header included).
    Trailing whitespace is stripped from each line.
    """
    cells = [[str(h) for h in headers], ["-" * len(str(h)) for h in headers]]
    cells.extend([_cell(v) for v in row] for row in rows)

    widths = [0] * len(headers)
    for line in cells:
        for i, value in enumerate(line):
            widths[i] = max(widths[i], len(value))

    out = []
    for line in cells:
        padded = [value.ljust(widths[i] + _PADDING) for i, value in enumerate(line)]
        out.append("".join(padded).rstrip())
    return "\n".join(out)


def _cell(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def print_table(headers: Sequence[str], rows: Sequence[Sequence[Any]]):
    print(format_table(headers, rows))


def print_fields(fields: List[Tuple[str, Any]]):
    """Print ``label: value`` pairs with the values aligned."""
    width = max(len(label) for label, _ in fields) + 1
    for label, value in fields:
        print(f"{(label + ':').ljust(width)} {_cell(value)}".rstrip())


def print_json(data: Any):
    print(json.dumps(data, indent=2))


def print_status(message: str):
    """Progress line on stderr (e.g. ``Authenticating with Microsoft Graph...``)."""
    print(message, file=sys.stderr)


def print_success(message: str):
    print(_colorize(f"✓ {message}", "green"))


def print_warning(message: str):
    print(_colorize(f"⚠ {message}", "yellow"))


def print_error(message: str):
    print(_colorize(f"❌ {message}", "red", sys.stderr), file=sys.stderr)
