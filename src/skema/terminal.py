"""ANSI color helpers for skema error messages.

Colors are enabled only when stdout is a TTY, unless overridden by the
``FORCE_COLOR`` / ``NO_COLOR`` environment variables (https://no-color.org/).
"""

from __future__ import annotations

import os
import re
import sys
from typing import Literal

_COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "green": "\033[32m",
    "cyan": "\033[36m",
    "bright_red": "\033[91m",
    "bright_blue": "\033[94m",
}

ColorName = Literal["reset", "bold", "dim", "green", "cyan", "bright_red", "bright_blue"]

_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def _should_use_colors() -> bool:
    # FORCE_COLOR wins over NO_COLOR
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


_USE_COLORS = _should_use_colors()


def supports_color() -> bool:
    """Return True if error output will be colorized."""
    return _USE_COLORS


def colorize(text: str, *colors: ColorName) -> str:
    """Wrap ``text`` in the given ANSI colors when colors are enabled.

    Example:
        >>> colorize("Error", "bright_red", "bold")
        '\\033[91m\\033[1mError\\033[0m'  # with colors
        'Error'  # without
    """
    if not _USE_COLORS or not colors:
        return text
    prefix = "".join(_COLORS.get(color, "") for color in colors)
    if not prefix:
        return text
    return f"{prefix}{text}{_COLORS['reset']}"


def strip_colors(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return _ANSI_ESCAPE.sub("", text)


def error_code(text: str) -> str:
    return colorize(text, "bright_red", "bold")


def expression(text: str) -> str:
    return colorize(text, "cyan")


def caret(text: str) -> str:
    return colorize(text, "bright_red")


def hint(text: str) -> str:
    return colorize(text, "green")


def dim_text(text: str) -> str:
    return colorize(text, "dim")


def docs_url(text: str) -> str:
    return colorize(text, "bright_blue")


def format_error_header(code: str | None, message: str) -> str:
    """Format ``CODE: message`` with the code highlighted."""
    if code:
        return f"{error_code(code)}: {message}"
    return message
