"""Console output helpers built on rich."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from rich.console import Console
from rich.json import JSON
from rich.markup import escape

ACCENT = "#7FA6D9"
DIM = "dim"
SUCCESS = "green"
WARN = "yellow"
ERROR = "red"


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, int):
        return str(value)
    return str(value)


def format_value(value: Any) -> Optional[str]:
    """Plain-text rendering of a command result; None prints nothing."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        # Node amounts exceed 2**53, always print every digit.
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, indent=2, default=_json_default)
    return str(value)


def print_result(console: Console, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, (dict, list, tuple)):
        console.print(JSON(format_value(value)))
        return
    console.print(format_value(value), markup=False, highlight=False)


def render_error(console: Console, message: str) -> None:
    console.print(f"[{ERROR}]Error: {escape(str(message))}[/{ERROR}]")


def print_usage(console: Console, usage: str) -> None:
    console.print(usage, markup=False, highlight=False)
