"""Console output abstraction.

The release engine logs through ConsoleProtocol only. RichConsole renders to
the terminal, MockConsole captures output for tests, and MaskedConsole wraps
either one to keep credentials out of CI logs.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "MaskedConsole",
    "hide_sensitive",
]

SECRET_REPLACEMENT = "[secure]"
SECRET_MIN_SIZE = 5
_SECRET_NAME_RE = re.compile(r"token|password|credential|secret|private|key", re.IGNORECASE)


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    BOLD = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output.

    Implementations can use Rich, capture output for testing, or decorate
    another console (see MaskedConsole).
    """

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling."""
        ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def markdown(self, text: str) -> None:
        """Render a Markdown document (release notes, error details)."""
        ...


class RichConsole:
    """Console implementation using the Rich library."""

    def __init__(self, *, stderr: bool = False) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console

        self._console = Console(stderr=stderr)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._prefixed("OK", "green", message)

    def error(self, message: str) -> None:
        self._prefixed("error:", "red bold", message)

    def warning(self, message: str) -> None:
        self._prefixed("warning:", "yellow", message)

    def info(self, message: str) -> None:
        self._prefixed("info:", "cyan", message)

    def header(self, message: str) -> None:
        self._console.print()
        self._console.print(message, style="blue bold", markup=False)

    def markdown(self, text: str) -> None:
        from rich.markdown import Markdown

        self._console.print(Markdown(text))

    def _prefixed(self, prefix: str, style: str, message: str) -> None:
        from rich.text import Text

        self._console.print(Text.assemble((prefix, style), " ", message))


def hide_sensitive(env: Mapping[str, str]) -> Callable[[str], str]:
    """Build a function that masks secret environment values in a string.

    A variable is secret when its name looks like a credential and its value
    is at least SECRET_MIN_SIZE characters long (after stripping).
    """
    secrets = sorted(
        (
            value
            for name, value in env.items()
            if _SECRET_NAME_RE.search(name) and len(value.strip()) >= SECRET_MIN_SIZE
        ),
        key=len,
        reverse=True,
    )
    if not secrets:
        return lambda text: text

    pattern = re.compile("|".join(re.escape(s) for s in secrets))
    return lambda text: pattern.sub(SECRET_REPLACEMENT, text)


class MaskedConsole:
    """Console decorator replacing secret values before they reach the output."""

    def __init__(self, inner: ConsoleProtocol, env: Mapping[str, str]) -> None:
        self._inner = inner
        self._mask = hide_sensitive(env)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._inner.print(self._mask(message), style)

    def success(self, message: str) -> None:
        self._inner.success(self._mask(message))

    def error(self, message: str) -> None:
        self._inner.error(self._mask(message))

    def warning(self, message: str) -> None:
        self._inner.warning(self._mask(message))

    def info(self, message: str) -> None:
        self._inner.info(self._mask(message))

    def header(self, message: str) -> None:
        self._inner.header(self._mask(message))

    def markdown(self, text: str) -> None:
        self._inner.markdown(self._mask(text))


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def markdown(self, text: str) -> None:
        self.outputs.append(OutputRecord(text, Style.DEFAULT))

    # Test helper methods

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_success(self) -> bool:
        return any(o.style == Style.SUCCESS for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]
