"""Output abstraction layer."""

from .console import (
    ConsoleProtocol,
    MaskedConsole,
    MockConsole,
    RichConsole,
    Style,
)

__all__ = [
    "ConsoleProtocol",
    "MaskedConsole",
    "MockConsole",
    "RichConsole",
    "Style",
]
