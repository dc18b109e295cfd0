"""Pseudo-terminal handling for the Rovo Dev CLI."""

from .handle import (
    FakeTerminal,
    Terminal,
    TerminalCommand,
    TerminalError,
    TerminalFactory,
    TerminalHandle,
    TerminalSpawnError,
    TerminalWriteError,
)
from .utils import resolve_workspace, sanitize_environment

__all__ = [
    "FakeTerminal",
    "Terminal",
    "TerminalCommand",
    "TerminalError",
    "TerminalFactory",
    "TerminalHandle",
    "TerminalSpawnError",
    "TerminalWriteError",
    "resolve_workspace",
    "sanitize_environment",
]
