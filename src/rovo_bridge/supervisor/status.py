"""Process status values and the terminal status-marker scanner."""

from __future__ import annotations

from enum import Enum
from typing import Callable

from pydantic import BaseModel, Field

from .formatting import strip_ansi


class ProcessStatus(str, Enum):
    """Lifecycle states of the supervised CLI process."""

    NOT_STARTED = "Not Started"
    STARTING = "Starting..."
    INTERACTIVE_MODE = "Interactive Mode"
    BUSY = "Processing..."
    ERROR = "Error"
    STOPPED = "Stopped"


class ModelUsage(BaseModel):
    """Usage figures scraped from the terminal. ``None`` means unknown, not cleared."""

    session_context_string: str | None = Field(
        default=None, description="Context window usage shown after 'Session context:'."
    )
    token_usage_string: str | None = Field(
        default=None, description="Token usage shown after 'Daily total:'."
    )
    current_model: str | None = Field(
        default=None, description="Model name shown after 'Using model:'."
    )

    def merged(self, update: "ModelUsage") -> "ModelUsage":
        """Return a copy with every field known in ``update`` replaced."""

        return self.model_copy(update=update.model_dump(exclude_none=True))

    def known(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


SESSION_CONTEXT_MARKER = "Session context:"
DAILY_TOTAL_MARKER = "Daily total:"
MODEL_MARKER = "Using model:"
USAGE_GLYPH = "▮"

INTERACTIVE_INDICATORS = (MODEL_MARKER,)

# Braille frames of the CLI's "thinking" spinner.
SPINNER_GLYPHS = frozenset("⣟⣯⣷⣾⣽⣻⢿⡿")


def _after_glyph(line: str, marker: str) -> str:
    index = line.find(USAGE_GLYPH)
    if index < 0:
        return line[len(marker):]
    return line[index + 2:]


def _after_marker(line: str, marker: str) -> str:
    return line[len(marker):]


_USAGE_MARKERS: tuple[tuple[str, str, Callable[[str, str], str]], ...] = (
    (SESSION_CONTEXT_MARKER, "session_context_string", _after_glyph),
    (DAILY_TOTAL_MARKER, "token_usage_string", _after_glyph),
    (MODEL_MARKER, "current_model", _after_marker),
)


def scan_usage(chunk: str) -> ModelUsage | None:
    """Return the usage field carried by the first status marker in ``chunk``.

    Markers are checked in priority order (session context, daily total,
    model) against the start of each line; the first hit wins. A marker split
    across two chunks is not detected.
    """

    lines = [line.strip() for line in strip_ansi(chunk).splitlines()]
    for marker, field_name, extract in _USAGE_MARKERS:
        for line in lines:
            if not line.startswith(marker):
                continue
            value = extract(line, marker).strip()
            if value:
                return ModelUsage(**{field_name: value})
    return None


def has_interactive_indicator(chunk: str) -> bool:
    lowered = chunk.lower()
    return any(indicator.lower() in lowered for indicator in INTERACTIVE_INDICATORS)


def shows_spinner(chunk: str) -> bool:
    return any(glyph in chunk for glyph in SPINNER_GLYPHS)


__all__ = [
    "DAILY_TOTAL_MARKER",
    "INTERACTIVE_INDICATORS",
    "MODEL_MARKER",
    "SESSION_CONTEXT_MARKER",
    "SPINNER_GLYPHS",
    "USAGE_GLYPH",
    "ModelUsage",
    "ProcessStatus",
    "has_interactive_indicator",
    "scan_usage",
    "shows_spinner",
]
