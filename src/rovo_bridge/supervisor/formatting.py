"""Clean-up transforms applied to terminal output before it is shown."""

from __future__ import annotations

import re

# OSC sequences (ESC ] ... ST) and CSI/C1 sequences with their parameters.
_ANSI_PATTERN = re.compile(
    r"(?:\x1b\][\s\S]*?(?:\x07|\x1b\\|\x9c))"
    r"|(?:[\x1b\x9b][\[\]()#;?]*(?:\d{1,4}(?:[;:]\d{0,4})*)?[\dA-PR-TZcf-nq-uy=><~])"
)
_CONTROL_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

PANEL_RESPONSE = "Response"
PANEL_PERMISSIONS = "Permissions Required"
ALLOWED_PANELS = (PANEL_RESPONSE, PANEL_PERMISSIONS)

_BOILERPLATE = (
    'Type "/" for available commands',
    "AI. Verify results.",
    "│ > ",
)


def strip_ansi(text: str) -> str:
    return _ANSI_PATTERN.sub("", text)


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def drop_control_chars(text: str) -> str:
    return _CONTROL_PATTERN.sub("", text)


def trim_prompt(text: str) -> str:
    """Drop leading whitespace and the echoed command slash."""

    text = text.lstrip()
    if text.startswith("/"):
        text = text[1:]
    return text.lstrip()


def filter_panels(text: str) -> str:
    """Keep the body of Response and Permissions panels; drop other panels and hints.

    Panels are drawn with rounded box characters. Lines between a ``╭ ... ╮``
    header that names no allowed panel and the matching ``╰ ... ╯`` footer are
    dropped, as are short fragments and the CLI's fixed hint lines.
    """

    kept: list[str] = []
    excluding = False
    for raw_line in text.split("\n"):
        line = raw_line.rstrip()
        if line.startswith("╭") and line.endswith("╮"):
            excluding = not any(panel in line for panel in ALLOWED_PANELS)
            continue
        if line.startswith("╰") and line.endswith("╯"):
            excluding = False
            continue
        if excluding:
            continue
        if any(hint in line for hint in _BOILERPLATE):
            continue
        if len(line) <= 3:
            continue
        if line.startswith("│") and line.endswith("│"):
            line = line[1:-1]
        kept.append(line)
    return "\n".join(kept)


OUTPUT_TRANSFORMS = (
    strip_ansi,
    normalize_newlines,
    drop_control_chars,
    trim_prompt,
    filter_panels,
)


def format_output(text: str) -> str:
    """Run ``text`` through every transform in :data:`OUTPUT_TRANSFORMS`, in order."""

    for transform in OUTPUT_TRANSFORMS:
        text = transform(text)
    return text


__all__ = [
    "ALLOWED_PANELS",
    "OUTPUT_TRANSFORMS",
    "drop_control_chars",
    "filter_panels",
    "format_output",
    "normalize_newlines",
    "strip_ansi",
    "trim_prompt",
]
