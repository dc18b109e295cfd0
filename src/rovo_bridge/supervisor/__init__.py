"""Supervision of the interactive CLI process and its status signals."""

from .events import SupervisorEvents
from .formatting import OUTPUT_TRANSFORMS, format_output, strip_ansi
from .status import (
    ModelUsage,
    ProcessStatus,
    has_interactive_indicator,
    scan_usage,
    shows_spinner,
)
from .supervisor import ProcessSupervisor, SessionBinding

__all__ = [
    "OUTPUT_TRANSFORMS",
    "ModelUsage",
    "ProcessStatus",
    "ProcessSupervisor",
    "SessionBinding",
    "SupervisorEvents",
    "format_output",
    "has_interactive_indicator",
    "scan_usage",
    "shows_spinner",
    "strip_ansi",
]
