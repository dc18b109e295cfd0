"""Correlating a freshly started CLI process with its session directory."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from .models import STATE_FILENAME, SessionLocation
from .reader import SessionReadError, read_state_document

logger = logging.getLogger(__name__)


class SessionLocateError(RuntimeError):
    """Base class for session lookup errors."""


class SessionLocateTimeout(SessionLocateError):
    """Raised when no session matches the start-time window before the deadline."""


@dataclass(slots=True)
class SessionSummary:
    """Listing entry for a session directory."""

    session_id: str
    state_path: Path
    timestamp: float | None
    message_count: int
    workspace_path: str | None


def session_timestamp(document: dict[str, Any]) -> float | None:
    """Return the session-level creation timestamp (POSIX seconds), if numeric."""

    value = document.get("timestamp")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _session_dirs(root: Path) -> list[Path]:
    try:
        return sorted(entry for entry in root.iterdir() if entry.is_dir())
    except OSError:
        # The CLI creates the sessions root lazily; a missing root is just "not yet".
        return []


def match_session(root: Path, match_tolerance: float, *, now: float) -> SessionLocation | None:
    """Return the first session whose timestamp lies within ``match_tolerance`` of ``now``."""

    for session_dir in _session_dirs(root):
        state_path = session_dir / STATE_FILENAME
        if not state_path.is_file():
            continue
        try:
            document = read_state_document(state_path)
        except SessionReadError as exc:
            logger.debug("Skipping unreadable session state", extra={"path": str(state_path), "error": str(exc)})
            continue

        timestamp = session_timestamp(document)
        if timestamp is None:
            continue
        if abs(now - timestamp) <= match_tolerance:
            return SessionLocation(session_id=session_dir.name, state_path=state_path)
    return None


async def locate_session(
    root: Path,
    match_tolerance: float,
    timeout: float,
    *,
    poll_interval: float = 0.1,
    clock: Callable[[], float] = time.time,
) -> SessionLocation:
    """Poll ``root`` until a session created around now appears.

    The deadline is checked once per poll cycle, so the call can overrun
    ``timeout`` by up to one cycle before raising :class:`SessionLocateTimeout`.
    """

    root = Path(root).expanduser()
    started = time.monotonic()
    cycles = 0

    while True:
        cycles += 1
        location = match_session(root, match_tolerance, now=clock())
        if location is not None:
            logger.info(
                "Located session",
                extra={
                    "session_id": location.session_id,
                    "state_path": str(location.state_path),
                    "cycles": cycles,
                },
            )
            return location

        if time.monotonic() - started >= timeout:
            raise SessionLocateTimeout(
                f"Timeout: no matching session found in {root} within {timeout} seconds"
            )
        await asyncio.sleep(poll_interval)


def iter_sessions(root: Path) -> list[SessionSummary]:
    """List readable sessions under ``root``, newest first."""

    summaries: list[SessionSummary] = []
    for session_dir in _session_dirs(Path(root).expanduser()):
        state_path = session_dir / STATE_FILENAME
        if not state_path.is_file():
            continue
        try:
            document = read_state_document(state_path)
        except SessionReadError:
            continue
        history = document.get("message_history")
        workspace = document.get("workspace_path")
        summaries.append(
            SessionSummary(
                session_id=session_dir.name,
                state_path=state_path,
                timestamp=session_timestamp(document),
                message_count=len(history) if isinstance(history, list) else 0,
                workspace_path=workspace if isinstance(workspace, str) else None,
            )
        )

    summaries.sort(key=lambda summary: summary.timestamp if summary.timestamp is not None else float("-inf"), reverse=True)
    return summaries


__all__ = [
    "SessionLocateError",
    "SessionLocateTimeout",
    "SessionSummary",
    "iter_sessions",
    "locate_session",
    "match_session",
    "session_timestamp",
]
