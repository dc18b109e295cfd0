"""Reading ``session_context.json`` files from disk."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .models import SessionState


class SessionReadError(RuntimeError):
    """Raised when a session state file cannot be read or parsed."""


def read_state_document(path: Path) -> dict[str, Any]:
    """Return the raw JSON object stored in a state file."""

    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise SessionReadError(f"Failed to read {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        # A rewrite caught mid-way can end inside a multi-byte character.
        raise SessionReadError(f"Failed to decode {path}: {exc}") from exc

    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        # The CLI rewrites the file in place, so a half-written file is expected now and then.
        raise SessionReadError(f"Failed to parse JSON in {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise SessionReadError(f"Expected a JSON object in {path}, got {type(document).__name__}")
    return document


def read_session_state(path: Path) -> SessionState:
    """Read and validate a state file."""

    document = read_state_document(path)
    try:
        return SessionState.model_validate(document)
    except ValidationError as exc:
        raise SessionReadError(f"Session state validation error in {path}: {exc}") from exc


__all__ = ["SessionReadError", "read_session_state", "read_state_document"]
