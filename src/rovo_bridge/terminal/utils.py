"""Utility helpers for the terminal layer."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

_SANITIZED_VARS = {
    "PYTHONHOME",
    "PYTHONPATH",
    "VIRTUAL_ENV",
    "PIP_RESPECT_VIRTUALENV",
}

# The CLI renders colour unless told otherwise; status markers are matched as plain text.
_NO_COLOR_VARS = {
    "FORCE_COLOR": "0",
    "NO_COLOR": "1",
}


def sanitize_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a colourless, sanitized environment suitable for the CLI child process."""

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    env.update(_NO_COLOR_VARS)
    if additional:
        env.update(additional)
    return env


def resolve_workspace(workspace_root: Path | None) -> Path:
    """Return the directory the CLI should run in."""

    if workspace_root is not None:
        return Path(workspace_root)
    return Path.cwd()
