from __future__ import annotations

import logging
from pathlib import Path

import pytest

from rovo_bridge import server as server_module
from rovo_bridge.config import BridgeSettings
from rovo_bridge.terminal import FakeTerminal


def test_create_server_wires_bridge_and_tools(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server_module.shutil, "which", lambda command: f"/usr/bin/{command}")
    settings = BridgeSettings(sessions_root=tmp_path, workspace_root=tmp_path)

    server = server_module.create_server(settings, terminal_factory=FakeTerminal)

    bridge = getattr(server, "bridge")
    assert bridge.settings is settings
    assert bridge.supervisor.get_status().value == "Not Started"
    assert getattr(server, "cli_metadata") == {
        "command": "acli",
        "args": ["rovodev", "run"],
        "resolved_path": "/usr/bin/acli",
        "workspace_root": str(tmp_path),
    }
    handles = getattr(server, "tool_handles")
    assert handles.start_session is not None
    assert handles.read_messages is not None


def test_create_server_warns_when_cli_missing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(server_module.shutil, "which", lambda command: None)
    settings = BridgeSettings(sessions_root=tmp_path)

    with caplog.at_level(logging.WARNING, logger="rovo_bridge.server"):
        server = server_module.create_server(settings, terminal_factory=FakeTerminal)

    assert getattr(server, "cli_metadata")["resolved_path"] is None
    assert "CLI executable not found" in caplog.text
