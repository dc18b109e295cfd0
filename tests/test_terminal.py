from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import pytest

from rovo_bridge.terminal import (
    FakeTerminal,
    TerminalCommand,
    TerminalError,
    TerminalHandle,
    TerminalSpawnError,
    TerminalWriteError,
    resolve_workspace,
    sanitize_environment,
)

SH = shutil.which("sh")


@pytest.mark.skipif(SH is None, reason="requires a POSIX shell")
def test_terminal_handle_streams_output_and_reports_exit(tmp_path: Path) -> None:
    script = 'printf "Using model: gpt-5\\n"; read line; echo "got $line"; exit 3'
    command = TerminalCommand(
        executable=SH,
        args=("-c", script),
        cwd=tmp_path,
        env=sanitize_environment(),
        cols=80,
        rows=24,
    )

    async def scenario() -> tuple[str, tuple[int | None, int | None]]:
        loop = asyncio.get_running_loop()
        exited: asyncio.Future[tuple[int | None, int | None]] = loop.create_future()
        chunks: list[str] = []
        prompted = asyncio.Event()

        def on_data(text: str) -> None:
            chunks.append(text)
            if "Using model:" in "".join(chunks):
                prompted.set()

        def on_exit(exitstatus: int | None, signalstatus: int | None) -> None:
            exited.set_result((exitstatus, signalstatus))

        handle = TerminalHandle.spawn(command, on_data=on_data, on_exit=on_exit)
        assert handle.pid is not None
        await asyncio.wait_for(prompted.wait(), timeout=5)
        handle.write("hello\r")
        status = await asyncio.wait_for(exited, timeout=5)
        assert handle.closed
        return "".join(chunks), status

    output, (exitstatus, signalstatus) = asyncio.run(scenario())

    assert "Using model: gpt-5" in output
    assert "got hello" in output
    assert exitstatus == 3
    assert signalstatus is None


@pytest.mark.skipif(SH is None, reason="requires a POSIX shell")
def test_terminate_detaches_before_exit_callback(tmp_path: Path) -> None:
    command = TerminalCommand(executable=SH, args=("-c", "sleep 30"), cwd=tmp_path, env=sanitize_environment())
    exits: list[tuple[int | None, int | None]] = []

    async def scenario() -> bool:
        handle = TerminalHandle.spawn(command, on_data=lambda _text: None, on_exit=lambda *status: exits.append(status))
        await asyncio.sleep(0.1)
        gone = handle.terminate()
        await asyncio.sleep(0.1)
        with pytest.raises(TerminalWriteError):
            handle.write("late\r")
        assert handle.terminate() is True
        return gone

    assert asyncio.run(scenario()) is True
    assert exits == []


def test_spawn_failure_raises_terminal_spawn_error(tmp_path: Path) -> None:
    command = TerminalCommand(executable=str(tmp_path / "no-such-cli"), cwd=tmp_path)

    async def scenario() -> None:
        TerminalHandle.spawn(command, on_data=lambda _text: None, on_exit=lambda *_status: None)

    with pytest.raises(TerminalSpawnError):
        asyncio.run(scenario())


def test_fake_terminal_records_and_replays() -> None:
    received: list[str] = []
    exits: list[tuple[int | None, int | None]] = []
    terminal = FakeTerminal(
        TerminalCommand(executable="acli"),
        on_data=received.append,
        on_exit=lambda *status: exits.append(status),
    )

    terminal.write("hi\r")
    terminal.feed("Using model: gpt-5")
    terminal.exit(1)

    assert terminal.writes == ["hi\r"]
    assert received == ["Using model: gpt-5"]
    assert exits == [(1, None)]
    assert terminal.terminate() is True
    assert terminal.terminated


def test_fake_terminal_failure_modes() -> None:
    terminal = FakeTerminal(
        TerminalCommand(executable="acli"),
        on_data=lambda _text: None,
        on_exit=lambda *_status: None,
        fail_writes=True,
        fail_terminate=True,
    )

    with pytest.raises(TerminalWriteError):
        terminal.write("hi\r")
    with pytest.raises(TerminalError):
        terminal.terminate()


def test_sanitize_environment_disables_colour(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PYTHONPATH", "/tmp/shadow")
    monkeypatch.setenv("VIRTUAL_ENV", "/tmp/venv")
    monkeypatch.setenv("FORCE_COLOR", "3")
    monkeypatch.setenv("ROVO_KEEP", "yes")

    env = sanitize_environment({"EXTRA": "1"})

    assert "PYTHONPATH" not in env
    assert "VIRTUAL_ENV" not in env
    assert env["FORCE_COLOR"] == "0"
    assert env["NO_COLOR"] == "1"
    assert env["ROVO_KEEP"] == "yes"
    assert env["EXTRA"] == "1"


def test_terminal_command_argv_and_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    command = TerminalCommand(executable="acli", args=("rovodev", "run"))
    monkeypatch.chdir(tmp_path)

    assert command.argv == ("acli", "rovodev", "run")
    assert resolve_workspace(None) == tmp_path
    assert resolve_workspace(tmp_path / "ws") == tmp_path / "ws"
