"""Pseudo-terminal handle for the interactive CLI process."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol

import pexpect

DataCallback = Callable[[str], None]
ExitCallback = Callable[[int | None, int | None], None]

logger = logging.getLogger(__name__)

_READ_SIZE = 4096


class TerminalError(RuntimeError):
    """Base class for terminal handle errors."""


class TerminalSpawnError(TerminalError):
    """Raised when the CLI process cannot be started in a pseudo-terminal."""


class TerminalWriteError(TerminalError):
    """Raised when input cannot be written to the pseudo-terminal."""


@dataclass(slots=True)
class TerminalCommand:
    """Everything needed to launch the CLI inside a pseudo-terminal."""

    executable: str
    args: tuple[str, ...] = ()
    cwd: Path = field(default_factory=Path.cwd)
    env: dict[str, str] = field(default_factory=dict)
    cols: int = 100
    rows: int = 100

    @property
    def argv(self) -> tuple[str, ...]:
        return (self.executable, *self.args)


class Terminal(Protocol):
    """Protocol for the minimal terminal API used by the supervisor."""

    @property
    def pid(self) -> int | None:
        ...

    def write(self, text: str) -> None:
        ...

    def terminate(self) -> bool:
        ...


TerminalFactory = Callable[..., Terminal]


class TerminalHandle:
    """A ``pexpect`` child whose output is delivered through the running event loop.

    Output chunks are passed to ``on_data`` as they arrive. When the child closes
    its side of the terminal ``on_exit`` receives the exit code and signal.
    Calling :meth:`terminate` detaches the handle first, so ``on_exit`` never
    fires for a termination the owner asked for.
    """

    def __init__(
        self,
        child: pexpect.spawn,
        loop: asyncio.AbstractEventLoop,
        *,
        on_data: DataCallback,
        on_exit: ExitCallback,
    ) -> None:
        self._child = child
        self._loop = loop
        self._on_data = on_data
        self._on_exit = on_exit
        self._attached = False
        self._closed = False

    @classmethod
    def spawn(
        cls,
        command: TerminalCommand,
        *,
        on_data: DataCallback,
        on_exit: ExitCallback,
    ) -> "TerminalHandle":
        loop = asyncio.get_running_loop()
        try:
            child = pexpect.spawn(
                command.executable,
                list(command.args),
                cwd=str(command.cwd),
                env=command.env,
                dimensions=(command.rows, command.cols),
                encoding="utf-8",
                codec_errors="replace",
            )
        except (pexpect.ExceptionPexpect, OSError) as exc:
            raise TerminalSpawnError(str(exc)) from exc

        handle = cls(child, loop, on_data=on_data, on_exit=on_exit)
        handle._attach()
        return handle

    @property
    def pid(self) -> int | None:
        return self._child.pid

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, text: str) -> None:
        if self._closed:
            raise TerminalWriteError("Terminal is closed")
        try:
            self._child.send(text)
        except (OSError, ValueError) as exc:
            raise TerminalWriteError(str(exc)) from exc

    def terminate(self) -> bool:
        """Kill the child and release the terminal. Returns whether it is gone."""

        if self._closed:
            return True
        self._detach()
        self._closed = True
        try:
            self._child.close(force=True)
        except (pexpect.ExceptionPexpect, OSError) as exc:
            raise TerminalError(f"Failed to terminate pid {self.pid}: {exc}") from exc
        return not self._child.isalive()

    def _attach(self) -> None:
        self._loop.add_reader(self._child.child_fd, self._on_readable)
        self._attached = True

    def _detach(self) -> None:
        if self._attached:
            self._loop.remove_reader(self._child.child_fd)
            self._attached = False

    def _on_readable(self) -> None:
        try:
            data = self._child.read_nonblocking(_READ_SIZE, timeout=0)
        except pexpect.TIMEOUT:
            return
        except pexpect.EOF:
            self._finish()
            return
        if data:
            self._on_data(data)

    def _finish(self) -> None:
        if self._closed:
            return
        self._detach()
        self._closed = True
        try:
            self._child.close()
        except pexpect.ExceptionPexpect as exc:
            logger.warning("Failed to reap CLI process", extra={"pid": self.pid, "error": str(exc)})
        self._on_exit(self._child.exitstatus, self._child.signalstatus)


class FakeTerminal:
    """Test double that records writes and lets tests drive output and exit."""

    def __init__(
        self,
        command: TerminalCommand,
        *,
        on_data: DataCallback,
        on_exit: ExitCallback,
        pid: int = 4242,
        fail_writes: bool = False,
        fail_terminate: bool = False,
    ) -> None:
        self.command = command
        self._on_data = on_data
        self._on_exit = on_exit
        self._pid = pid
        self.fail_writes = fail_writes
        self.fail_terminate = fail_terminate
        self.writes: list[str] = []
        self.terminated = False

    @property
    def pid(self) -> int | None:
        return self._pid

    def write(self, text: str) -> None:
        if self.fail_writes:
            raise TerminalWriteError("write rejected")
        self.writes.append(text)

    def terminate(self) -> bool:
        self.terminated = True
        if self.fail_terminate:
            raise TerminalError("terminate rejected")
        return True

    def feed(self, text: str) -> None:
        self._on_data(text)

    def exit(self, exitstatus: int | None = 0, signalstatus: int | None = None) -> None:
        self._on_exit(exitstatus, signalstatus)


__all__ = [
    "FakeTerminal",
    "Terminal",
    "TerminalCommand",
    "TerminalError",
    "TerminalFactory",
    "TerminalHandle",
    "TerminalSpawnError",
    "TerminalWriteError",
]
