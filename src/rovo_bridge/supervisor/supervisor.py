"""Lifecycle management for the interactive Rovo Dev CLI process."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial

from ..config import BridgeSettings
from ..session import SessionLocateTimeout, SessionLocation, SessionTailer, locate_session
from ..terminal import (
    Terminal,
    TerminalCommand,
    TerminalError,
    TerminalFactory,
    TerminalHandle,
    TerminalSpawnError,
    TerminalWriteError,
    resolve_workspace,
    sanitize_environment,
)
from .events import SupervisorEvents
from .formatting import format_output
from .status import ModelUsage, ProcessStatus, has_interactive_indicator, scan_usage, shows_spinner

logger = logging.getLogger(__name__)


class SessionBinding(str, Enum):
    """Progress of correlating the running process with its session file."""

    UNINITIALIZED = "uninitialized"
    BINDING = "binding"
    BOUND = "bound"
    FAILED = "failed"


@dataclass(slots=True, eq=False)
class _Lifetime:
    """State that lives exactly as long as one spawned process."""

    terminal: Terminal | None = None
    binding: SessionBinding = SessionBinding.UNINITIALIZED
    binding_task: asyncio.Task[None] | None = None
    tailer: SessionTailer | None = None


class ProcessSupervisor:
    """Own the CLI's pseudo-terminal and reconcile its two output channels.

    Terminal output feeds the status scanner; the session state file feeds a
    :class:`SessionTailer` that is bound lazily after the first message is
    sent, because the CLI only creates its session directory once it has
    received input. Everything observed is reported through :attr:`events`.
    """

    def __init__(
        self,
        settings: BridgeSettings,
        *,
        events: SupervisorEvents | None = None,
        terminal_factory: TerminalFactory | None = None,
    ) -> None:
        self._settings = settings
        self.events = events or SupervisorEvents()
        self._terminal_factory = terminal_factory or TerminalHandle.spawn
        self._status = ProcessStatus.NOT_STARTED
        self._usage = ModelUsage()
        self._lifetime: _Lifetime | None = None

    @property
    def status(self) -> ProcessStatus:
        return self._status

    @property
    def usage(self) -> ModelUsage:
        return self._usage

    @property
    def pid(self) -> int | None:
        if self._lifetime is None or self._lifetime.terminal is None:
            return None
        return self._lifetime.terminal.pid

    @property
    def binding(self) -> SessionBinding:
        if self._lifetime is None:
            return SessionBinding.UNINITIALIZED
        return self._lifetime.binding

    @property
    def session_location(self) -> SessionLocation | None:
        if self._lifetime is None or self._lifetime.tailer is None:
            return None
        return self._lifetime.tailer.location

    @property
    def tailer(self) -> SessionTailer | None:
        if self._lifetime is None:
            return None
        return self._lifetime.tailer

    def is_running(self) -> bool:
        return self._lifetime is not None

    def get_status(self) -> ProcessStatus:
        return self._status

    def build_command(self) -> TerminalCommand:
        settings = self._settings
        return TerminalCommand(
            executable=settings.cli_command,
            args=tuple(settings.cli_args),
            cwd=resolve_workspace(settings.workspace_root),
            env=sanitize_environment(),
            cols=settings.terminal_cols,
            rows=settings.terminal_rows,
        )

    async def start(self) -> bool:
        """Spawn the CLI. Returns ``True`` if it is running afterwards."""

        if self._lifetime is not None:
            logger.info("CLI process already running", extra={"pid": self.pid})
            return True

        command = self.build_command()
        self._set_status(ProcessStatus.STARTING)
        logger.info(
            "Starting CLI process",
            extra={"argv": list(command.argv), "cwd": str(command.cwd)},
        )

        lifetime = _Lifetime()
        try:
            lifetime.terminal = self._terminal_factory(
                command,
                on_data=partial(self._handle_output, lifetime),
                on_exit=partial(self._handle_exit, lifetime),
            )
        except TerminalSpawnError as exc:
            logger.error("Failed to start CLI process", extra={"error": str(exc)})
            self._set_status(ProcessStatus.ERROR)
            self.events.emit_error(f"Failed to start CLI: {exc}")
            return False

        self._lifetime = lifetime
        logger.info("CLI process started", extra={"pid": lifetime.terminal.pid})
        return True

    def send_message(self, text: str) -> bool:
        """Type ``text`` into the CLI followed by a carriage return."""

        lifetime = self._lifetime
        if lifetime is None or lifetime.terminal is None:
            logger.error("CLI process not available for input")
            return False

        try:
            lifetime.terminal.write(f"{text}\r")
        except TerminalWriteError as exc:
            logger.error("Failed to send message to CLI", extra={"error": str(exc)})
            self.events.emit_error(f"Failed to send message: {exc}")
            return False

        logger.debug("Message sent to CLI", extra={"length": len(text)})
        if lifetime.binding is SessionBinding.UNINITIALIZED:
            self._begin_binding(lifetime)
        return True

    async def stop(self) -> bool:
        """Terminate the CLI if running. Returns whether termination succeeded."""

        lifetime = self._lifetime
        if lifetime is None:
            return True

        logger.info("Stopping CLI process", extra={"pid": self.pid})
        self._teardown(lifetime)
        terminated = True
        if lifetime.terminal is not None:
            try:
                terminated = lifetime.terminal.terminate()
            except TerminalError as exc:
                logger.error("Error stopping CLI process", extra={"error": str(exc)})
                terminated = False
        self._set_status(ProcessStatus.STOPPED)
        return terminated

    def _begin_binding(self, lifetime: _Lifetime) -> None:
        lifetime.binding = SessionBinding.BINDING
        lifetime.binding_task = asyncio.get_running_loop().create_task(self._bind_session(lifetime))

    async def _bind_session(self, lifetime: _Lifetime) -> None:
        settings = self._settings
        try:
            location = await locate_session(
                settings.sessions_root,
                settings.session_match_tolerance,
                settings.session_locate_timeout,
                poll_interval=settings.session_locate_interval,
            )
        except SessionLocateTimeout as exc:
            logger.warning("Session lookup timed out", extra={"error": str(exc)})
            lifetime.binding = SessionBinding.FAILED
            return
        except Exception:
            logger.exception("Session lookup failed")
            lifetime.binding = SessionBinding.FAILED
            return

        if lifetime is not self._lifetime:
            logger.debug(
                "Discarding session located for a finished process",
                extra={"session_id": location.session_id},
            )
            return

        tailer = SessionTailer(location, interval=settings.session_poll_interval)
        tailer.on_messages(self.events.emit_messages)
        lifetime.tailer = tailer
        lifetime.binding = SessionBinding.BOUND
        logger.info(
            "Session bound",
            extra={"session_id": location.session_id, "state_path": str(location.state_path)},
        )
        tailer.start()

    def _handle_output(self, lifetime: _Lifetime, chunk: str) -> None:
        if lifetime is not self._lifetime:
            return

        if has_interactive_indicator(chunk) and self._status is not ProcessStatus.INTERACTIVE_MODE:
            logger.info("Detected interactive mode")
            self._set_status(ProcessStatus.INTERACTIVE_MODE)

        usage = scan_usage(chunk)
        if usage is not None:
            self._usage = self._usage.merged(usage)
            if self._status is ProcessStatus.BUSY:
                self._set_status(ProcessStatus.INTERACTIVE_MODE)
            self.events.emit_model_usage_change(usage)
            return

        if shows_spinner(chunk):
            if self._status is ProcessStatus.INTERACTIVE_MODE:
                self._set_status(ProcessStatus.BUSY)
            return

        text = format_output(chunk)
        if text.strip():
            self.events.emit_output(text)

    def _handle_exit(self, lifetime: _Lifetime, exitstatus: int | None, signalstatus: int | None) -> None:
        if lifetime is not self._lifetime:
            logger.debug("Ignoring exit of a replaced CLI process")
            return

        if exitstatus == 0:
            logger.info("CLI process exited normally")
        else:
            logger.warning(
                "CLI process exited with error",
                extra={"exit_code": exitstatus, "signal": signalstatus},
            )
        self._teardown(lifetime)
        self._set_status(ProcessStatus.STOPPED)

    def _teardown(self, lifetime: _Lifetime) -> None:
        if self._lifetime is lifetime:
            self._lifetime = None
        task, lifetime.binding_task = lifetime.binding_task, None
        if task is not None and not task.done():
            task.cancel()
        if lifetime.tailer is not None:
            lifetime.tailer.stop()
            lifetime.tailer = None

    def _set_status(self, status: ProcessStatus) -> None:
        if self._status is status:
            return
        logger.info(
            "CLI status changed",
            extra={"from_status": self._status.value, "to_status": status.value},
        )
        self._status = status
        self.events.emit_status_change(status)


__all__ = ["ProcessSupervisor", "SessionBinding"]
