"""Consumer-facing event hub for the process supervisor."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..session import DeliveredMessage
from .status import ModelUsage, ProcessStatus

logger = logging.getLogger(__name__)

OutputListener = Callable[[str], None]
ErrorListener = Callable[[str], None]
StatusListener = Callable[[ProcessStatus], None]
UsageListener = Callable[[ModelUsage], None]
MessagesListener = Callable[[list[DeliveredMessage]], None]


class SupervisorEvents:
    """Append-only listener lists for everything the supervisor reports.

    Listeners are called synchronously in registration order. A listener that
    raises is logged and skipped; the emitter never sees the exception.
    """

    def __init__(self) -> None:
        self._output: list[OutputListener] = []
        self._error: list[ErrorListener] = []
        self._status: list[StatusListener] = []
        self._usage: list[UsageListener] = []
        self._messages: list[MessagesListener] = []

    def on_output(self, listener: OutputListener) -> None:
        self._output.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        self._error.append(listener)

    def on_status_change(self, listener: StatusListener) -> None:
        self._status.append(listener)

    def on_model_usage_change(self, listener: UsageListener) -> None:
        self._usage.append(listener)

    def on_messages(self, listener: MessagesListener) -> None:
        self._messages.append(listener)

    def emit_output(self, text: str) -> None:
        self._dispatch(self._output, "output", text)

    def emit_error(self, text: str) -> None:
        self._dispatch(self._error, "error", text)

    def emit_status_change(self, status: ProcessStatus) -> None:
        self._dispatch(self._status, "status", status)

    def emit_model_usage_change(self, usage: ModelUsage) -> None:
        self._dispatch(self._usage, "usage", usage)

    def emit_messages(self, messages: list[DeliveredMessage]) -> None:
        self._dispatch(self._messages, "messages", messages)

    def _dispatch(self, listeners: list[Callable[[Any], None]], event: str, payload: Any) -> None:
        for listener in list(listeners):
            try:
                listener(payload)
            except Exception:  # consumer faults stay on the consumer side
                logger.exception("Supervisor event listener failed", extra={"event": event})


__all__ = ["SupervisorEvents"]
