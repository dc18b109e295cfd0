"""Incremental reader for a session's ``session_context.json``."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .models import DeliveredMessage, SessionLocation, SessionState, UsageSummary
from .reader import SessionReadError, read_session_state

MessagesCallback = Callable[[list[DeliveredMessage]], None]

logger = logging.getLogger(__name__)


class SessionTailer:
    """Poll one session state file and emit assistant text that has not been delivered yet.

    The CLI rewrites the whole file on every turn, so each poll re-reads it in
    full. The cursor (history length seen, newest response timestamp delivered)
    lives for the lifetime of the instance; a new session needs a new tailer.
    """

    def __init__(self, location: SessionLocation, *, interval: float = 1.0) -> None:
        self._location = location
        self._interval = interval
        self._history_length = 0
        self._last_timestamp = 0.0
        self._listeners: list[MessagesCallback] = []
        self._task: asyncio.Task[None] | None = None
        self._lifetime: asyncio.Future[None] | None = None

    @property
    def location(self) -> SessionLocation:
        return self._location

    @property
    def running(self) -> bool:
        return self._lifetime is not None and not self._lifetime.done()

    @property
    def history_length(self) -> int:
        return self._history_length

    @property
    def last_timestamp(self) -> float:
        return self._last_timestamp

    def on_messages(self, callback: MessagesCallback) -> None:
        self._listeners.append(callback)

    def start(self) -> asyncio.Future[None]:
        """Begin polling; returns a future that resolves when the tailer stops.

        Calling ``start`` while already running returns the same future.
        """

        if self._lifetime is not None and not self._lifetime.done():
            return self._lifetime

        loop = asyncio.get_running_loop()
        self._lifetime = loop.create_future()
        self._task = loop.create_task(self._run())
        self._task.add_done_callback(self._on_task_done)
        logger.info(
            "Session tailer started",
            extra={"session_id": self._location.session_id, "interval": self._interval},
        )
        return self._lifetime

    def stop(self) -> None:
        """Cancel polling and resolve the lifetime future. Safe to call repeatedly."""

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        if self._lifetime is not None and not self._lifetime.done():
            self._lifetime.set_result(None)
            logger.info("Session tailer stopped", extra={"session_id": self._location.session_id})

    async def poll(self) -> list[DeliveredMessage]:
        """Read the state file once and emit any new messages as one batch."""

        try:
            state = await asyncio.to_thread(read_session_state, self._location.state_path)
        except SessionReadError as exc:
            logger.warning(
                "Session poll failed",
                extra={"session_id": self._location.session_id, "error": str(exc)},
            )
            return []

        messages = self.reconcile(state)
        if messages:
            self._emit(messages)
        return messages

    def reconcile(self, state: SessionState) -> list[DeliveredMessage]:
        """Advance the cursor over ``state`` and return the newly visible messages."""

        history_length = len(state.message_history)
        if history_length == self._history_length:
            return []
        self._history_length = history_length

        messages: list[DeliveredMessage] = []
        for entry in state.responses():
            timestamp = entry.epoch_seconds
            if not timestamp:
                # Without a timestamp the entry cannot be ordered against what was delivered.
                continue
            if timestamp <= self._last_timestamp:
                continue
            self._last_timestamp = timestamp
            for part in entry.parts:
                text = part.text
                if text is not None:
                    messages.append(DeliveredMessage(content=text, timestamp=timestamp))
        return messages

    async def get_usage(self) -> UsageSummary:
        state = await asyncio.to_thread(read_session_state, self._location.state_path)
        return state.usage

    async def initial_prompt(self) -> str | None:
        state = await asyncio.to_thread(read_session_state, self._location.state_path)
        return state.initial_prompt

    async def latest_result(self) -> str | None:
        state = await asyncio.to_thread(read_session_state, self._location.state_path)
        return state.latest_result

    async def _run(self) -> None:
        while True:
            await self.poll()
            await asyncio.sleep(self._interval)

    def _emit(self, messages: list[DeliveredMessage]) -> None:
        for listener in list(self._listeners):
            try:
                listener(list(messages))
            except Exception:  # listener faults must not stop the poll loop
                logger.exception(
                    "Session message listener failed",
                    extra={"session_id": self._location.session_id},
                )

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Session tailer crashed",
                exc_info=task.exception(),
                extra={"session_id": self._location.session_id},
            )
        if self._lifetime is not None and not self._lifetime.done():
            self._lifetime.set_result(None)


__all__ = ["MessagesCallback", "SessionTailer"]
