"""Owning context for one bridge instance: settings, supervisor and transcript."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from .config import BridgeSettings
from .session import DeliveredMessage
from .supervisor import ModelUsage, ProcessStatus, ProcessSupervisor, SupervisorEvents
from .terminal import TerminalFactory

TRANSCRIPT_KINDS = {"message", "output", "error", "status", "usage"}


@dataclass(slots=True)
class TranscriptEntry:
    """One supervisor event, numbered in arrival order."""

    sequence: int
    kind: str
    payload: dict[str, Any]
    recorded_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "kind": self.kind,
            "recorded_at": self.recorded_at.isoformat(),
            **self.payload,
        }


class Transcript:
    """Bounded buffer of supervisor events for clients that poll instead of subscribe."""

    def __init__(
        self,
        limit: int = 1000,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._entries: deque[TranscriptEntry] = deque(maxlen=limit)
        self._sequence = 0
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def last_sequence(self) -> int:
        return self._sequence

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, kind: str, payload: dict[str, Any]) -> TranscriptEntry:
        if kind not in TRANSCRIPT_KINDS:
            raise ValueError(f"Unknown transcript kind '{kind}'")
        self._sequence += 1
        entry = TranscriptEntry(
            sequence=self._sequence,
            kind=kind,
            payload=payload,
            recorded_at=self._clock(),
        )
        self._entries.append(entry)
        return entry

    def since(
        self,
        after: int = 0,
        *,
        kinds: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[TranscriptEntry]:
        wanted = set(kinds) if kinds is not None else None
        entries = [
            entry
            for entry in self._entries
            if entry.sequence > after and (wanted is None or entry.kind in wanted)
        ]
        return entries[:limit] if limit else entries

    def attach(self, events: SupervisorEvents) -> None:
        """Record every event the supervisor emits from now on."""

        events.on_messages(self._record_messages)
        events.on_output(lambda text: self.append("output", {"text": text}))
        events.on_error(lambda text: self.append("error", {"text": text}))
        events.on_status_change(self._record_status)
        events.on_model_usage_change(self._record_usage)

    def _record_messages(self, messages: list[DeliveredMessage]) -> None:
        for message in messages:
            self.append("message", message.to_dict())

    def _record_status(self, status: ProcessStatus) -> None:
        self.append("status", {"status": status.value})

    def _record_usage(self, usage: ModelUsage) -> None:
        self.append("usage", {"usage": usage.known()})


class BridgeContext:
    """Everything one chat surface needs: exactly one supervisor and its transcript."""

    def __init__(
        self,
        settings: BridgeSettings,
        *,
        terminal_factory: TerminalFactory | None = None,
    ) -> None:
        self.settings = settings
        self.supervisor = ProcessSupervisor(settings, terminal_factory=terminal_factory)
        self.transcript = Transcript(settings.transcript_limit)
        self.transcript.attach(self.supervisor.events)

    def snapshot(self) -> dict[str, Any]:
        supervisor = self.supervisor
        location = supervisor.session_location
        return {
            "status": supervisor.get_status().value,
            "running": supervisor.is_running(),
            "pid": supervisor.pid,
            "usage": supervisor.usage.known(),
            "session": {
                "binding": supervisor.binding.value,
                "session_id": location.session_id if location else None,
                "state_path": str(location.state_path) if location else None,
            },
            "transcript": {
                "entries": len(self.transcript),
                "last_sequence": self.transcript.last_sequence,
            },
        }


__all__ = ["BridgeContext", "Transcript", "TranscriptEntry"]
