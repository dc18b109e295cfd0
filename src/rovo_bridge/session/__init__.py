"""Session discovery and tailing for the CLI's persisted conversation state."""

from .locator import (
    SessionLocateError,
    SessionLocateTimeout,
    SessionSummary,
    iter_sessions,
    locate_session,
    match_session,
    session_timestamp,
)
from .models import (
    STATE_FILENAME,
    DeliveredMessage,
    HistoryEntry,
    MessagePart,
    SessionLocation,
    SessionState,
    UsageSummary,
)
from .reader import SessionReadError, read_session_state, read_state_document
from .tailer import MessagesCallback, SessionTailer

__all__ = [
    "STATE_FILENAME",
    "DeliveredMessage",
    "HistoryEntry",
    "MessagePart",
    "MessagesCallback",
    "SessionLocateError",
    "SessionLocateTimeout",
    "SessionLocation",
    "SessionReadError",
    "SessionState",
    "SessionSummary",
    "SessionTailer",
    "UsageSummary",
    "iter_sessions",
    "locate_session",
    "match_session",
    "read_session_state",
    "read_state_document",
    "session_timestamp",
]
