"""Tool registration for the Rovo bridge MCP server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP

from ..context import TRANSCRIPT_KINDS, BridgeContext


@dataclass(slots=True)
class ToolHandles:
    start_session: Any
    send_message: Any
    stop_session: Any
    session_status: Any
    read_messages: Any


def register_tools(server: FastMCP, *, bridge: BridgeContext) -> ToolHandles:
    """Register the bridge's MCP tools on the server."""

    supervisor = bridge.supervisor
    transcript = bridge.transcript

    async def _start_session(context: Context | None = None) -> dict[str, Any]:
        """Start the Rovo Dev CLI if it is not already running."""

        already_running = supervisor.is_running()
        started = await supervisor.start()
        _emit_log(
            context,
            "info" if started else "error",
            "Start requested",
            extra={"started": started, "already_running": already_running, "pid": supervisor.pid},
        )
        return {
            "started": started,
            "already_running": already_running,
            "status": supervisor.get_status().value,
            "pid": supervisor.pid,
        }

    def _send_message(text: str, context: Context | None = None) -> dict[str, Any]:
        """Type a message into the running CLI."""

        if not text.strip():
            raise ValueError("Message text must not be empty")

        sent = supervisor.send_message(text)
        _emit_log(
            context,
            "info" if sent else "warning",
            "Message forwarded" if sent else "Message not delivered",
            extra={"sent": sent, "length": len(text)},
        )
        return {
            "sent": sent,
            "status": supervisor.get_status().value,
            "last_sequence": transcript.last_sequence,
        }

    async def _stop_session(context: Context | None = None) -> dict[str, Any]:
        """Terminate the CLI process."""

        was_running = supervisor.is_running()
        stopped = await supervisor.stop()
        _emit_log(
            context,
            "warning" if was_running else "debug",
            "Stop requested",
            extra={"stopped": stopped, "was_running": was_running},
        )
        return {"stopped": stopped, "was_running": was_running, "status": supervisor.get_status().value}

    def _session_status(context: Context | None = None) -> dict[str, Any]:
        """Report process status, usage and the bound session."""

        snapshot = bridge.snapshot()
        _emit_log(context, "debug", "Session status", extra={"status": snapshot["status"]})
        return snapshot

    def _read_messages(
        after: int = 0,
        *,
        kinds: list[str] | None = None,
        limit: int | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Return transcript entries recorded after the given sequence number."""

        if kinds is not None:
            unknown = sorted(set(kinds) - TRANSCRIPT_KINDS)
            if unknown:
                raise ValueError(
                    f"Unknown transcript kinds {unknown}. Must be among {sorted(TRANSCRIPT_KINDS)}"
                )
        if limit is not None and limit < 1:
            raise ValueError("limit must be >= 1")

        entries = transcript.since(after, kinds=kinds, limit=limit)
        payload = [entry.to_dict() for entry in entries]
        _emit_log(
            context,
            "debug",
            "Read transcript",
            extra={"after": after, "results": len(payload)},
        )
        return {
            "entries": payload,
            "next_after": payload[-1]["sequence"] if payload else after,
            "last_sequence": transcript.last_sequence,
        }

    tool_start = server.tool(
        name="start_session",
        description="Start the Rovo Dev CLI in the workspace. Safe to call when it is already running.",
    )(_start_session)

    tool_send = server.tool(
        name="send_message",
        description=(
            "Send a chat message to the running Rovo Dev CLI. Assistant replies arrive "
            "later through read_messages."
        ),
    )(_send_message)

    tool_stop = server.tool(
        name="stop_session",
        description="Terminate the Rovo Dev CLI process and stop reading its session.",
    )(_stop_session)

    tool_status = server.tool(
        name="session_status",
        description="Report CLI status, model usage and the session currently being read.",
    )(_session_status)

    tool_read = server.tool(
        name="read_messages",
        description=(
            "Read assistant messages, terminal output, errors, status and usage changes "
            "recorded after a sequence number. Pass next_after from the previous call."
        ),
    )(_read_messages)

    return ToolHandles(
        start_session=tool_start,
        send_message=tool_send,
        stop_session=tool_stop,
        session_status=tool_status,
        read_messages=tool_read,
    )


__all__ = ["register_tools", "ToolHandles"]

logger = logging.getLogger(__name__)


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)
