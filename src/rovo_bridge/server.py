"""FastMCP server bootstrap for the Rovo bridge."""

import json
import logging
import shutil
from datetime import datetime, timezone
from typing import Optional

from fastmcp import Context, FastMCP

from . import __version__
from .config import BridgeSettings, get_settings
from .context import BridgeContext
from .terminal import TerminalFactory
from .tools import register_tools


def configure_logging(level: str) -> None:
    """Configure root logging for the bridge server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def create_server(
    settings: Optional[BridgeSettings] = None,
    terminal_factory: TerminalFactory | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server around a fresh bridge context."""

    settings = settings or get_settings()
    bridge = BridgeContext(settings, terminal_factory=terminal_factory)

    cli_metadata = {
        "command": settings.cli_command,
        "args": list(settings.cli_args),
        "resolved_path": shutil.which(settings.cli_command),
        "workspace_root": str(settings.workspace_root) if settings.workspace_root else None,
    }
    if cli_metadata["resolved_path"] is None:
        logging.getLogger(__name__).warning(
            "CLI executable not found on PATH; start_session will fail",
            extra={"command": settings.cli_command},
        )

    server = FastMCP(
        name="Rovo Bridge",
        version=__version__,
        instructions=(
            "Rovo Bridge drives an interactive Rovo Dev CLI session. Start the session, "
            "send messages, then poll read_messages for assistant replies and status changes."
        ),
    )

    handles = register_tools(server, bridge=bridge)

    @server.resource(
        "resource://rovo-bridge/status",
        name="rovo_bridge_status",
        title="Rovo Bridge Status",
        description="Provides the current runtime status of the supervised Rovo Dev CLI.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing basic runtime state."""

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "cli": cli_metadata,
            "sessions_root": str(settings.sessions_root),
            **bridge.snapshot(),
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    setattr(server, "bridge", bridge)
    setattr(server, "cli_metadata", cli_metadata)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the bridge MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching Rovo bridge MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "cli_available": getattr(server, "cli_metadata", {}).get("resolved_path") is not None,
        },
    )
    server.run()


if __name__ == "__main__":
    main()
