"""Rovo bridge diagnostics CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

from rovo_bridge.config import BridgeSettings
from rovo_bridge.session import (
    STATE_FILENAME,
    SessionLocateTimeout,
    SessionLocation,
    SessionReadError,
    SessionTailer,
    iter_sessions,
    locate_session,
    read_session_state,
)


def sessions_root(args: argparse.Namespace) -> Path:
    if getattr(args, "root", None):
        return Path(args.root).expanduser()
    return BridgeSettings().sessions_root.expanduser()


def _format_timestamp(value: float | None) -> str:
    if value is None:
        return "-"
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()


def cmd_sessions(args: argparse.Namespace) -> None:
    summaries = iter_sessions(sessions_root(args))
    if args.limit is not None and args.limit > 0:
        summaries = summaries[: args.limit]
    if args.json:
        payload = [
            {
                "session_id": summary.session_id,
                "state_path": str(summary.state_path),
                "timestamp": summary.timestamp,
                "message_count": summary.message_count,
                "workspace_path": summary.workspace_path,
            }
            for summary in summaries
        ]
        print(json.dumps(payload, indent=2))
    else:
        for summary in summaries:
            print(
                f"{summary.session_id} [{_format_timestamp(summary.timestamp)}] "
                f"{summary.message_count} entries -> {summary.workspace_path or '-'}"
            )


def cmd_messages(args: argparse.Namespace) -> None:
    state_path = sessions_root(args) / args.session_id / STATE_FILENAME
    try:
        state = read_session_state(state_path)
    except SessionReadError as exc:
        print(f"Session unavailable: {exc}")
        raise SystemExit(1)

    tailer = SessionTailer(SessionLocation(session_id=args.session_id, state_path=state_path))
    messages = tailer.reconcile(state)
    print(json.dumps([message.to_dict() for message in messages], indent=2))


def cmd_usage(args: argparse.Namespace) -> None:
    state_path = sessions_root(args) / args.session_id / STATE_FILENAME
    try:
        state = read_session_state(state_path)
    except SessionReadError as exc:
        print(f"Session unavailable: {exc}")
        raise SystemExit(1)

    payload = {
        "session_id": args.session_id,
        "usage": state.usage.model_dump(),
        "history_length": len(state.message_history),
        "initial_prompt": state.initial_prompt,
        "latest_result": state.latest_result,
        "workspace_path": state.workspace_path,
    }
    print(json.dumps(payload, indent=2))


def cmd_locate(args: argparse.Namespace) -> None:
    settings = BridgeSettings()
    tolerance = args.tolerance if args.tolerance is not None else settings.session_match_tolerance
    timeout = args.timeout if args.timeout is not None else settings.session_locate_timeout
    try:
        location = asyncio.run(locate_session(sessions_root(args), tolerance, timeout))
    except SessionLocateTimeout as exc:
        print(str(exc))
        raise SystemExit(1)
    print(json.dumps({"session_id": location.session_id, "state_path": str(location.state_path)}))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rovo bridge diagnostics")
    parser.add_argument("--root", help="Sessions root (default: ROVO_SESSIONS_ROOT or ~/.rovodev/sessions)")
    sub = parser.add_subparsers(dest="cmd")

    p_sessions = sub.add_parser("sessions", help="List sessions, newest first")
    p_sessions.add_argument("--json", action="store_true", help="Output JSON")
    p_sessions.add_argument("--limit", type=int, default=None, help="Show only the newest N sessions")
    p_sessions.set_defaults(func=cmd_sessions)

    p_messages = sub.add_parser("messages", help="Print the assistant messages of a session")
    p_messages.add_argument("session_id")
    p_messages.set_defaults(func=cmd_messages)

    p_usage = sub.add_parser("usage", help="Show token usage and prompts of a session")
    p_usage.add_argument("session_id")
    p_usage.set_defaults(func=cmd_usage)

    p_locate = sub.add_parser("locate", help="Wait for a session created around now")
    p_locate.add_argument("--tolerance", type=float, default=None, help="Match window in seconds")
    p_locate.add_argument("--timeout", type=float, default=None, help="Give up after N seconds")
    p_locate.set_defaults(func=cmd_locate)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
