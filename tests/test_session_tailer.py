from __future__ import annotations

import asyncio
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from rovo_bridge.session import (
    DeliveredMessage,
    SessionLocation,
    SessionReadError,
    SessionTailer,
)


def response(*texts: str, timestamp: Any = None, extra_parts: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    parts: list[dict[str, Any]] = [{"part_kind": "text", "content": text} for text in texts]
    parts.extend(extra_parts or [])
    entry: dict[str, Any] = {"kind": "response", "parts": parts}
    if timestamp is not None:
        entry["timestamp"] = timestamp
    return entry


def request(text: str, timestamp: Any = None) -> dict[str, Any]:
    entry: dict[str, Any] = {"kind": "request", "parts": [{"part_kind": "user-prompt", "content": text}]}
    if timestamp is not None:
        entry["timestamp"] = timestamp
    return entry


def write_state(path: Path, history: list[dict[str, Any]], **fields: Any) -> None:
    document = {
        "message_history": history,
        "usage": {"request_tokens": 10, "response_tokens": 5, "total_tokens": 15},
        "timestamp": time.time(),
        "initial_prompt": "hello",
        "prompts": ["hello"],
        "latest_result": "hi",
        "workspace_path": "/work",
        "log_dir": "/logs",
        "artifacts": {"memory": ""},
    }
    document.update(fields)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")


def make_tailer(tmp_path: Path, *, interval: float = 1.0) -> tuple[SessionTailer, Path]:
    state_path = tmp_path / "session-1" / "session_context.json"
    return SessionTailer(SessionLocation("session-1", state_path), interval=interval), state_path


def test_poll_delivers_new_text_parts_once(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    batches: list[list[DeliveredMessage]] = []
    tailer.on_messages(batches.append)

    write_state(state_path, [request("hello", 100.0), response("hi", timestamp=101.0)])
    first = asyncio.run(tailer.poll())

    write_state(
        state_path,
        [
            request("hello", 100.0),
            response("hi", timestamp=101.0),
            request("more", 102.0),
            response("part one", "part two", timestamp=103.0),
        ],
    )
    second = asyncio.run(tailer.poll())

    assert first == [DeliveredMessage("hi", 101.0)]
    assert second == [DeliveredMessage("part one", 103.0), DeliveredMessage("part two", 103.0)]
    assert batches == [first, second]
    assert tailer.last_timestamp == 103.0


def test_unchanged_history_length_short_circuits(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    write_state(state_path, [response("hi", timestamp=101.0)])
    assert len(asyncio.run(tailer.poll())) == 1

    # Same length, different content: not rescanned.
    write_state(state_path, [response("edited", timestamp=200.0)])

    assert asyncio.run(tailer.poll()) == []
    assert tailer.history_length == 1


def test_entries_without_timestamp_are_skipped(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    write_state(state_path, [response("no clock"), response("zero", timestamp=0)])

    assert asyncio.run(tailer.poll()) == []


def test_older_or_equal_timestamps_are_not_redelivered(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    write_state(state_path, [response("first", timestamp=50.0)])
    asyncio.run(tailer.poll())

    write_state(
        state_path,
        [
            response("first", timestamp=50.0),
            response("replayed", timestamp=50.0),
            response("older", timestamp=40.0),
            response("newer", timestamp=60.0),
        ],
    )

    assert asyncio.run(tailer.poll()) == [DeliveredMessage("newer", 60.0)]


def test_only_text_parts_with_content_are_delivered(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    write_state(
        state_path,
        [
            response(
                "",
                "visible",
                timestamp=10.0,
                extra_parts=[
                    {"part_kind": "tool-call", "tool_name": "open_files", "args": {}},
                    {"part_kind": "text"},
                ],
            )
        ],
    )

    assert asyncio.run(tailer.poll()) == [DeliveredMessage("visible", 10.0)]


def test_iso_timestamps_are_converted_to_seconds(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    moment = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    write_state(state_path, [response("iso", timestamp=moment.isoformat())])

    messages = asyncio.run(tailer.poll())

    assert messages == [DeliveredMessage("iso", moment.timestamp())]


def test_read_errors_are_swallowed_and_retried(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)

    assert asyncio.run(tailer.poll()) == []

    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_text('{"message_history": [', encoding="utf-8")
    assert asyncio.run(tailer.poll()) == []

    write_state(state_path, [response("recovered", timestamp=5.0)])
    assert asyncio.run(tailer.poll()) == [DeliveredMessage("recovered", 5.0)]


def test_half_written_multibyte_text_is_retried(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_bytes(b'{"message_history": [{"kind": "response", "parts": [{"content": "\xe4\xbd')

    assert asyncio.run(tailer.poll()) == []

    write_state(state_path, [response("你好", timestamp=5.0)])
    assert asyncio.run(tailer.poll()) == [DeliveredMessage("你好", 5.0)]


@pytest.mark.parametrize("field", ["usage", "artifacts", "prompts", "latest_result"])
def test_null_auxiliary_fields_do_not_block_delivery(tmp_path: Path, field: str) -> None:
    tailer, state_path = make_tailer(tmp_path)
    write_state(state_path, [response("hi", timestamp=5.0)], **{field: None})

    assert asyncio.run(tailer.poll()) == [DeliveredMessage("hi", 5.0)]


def test_null_usage_reads_as_zero_counters(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    write_state(state_path, [], usage=None)

    assert asyncio.run(tailer.get_usage()).total_tokens == 0


def test_every_listener_receives_each_batch(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    seen_a: list[list[DeliveredMessage]] = []
    seen_b: list[list[DeliveredMessage]] = []

    def broken(_messages: list[DeliveredMessage]) -> None:
        raise RuntimeError("listener bug")

    tailer.on_messages(seen_a.append)
    tailer.on_messages(broken)
    tailer.on_messages(seen_b.append)
    write_state(state_path, [response("hi", timestamp=1.0)])

    asyncio.run(tailer.poll())

    assert seen_a == seen_b == [[DeliveredMessage("hi", 1.0)]]


def test_start_polls_immediately_and_stop_resolves_lifetime(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path, interval=0.05)
    write_state(state_path, [response("hi", timestamp=time.time())])
    batches: list[list[DeliveredMessage]] = []
    tailer.on_messages(batches.append)

    async def scenario() -> tuple[bool, bool, bool]:
        lifetime = tailer.start()
        same = tailer.start() is lifetime
        await asyncio.sleep(0.3)
        running_before = tailer.running
        tailer.stop()
        tailer.stop()
        await asyncio.wait_for(lifetime, timeout=1)
        return same, running_before, tailer.running

    same, running_before, running_after = asyncio.run(scenario())

    assert same
    assert running_before
    assert not running_after
    assert len(batches) == 1
    assert batches[0][0].content == "hi"


def test_auxiliary_fields_are_readable(tmp_path: Path) -> None:
    tailer, state_path = make_tailer(tmp_path)
    write_state(state_path, [], initial_prompt="build it", latest_result="built")

    usage = asyncio.run(tailer.get_usage())

    assert usage.total_tokens == 15
    assert asyncio.run(tailer.initial_prompt()) == "build it"
    assert asyncio.run(tailer.latest_result()) == "built"


def test_auxiliary_reads_raise_on_missing_file(tmp_path: Path) -> None:
    tailer, _ = make_tailer(tmp_path)

    with pytest.raises(SessionReadError):
        asyncio.run(tailer.get_usage())
