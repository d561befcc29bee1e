"""Tests for the in-process telemetry helpers."""

from __future__ import annotations

from typing import Any

from templatehelper.services import telemetry


def test_emit_reaches_registered_listeners_only() -> None:
    seen: list[dict[str, Any]] = []

    def listener(payload: dict[str, Any]) -> None:
        seen.append(payload)

    telemetry.register_event_listener("set_markup", listener)
    telemetry.register_event_listener("set_markup", listener)
    try:
        telemetry.emit("set_markup", {"length": 12})
        telemetry.emit("replace_excluding", {"replaced": 1})
    finally:
        telemetry.unregister_event_listener("set_markup", listener)

    assert seen == [{"event": "set_markup", "length": 12}]
    telemetry.emit("set_markup", {"length": 1})
    assert len(seen) == 1


def test_failing_listener_does_not_break_emit() -> None:
    recorder = telemetry.EventRecorder()

    def broken(payload: dict[str, Any]) -> None:
        raise RuntimeError("listener failure")

    telemetry.register_event_listener("operation_failed", broken)
    telemetry.register_event_listener("operation_failed", recorder)
    try:
        telemetry.emit("operation_failed", {"operation": "get_markup"})
    finally:
        telemetry.unregister_event_listener("operation_failed", broken)
        telemetry.unregister_event_listener("operation_failed", recorder)

    assert recorder.tail() == [{"event": "operation_failed", "operation": "get_markup"}]


def test_event_recorder_keeps_the_most_recent_events() -> None:
    recorder = telemetry.EventRecorder(capacity=10)

    for index in range(15):
        recorder({"event": "tick", "index": index})

    assert len(recorder) == 10
    assert [event["index"] for event in recorder.tail(2)] == [13, 14]


def test_listening_unsubscribes_when_the_block_ends() -> None:
    recorder = telemetry.EventRecorder()

    with telemetry.listening(["replace_excluding", "set_markup"], recorder):
        telemetry.emit("replace_excluding", {"replaced": 2})
        telemetry.emit("set_markup")
    telemetry.emit("set_markup")

    assert recorder.names() == ["replace_excluding", "set_markup"]
