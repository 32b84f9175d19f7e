"""Tests for EventEmitter."""

import pytest

from domproxy.events import EventEmitter


def test_emit_calls_handlers_in_order():
    emitter = EventEmitter()
    calls = []

    emitter.on("changed", lambda path: calls.append(("first", path)))
    emitter.on("changed", lambda path: calls.append(("second", path)))

    assert emitter.emit("changed", "/a") is True
    assert calls == [("first", "/a"), ("second", "/a")]


def test_emit_without_handlers():
    emitter = EventEmitter()

    assert emitter.emit("changed") is False


def test_same_handler_can_subscribe_twice():
    emitter = EventEmitter()
    calls = []

    emitter.on("changed", calls.append)
    emitter.on("changed", calls.append)
    emitter.emit("changed", 1)

    assert calls == [1, 1]


def test_async_handler_rejected():
    emitter = EventEmitter()

    async def handler():
        pass

    with pytest.raises(TypeError):
        emitter.on("changed", handler)
    with pytest.raises(TypeError):
        emitter.once("changed", handler)


def test_once():
    emitter = EventEmitter()
    calls = []

    emitter.once("changed", calls.append)
    emitter.emit("changed", 1)
    emitter.emit("changed", 2)

    assert calls == [1]
    assert emitter.get_listeners("changed") == []


def test_off_once_handler_before_it_fires():
    emitter = EventEmitter()
    calls = []

    emitter.once("changed", calls.append)
    emitter.off("changed", calls.append)
    emitter.emit("changed", 1)

    assert calls == []


def test_off_single_handler():
    emitter = EventEmitter()
    calls = []

    def first(value):
        calls.append(("first", value))

    def second(value):
        calls.append(("second", value))

    emitter.on("changed", first)
    emitter.on("changed", second)
    emitter.off("changed", first)
    emitter.emit("changed", 1)

    assert calls == [("second", 1)]


def test_off_all_handlers_and_unknown():
    emitter = EventEmitter()
    emitter.on("changed", lambda: None)
    emitter.on("changed", lambda: None)

    emitter.off("changed")
    emitter.off("changed")
    emitter.off("renamed", lambda: None)

    assert emitter.get_listeners("changed") == []
    assert emitter.event_names() == []


def test_off_prefix():
    emitter = EventEmitter()
    emitter.on("files:changed", lambda: None)
    emitter.on("files:changed", lambda: None)
    emitter.on("files:renamed", lambda: None)
    emitter.on("filesystem:changed", lambda: None)

    assert emitter.off_prefix("files:") == 3
    assert emitter.event_names() == ["filesystem:changed"]


def test_handler_error_does_not_stop_others():
    emitter = EventEmitter()
    calls = []

    def broken(value):
        raise RuntimeError("broken")

    emitter.on("changed", broken)
    emitter.on("changed", calls.append)

    assert emitter.emit("changed", 1) is True
    assert calls == [1]


def test_emit_uses_snapshot_of_handlers():
    emitter = EventEmitter()
    calls = []

    def adds_handler(value):
        calls.append(("adds", value))
        emitter.on("changed", lambda v: calls.append(("added", v)))

    emitter.on("changed", adds_handler)
    emitter.emit("changed", 1)

    assert calls == [("adds", 1)]
    assert len(emitter.get_listeners("changed")) == 2


def test_get_listeners_returns_copy():
    emitter = EventEmitter()
    emitter.on("changed", lambda: None)

    emitter.get_listeners("changed").clear()

    assert len(emitter.get_listeners("changed")) == 1


def test_clear():
    emitter = EventEmitter()
    emitter.on("changed", lambda: None)
    emitter.on("renamed", lambda: None)

    emitter.clear()

    assert emitter.event_names() == []
