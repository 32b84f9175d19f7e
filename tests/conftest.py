"""Shared fakes for domproxy tests."""

import asyncio
import inspect
from typing import Any, Callable, Mapping, Optional

import pytest

from domproxy.connection import BaseConnection, ConnectionStatus, DomainInterface


async def settle(rounds: int = 20) -> None:
    """Let scheduled tasks run until the loop is quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeConnection(BaseConnection):
    """Connection whose host is a dict of handlers and whose steps can be held open.

    Set `open_gate` or `load_gate` to an unresolved future to hold `connect()`
    or `load_domains()` until the test resolves it.
    """

    def __init__(
        self,
        interface: Optional[Mapping[str, DomainInterface]] = None,
        handlers: Optional[dict[tuple[str, str], Callable[..., Any]]] = None,
        on_status_change: Optional[Callable[[ConnectionStatus], None]] = None,
    ):
        super().__init__(on_status_change=on_status_change)
        self.interface = dict(interface or {})
        self.handlers = dict(handlers or {})
        self.open_gate: Optional[asyncio.Future] = None
        self.load_gate: Optional[asyncio.Future] = None
        self.open_error: Optional[Exception] = None
        self.load_error: Optional[Exception] = None
        self.open_calls = 0
        self.close_calls = 0
        self.load_calls: list[list[str]] = []
        self.sent: list[tuple[str, str, tuple]] = []

    def simulate_close(self, reconnection: asyncio.Future) -> None:
        """Drop the link and hand `reconnection` to close listeners."""
        self._lifecycle.set_status(ConnectionStatus.DISCONNECTED)
        self.emit("close", reconnection)

    def simulate_reconnected(self) -> None:
        self._lifecycle.set_status(ConnectionStatus.CONNECTED)

    def lose_link(self) -> asyncio.Future:
        return self._handle_close()

    async def _open(self) -> None:
        self.open_calls += 1
        if self.open_gate is not None:
            await self.open_gate
        if self.open_error is not None:
            raise self.open_error

    async def _close(self) -> None:
        self.close_calls += 1

    async def _load_domains(self, paths: list[str]) -> Mapping[str, DomainInterface]:
        self.load_calls.append(paths)
        if self.load_gate is not None:
            await self.load_gate
        if self.load_error is not None:
            raise self.load_error
        return self.interface

    async def _send_command(self, domain: str, command: str, args: tuple) -> Any:
        self.sent.append((domain, command, args))
        result = self.handlers[(domain, command)](*args)
        if inspect.isawaitable(result):
            result = await result
        return result


@pytest.fixture
def files_interface() -> dict[str, DomainInterface]:
    """Interface of a host serving a ``files`` domain."""
    return {
        "files": DomainInterface(commands=["ping", "stat"], events=["changed"]),
    }


@pytest.fixture
def files_handlers() -> dict[tuple[str, str], Callable[..., Any]]:
    async def stat(path: str) -> dict[str, Any]:
        return {"path": path, "size": 10}

    return {
        ("files", "ping"): lambda: "pong",
        ("files", "stat"): stat,
    }
