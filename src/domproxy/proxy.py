"""Proxy exposing the commands and events of one domain over a connection.

The proxy owns its connection and drives it through connect, load and ready.
Commands can be executed at any time: while the domain is not ready they are
deferred until the outstanding connection attempt settles, and rejected when
no attempt is outstanding. Events the host emits as ``domain:event`` are
re-emitted on the proxy under their bare names.

Example:
    ```python
    domain = DomainProxy("files", "/path/to/files_domain.py")
    domain.on("changed", lambda path: print(f"{path} changed"))

    stats = await domain.exec("stat", "/tmp/file.txt")
    ```
"""

import asyncio
import functools
import inspect
from enum import Enum
from typing import Any, Callable, Optional

from domproxy.config import ProxyConfig
from domproxy.connection import Connection, LocalConnection
from domproxy.connection.base import CLOSE_EVENT
from domproxy.events import EventEmitter, EventHandler
from domproxy.exceptions import DomainNotReadyError, UnknownCommandError
from domproxy.logger import get_logger

logger = get_logger("proxy")

LoadErrorSink = Callable[[str, Exception], None]


class DomainState(Enum):
    """Where a domain proxy is in its connect/load sequence."""

    CONNECTING = "connecting"
    LOADING = "loading"
    READY = "ready"
    RELOADING = "reloading"


class DomainProxy:
    """
    Lifecycle manager for a single domain loaded through a connection.

    Readiness is derived, never cached: the proxy is ready when the domain has
    been loaded in the current connection generation and the connection is
    open. While a connect or reload sequence is outstanding its future is kept
    in `pending_readiness`; every new attempt replaces it.

    When the connection closes, the proxy drops the relays it installed on the
    connection, marks the domain unloaded and loads it again once the
    connection's own reconnection future resolves. A failed load is logged and
    reported to `on_load_error`, and clears `pending_readiness`; the proxy
    does not retry it before the next close. Each close starts a new
    generation: a load that settles after a later close only reports its
    failure and leaves the newer attempt's state alone.

    Futures handed to callers are shielded, so a caller cancelling its own
    wait never cancels the shared connect or reload sequence.
    """

    def __init__(
        self,
        domain_name: str,
        domain_path: str,
        *,
        config: Optional[ProxyConfig] = None,
        connection_factory: Optional[Callable[[], Connection]] = None,
        on_load_error: Optional[LoadErrorSink] = None,
    ):
        """
        Create the connection and start connecting and loading the domain.

        Must be called while an asyncio event loop is running.

        Args:
            domain_name: Name of the domain registered by the definition
            domain_path: Location of the domain definition, passed to the connection
            config: Proxy settings (defaults to ProxyConfig())
            connection_factory: Callable returning a new connection (defaults to LocalConnection)
            on_load_error: Called with (domain_name, error) whenever loading fails
        """
        self._domain_name = domain_name
        self._domain_path = domain_path
        self._config = config or ProxyConfig()
        self._on_load_error = on_load_error
        self._events = EventEmitter()
        self._loaded = False
        self._state = DomainState.CONNECTING
        self._generation = 0

        self.connection: Connection = (connection_factory or LocalConnection)()
        self._pending_readiness: Optional[asyncio.Future] = self._start(self._connect_and_load(0))
        self.connection.on(CLOSE_EVENT, self._on_close)

    # --------------------------------------------------------------------- #
    # Properties
    # --------------------------------------------------------------------- #

    @property
    def domain_name(self) -> str:
        return self._domain_name

    @property
    def domain_path(self) -> str:
        return self._domain_path

    @property
    def loaded(self) -> bool:
        """Whether the domain was loaded since the connection last closed."""
        return self._loaded

    @property
    def pending_readiness(self) -> Optional[asyncio.Future]:
        """Future of the outstanding connect or reload sequence, if any."""
        return self._pending_readiness

    @property
    def state(self) -> DomainState:
        return self._state

    # --------------------------------------------------------------------- #
    # Readiness
    # --------------------------------------------------------------------- #

    def ready(self) -> bool:
        """Whether the connection is open and the domain is loaded."""
        return self._loaded and self.connection.connected()

    def promise(self) -> asyncio.Future:
        """
        Get a future that resolves once the domain is ready.

        Returns:
            The outstanding connect or reload future when there is one;
            otherwise an already resolved future if the domain is ready, or
            an already failed one (DomainNotReadyError) if it is not.
        """
        if self._pending_readiness is not None:
            return asyncio.shield(self._pending_readiness)
        if self.ready():
            return _resolved(None)
        return _failed(DomainNotReadyError(self._domain_name))

    # --------------------------------------------------------------------- #
    # Commands
    # --------------------------------------------------------------------- #

    def exec(self, command_name: str, *args: Any) -> asyncio.Future:
        """
        Run a domain command with the given arguments.

        When the domain is ready the command runs immediately. Otherwise it
        runs after the outstanding connect or reload sequence settles, looked
        up in the command table as it is at that point. Errors are never
        raised here; they are carried by the returned future.

        Args:
            command_name: Name of the domain command
            *args: Arguments passed unchanged to the command

        Returns:
            Future resolving with the command's result
        """
        if self.ready():
            return self._exec_connected(command_name, args)
        if self._pending_readiness is not None:
            return asyncio.ensure_future(
                self._exec_deferred(self._pending_readiness, command_name, args)
            )
        return _failed(DomainNotReadyError(self._domain_name))

    def _exec_connected(self, command_name: str, args: tuple) -> asyncio.Future:
        domain = self.connection.domains.get(self._domain_name)
        command = domain.get(command_name) if domain else None
        if command is None:
            return _failed(UnknownCommandError(self._domain_name, command_name))

        try:
            result = command(*args)
        except Exception as e:
            return _failed(e)

        if inspect.isawaitable(result):
            return asyncio.ensure_future(result)
        return _resolved(result)

    async def _exec_deferred(
        self, readiness: asyncio.Future, command_name: str, args: tuple
    ) -> Any:
        await asyncio.shield(readiness)
        return await self._exec_connected(command_name, args)

    # --------------------------------------------------------------------- #
    # Events
    # --------------------------------------------------------------------- #

    def refresh_interface(self) -> None:
        """
        Relay every event the domain advertises under its bare name.

        Relays are installed on the connection once per ``domain:event`` key;
        keys that already have a listener are left alone. Called after every
        load, and by clients after running a command that registers new event
        types.
        """
        event_names = self.connection.domain_events.get(self._domain_name, set())

        for event_name in sorted(event_names):
            connection_event = f"{self._domain_name}:{event_name}"
            if not self.connection.get_listeners(connection_event):
                self.connection.on(connection_event, functools.partial(self._relay, event_name))
                logger.debug(f"Relaying {connection_event}")

    def _relay(self, event_name: str, *params: Any) -> None:
        self._events.emit(event_name, *params)

    def on(self, event: str, handler: EventHandler) -> None:
        self._events.on(event, handler)

    def once(self, event: str, handler: EventHandler) -> None:
        self._events.once(event, handler)

    def off(self, event: str, handler: Optional[EventHandler] = None) -> None:
        self._events.off(event, handler)

    def emit(self, event: str, *args: Any) -> bool:
        return self._events.emit(event, *args)

    def get_listeners(self, event: str) -> list[EventHandler]:
        return self._events.get_listeners(event)

    # --------------------------------------------------------------------- #
    # Connect / load sequence
    # --------------------------------------------------------------------- #

    def _start(self, sequence) -> asyncio.Future:
        task = asyncio.ensure_future(sequence)
        task.add_done_callback(self._log_sequence_failure)
        return task

    def _log_sequence_failure(self, task: asyncio.Future) -> None:
        if task.cancelled():
            logger.warning(f'Readiness sequence of domain "{self._domain_name}" was cancelled')
            return
        error = task.exception()
        if error is not None:
            logger.warning(f'Domain "{self._domain_name}" did not become ready: {error}')

    async def _connect_and_load(self, generation: int) -> None:
        await self.connection.connect(self._config.auto_reconnect)
        await self._load(generation)

    async def _reload_after(self, reconnection: asyncio.Future, generation: int) -> None:
        await reconnection
        await self._load(generation)

    async def _load(self, generation: int) -> None:
        """Load the domain definition and relay its events; failures are reported, not raised."""
        if generation == self._generation:
            self._state = DomainState.LOADING
        try:
            await self.connection.load_domains(self._domain_path, self._config.auto_reload)
        except Exception as e:
            logger.error(f'Error loading domain "{self._domain_name}": {e}')
            if generation == self._generation:
                self._pending_readiness = None
            if self._on_load_error:
                try:
                    self._on_load_error(self._domain_name, e)
                except Exception as sink_error:
                    logger.error(f"Error in load error callback: {sink_error}")
            return

        if generation != self._generation:
            logger.debug(f'Ignoring load of domain "{self._domain_name}" from a closed connection')
            return

        self._loaded = True
        self._pending_readiness = None
        self._state = DomainState.READY
        logger.info(f'Domain "{self._domain_name}" loaded')
        self.refresh_interface()

    def _on_close(self, reconnection: asyncio.Future) -> None:
        self._generation += 1
        removed = self.connection.off_prefix(f"{self._domain_name}:")
        self._loaded = False
        self._state = DomainState.RELOADING
        logger.info(
            f'Connection closed; domain "{self._domain_name}" will reload '
            f"({removed} relay(s) removed)"
        )
        self._pending_readiness = self._start(self._reload_after(reconnection, self._generation))

    def __repr__(self) -> str:
        return (
            f"DomainProxy(domain_name={self._domain_name!r}, "
            f"domain_path={self._domain_path!r}, state={self._state.value})"
        )


def _resolved(value: Any) -> asyncio.Future:
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


def _failed(error: BaseException) -> asyncio.Future:
    future = asyncio.get_running_loop().create_future()
    future.set_exception(error)
    return future
