"""Connection contract and the transport-agnostic base connection."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Sequence, Union

from pydantic import BaseModel, Field

from domproxy.events import EventEmitter, EventHandler
from domproxy.exceptions import ConnectionClosedError, ConnectionFailedError
from domproxy.logger import get_logger
from .lifecycle import ConnectionLifecycle, ConnectionStatus

logger = get_logger("connection.base")

CLOSE_EVENT = "close"

DomainCommand = Callable[..., Awaitable[Any]]


class DomainInterface(BaseModel):
    """Commands and events a host advertises for one domain."""

    commands: list[str] = Field(default_factory=list, description="Names of the domain's commands")
    events: list[str] = Field(default_factory=list, description="Names of the domain's events")


class Connection(Protocol):
    """Protocol for the connection a domain proxy drives.

    Any object with this surface can back a DomainProxy; BaseConnection is
    the implementation shipped with the package.
    """

    domains: dict[str, dict[str, DomainCommand]]
    domain_events: dict[str, set[str]]

    def connected(self) -> bool:
        """Check if the link to the host is currently open."""
        ...

    async def connect(self, auto_reconnect: bool = False) -> None:
        """Open the link to the host."""
        ...

    async def load_domains(self, paths: Union[str, Sequence[str]], auto_reload: bool = False) -> None:
        """Load domain definitions on the host and refresh the domain tables."""
        ...

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe to a connection event (``close`` or ``domain:event``)."""
        ...

    def off_prefix(self, prefix: str) -> int:
        """Remove every listener of every event starting with prefix."""
        ...

    def get_listeners(self, event: str) -> list[EventHandler]:
        """Return the listeners subscribed to an event."""
        ...


class BaseConnection(ABC):
    """
    Connection bookkeeping shared by every transport.

    Keeps the link status, the tables of known domains, commands and events,
    and the event bus carrying ``domain:event`` notifications and ``close``.
    Subclasses provide the transport through four hooks:

    - `_open()` / `_close()` establish and tear down the link
    - `_load_domains(paths)` loads definitions on the host and returns its interface
    - `_send_command(domain, command, args)` runs a command on the host

    A transport that loses its link calls `_handle_close()`. Listeners of
    ``close`` receive a future for the reconnection in progress.
    """

    def __init__(
        self,
        on_status_change: Optional[Callable[[ConnectionStatus], None]] = None,
    ):
        """
        Initialize the connection.

        Args:
            on_status_change: Callback invoked when connection status changes
        """
        self.domains: dict[str, dict[str, DomainCommand]] = {}
        self.domain_events: dict[str, set[str]] = {}

        self._events = EventEmitter()
        self._lifecycle = ConnectionLifecycle(on_status_change=on_status_change)
        self._auto_reconnect = False
        self._auto_reload = False
        self._registered_paths: list[str] = []

    # --------------------------------------------------------------------- #
    # Status
    # --------------------------------------------------------------------- #

    @property
    def status(self) -> ConnectionStatus:
        """Current connection status reported by the lifecycle."""
        return self._lifecycle.status

    @property
    def generation(self) -> int:
        """Number of times the link has been established."""
        return self._lifecycle.generation

    @property
    def close_reason(self) -> Optional[str]:
        """Why the link last went down, if it is down."""
        return self._lifecycle.close_reason

    @property
    def registered_paths(self) -> list[str]:
        """Domain paths reloaded after every reconnection."""
        return list(self._registered_paths)

    def connected(self) -> bool:
        """Whether the link to the host is open."""
        return self._lifecycle.is_connected

    # --------------------------------------------------------------------- #
    # Connection lifecycle
    # --------------------------------------------------------------------- #

    async def connect(self, auto_reconnect: bool = False) -> None:
        """
        Open the link to the host.

        Args:
            auto_reconnect: Reconnect automatically whenever the link closes.

        Raises:
            ConnectionFailedError: If the transport cannot open the link
        """
        self._auto_reconnect = auto_reconnect
        self._lifecycle.set_status(
            ConnectionStatus.RECONNECTING if self._lifecycle.generation else ConnectionStatus.CONNECTING
        )

        try:
            await self._open()
        except Exception as e:
            message = f"Failed to connect: {e}"
            logger.error(message)
            self._lifecycle.set_status(ConnectionStatus.ERROR, message)
            raise ConnectionFailedError(message) from e

        self._lifecycle.set_status(ConnectionStatus.CONNECTED)
        logger.info("Connection established")

        if self._auto_reload and self._registered_paths:
            logger.debug(f"Reloading {len(self._registered_paths)} registered domain path(s)")
            await self.load_domains(list(self._registered_paths))

    async def disconnect(self) -> None:
        """Close the link deliberately; no reconnection follows."""
        self._auto_reconnect = False
        if not self.connected():
            logger.debug("Disconnect requested while not connected")
            return

        logger.info("Disconnect requested")
        await self._close()
        self._handle_close("disconnect requested")

    def _handle_close(self, reason: str = "link lost") -> "asyncio.Future[None]":
        """
        Mark the link closed and notify ``close`` listeners.

        Args:
            reason: Why the link went down, kept as `close_reason`

        Returns:
            The reconnection future passed to listeners. It fails with
            ConnectionClosedError when auto-reconnect is disabled.
        """
        self._lifecycle.set_status(ConnectionStatus.DISCONNECTED, reason)

        if self._auto_reconnect:
            logger.warning(f"Connection closed ({reason}); reconnecting")
            reconnection = asyncio.ensure_future(self.connect(True))
        else:
            logger.info(f"Connection closed ({reason})")
            reconnection = asyncio.get_running_loop().create_future()
            reconnection.set_exception(
                ConnectionClosedError("Connection closed and auto-reconnect is disabled")
            )

        reconnection.add_done_callback(_log_reconnection_failure)
        self._events.emit(CLOSE_EVENT, reconnection)
        return reconnection

    # --------------------------------------------------------------------- #
    # Domains
    # --------------------------------------------------------------------- #

    async def load_domains(
        self,
        paths: Union[str, Sequence[str]],
        auto_reload: bool = False,
    ) -> None:
        """
        Load domain definitions on the host and refresh the domain tables.

        Args:
            paths: One path or a list of paths to domain definitions
            auto_reload: Remember the paths and reload them after every reconnection

        Raises:
            ConnectionClosedError: If the link is not open
        """
        paths = [paths] if isinstance(paths, str) else list(paths)

        if not self.connected():
            raise ConnectionClosedError("Cannot load domains: connection is not open")

        if auto_reload:
            self._auto_reload = True
            for path in paths:
                if path not in self._registered_paths:
                    self._registered_paths.append(path)

        logger.debug(f"Loading domain definitions: {paths}")
        interface = await self._load_domains(paths)
        self._apply_interface(interface)

    def register_event(self, domain: str, event: str) -> None:
        """Record an event type a domain advertises after it was loaded."""
        self.domain_events.setdefault(domain, set()).add(event)
        logger.debug(f"Registered event {domain}:{event}")

    def dispatch_event(self, domain: str, event: str, *params: Any) -> bool:
        """Deliver a host event to listeners of its ``domain:event`` key."""
        return self._events.emit(f"{domain}:{event}", *params)

    def _apply_interface(self, interface: Mapping[str, DomainInterface]) -> None:
        """Rebuild the command and event tables of every domain in the interface."""
        for domain_name, domain_interface in interface.items():
            self.domains[domain_name] = {
                command: self._command_caller(domain_name, command)
                for command in domain_interface.commands
            }
            self.domain_events[domain_name] = set(domain_interface.events)
            logger.debug(
                f"Domain '{domain_name}': {len(domain_interface.commands)} command(s), "
                f"{len(domain_interface.events)} event(s)"
            )

    def _command_caller(self, domain: str, command: str) -> DomainCommand:
        async def call(*args: Any) -> Any:
            if not self.connected():
                raise ConnectionClosedError(f"Cannot run {domain}.{command}: connection is not open")
            return await self._send_command(domain, command, args)

        call.__name__ = f"{domain}.{command}"
        return call

    # --------------------------------------------------------------------- #
    # Event surface
    # --------------------------------------------------------------------- #

    def on(self, event: str, handler: EventHandler) -> None:
        self._events.on(event, handler)

    def once(self, event: str, handler: EventHandler) -> None:
        self._events.once(event, handler)

    def off(self, event: str, handler: Optional[EventHandler] = None) -> None:
        self._events.off(event, handler)

    def off_prefix(self, prefix: str) -> int:
        return self._events.off_prefix(prefix)

    def get_listeners(self, event: str) -> list[EventHandler]:
        return self._events.get_listeners(event)

    def emit(self, event: str, *args: Any) -> bool:
        return self._events.emit(event, *args)

    # --------------------------------------------------------------------- #
    # Transport hooks
    # --------------------------------------------------------------------- #

    @abstractmethod
    async def _open(self) -> None:
        """Establish the link to the host."""
        pass

    @abstractmethod
    async def _close(self) -> None:
        """Tear down the link to the host."""
        pass

    @abstractmethod
    async def _load_domains(self, paths: list[str]) -> Mapping[str, DomainInterface]:
        """Load domain definitions on the host and return the host's interface."""
        pass

    @abstractmethod
    async def _send_command(self, domain: str, command: str, args: tuple) -> Any:
        """Run a command on the host and return its result."""
        pass


def _log_reconnection_failure(reconnection: asyncio.Future) -> None:
    # Retrieves the exception so a reconnection nobody awaits is not reported as lost.
    if reconnection.cancelled():
        return
    error = reconnection.exception()
    if error is not None:
        logger.debug(f"Reconnection did not complete: {error}")
