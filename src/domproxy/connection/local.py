"""In-process connection whose host loads domain definitions from Python files.

A domain definition is a Python module exposing ``init(manager)``:

    def init(manager):
        manager.register_command("files", "stat", stat_file)
        manager.register_event("files", "changed")

Commands may be plain or async functions. Definitions emit events with
``manager.emit_event("files", "changed", path)``.
"""

import asyncio
import importlib.util
import inspect
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from domproxy.events import EventEmitter
from domproxy.exceptions import ConnectionClosedError, DomainLoadError, UnknownCommandError
from domproxy.logger import get_logger
from domproxy.utils import domain_pref_key
from .base import BaseConnection, DomainInterface
from .lifecycle import ConnectionStatus

logger = get_logger("connection.local")

EVENT_EMITTED = "event"
EVENT_REGISTERED = "eventRegistered"


class DomainManager:
    """Registry of the domains, commands and events hosted in this process."""

    def __init__(self):
        self.events = EventEmitter()
        self._commands: dict[str, dict[str, Callable[..., Any]]] = {}
        self._event_names: dict[str, set[str]] = {}
        self._loaded_paths: set[str] = set()

    def load_domain_module(self, path: str) -> None:
        """
        Import a domain definition and run its ``init(manager)``.

        Paths that were already loaded are skipped.

        Raises:
            DomainLoadError: If the file is missing, cannot be imported, has no
                ``init`` function, or ``init`` fails
        """
        resolved = Path(path).expanduser().resolve()
        if str(resolved) in self._loaded_paths:
            logger.debug(f"Domain definition already loaded: {resolved}")
            return

        if not resolved.is_file():
            raise DomainLoadError(path, "file not found")

        module_name = f"domproxy_domain_{domain_pref_key(str(resolved))}"
        spec = importlib.util.spec_from_file_location(module_name, resolved)
        if spec is None or spec.loader is None:
            raise DomainLoadError(path, "not a Python module")

        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise DomainLoadError(path, f"import failed: {e}") from e

        init = getattr(module, "init", None)
        if not callable(init):
            raise DomainLoadError(path, "module has no init(manager) function")

        try:
            init(self)
        except Exception as e:
            raise DomainLoadError(path, f"init failed: {e}") from e

        self._loaded_paths.add(str(resolved))
        logger.info(f"Loaded domain definition {resolved}")

    def register_command(self, domain: str, name: str, fn: Callable[..., Any]) -> None:
        if not callable(fn):
            raise TypeError(f"Command {domain}.{name} must be callable")
        self._commands.setdefault(domain, {})[name] = fn
        self._event_names.setdefault(domain, set())
        logger.debug(f"Registered command {domain}.{name}")

    def register_event(self, domain: str, name: str) -> None:
        self._commands.setdefault(domain, {})
        self._event_names.setdefault(domain, set()).add(name)
        self.events.emit(EVENT_REGISTERED, domain, name)

    def emit_event(self, domain: str, name: str, *params: Any) -> None:
        if name not in self._event_names.get(domain, set()):
            logger.warning(f"Emitting unregistered event {domain}:{name}")
        self.events.emit(EVENT_EMITTED, domain, name, params)

    def has_domain(self, domain: str) -> bool:
        return domain in self._commands

    async def exec_command(self, domain: str, name: str, args: tuple) -> Any:
        fn = self._commands.get(domain, {}).get(name)
        if fn is None:
            raise UnknownCommandError(domain, name)

        result = fn(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def interface(self) -> dict[str, DomainInterface]:
        return {
            domain: DomainInterface(
                commands=sorted(commands),
                events=sorted(self._event_names.get(domain, set())),
            )
            for domain, commands in self._commands.items()
        }


class LocalConnection(BaseConnection):
    """Connection to a DomainManager living in the same process."""

    def __init__(
        self,
        manager: Optional[DomainManager] = None,
        on_status_change: Optional[Callable[[ConnectionStatus], None]] = None,
    ):
        super().__init__(on_status_change=on_status_change)
        self.manager = manager or DomainManager()
        self._is_open = False

        self.manager.events.on(EVENT_EMITTED, self._on_host_event)
        self.manager.events.on(EVENT_REGISTERED, self.register_event)

    def drop(self) -> Optional[asyncio.Future]:
        """
        Simulate losing the link to the host.

        Returns:
            The reconnection future handed to ``close`` listeners, or None if
            the link was not open.
        """
        if not self._is_open:
            return None
        self._is_open = False
        return self._handle_close("link dropped")

    async def _open(self) -> None:
        self._is_open = True

    async def _close(self) -> None:
        self._is_open = False

    async def _load_domains(self, paths: list[str]) -> Mapping[str, DomainInterface]:
        for path in paths:
            self.manager.load_domain_module(path)
        return self.manager.interface()

    async def _send_command(self, domain: str, command: str, args: tuple) -> Any:
        if not self._is_open:
            raise ConnectionClosedError(f"Cannot run {domain}.{command}: connection is not open")
        return await self.manager.exec_command(domain, command, args)

    def _on_host_event(self, domain: str, name: str, params: tuple) -> None:
        if self._is_open:
            self.dispatch_event(domain, name, *params)
