"""Event emitter keyed by event name.

The EventEmitter lets components publish and subscribe to named events
without direct coupling. Connections use it for their namespaced
``domain:event`` keys and the ``close`` notification; domain proxies use a
separate instance to re-emit domain events under their bare names.

Event Handler Contract:
    Event handlers MUST be synchronous (non-async) functions. This is enforced
    at subscription time. Handlers should be fast coordinators that schedule
    async work rather than executing it directly.

    Good: handler schedules async work via asyncio.create_task()
    Bad:  handler is async and tries to await operations
"""

import inspect
from typing import Any, Callable, Optional

from domproxy.logger import get_logger

logger = get_logger("events.emitter")

# Type alias for event handlers - must be synchronous
EventHandler = Callable[..., None]


class EventEmitter:
    """Publish-subscribe registry of handlers by event name.

    Example:
        ```python
        emitter = EventEmitter()

        def on_changed(path, stats):
            print(f"{path} changed")

        emitter.on("changed", on_changed)
        emitter.emit("changed", "/tmp/file.txt", {"size": 10})
        ```

    Thread safety:
        This implementation is NOT thread-safe. It assumes all operations
        happen within the same async event loop.
    """

    def __init__(self):
        self._handlers: dict[str, list[EventHandler]] = {}
        """Registry of event handlers by event name."""

    def on(self, event: str, handler: EventHandler) -> None:
        """
        Subscribe a handler to an event.

        Args:
            event: Name of the event
            handler: Callback invoked with the positional arguments passed to `emit`.
                    MUST be synchronous (non-async).

        Raises:
            TypeError: If handler is an async function (coroutine function)
        """
        if inspect.iscoroutinefunction(handler):
            raise TypeError(
                f"Event handlers must be synchronous functions. "
                f"Handler {getattr(handler, '__name__', handler)!r} is an async function (coroutine function). "
                f"To perform async work, schedule it using asyncio.create_task() instead."
            )

        self._handlers.setdefault(event, []).append(handler)
        logger.debug(f"Subscribed handler for '{event}'")

    def once(self, event: str, handler: EventHandler) -> None:
        """Subscribe a handler that is removed after its first call."""
        if inspect.iscoroutinefunction(handler):
            raise TypeError("Event handlers must be synchronous functions.")

        def _once(*args: Any) -> None:
            self.off(event, _once)
            handler(*args)

        _once.listener = handler  # type: ignore[attr-defined]
        self.on(event, _once)

    def off(self, event: str, handler: Optional[EventHandler] = None) -> None:
        """
        Unsubscribe a handler, or every handler of an event when handler is None.

        Note:
            Removing a handler that was never subscribed is a no-op.
        """
        handlers = self._handlers.get(event)
        if not handlers:
            return

        if handler is None:
            del self._handlers[event]
            logger.debug(f"Unsubscribed all handlers for '{event}'")
            return

        for registered in handlers:
            if registered == handler or getattr(registered, "listener", None) == handler:
                handlers.remove(registered)
                logger.debug(f"Unsubscribed handler for '{event}'")
                break
        else:
            logger.debug(f"Handler not found in subscriptions for '{event}'")

        if not handlers:
            del self._handlers[event]

    def off_prefix(self, prefix: str) -> int:
        """
        Unsubscribe every handler of every event whose name starts with prefix.

        Returns:
            Number of handlers removed
        """
        removed = 0
        for event in [name for name in self._handlers if name.startswith(prefix)]:
            removed += len(self._handlers.pop(event))
        logger.debug(f"Unsubscribed {removed} handler(s) for events starting with '{prefix}'")
        return removed

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every handler subscribed to an event.

        Args:
            event: Name of the event
            *args: Positional arguments passed to each handler

        Returns:
            True if at least one handler was called, False otherwise

        Execution Model:
            Handlers are called synchronously in the order they were subscribed,
            over a snapshot taken before the first call, so handlers may
            subscribe or unsubscribe while the event is being delivered.

        Error Handling:
            If a handler raises an exception, it is logged and does not prevent
            other handlers from being called.
        """
        handlers = list(self._handlers.get(event, []))

        if not handlers:
            logger.debug(f"No handlers subscribed for '{event}'")
            return False

        logger.debug(f"Emitting '{event}' to {len(handlers)} handler(s)")

        for handler in handlers:
            try:
                handler(*args)
            except Exception as e:
                logger.opt(exception=e).error(f"Error in event handler for '{event}': {e}")
        return True

    def get_listeners(self, event: str) -> list[EventHandler]:
        """Return a copy of the handlers subscribed to an event."""
        return list(self._handlers.get(event, []))

    def event_names(self) -> list[str]:
        """Return the names of events that have at least one handler."""
        return list(self._handlers)

    def clear(self) -> None:
        """
        Clear all event subscriptions.

        This is useful for cleanup or testing scenarios.
        """
        self._handlers.clear()
        logger.debug("Event emitter cleared")
