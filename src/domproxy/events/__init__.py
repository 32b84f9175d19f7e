"""Named event publish/subscribe used by connections and domain proxies.

Example:
    ```python
    from domproxy.events import EventEmitter

    emitter = EventEmitter()
    emitter.on("log", lambda level, message: print(level, message))
    emitter.emit("log", "info", "hello")
    ```
"""

from .emitter import EventEmitter, EventHandler

__all__ = [
    "EventEmitter",
    "EventHandler",
]
