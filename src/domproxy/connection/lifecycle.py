"""Link status of a domain connection across connect/close generations."""

from enum import Enum
from typing import Callable, Optional

from domproxy.logger import get_logger

logger = get_logger("connection.lifecycle")


class ConnectionStatus(Enum):
    """Connection status enumeration."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


class ConnectionLifecycle:
    """
    Status of the link to the host, plus what happened to the last one.

    Every transition into CONNECTED opens a new generation; domain tables
    loaded in one generation are stale in the next. The reason a link went
    down is kept until the next connection attempt, so ``close`` listeners
    and status callbacks can report it.
    """

    def __init__(
        self,
        on_status_change: Optional[Callable[[ConnectionStatus], None]] = None,
    ):
        """
        Args:
            on_status_change: Callback invoked when connection status changes
        """
        self._status = ConnectionStatus.DISCONNECTED
        self._on_status_change = on_status_change
        self._generation = 0
        self._error_message: Optional[str] = None
        self._close_reason: Optional[str] = None

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED

    @property
    def generation(self) -> int:
        """Number of times the link has been established."""
        return self._generation

    @property
    def error_message(self) -> Optional[str]:
        """Why the last connection attempt failed, while in ERROR."""
        return self._error_message

    @property
    def close_reason(self) -> Optional[str]:
        """Why the link last went down, until the next attempt starts."""
        return self._close_reason

    def set_status(self, status: ConnectionStatus, message: Optional[str] = None) -> None:
        """
        Update connection status and notify callback.

        Args:
            status: New connection status
            message: Error message for ERROR, close reason for DISCONNECTED
        """
        if self._status == status:
            return

        old_status = self._status
        self._status = status
        self._error_message = message if status == ConnectionStatus.ERROR else None
        if status == ConnectionStatus.DISCONNECTED:
            self._close_reason = message
        elif status in (ConnectionStatus.CONNECTING, ConnectionStatus.RECONNECTING):
            self._close_reason = None
        if status == ConnectionStatus.CONNECTED:
            self._generation += 1

        logger.debug(f"Status changed: {old_status.value} -> {status.value} (generation {self._generation})")

        if self._on_status_change:
            try:
                self._on_status_change(status)
            except Exception as e:
                logger.error(f"Error in status change callback: {e}")
