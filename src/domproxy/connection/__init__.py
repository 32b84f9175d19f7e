"""Connections carrying domain commands and events to and from a host."""

from .base import BaseConnection, Connection, DomainCommand, DomainInterface
from .lifecycle import ConnectionLifecycle, ConnectionStatus
from .local import DomainManager, LocalConnection

__all__ = [
    "BaseConnection",
    "Connection",
    "ConnectionLifecycle",
    "ConnectionStatus",
    "DomainCommand",
    "DomainInterface",
    "DomainManager",
    "LocalConnection",
]
