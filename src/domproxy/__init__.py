"""Proxies for remote command domains over a reconnecting connection."""

from domproxy.config import ProxyConfig, load_config, setup_logging
from domproxy.connection import (
    BaseConnection,
    Connection,
    ConnectionStatus,
    DomainInterface,
    DomainManager,
    LocalConnection,
)
from domproxy.events import EventEmitter
from domproxy.exceptions import (
    ConnectionClosedError,
    ConnectionFailedError,
    DomainLoadError,
    DomainNotReadyError,
    DomainProxyError,
    UnknownCommandError,
)
from domproxy.proxy import DomainProxy, DomainState
from domproxy.utils import domain_pref_key

__all__ = [
    "BaseConnection",
    "Connection",
    "ConnectionClosedError",
    "ConnectionFailedError",
    "ConnectionStatus",
    "DomainInterface",
    "DomainLoadError",
    "DomainManager",
    "DomainNotReadyError",
    "DomainProxy",
    "DomainProxyError",
    "DomainState",
    "EventEmitter",
    "LocalConnection",
    "ProxyConfig",
    "UnknownCommandError",
    "domain_pref_key",
    "load_config",
    "setup_logging",
]
