"""Exceptions raised or carried in failed futures by domproxy."""


class DomainProxyError(Exception):
    """Base exception for all domproxy errors."""
    pass


class DomainNotReadyError(DomainProxyError):
    """Raised when a domain is not ready and no connection attempt is outstanding."""

    def __init__(self, domain_name: str):
        self.domain_name = domain_name
        super().__init__(f"Domain '{domain_name}' is not ready")


class UnknownCommandError(DomainProxyError):
    """Raised when a command is not part of the loaded domain."""

    def __init__(self, domain_name: str, command_name: str):
        self.domain_name = domain_name
        self.command_name = command_name
        super().__init__(f"Domain '{domain_name}' has no command '{command_name}'")


class ConnectionFailedError(DomainProxyError):
    """Raised when a connection cannot be established."""
    pass


class ConnectionClosedError(DomainProxyError):
    """Raised when an operation needs an open connection and there is none."""
    pass


class DomainLoadError(DomainProxyError):
    """Raised when a domain definition cannot be loaded."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Failed to load domain definition {path}: {message}")
