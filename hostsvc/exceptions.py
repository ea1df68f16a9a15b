"""Service lifecycle exceptions."""


class ServiceManagerError(Exception):
    """Base exception for fatal lifecycle errors."""
    exit_code = 1


class NotPrivilegedError(ServiceManagerError, PermissionError):
    """Raised when a mutating command runs without root privileges."""
    exit_code = 1


class InstallRootMissingError(ServiceManagerError):
    """Raised when the installation root directory does not exist."""
    exit_code = 3


class FetchError(ServiceManagerError):
    """Raised when the service executable could not be retrieved."""
    exit_code = 4


class TransportUnavailableError(FetchError):
    """Raised when no download transport is installed on the host."""
    pass
