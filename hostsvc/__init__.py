"""
hostsvc - lifecycle manager for the hostagent background service.

Installs, updates and removes a single service executable on hosts running
either systemd or a SysV style init.
"""
__version__ = "0.1.0"

from hostsvc.manager import ServiceLifecycleManager
from hostsvc.config import ServiceConfig
from hostsvc.privilege import PrivilegeGuard
from hostsvc.fetcher import ArtifactFetcher
from hostsvc.reference import ReferenceTimestampResolver
from hostsvc.status import (
    StepResult,
    StepStatus,
    InitSystem,
    ServiceStatus,
    InstallationStatus,
    RunningStatus,
)
from hostsvc.exceptions import (
    ServiceManagerError,
    NotPrivilegedError,
    InstallRootMissingError,
    FetchError,
    TransportUnavailableError,
)

__all__ = [
    # Main classes
    "ServiceLifecycleManager",
    "ServiceConfig",
    "PrivilegeGuard",
    "ArtifactFetcher",
    "ReferenceTimestampResolver",
    # Status types
    "StepResult",
    "StepStatus",
    "InitSystem",
    "ServiceStatus",
    "InstallationStatus",
    "RunningStatus",
    # Exceptions
    "ServiceManagerError",
    "NotPrivilegedError",
    "InstallRootMissingError",
    "FetchError",
    "TransportUnavailableError",
]
