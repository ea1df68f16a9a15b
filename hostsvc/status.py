"""Step results, init system variants and service status types."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StepStatus(Enum):
    """Outcome of a best-effort step."""
    OK = "OK"
    DEGRADED = "DEGRADED"


@dataclass(frozen=True)
class StepResult:
    """Result of a non-fatal step. Fatal failures are raised, never returned."""
    status: StepStatus
    message: str = ''

    @classmethod
    def ok(cls, message: str = '') -> 'StepResult':
        return cls(StepStatus.OK, message)

    @classmethod
    def degraded(cls, message: str) -> 'StepResult':
        return cls(StepStatus.DEGRADED, message)

    @property
    def is_degraded(self) -> bool:
        return self.status == StepStatus.DEGRADED


class InitSystem(Enum):
    """Init system detected on the host."""
    UNIT_SUPERVISOR = "UNIT_SUPERVISOR"
    LEGACY_SCRIPT = "LEGACY_SCRIPT"


class InstallationStatus(Enum):
    """Status indicating whether the service is installed."""
    INSTALLED = "INSTALLED"
    NOT_INSTALLED = "NOT_INSTALLED"


class RunningStatus(Enum):
    """Status indicating whether the service is currently running."""
    RUNNING = "RUNNING"
    NOT_RUNNING = "NOT_RUNNING"


class ServiceStatus:
    """Observed status of the service."""

    def __init__(
        self,
        installation_status: InstallationStatus,
        running_status: RunningStatus,
        init_system: InitSystem,
        binary_path: Optional[str] = None
    ):
        self.installation_status = installation_status
        self.running_status = running_status
        self.init_system = init_system
        self.binary_path = binary_path

    def __str__(self) -> str:
        return (
            f'ServiceStatus('
            f'installation={self.installation_status.name}, '
            f'running={self.running_status.name}, '
            f'init_system={self.init_system.name})'
        )

    def __repr__(self) -> str:
        return self.__str__()
