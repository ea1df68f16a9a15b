"""Abstract base class for init system backends."""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional

from hostsvc.config import ServiceConfig
from hostsvc.status import InitSystem, StepResult

CommandRunner = Callable[..., subprocess.CompletedProcess]


def detect_init_system(config: ServiceConfig) -> InitSystem:
    """Probe the host once for the unit supervisor's runtime marker directory."""
    if config.supervisor_marker.is_dir():
        return InitSystem.UNIT_SUPERVISOR
    return InitSystem.LEGACY_SCRIPT


class InitSystemBackend(ABC):
    """
    Abstract base class for init system backends.

    Control verbs are best effort: they return a degraded StepResult instead
    of raising when the init system refuses or is unavailable.
    """

    init_system: InitSystem

    def __init__(self, config: ServiceConfig, runner: Optional[CommandRunner] = None):
        """
        Initialize the backend.

        Args:
            config: Service configuration.
            runner: Callable with the signature of subprocess.run, used for
                every external command.
        """
        self.config = config
        self.service_name = config.service_name
        self._runner = runner or subprocess.run
        self.logger = logging.getLogger(f'{self.__class__.__name__}.{config.service_name}')

    @property
    @abstractmethod
    def definition_path(self) -> Path:
        """File this backend registers the service with."""
        pass

    @abstractmethod
    def render(self) -> str:
        """Content of the registration file."""
        pass

    @abstractmethod
    def enable(self) -> StepResult:
        """Register the service to start at boot."""
        pass

    @abstractmethod
    def disable(self) -> StepResult:
        """Remove the service from the boot sequence."""
        pass

    @abstractmethod
    def start(self) -> StepResult:
        """Start the service."""
        pass

    @abstractmethod
    def stop(self) -> StepResult:
        """Stop the service."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Whether the service is currently running."""
        pass

    @property
    def definition_mode(self) -> int:
        return 0o644

    def artifact_paths(self) -> List[Path]:
        """Files owned by this backend, removed on uninstall."""
        return [self.definition_path]

    def register(self) -> StepResult:
        """
        Write the registration file.

        Rewriting an existing file with identical content is a no-op, so
        registering twice leaves the host unchanged.
        """
        path = self.definition_path
        content = self.render()
        if path.is_file() and path.read_text() == content:
            os.chmod(path, self.definition_mode)
            self.logger.debug('%s is already up to date', path)
            return StepResult.ok(f'{path} unchanged')

        self.logger.info('Writing %s', path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        os.chmod(path, self.definition_mode)
        return StepResult.ok(f'{path} written')

    def _run(self, args: List[str]) -> StepResult:
        """Run an external command; failures degrade instead of raising."""
        self.logger.debug('Running: %s', ' '.join(args))
        try:
            result = self._runner(
                args, capture_output=True, text=True, check=False,
                timeout=self.config.subprocess_timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            self.logger.warning('Command %s failed: %s', args[0], e)
            return StepResult.degraded(f'{" ".join(args)}: {e}')

        if result.returncode != 0:
            stderr = (result.stderr or '').strip()
            self.logger.warning('Command "%s" exited with %s: %s', ' '.join(args), result.returncode, stderr)
            return StepResult.degraded(f'{" ".join(args)} exited with {result.returncode}')
        return StepResult.ok()

    def _succeeds(self, args: List[str]) -> bool:
        """Run a query command and report whether it exited with 0."""
        try:
            result = self._runner(
                args, capture_output=True, text=True, check=False,
                timeout=self.config.subprocess_timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            self.logger.debug('Command %s failed: %s', args[0], e)
            return False
        return result.returncode == 0
