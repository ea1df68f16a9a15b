"""systemd unit supervisor backend."""

from pathlib import Path

from hostsvc.backends.base import InitSystemBackend
from hostsvc.backends.templates import SYSTEMD_SERVICE_TEMPLATE
from hostsvc.status import InitSystem, StepResult


class SystemdBackend(InitSystemBackend):
    """System-wide systemd service unit."""

    init_system = InitSystem.UNIT_SUPERVISOR

    @property
    def definition_path(self) -> Path:
        return self.config.unit_path

    def render(self) -> str:
        return SYSTEMD_SERVICE_TEMPLATE.format(
            service_name=self.service_name,
            exec_start=self.config.binary_path,
            restart_sec=self.config.restart_sec,
        )

    def reload(self) -> StepResult:
        """Make systemd re-read unit files."""
        return self._systemctl('daemon-reload')

    def enable(self) -> StepResult:
        self.logger.info('Enabling %s', self.config.unit_name)
        return self._systemctl('enable', self.config.unit_name)

    def disable(self) -> StepResult:
        self.logger.info('Disabling %s', self.config.unit_name)
        return self._systemctl('disable', self.config.unit_name)

    def start(self) -> StepResult:
        self.logger.info('Starting %s', self.config.unit_name)
        return self._systemctl('start', self.config.unit_name)

    def stop(self) -> StepResult:
        self.logger.info('Stopping %s', self.config.unit_name)
        return self._systemctl('stop', self.config.unit_name)

    def is_running(self) -> bool:
        return self._succeeds(['systemctl', 'is-active', '--quiet', self.config.unit_name])

    def _systemctl(self, *args: str) -> StepResult:
        return self._run(['systemctl', *args])
