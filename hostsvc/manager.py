"""Service lifecycle manager - install, update and uninstall of the service."""

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, List, Optional

import psutil

from hostsvc.backends.base import CommandRunner, InitSystemBackend, detect_init_system
from hostsvc.backends.systemd import SystemdBackend
from hostsvc.backends.sysv import SysVBackend
from hostsvc.config import ServiceConfig
from hostsvc.exceptions import InstallRootMissingError
from hostsvc.fetcher import ArtifactFetcher
from hostsvc.privilege import PrivilegeGuard
from hostsvc.reference import ReferenceTimestampResolver
from hostsvc.status import (
    InitSystem, InstallationStatus, RunningStatus, ServiceStatus, StepResult
)

ProcessKiller = Callable[[str], int]

KILL_GRACE_SECONDS = 3


def terminate_matching(executable_name: str) -> int:
    """
    Terminate every process running an executable called `executable_name`.

    Processes that survive SIGTERM for the grace period are killed.

    Returns:
        Number of processes found.
    """
    own_pid = os.getpid()
    matches = []
    for proc in psutil.process_iter(['pid', 'name', 'exe', 'cmdline']):
        info = proc.info
        if info['pid'] == own_pid:
            continue
        exe = info.get('exe') or ''
        cmdline = info.get('cmdline') or []
        argv0 = cmdline[0] if cmdline else ''
        if executable_name in (info.get('name'), Path(exe).name, Path(argv0).name):
            matches.append(proc)

    for proc in matches:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            pass

    _, alive = psutil.wait_procs(matches, timeout=KILL_GRACE_SECONDS)
    for proc in alive:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass
    return len(matches)


class ServiceLifecycleManager:
    """
    Installs, updates and removes the service.

    Fatal preconditions raise a ServiceManagerError subclass carrying the
    process exit code. Every other failure is absorbed as a degraded
    StepResult, logged as a warning and returned to the caller, so that the
    files being correctly in place does not depend on the service starting.
    """

    def __init__(
        self,
        config: ServiceConfig,
        guard: Optional[PrivilegeGuard] = None,
        fetcher: Optional[ArtifactFetcher] = None,
        resolver: Optional[ReferenceTimestampResolver] = None,
        runner: Optional[CommandRunner] = None,
        is_process_alive: Optional[Callable[[int], bool]] = None,
        launcher: Optional[Callable[[List[str]], int]] = None,
        send_signal: Optional[Callable[[int, int], None]] = None,
        process_killer: Optional[ProcessKiller] = None,
        init_system: Optional[InitSystem] = None,
        which: Optional[Callable[[str], Optional[str]]] = None
    ):
        """
        Initialize the lifecycle manager.

        Args:
            config: Service configuration.
            guard: Privilege check run before every mutating operation.
            fetcher: Downloads the executable.
            resolver: Finds the timestamp reference file.
            runner: Callable with the signature of subprocess.run, shared by
                both init backends.
            is_process_alive: Liveness probe for PIDs recorded by the legacy backend.
            launcher: Starts the executable detached for the legacy backend.
            send_signal: Signals PIDs recorded by the legacy backend.
            process_killer: Terminates stray processes by executable name.
            init_system: Active init system; probed from the host if omitted.
            which: PATH lookup used to find the boot sequence tool.
        """
        self.config = config
        self.guard = guard or PrivilegeGuard()
        self.fetcher = fetcher or ArtifactFetcher(config)
        self.resolver = resolver or ReferenceTimestampResolver(config)
        self.systemd = SystemdBackend(config, runner)
        self.sysv = SysVBackend(
            config, runner,
            is_process_alive=is_process_alive,
            launcher=launcher,
            send_signal=send_signal,
            which=which or shutil.which,
        )
        self._process_killer = process_killer or terminate_matching
        self.init_system = init_system or detect_init_system(config)
        self.logger = logging.getLogger(f'{self.__class__.__name__}.{config.service_name}')

        self.logger.debug('Active init system: %s', self.init_system.name)

    @property
    def active(self) -> InitSystemBackend:
        """Backend matching the init system detected on this host."""
        if self.init_system == InitSystem.UNIT_SUPERVISOR:
            return self.systemd
        return self.sysv

    @property
    def uses_supervisor(self) -> bool:
        return self.init_system == InitSystem.UNIT_SUPERVISOR

    def install(self) -> List[StepResult]:
        """
        Install, register and start the service.

        Returns:
            Degraded steps, empty if everything succeeded.

        Raises:
            NotPrivilegedError: If not running as root.
            InstallRootMissingError: If the installation root does not exist.
            FetchError: If the executable could not be downloaded.
        """
        self.guard.require_elevated()
        self.logger.info('Installing %s', self.config.service_name)

        if not self.config.install_root.is_dir():
            self.logger.error('Installation root %s does not exist', self.config.install_root)
            raise InstallRootMissingError(f'Installation root {self.config.install_root} does not exist')

        self.fetcher.fetch(self.config.download_url, self.config.binary_path)

        # Both files are written whichever init system is active so that
        # uninstall never depends on what was detected at install time.
        self.systemd.register()
        self.sysv.register()

        self._sync_timestamps([
            self.config.binary_path,
            self.config.unit_path,
            self.config.legacy_script_path,
        ])

        results = []
        if self.uses_supervisor:
            results.append(self.systemd.reload())
        results.append(self.active.enable())
        start = self.active.start()
        if start.is_degraded:
            self.logger.warning('Service failed to start: %s', start.message)
        results.append(start)

        return self._finish('Installation', results)

    def update(self) -> List[StepResult]:
        """
        Replace the executable with the latest download and restart the service.

        A prior installation is not required.

        Returns:
            Degraded steps, empty if everything succeeded.

        Raises:
            NotPrivilegedError: If not running as root.
            FetchError: If the executable could not be downloaded.
        """
        self.guard.require_elevated()
        self.logger.info('Updating %s', self.config.service_name)

        results = []
        controllable = self.uses_supervisor or self.sysv.is_installed()
        if controllable:
            self.logger.info('Stopping service')
            results.append(self.active.stop())

        self.fetcher.fetch(self.config.download_url, self.config.binary_path)
        self._sync_timestamps([self.config.binary_path])

        if controllable:
            self.logger.info('Starting service')
            start = self.active.start()
            if start.is_degraded:
                self.logger.warning('Service failed to start: %s', start.message)
            results.append(start)
        else:
            results.append(StepResult.degraded(f'{self.config.legacy_script_path} is missing, service not started'))

        return self._finish('Update', results)

    def uninstall(self) -> List[StepResult]:
        """
        Stop the service and remove every file it installed.

        Returns:
            Degraded steps, empty if everything succeeded.

        Raises:
            NotPrivilegedError: If not running as root.
        """
        self.guard.require_elevated()
        self.logger.info('Uninstalling %s', self.config.service_name)

        results = []
        if self.uses_supervisor:
            if self.systemd.definition_path.exists():
                results.append(self.systemd.stop())
                results.append(self.systemd.disable())
            else:
                self.logger.debug('No unit file at %s, nothing to stop', self.systemd.definition_path)

        if self.sysv.is_installed():
            results.append(self.sysv.stop())
            results.append(self.sysv.disable())

        executable_name = self.config.binary_path.name
        found = self._process_killer(executable_name)
        if found:
            self.logger.info('Terminated %d leftover %s process(es)', found, executable_name)

        for path in [self.config.binary_path, self.config.staging_path,
                     *self.systemd.artifact_paths(), *self.sysv.artifact_paths()]:
            self._remove(path)

        if self.uses_supervisor:
            results.append(self.systemd.reload())

        return self._finish('Uninstallation', results)

    @property
    def status(self) -> ServiceStatus:
        """Observed status of the service."""
        installed = self.config.binary_path.is_file() and self.active.definition_path.is_file()
        running = installed and self.active.is_running()
        service_status = ServiceStatus(
            InstallationStatus.INSTALLED if installed else InstallationStatus.NOT_INSTALLED,
            RunningStatus.RUNNING if running else RunningStatus.NOT_RUNNING,
            self.init_system,
            str(self.config.binary_path),
        )
        self.logger.debug('Service %s status: %s', self.config.service_name, service_status)
        return service_status

    def _sync_timestamps(self, targets: List[Path]) -> None:
        reference = self.resolver.resolve()
        if reference is None:
            self.logger.warning('No reference file found, skipping timestamp sync')
            return
        self.logger.info('Syncing timestamps from %s', reference)
        self.resolver.apply(reference, targets)

    def _remove(self, path: Path) -> None:
        try:
            path.unlink()
            self.logger.info('Removed %s', path)
        except FileNotFoundError:
            self.logger.debug('%s already absent', path)

    def _finish(self, operation: str, results: List[StepResult]) -> List[StepResult]:
        degraded = [result for result in results if result.is_degraded]
        if degraded:
            self.logger.warning('%s completed with %d warning(s)', operation, len(degraded))
        else:
            self.logger.info('%s completed', operation)
        return degraded
