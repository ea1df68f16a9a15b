"""SysV init script backend."""

import os
import shutil
import signal
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional

import psutil

from hostsvc.backends.base import CommandRunner, InitSystemBackend
from hostsvc.backends.templates import SYSV_INIT_SCRIPT_TEMPLATE
from hostsvc.config import ServiceConfig
from hostsvc.status import InitSystem, StepResult

ProcessLauncher = Callable[[List[str]], int]


def launch_detached(args: List[str]) -> int:
    """Start `args` in a new session with stdio detached and return its pid."""
    process = subprocess.Popen(
        args,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
        close_fds=True,
    )
    return process.pid


class SysVBackend(InitSystemBackend):
    """
    Legacy init script backend.

    The script written by `register` is what the boot sequencer runs; the
    control verbs here implement the same start/stop contract in-process
    against the same PID file.
    """

    init_system = InitSystem.LEGACY_SCRIPT

    def __init__(
        self,
        config: ServiceConfig,
        runner: Optional[CommandRunner] = None,
        is_process_alive: Optional[Callable[[int], bool]] = None,
        launcher: Optional[ProcessLauncher] = None,
        send_signal: Optional[Callable[[int, int], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        which: Callable[[str], Optional[str]] = shutil.which
    ):
        super().__init__(config, runner)
        self._is_process_alive = is_process_alive or psutil.pid_exists
        self._launcher = launcher or launch_detached
        self._send_signal = send_signal or os.kill
        self._sleep = sleep
        self._which = which
        self.pid_file = config.pid_file_path

    @property
    def definition_path(self) -> Path:
        return self.config.legacy_script_path

    @property
    def definition_mode(self) -> int:
        return 0o755

    def artifact_paths(self) -> List[Path]:
        return [self.definition_path, self.pid_file]

    def render(self) -> str:
        return SYSV_INIT_SCRIPT_TEMPLATE.format(
            service_name=self.service_name,
            exec_path=self.config.binary_path,
            pid_file=self.pid_file,
            restart_pause=f'{self.config.restart_pause:g}',
        )

    def is_installed(self) -> bool:
        """Whether the init script exists and is executable."""
        path = self.definition_path
        return path.is_file() and os.access(path, os.X_OK)

    def read_pid(self) -> Optional[int]:
        """Return the recorded pid, or None if the PID file is missing or unreadable."""
        try:
            return int(self.pid_file.read_text().strip())
        except FileNotFoundError:
            return None
        except (ValueError, OSError) as e:
            self.logger.debug('Ignoring unreadable PID file %s: %s', self.pid_file, e)
            return None

    def is_running(self) -> bool:
        pid = self.read_pid()
        return pid is not None and self._is_process_alive(pid)

    def start(self) -> StepResult:
        pid = self.read_pid()
        if pid is not None and self._is_process_alive(pid):
            self.logger.warning('%s is already running (PID %d)', self.service_name, pid)
            return StepResult.degraded(f'{self.service_name} is already running')
        if pid is not None:
            self.logger.info('Replacing stale PID file (PID %d is not alive)', pid)

        self.logger.info('Starting %s', self.service_name)
        try:
            new_pid = self._launcher([str(self.config.binary_path)])
        except OSError as e:
            self.logger.warning('Failed to start %s: %s', self.service_name, e)
            return StepResult.degraded(f'Failed to start {self.service_name}: {e}')

        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(f'{new_pid}\n')
        self.logger.info('%s started (PID %d)', self.service_name, new_pid)
        return StepResult.ok()

    def stop(self) -> StepResult:
        if not self.pid_file.exists():
            self.logger.info('%s is not running', self.service_name)
            return StepResult.ok(f'{self.service_name} is not running')

        pid = self.read_pid()
        if pid is not None:
            self.logger.info('Stopping %s (PID %d)', self.service_name, pid)
            try:
                self._send_signal(pid, signal.SIGTERM)
            except ProcessLookupError:
                self.logger.debug('PID %d no longer exists', pid)
            except PermissionError as e:
                self.logger.warning('Could not signal PID %d: %s', pid, e)

        self.pid_file.unlink(missing_ok=True)
        self.logger.info('%s stopped', self.service_name)
        return StepResult.ok()

    def restart(self) -> StepResult:
        self.stop()
        self._sleep(self.config.restart_pause)
        return self.start()

    def enable(self) -> StepResult:
        self.logger.info('Adding %s to the boot sequence', self.service_name)
        return self._run(['update-rc.d', self.service_name, 'defaults'])

    def disable(self) -> StepResult:
        if self._which('update-rc.d') is None:
            self.logger.debug('update-rc.d not found, no boot sequence entry to remove')
            return StepResult.ok('update-rc.d not available')
        self.logger.info('Removing %s from the boot sequence', self.service_name)
        return self._run(['update-rc.d', '-f', self.service_name, 'remove'])
