"""Pytest configuration and fixtures for hostsvc tests."""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from hostsvc import (
    ArtifactFetcher,
    PrivilegeGuard,
    ServiceConfig,
    ServiceLifecycleManager,
    InitSystem,
)
from hostsvc.exceptions import FetchError
from hostsvc.fetcher import Transport

# Configure logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

BINARY_CONTENT = b"#!/bin/sh\necho hostagent v2\n"
OLD_BINARY_CONTENT = b"#!/bin/sh\necho hostagent v1\n"
REFERENCE_MTIME_NS = 1_600_000_000 * 10**9


class FakeRunner:
    """Stands in for subprocess.run and records every command."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.returncodes: Dict[Tuple[str, ...], int] = {}
        self.missing: set = set()

    def fail(self, *prefix: str, returncode: int = 1) -> None:
        self.returncodes[prefix] = returncode

    def __call__(self, args, **kwargs) -> subprocess.CompletedProcess:
        args = list(args)
        self.calls.append(args)
        if args[0] in self.missing:
            raise FileNotFoundError(2, 'No such file or directory', args[0])
        returncode = 0
        for prefix, code in self.returncodes.items():
            if tuple(args[:len(prefix)]) == prefix:
                returncode = code
        return subprocess.CompletedProcess(args, returncode, stdout='', stderr='')

    def commands(self, program: str) -> List[List[str]]:
        return [call for call in self.calls if call[0] == program]

    def which(self, program: str) -> Optional[str]:
        """Stands in for shutil.which, honouring `missing`."""
        if program in self.missing:
            return None
        return f'/usr/sbin/{program}'


class FakeTransport(Transport):
    """Writes fixed content, optionally failing after a partial write."""

    name = 'fake'

    def __init__(self, content: bytes = BINARY_CONTENT, fail_after: Optional[int] = None,
                 write: bool = True, available: bool = True):
        self.content = content
        self.fail_after = fail_after
        self.write = write
        self.available = available
        self.downloads: List[Tuple[str, Path]] = []

    def is_available(self) -> bool:
        return self.available

    def download(self, url: str, destination: Path) -> None:
        self.downloads.append((url, destination))
        if not self.write:
            return
        if self.fail_after is not None:
            destination.write_bytes(self.content[:self.fail_after])
            raise FetchError('connection reset by peer')
        destination.write_bytes(self.content)


class FakeProcesses:
    """Liveness probe, launcher and killer sharing one view of running pids."""

    def __init__(self, next_pid: int = 4242):
        self.alive: set = set()
        self.launched: List[List[str]] = []
        self.killed_names: List[str] = []
        self.signals: List[Tuple[int, int]] = []
        self.next_pid = next_pid

    def is_alive(self, pid: int) -> bool:
        return pid in self.alive

    def launch(self, args: List[str]) -> int:
        self.launched.append(args)
        pid = self.next_pid
        self.next_pid += 1
        self.alive.add(pid)
        return pid

    def signal(self, pid: int, sig: int) -> None:
        self.signals.append((pid, sig))
        self.alive.discard(pid)

    def kill_matching(self, name: str) -> int:
        self.killed_names.append(name)
        found = len(self.alive)
        self.alive.clear()
        return found


def snapshot(root: Path) -> Dict[str, Tuple[int, int, bytes]]:
    """Map every file under root to its (mode, mtime_ns, content)."""
    result = {}
    for dirpath, _, filenames in os.walk(root):
        for filename in filenames:
            path = Path(dirpath) / filename
            st = path.stat()
            result[str(path.relative_to(root))] = (st.st_mode, st.st_mtime_ns, path.read_bytes())
    return result


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    """Sandbox standing in for the host filesystem root."""
    root = tmp_path / "host"
    root.mkdir()
    return root


@pytest.fixture
def service_config(host_root: Path) -> ServiceConfig:
    """Fixture providing a ServiceConfig rooted in the sandbox."""
    config = ServiceConfig().rooted(host_root)
    config.install_root.mkdir(parents=True)
    return config


@pytest.fixture
def supervisor_host(service_config: ServiceConfig) -> ServiceConfig:
    """Sandbox whose init system is systemd."""
    service_config.supervisor_marker.mkdir(parents=True)
    service_config.pid_file_path.parent.mkdir(parents=True, exist_ok=True)
    return service_config


@pytest.fixture
def reference_file(service_config: ServiceConfig) -> Path:
    """Release file with a known modification time."""
    path = service_config.reference_primary
    path.write_text("hostagent 2.0.0\n")
    os.utime(path, ns=(REFERENCE_MTIME_NS, REFERENCE_MTIME_NS))
    return path


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def processes() -> FakeProcesses:
    return FakeProcesses()


@pytest.fixture
def make_manager(runner, transport, processes):
    """Factory building a manager whose host interactions are all faked."""

    def factory(config: ServiceConfig, privileged: bool = True,
                init_system: Optional[InitSystem] = None) -> ServiceLifecycleManager:
        return ServiceLifecycleManager(
            config,
            guard=PrivilegeGuard(lambda: privileged),
            fetcher=ArtifactFetcher(config, transports=[transport]),
            runner=runner,
            is_process_alive=processes.is_alive,
            launcher=processes.launch,
            send_signal=processes.signal,
            process_killer=processes.kill_matching,
            init_system=init_system,
            which=runner.which,
        )

    return factory
