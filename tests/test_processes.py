"""Tests against real processes for stray termination and detached launch."""

import os
import shutil
import signal
import subprocess
import sys
import time

import psutil
import pytest

from hostsvc.backends.sysv import launch_detached
from hostsvc.manager import terminate_matching

SLEEP = shutil.which("sleep")

pytestmark = [
    pytest.mark.skipif(not sys.platform.startswith("linux"), reason="requires Linux process table"),
    pytest.mark.skipif(SLEEP is None, reason="sleep executable not found"),
]


@pytest.fixture
def renamed_sleep(tmp_path):
    """Copy of the sleep executable installed under the service's name."""
    path = tmp_path / "hostagent"
    shutil.copy(SLEEP, path)
    os.chmod(path, 0o755)
    return path


def reap(pid):
    try:
        psutil.Process(pid).wait(timeout=5)
    except psutil.NoSuchProcess:
        pass


class TestTerminateMatching:
    """Tests for terminate_matching on live processes."""

    def test_terminates_process_by_executable_name(self, renamed_sleep):
        proc = subprocess.Popen([str(renamed_sleep), "30"])
        time.sleep(0.2)
        if proc.poll() is not None:
            pytest.skip("sleep executable cannot run under another name")

        try:
            assert terminate_matching("hostagent") == 1
            proc.wait(timeout=5)
            assert proc.returncode is not None
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()

    def test_leaves_other_processes_alone(self):
        proc = subprocess.Popen([SLEEP, "30"])
        try:
            assert terminate_matching("hostagent-not-running") == 0
            assert proc.poll() is None
        finally:
            proc.kill()
            proc.wait()


class TestLaunchDetached:
    """Tests for launch_detached."""

    def test_starts_in_new_session(self):
        pid = launch_detached([SLEEP, "30"])
        try:
            assert psutil.pid_exists(pid)
            assert os.getsid(pid) == pid
            assert os.getsid(pid) != os.getsid(0)
        finally:
            os.kill(pid, signal.SIGKILL)
            reap(pid)
