"""Init system backends."""

from hostsvc.backends.base import InitSystemBackend, detect_init_system
from hostsvc.backends.systemd import SystemdBackend
from hostsvc.backends.sysv import SysVBackend

__all__ = [
    'InitSystemBackend',
    'SystemdBackend',
    'SysVBackend',
    'detect_init_system',
]
