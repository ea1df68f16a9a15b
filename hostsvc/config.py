"""Service configuration."""

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

SERVICE_NAME = 'hostagent'
DOWNLOAD_URL = 'https://downloads.example.com/hostagent/latest/hostagent'

DEFAULT_RESTART_SEC = 10
DEFAULT_RESTART_PAUSE_SECONDS = 1.0
DEFAULT_SUBPROCESS_TIMEOUT_SECONDS = 30
DEFAULT_TRANSPORTS = ('httpx', 'curl', 'wget')

_PATH_FIELDS = (
    'install_root',
    'binary_path',
    'unit_path',
    'legacy_script_path',
    'pid_file_path',
    'supervisor_marker',
    'reference_primary',
    'reference_fallback',
)


@dataclass(frozen=True)
class ServiceConfig:
    """
    Well-known paths and settings for the managed service.

    Every component receives this object at construction instead of reading
    module constants, so a whole host layout can be redirected with `rooted`.
    """
    service_name: str = SERVICE_NAME
    download_url: str = DOWNLOAD_URL
    install_root: Path = Path('/opt/hostagent')
    binary_path: Path = Path('/opt/hostagent/bin/hostagent')
    unit_path: Path = Path('/etc/systemd/system/hostagent.service')
    legacy_script_path: Path = Path('/etc/init.d/hostagent')
    pid_file_path: Path = Path('/var/run/hostagent.pid')
    supervisor_marker: Path = Path('/run/systemd/system')
    reference_primary: Path = Path('/opt/hostagent/RELEASE')
    reference_fallback: Path = Path('/opt/hostagent/share/hostagent/README')
    restart_sec: int = DEFAULT_RESTART_SEC
    restart_pause: float = DEFAULT_RESTART_PAUSE_SECONDS
    subprocess_timeout: int = DEFAULT_SUBPROCESS_TIMEOUT_SECONDS
    transports: Tuple[str, ...] = DEFAULT_TRANSPORTS

    def __post_init__(self):
        """
        Validate the configuration.

        Raises:
            ValueError: If service_name is empty.
        """
        if not self.service_name:
            raise ValueError('Service name cannot be empty')

    @property
    def staging_path(self) -> Path:
        """Fixed temporary path a download is written to before promotion."""
        return self.binary_path.with_name(self.binary_path.name + '.tmp')

    @property
    def unit_name(self) -> str:
        return f'{self.service_name}.service'

    def rooted(self, root: Union[str, Path]) -> 'ServiceConfig':
        """
        Return a copy with every absolute path re-anchored under `root`.

        Args:
            root: Directory standing in for the filesystem root.
        """
        root = Path(root)
        changes = {}
        for name in _PATH_FIELDS:
            path = getattr(self, name)
            if path.is_absolute():
                path = path.relative_to(path.anchor)
            changes[name] = root / path
        return dataclasses.replace(self, **changes)
