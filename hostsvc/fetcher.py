"""Retrieval of the service executable from its download location."""

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import httpx

from hostsvc.config import ServiceConfig
from hostsvc.exceptions import FetchError, TransportUnavailableError

EXECUTABLE_MODE = 0o755
DOWNLOAD_CHUNK_SIZE = 64 * 1024


class Transport(ABC):
    """A mechanism able to copy a remote resource into a local file."""

    name: str = ''

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this transport can be used on the current host."""
        pass

    @abstractmethod
    def download(self, url: str, destination: Path) -> None:
        """
        Download `url` into `destination`, overwriting it.

        Raises:
            FetchError: If the transfer fails.
        """
        pass


class HttpxTransport(Transport):
    """In-process HTTPS download using httpx."""

    name = 'httpx'

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    def is_available(self) -> bool:
        return True

    def download(self, url: str, destination: Path) -> None:
        try:
            with httpx.Client(follow_redirects=True, timeout=self.timeout, transport=self._transport) as client:
                with client.stream('GET', url) as response:
                    response.raise_for_status()
                    with open(destination, 'wb') as f:
                        for chunk in response.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                            f.write(chunk)
        except httpx.HTTPError as e:
            raise FetchError(f'Download of {url} failed: {e}') from e


class CommandTransport(Transport):
    """Download by shelling out to an external tool found on PATH."""

    executable: str = ''

    def __init__(
        self,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which
    ):
        self._runner = runner
        self._which = which

    @property
    def name(self) -> str:
        return self.executable

    def is_available(self) -> bool:
        return self._which(self.executable) is not None

    @abstractmethod
    def command(self, url: str, destination: Path) -> List[str]:
        pass

    def download(self, url: str, destination: Path) -> None:
        try:
            result = self._runner(
                self.command(url, destination),
                capture_output=True, text=True, check=False
            )
        except OSError as e:
            raise FetchError(f'{self.executable} could not be executed: {e}') from e
        if result.returncode != 0:
            raise FetchError(
                f'{self.executable} exited with {result.returncode}: {(result.stderr or "").strip()}'
            )


class CurlTransport(CommandTransport):
    executable = 'curl'

    def command(self, url: str, destination: Path) -> List[str]:
        return ['curl', '-fsSL', '-o', str(destination), url]


class WgetTransport(CommandTransport):
    executable = 'wget'

    def command(self, url: str, destination: Path) -> List[str]:
        return ['wget', '-q', '-O', str(destination), url]


def default_transports(config: ServiceConfig) -> List[Transport]:
    """Build the transports named in the configuration, in preference order."""
    factories: Dict[str, Callable[[], Transport]] = {
        'httpx': lambda: HttpxTransport(timeout=config.subprocess_timeout),
        'curl': CurlTransport,
        'wget': WgetTransport,
    }
    unknown = [name for name in config.transports if name not in factories]
    if unknown:
        raise ValueError(f'Unknown transports: {", ".join(unknown)}')
    return [factories[name]() for name in config.transports]


class ArtifactFetcher:
    """
    Fetches the service executable and atomically installs it.

    The download always lands on the fixed staging path next to the
    destination first; only a complete file is renamed over the destination.
    """

    def __init__(self, config: ServiceConfig, transports: Optional[Sequence[Transport]] = None):
        self.config = config
        self.transports = list(transports) if transports is not None else default_transports(config)
        self.logger = logging.getLogger(f'{self.__class__.__name__}.{config.service_name}')

    def select_transport(self) -> Transport:
        """
        Return the first available transport.

        Raises:
            TransportUnavailableError: If none of the transports can be used.
        """
        for transport in self.transports:
            if transport.is_available():
                self.logger.debug('Using transport: %s', transport.name)
                return transport
        names = ', '.join(t.name for t in self.transports) or 'none configured'
        self.logger.error('No download transport available (tried: %s)', names)
        raise TransportUnavailableError(f'No download transport available (tried: {names})')

    def fetch(self, url: str, destination: Path) -> Path:
        """
        Download `url` and promote it to `destination`.

        Args:
            url: Remote location of the executable.
            destination: Live path of the executable.

        Returns:
            The destination path.

        Raises:
            TransportUnavailableError: If no transport is available.
            FetchError: If the download fails or produced no file.
        """
        transport = self.select_transport()
        destination = Path(destination)
        staging = destination.with_name(destination.name + '.tmp')

        self.logger.info('Downloading %s via %s', url, transport.name)
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            transport.download(url, staging)
            if not staging.is_file():
                raise FetchError(f'Download of {url} produced no file')
            os.chmod(staging, EXECUTABLE_MODE)
            os.replace(staging, destination)
        except (FetchError, OSError) as e:
            self.logger.error('Download failed: %s', e)
            staging.unlink(missing_ok=True)
            if isinstance(e, FetchError):
                raise
            raise FetchError(f'Could not install {destination}: {e}') from e

        self.logger.info('Executable installed at %s', destination)
        return destination
