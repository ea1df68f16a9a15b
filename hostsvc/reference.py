"""Lookup of the file whose timestamps installed artifacts are aligned with."""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from hostsvc.config import ServiceConfig


class ReferenceTimestampResolver:
    """Finds a release file in the installation tree and copies its timestamps."""

    def __init__(self, config: ServiceConfig):
        self.config = config
        self.logger = logging.getLogger(f'{self.__class__.__name__}.{config.service_name}')

    def resolve(self) -> Optional[Path]:
        """
        Return the reference file, or None if there is none.

        Tries the primary candidate, then the fallback, then the first regular
        file found under the installation root.
        """
        for candidate in (self.config.reference_primary, self.config.reference_fallback):
            if candidate.is_file():
                self.logger.debug('Reference file: %s', candidate)
                return candidate

        found = self._scan(self.config.install_root)
        if found is None:
            self.logger.debug('No reference file under %s', self.config.install_root)
        return found

    def _scan(self, root: Path) -> Optional[Path]:
        managed = {self.config.binary_path, self.config.staging_path}
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if path in managed:
                    continue
                if path.is_file() and not path.is_symlink():
                    return path
        return None

    def apply(self, reference: Path, targets: Iterable[Path]) -> None:
        """Copy access and modification times of `reference` onto existing targets."""
        try:
            stat = reference.stat()
        except OSError as e:
            self.logger.warning('Cannot read timestamp of %s, skipping timestamp sync: %s', reference, e)
            return
        for target in targets:
            if not target.exists():
                self.logger.debug('Skipping timestamp for missing file: %s', target)
                continue
            os.utime(target, ns=(stat.st_atime_ns, stat.st_mtime_ns))
            self.logger.debug('Timestamp of %s set from %s', target, reference)
