"""Root privilege precondition for mutating commands."""

import logging
import os
from typing import Callable, Optional

from hostsvc.exceptions import NotPrivilegedError


def _effective_uid_is_root() -> bool:
    return os.geteuid() == 0


class PrivilegeGuard:
    """Gate that every mutating lifecycle operation passes first."""

    def __init__(self, is_privileged: Optional[Callable[[], bool]] = None):
        """
        Args:
            is_privileged: Probe returning True for the privileged account.
                Defaults to checking that the effective uid is 0.
        """
        self._is_privileged = is_privileged or _effective_uid_is_root
        self.logger = logging.getLogger(self.__class__.__name__)

    def require_elevated(self) -> None:
        """
        Raises:
            NotPrivilegedError: If the effective identity is not root.
        """
        if not self._is_privileged():
            self.logger.error('This command must be run as root')
            raise NotPrivilegedError('This command must be run as root')
        self.logger.debug('Running with root privileges')
