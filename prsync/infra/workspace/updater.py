import os
import sys
from datetime import datetime
from typing import Callable, Optional, Sequence

from prsync.core.ports.clock import Clock
from prsync.core.ports.logger import Logger

UPDATE_FLAG = '--update'


class ProcessUpdater:
    """Restarts the daemon by re-executing the interpreter with ``--update``.

    The process replaced by ``restart_and_update`` never returns. The new
    one sees ``--update`` in its arguments and runs ``update`` before it
    starts polling. A failing update is recorded rather than raised, so the
    daemon keeps running and only restarts once the failure is old enough.
    """

    def __init__(
        self,
        clock: Clock,
        logger: Logger,
        update: Optional[Callable[[], None]] = None,
        argv: Optional[Sequence[str]] = None,
        executable: Optional[str] = None,
        execv: Callable[[str, Sequence[str]], None] = os.execv,
    ) -> None:
        self._clock = clock
        self._logger = logger
        self._update = update
        self._argv = list(sys.argv if argv is None else argv)
        self._executable = executable or sys.executable
        self._execv = execv
        self._update_failed: Optional[datetime] = None

    def update_failed(self) -> Optional[datetime]:
        return self._update_failed

    def update_requested(self) -> bool:
        return UPDATE_FLAG in self._argv

    def update_if_requested(self) -> None:
        if self._update is None or not self.update_requested():
            return

        self._logger.info('Updating workspace')
        try:
            self._update()
        except Exception:
            self._logger.exception('Workspace update failed')
            self.mark_update_failed()
        else:
            self.mark_update_succeeded()

    def mark_update_failed(self, when: Optional[datetime] = None) -> None:
        self._update_failed = when or self._clock.now()

    def mark_update_succeeded(self) -> None:
        self._update_failed = None

    def restart_command(self) -> list:
        args = [arg for arg in self._argv if arg != UPDATE_FLAG]
        return [self._executable, *args, UPDATE_FLAG]

    def restart_and_update(self) -> None:
        command = self.restart_command()
        self._logger.info('Restarting daemon', command=' '.join(command))
        self._execv(self._executable, command)
