from abc import ABC, abstractmethod
from typing import final

from prsync.core.exceptions import PRSyncError
from prsync.core.ports.clock import Clock
from prsync.core.ports.logger import Logger


class BaseJob(ABC):
    """Runs ``execute_once`` every ``poll_interval`` seconds until stopped.

    ``setup`` runs once before the first cycle and ``teardown`` once after
    the last, even when a cycle raised something other than a
    ``PRSyncError``.
    """

    def __init__(
        self,
        logger: Logger,
        poll_interval: float,
        clock: Clock,
    ) -> None:
        self._logger = logger
        self._poll_interval = poll_interval
        self._clock = clock
        self._running = False
        self._cycles = 0

    @property
    def cycles(self) -> int:
        return self._cycles

    @property
    def running(self) -> bool:
        return self._running

    @final
    def run(self) -> None:
        job_name = type(self).__name__
        self._running = True
        self._logger.info("Job starting", job=job_name, poll_interval=self._poll_interval)
        try:
            self.setup()
            while self._running and self.should_continue():
                started = self._clock.now()
                try:
                    self.execute_once()
                except PRSyncError as error:
                    self.handle_error(error)
                self._cycles += 1
                self._logger.debug(
                    "Cycle complete",
                    job=job_name,
                    cycle=self._cycles,
                    seconds=(self._clock.now() - started).total_seconds(),
                )
                if self._running and self._poll_interval > 0:
                    self._clock.sleep(self._poll_interval)
        finally:
            try:
                self.teardown()
            finally:
                self._running = False
                self._logger.info("Job stopping", job=job_name, cycles=self._cycles)

    @abstractmethod
    def setup(self) -> None: ...

    @abstractmethod
    def execute_once(self) -> None: ...

    def teardown(self) -> None:
        pass

    def handle_error(self, error: PRSyncError) -> None:
        self._logger.exception(
            "Job error",
            error=error.message,
            job=type(self).__name__,
        )

    def should_continue(self) -> bool:
        return True

    def stop(self) -> None:
        self._running = False
