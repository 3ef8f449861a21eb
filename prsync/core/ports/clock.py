from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Time source for the poller.

    Every blocking wait (rate-limit reset, retry back-off, mergeability
    poll, inter-cycle sleep) goes through ``sleep`` so tests can observe it.
    """

    def now(self) -> datetime: ...

    def sleep(self, duration: float) -> None: ...
