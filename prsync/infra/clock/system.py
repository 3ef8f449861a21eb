import time
from datetime import datetime, timezone

from prsync.core.ports.clock import Clock


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def sleep(self, duration: float) -> None:
        if duration > 0:
            time.sleep(duration)
