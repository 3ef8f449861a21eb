from prsync.core.jobs.base import BaseJob
from prsync.core.jobs.reconciliation import (
    EMERGENCY_RESTART_DELAY,
    FAILED_UPDATE_RESTART_DELAY,
    ReconciliationEngine,
)

__all__ = [
    'BaseJob',
    'ReconciliationEngine',
    'EMERGENCY_RESTART_DELAY',
    'FAILED_UPDATE_RESTART_DELAY',
]
