from prsync.core.ports.builder import Builder
from prsync.core.ports.clock import Clock
from prsync.core.ports.git_api import GitAPI
from prsync.core.ports.logger import Logger
from prsync.core.ports.service import RateLimit, Service, select_test_branch
from prsync.core.ports.source_control import SourceControl
from prsync.core.ports.state_store import StateStore
from prsync.core.ports.sync_state import SyncState
from prsync.core.ports.workspace_updater import WorkspaceUpdater

__all__ = [
    "Logger",
    "Clock",
    "StateStore",
    "SyncState",
    "Service",
    "RateLimit",
    "select_test_branch",
    "GitAPI",
    "SourceControl",
    "Builder",
    "WorkspaceUpdater",
]
