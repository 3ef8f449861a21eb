from prsync.infra.state.file_store import FileStateStore
from prsync.infra.state.pull_request_cache import PullRequestCache

__all__ = ["FileStateStore", "PullRequestCache"]
