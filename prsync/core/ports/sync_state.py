from typing import Iterable, List, Optional, Protocol, runtime_checkable

from prsync.core.schema.cache import CachedPullRequest, Overrides
from prsync.core.schema.pull_request import PullRequest


@runtime_checkable
class SyncState(Protocol):
    pull_requests: List[CachedPullRequest]

    def reload(self) -> 'SyncState': ...

    def dump(self) -> None: ...

    def add(self, pull_request: PullRequest, overrides: Overrides) -> CachedPullRequest: ...

    def clear(self) -> None: ...

    def cached(self, pull_request: PullRequest) -> Optional[CachedPullRequest]: ...

    def changed(self, pull_request: PullRequest, overrides: Overrides) -> bool: ...

    def evict(self, tracked: Iterable[PullRequest]) -> List[CachedPullRequest]: ...
