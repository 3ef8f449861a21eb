import json
from typing import Iterable, List, Optional

from prsync.core.ports.state_store import StateStore
from prsync.core.schema.cache import CachedPullRequest, Overrides
from prsync.core.schema.pull_request import PullRequest


class PullRequestCache:
    """Last synchronized state of every tracked pull request.

    The whole cache is read once when the poller starts and rewritten in
    one piece at the end of each cycle.
    """

    CACHE_KEY = 'pull_request_cache'

    def __init__(self, state_store: StateStore) -> None:
        self._state_store = state_store
        self.pull_requests: List[CachedPullRequest] = []

    @classmethod
    def load(cls, state_store: StateStore) -> 'PullRequestCache':
        return cls(state_store).reload()

    def reload(self) -> 'PullRequestCache':
        stored = self._state_store.read(self.CACHE_KEY)
        if not stored:
            self.pull_requests = []
            return self
        self.pull_requests = [
            CachedPullRequest.from_dict(entry) for entry in json.loads(stored)
        ]
        return self

    def dump(self) -> None:
        payload = [cached.to_dict() for cached in self.pull_requests]
        self._state_store.write(self.CACHE_KEY, json.dumps(payload, indent=2))

    def add(
        self, pull_request: PullRequest, overrides: Overrides
    ) -> CachedPullRequest:
        self.delete(pull_request)
        cached = CachedPullRequest(
            repo_url=pull_request.git_url.raw,
            number=pull_request.number,
            base_branch=pull_request.base_branch,
            head_sha=pull_request.head_sha,
            updated_at=pull_request.updated_at,
            overrides=overrides,
        )
        self.pull_requests.append(cached)
        return cached

    def delete(self, pull_request: PullRequest) -> None:
        self.pull_requests = [
            cached
            for cached in self.pull_requests
            if not cached.caches_pull_request(pull_request)
        ]

    def clear(self) -> None:
        self.pull_requests = []

    def cached(self, pull_request: PullRequest) -> Optional[CachedPullRequest]:
        for cached in self.pull_requests:
            if cached.caches_pull_request(pull_request):
                return cached
        return None

    def include(self, pull_request: PullRequest) -> bool:
        return self.cached(pull_request) is not None

    def changed(self, pull_request: PullRequest, overrides: Overrides) -> bool:
        found = self.cached(pull_request)
        if found is None:
            return True
        return (
            found.overrides != overrides
            or found.head_sha != pull_request.head_sha
            or found.base_branch != pull_request.base_branch
        )

    def evict(self, tracked: Iterable[PullRequest]) -> List[CachedPullRequest]:
        """Drop entries matching none of ``tracked``; returns what was dropped."""
        tracked = list(tracked)
        kept, evicted = [], []
        for cached in self.pull_requests:
            if any(cached.caches_pull_request(pr) for pr in tracked):
                kept.append(cached)
            else:
                evicted.append(cached)
        self.pull_requests = kept
        return evicted
