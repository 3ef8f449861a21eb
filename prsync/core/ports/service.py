from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from prsync.core.schema.git_url import GitURL
from prsync.core.schema.pull_request import Branch, PullRequest

COMMIT_STRATEGY_MERGE = 'merge'
COMMIT_STRATEGY_HEAD = 'head'
COMMIT_STRATEGIES = (COMMIT_STRATEGY_MERGE, COMMIT_STRATEGY_HEAD)


@dataclass(frozen=True, slots=True)
class RateLimit:
    remaining: int
    resets_in: int


@runtime_checkable
class Service(Protocol):
    """A Git hosting provider adapter.

    Implementations translate their transport errors into
    ``ConnectionFailed``, ``TooManyRequests`` and ``NotFound``; anything
    else propagates untouched.
    """

    host: str
    api_endpoint: str
    commit_strategy: Optional[str]

    def pull_requests(
        self,
        git_url: GitURL,
        base: Optional[str] = None,
        state: Optional[str] = None,
    ) -> List[PullRequest]: ...

    def pull_request(self, git_url: GitURL, number: int) -> PullRequest: ...

    def branches(self, git_url: GitURL) -> List[Branch]: ...

    def branch(self, git_url: GitURL, branch_name: str) -> Branch: ...

    def delete_branch(self, git_url: GitURL, branch_name: str) -> None: ...

    def rate_limit(self) -> RateLimit: ...

    def test_branch_name(self, pull_request: PullRequest) -> str: ...

    def extract_info_from_pull_request_ref(
        self, ref: str, pull_request: PullRequest
    ) -> Optional[Tuple[str, int]]: ...

    def close(self) -> None: ...


def select_test_branch(
    strategy: Optional[str],
    pull_request: PullRequest,
    merge_ref: str,
    head_ref: str,
) -> str:
    if strategy == COMMIT_STRATEGY_HEAD:
        return head_ref
    if strategy == COMMIT_STRATEGY_MERGE:
        return head_ref if pull_request.draft else merge_ref
    if pull_request.draft or not pull_request.mergeable:
        return head_ref
    return merge_ref
