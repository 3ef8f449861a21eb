from typing import List, Optional, Protocol, Tuple, runtime_checkable

from prsync.core.schema.git_url import GitURL
from prsync.core.schema.pull_request import Branch, PullRequest


@runtime_checkable
class GitAPI(Protocol):
    """Host-agnostic view of every configured git hosting service."""

    def supports(self, url: str | GitURL) -> bool: ...

    def pull_requests(
        self,
        url: str | GitURL,
        base: Optional[str] = None,
        state: Optional[str] = None,
    ) -> List[PullRequest]: ...

    def branches(self, url: str | GitURL) -> List[Branch]: ...

    def branch(self, url: str | GitURL, branch_name: str) -> Branch: ...

    def delete_branch(self, branch: Branch) -> None: ...

    def test_branch_name(self, pull_request: PullRequest) -> str: ...

    def extract_info_from_pull_request_ref(
        self, ref: str, pull_request: PullRequest
    ) -> Optional[Tuple[str, int]]: ...

    def close(self) -> None: ...
