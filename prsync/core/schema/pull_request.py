from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from prsync.core.schema.git_url import GitURL


@dataclass(eq=False)
class PullRequest:
    """A pull/merge request normalized across providers.

    Identity is the base repository URL and the request number; two
    instances fetched on different cycles compare equal even when their
    shas or bodies differ. ``dependencies`` is filled in by the overrides
    retriever and is ``None`` until then.
    """

    git_url: GitURL
    number: int
    is_open: bool
    title: str
    base_branch: str
    base_sha: Optional[str]
    head_branch: str
    head_sha: str
    updated_at: datetime
    body: str = ''
    web_url: str = ''
    repository_url: str = ''
    author: str = ''
    last_committer: str = ''
    head_repo_id: Optional[int] = None
    draft: bool = False
    mergeable: Optional[bool] = None
    dependencies: Optional[List['PullRequest']] = field(default=None, repr=False)

    @property
    def full_path(self) -> str:
        return self.git_url.full_path

    @property
    def identity(self) -> Tuple[str, str, int]:
        host, path = self.git_url.key
        return (host, path, self.number)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PullRequest):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)


@dataclass(frozen=True, slots=True)
class Branch:
    git_url: GitURL
    branch_name: str
    sha: str
    commit_author: Optional[str] = None
    commit_date: Optional[datetime] = None

    @property
    def repository_url(self) -> str:
        return f'https://{self.git_url.full_path}'
