from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from prsync.core.schema.git_url import GitURL
from prsync.core.schema.pull_request import PullRequest

Overrides = List[Dict[str, Dict[str, Any]]]


@dataclass
class CachedPullRequest:
    repo_url: str
    number: int
    base_branch: str
    head_sha: str
    updated_at: Optional[datetime] = None
    overrides: Overrides = field(default_factory=list)

    @property
    def git_url(self) -> GitURL:
        return GitURL(self.repo_url)

    def caches_pull_request(self, pull_request: PullRequest) -> bool:
        return (
            self.git_url == pull_request.git_url
            and self.number == pull_request.number
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'repo_url': self.repo_url,
            'number': self.number,
            'base_branch': self.base_branch,
            'head_sha': self.head_sha,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'overrides': self.overrides,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CachedPullRequest':
        updated_at = data.get('updated_at')
        return cls(
            repo_url=data['repo_url'],
            number=int(data['number']),
            base_branch=data['base_branch'],
            head_sha=data['head_sha'],
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
            overrides=list(data.get('overrides') or []),
        )
