from typing import Dict, Optional, Tuple

from github import Auth, Github
from github.Repository import Repository

DEFAULT_PER_PAGE = 100


class GitHubClient:
    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        per_page: int = DEFAULT_PER_PAGE,
    ) -> None:
        options = {'auth': Auth.Token(token), 'per_page': per_page, 'retry': None}
        if base_url:
            options['base_url'] = base_url
        self._client = Github(**options)
        self._repos: Dict[str, Repository] = {}

    def get_repo(self, full_name: str) -> Repository:
        if full_name not in self._repos:
            self._repos[full_name] = self._client.get_repo(full_name)
        return self._repos[full_name]

    def rate_limit(self) -> Tuple[int, int]:
        """Remaining core calls and the epoch second at which they reset."""
        remaining, _limit = self._client.rate_limiting
        return remaining, self._client.rate_limiting_resettime

    def close(self) -> None:
        self._client.close()
