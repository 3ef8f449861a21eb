from prsync.infra.github.client import GitHubClient
from prsync.infra.github.service import GitHubService

__all__ = ["GitHubClient", "GitHubService"]
