from prsync.infra.clock import SystemClock
from prsync.infra.git_api import Client, build_services
from prsync.infra.github import GitHubClient, GitHubService
from prsync.infra.gitlab import GitLabService
from prsync.infra.logging import ConsoleLogger, LogfireLogger, configure_logfire
from prsync.infra.state import FileStateStore, PullRequestCache
from prsync.infra.workspace import ProcessUpdater

__all__ = [
    'Client',
    'build_services',
    'GitHubClient',
    'GitHubService',
    'GitLabService',
    'ConsoleLogger',
    'LogfireLogger',
    'configure_logfire',
    'SystemClock',
    'FileStateStore',
    'PullRequestCache',
    'ProcessUpdater',
]
