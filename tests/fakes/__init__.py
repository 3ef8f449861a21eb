from tests.fakes.clock import FakeClock
from tests.fakes.git_api import FakeBuilder, FakeGitAPI, FakeSourceControl, FakeUpdater
from tests.fakes.github import (
    FakeBranch,
    FakeCommit,
    FakeGitAuthor,
    FakeGitCommit,
    FakeGitHubClient,
    FakePullRequest,
    FakePullRequestPart,
    FakeRepo,
    FakeRepository,
    FakeUser,
)
from tests.fakes.logger import FakeLogger
from tests.fakes.service import FakeService, FlakyCall, always
from tests.fakes.state_store import FakeStateStore

__all__ = [
    "FakeBranch",
    "FakeBuilder",
    "FakeClock",
    "FakeCommit",
    "FakeGitAPI",
    "FakeGitAuthor",
    "FakeGitCommit",
    "FakeGitHubClient",
    "FakeLogger",
    "FakePullRequest",
    "FakePullRequestPart",
    "FakeRepo",
    "FakeRepository",
    "FakeService",
    "FakeSourceControl",
    "FakeStateStore",
    "FakeUpdater",
    "FakeUser",
    "FlakyCall",
    "always",
]
