import re
from dataclasses import dataclass
from typing import Optional

from prsync.core.schema.pull_request import PullRequest

BRANCH_NAMESPACE = 'autoproj'
PROJECT_NAME_RX = re.compile(r'[A-Za-z0-9_\-.]+')
BRANCH_RX = re.compile(
    rf'^{BRANCH_NAMESPACE}/({PROJECT_NAME_RX.pattern})/(.*)/pulls/(\d+)$'
)
# namespace, project, host, owner, repo, "pulls", number
MIN_SEGMENTS = 7


@dataclass(frozen=True, slots=True)
class BuildconfBranch:
    project: str
    full_path: str
    pull_id: int

    def matches(self, pull_request: PullRequest) -> bool:
        return (
            self.full_path == pull_request.full_path
            and self.pull_id == pull_request.number
        )


def branch_name_for(project: str, pull_request: PullRequest) -> str:
    return (
        f'{BRANCH_NAMESPACE}/{project}/{pull_request.full_path}'
        f'/pulls/{pull_request.number}'
    )


def in_namespace(branch_name: str) -> bool:
    return branch_name.startswith(f'{BRANCH_NAMESPACE}/')


def parse_buildconf_branch(branch_name: str) -> Optional[BuildconfBranch]:
    """Recover the PR identity from a synchronized branch name.

    Returns None when the name does not follow the current grammar, which
    covers branches created by older naming schemes.
    """
    match = BRANCH_RX.match(branch_name)
    if match is None:
        return None
    if len(branch_name.split('/')) < MIN_SEGMENTS:
        return None
    project, full_path, number = match.groups()
    return BuildconfBranch(
        project=project,
        full_path=full_path,
        pull_id=int(number),
    )
