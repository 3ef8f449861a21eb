from prsync.core.schema.buildconf_branch import (
    BuildconfBranch,
    branch_name_for,
    in_namespace,
    parse_buildconf_branch,
)
from prsync.core.schema.cache import CachedPullRequest, Overrides
from prsync.core.schema.change import Change
from prsync.core.schema.git_url import GitURL
from prsync.core.schema.package import PackageRepository
from prsync.core.schema.pull_request import Branch, PullRequest

__all__ = [
    "GitURL",
    "PullRequest",
    "Branch",
    "CachedPullRequest",
    "Overrides",
    "PackageRepository",
    "Change",
    "BuildconfBranch",
    "branch_name_for",
    "in_namespace",
    "parse_buildconf_branch",
]
