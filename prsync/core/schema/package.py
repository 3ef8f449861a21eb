from dataclasses import dataclass
from typing import Optional

from prsync.core.schema.git_url import GitURL

DEFAULT_BRANCH = 'master'


@dataclass(frozen=True, slots=True)
class PackageRepository:
    """A tracked package (or package set) and its mainline branch.

    ``head_sha`` is the commit the local workspace currently has checked
    out; the engine compares it with the remote branch to detect pushes.
    """

    package: str
    repo_url: str
    branch: str = DEFAULT_BRANCH
    head_sha: Optional[str] = None
    package_set: bool = False
    overrides_key: Optional[str] = None
    buildconf: bool = False

    @property
    def git_url(self) -> GitURL:
        return GitURL(self.repo_url)

    @property
    def manifest_key(self) -> str:
        if self.package_set:
            return f'pkg_set:{self.overrides_key or self.package}'
        return self.package
