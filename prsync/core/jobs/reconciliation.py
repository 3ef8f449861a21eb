from typing import Dict, List, Optional, Sequence, Tuple

import yaml

from prsync.core.exceptions import PRSyncError, UnsupportedService
from prsync.core.jobs.base import BaseJob
from prsync.core.overrides.retriever import OverridesRetriever
from prsync.core.ports.builder import Builder
from prsync.core.ports.clock import Clock
from prsync.core.ports.git_api import GitAPI
from prsync.core.ports.logger import Logger
from prsync.core.ports.source_control import SourceControl
from prsync.core.ports.sync_state import SyncState
from prsync.core.ports.workspace_updater import WorkspaceUpdater
from prsync.core.schema.buildconf_branch import (
    branch_name_for,
    in_namespace,
    parse_buildconf_branch,
)
from prsync.core.schema.cache import Overrides
from prsync.core.schema.change import Change
from prsync.core.schema.git_url import GitURL
from prsync.core.schema.package import PackageRepository
from prsync.core.schema.pull_request import Branch, PullRequest

# seconds
EMERGENCY_RESTART_DELAY = 10
FAILED_UPDATE_RESTART_DELAY = 300

DEFAULT_PROJECT = 'daemon'
DEFAULT_MAX_AGE_DAYS = 120


def render_overrides(overrides: Overrides) -> str:
    return yaml.safe_dump(overrides, default_flow_style=False, sort_keys=False)


class ReconciliationEngine(BaseJob):
    """Keeps one buildconf branch per open pull request.

    Each cycle lists the open pull requests of every tracked package,
    deletes buildconf branches that no longer match one, creates the
    missing ones and re-pushes the ones whose overrides changed, triggering
    a build every time a branch moves. It then looks for pushes on the
    mainline branches and restarts the process when it finds one.

    Errors are not recovered in-process: anything escaping a cycle makes
    the engine wait ``EMERGENCY_RESTART_DELAY`` seconds and restart.
    """

    def __init__(
        self,
        logger: Logger,
        poll_interval: float,
        clock: Clock,
        *,
        client: GitAPI,
        buildconf: PackageRepository,
        packages: Sequence[PackageRepository],
        cache: SyncState,
        source_control: SourceControl,
        builder: Builder,
        updater: WorkspaceUpdater,
        project: str = DEFAULT_PROJECT,
        max_age: int = DEFAULT_MAX_AGE_DAYS,
    ) -> None:
        super().__init__(logger, poll_interval, clock)
        self.client = client
        self.buildconf = buildconf
        self.packages = list(packages)
        self.cache = cache
        self.source_control = source_control
        self.builder = builder
        self.updater = updater
        self.project = project
        self.max_age = max_age
        self.retriever = OverridesRetriever(client)

        self.pull_requests: List[PullRequest] = []
        self.pull_requests_stale: List[PullRequest] = []
        self.branches: List[Branch] = []
        self.package_branches: List[Branch] = []

    def setup(self) -> None:
        self.check_services()
        self.updater.update_if_requested()
        self.cache.reload()
        self._logger.info(
            'Reconciliation initialized',
            project=self.project,
            buildconf=self.buildconf.repo_url,
            packages=len(self.packages),
            cached=len(self.cache.pull_requests),
        )

    def execute_once(self) -> None:
        self.poll()

    def teardown(self) -> None:
        self.client.close()

    def check_services(self) -> None:
        """Fail before the first cycle if a tracked repository has no service."""
        for package in [self.buildconf, *self.packages]:
            if not self.client.supports(package.repo_url):
                raise UnsupportedService(GitURL(package.repo_url).host)

    def poll(self) -> None:
        try:
            failed_at = self.updater.update_failed()
            if failed_at is not None:
                elapsed = (self._clock.now() - failed_at).total_seconds()
                if elapsed > FAILED_UPDATE_RESTART_DELAY:
                    self._logger.warning(
                        'Workspace update failed a while ago, restarting',
                        failed_at=failed_at.isoformat(),
                    )
                    self.updater.restart_and_update()
                else:
                    self._logger.info(
                        'Skipping pull request synchronization, last update failed',
                        failed_at=failed_at.isoformat(),
                    )
            else:
                self.synchronize_pull_requests()

            self.update_package_branches()
            self.handle_mainline_changes()
        except Exception:
            self._logger.exception(
                'Polling cycle failed, restarting the daemon',
                delay=EMERGENCY_RESTART_DELAY,
            )
            self._clock.sleep(EMERGENCY_RESTART_DELAY)
            self.updater.restart_and_update()

    def synchronize_pull_requests(self) -> None:
        self.update_pull_requests()
        self.update_branches()
        self.delete_stale_branches()
        created, existing = self.create_missing_branches()

        for branch in created:
            self.trigger_build(branch)
        self.trigger_build_if_branch_changed(existing)
        self.update_cache()

    def unique_packages(self) -> List[PackageRepository]:
        seen = set()
        unique = []
        for package in self.packages:
            key = (GitURL(package.repo_url), package.branch)
            if key in seen:
                continue
            seen.add(key)
            unique.append(package)
        return unique

    def update_pull_requests(self) -> List[PullRequest]:
        repositories = self.unique_packages()
        self._logger.info('Fetching pull requests', repositories=len(repositories))

        fetched = []
        for package in repositories:
            fetched.extend(
                self.client.pull_requests(package.repo_url, base=package.branch, state='open')
            )

        today = self._clock.now().date()
        self.pull_requests = []
        self.pull_requests_stale = []
        for pull_request in fetched:
            age = (today - pull_request.updated_at.date()).days
            if age < self.max_age:
                self.pull_requests.append(pull_request)
            else:
                self.pull_requests_stale.append(pull_request)

        self._logger.info(
            'Tracking pull requests',
            total=len(fetched),
            stale=len(self.pull_requests_stale),
        )
        return self.pull_requests

    def update_branches(self) -> List[Branch]:
        self.branches = self.client.branches(self.buildconf.repo_url)
        return self.branches

    def delete_stale_branches(self) -> List[Branch]:
        stale = [branch for branch in self.branches if self._is_stale(branch)]
        self.delete_branches(stale)
        return stale

    def _is_stale(self, branch: Branch) -> bool:
        info = parse_buildconf_branch(branch.branch_name)
        if info is None:
            # leftovers of older naming schemes
            return in_namespace(branch.branch_name)
        if info.project != self.project:
            return False
        return not any(info.matches(pr) for pr in self.pull_requests)

    def delete_branches(self, branches: Sequence[Branch]) -> None:
        for branch in branches:
            self._logger.info('Deleting stale branch', branch=branch.branch_name)
            self.client.delete_branch(branch)

    def branch_name_by_pull_request(self, pull_request: PullRequest) -> str:
        return branch_name_for(self.project, pull_request)

    def create_missing_branches(self) -> Tuple[List[Branch], List[Branch]]:
        by_name: Dict[str, Branch] = {branch.branch_name: branch for branch in self.branches}
        created, existing = [], []
        for pull_request in self.pull_requests:
            branch_name = self.branch_name_by_pull_request(pull_request)
            found = by_name.get(branch_name)
            if found is not None:
                existing.append(found)
                continue

            self._logger.info('Creating branch', branch=branch_name)
            created.append(self.create_branch_for_pr(branch_name, pull_request))
        return created, existing

    def create_branch_for_pr(self, branch_name: str, pull_request: PullRequest) -> Branch:
        overrides = self.overrides_for_pull_request(pull_request)
        created = self.commit_and_push_overrides(branch_name, overrides)
        self.cache.add(pull_request, overrides)
        return created

    def commit_and_push_overrides(self, branch_name: str, overrides: Overrides) -> Branch:
        self.source_control.commit_and_push(branch_name, render_overrides(overrides))
        return self.client.branch(self.buildconf.repo_url, branch_name)

    def packages_affected_by_pull_request(
        self, pull_request: PullRequest
    ) -> List[PackageRepository]:
        return [
            package
            for package in self.packages
            if pull_request.git_url.same(package.repo_url)
            and package.branch == pull_request.base_branch
        ]

    def overrides_for_pull_request(self, pull_request: PullRequest) -> Overrides:
        pull_requests = self.retriever.retrieve_dependencies(pull_request)
        pull_requests.append(pull_request)

        overrides: Overrides = []
        for pr in pull_requests:
            for package in self.packages_affected_by_pull_request(pr):
                overrides.append({
                    package.manifest_key: {
                        'remote_branch': self.client.test_branch_name(pr),
                        'single_branch': False,
                        'shallow': False,
                    }
                })
        return overrides

    def pull_request_by_branch(self, branch: Branch) -> Optional[PullRequest]:
        for pull_request in self.pull_requests:
            if self.branch_name_by_pull_request(pull_request) == branch.branch_name:
                return pull_request
        return None

    def trigger_build(self, branch: Branch) -> None:
        pull_request = self.pull_request_by_branch(branch)
        if pull_request is None:
            raise PRSyncError(f'No pull request for branch {branch.branch_name}')
        packages = self.packages_affected_by_pull_request(pull_request)
        self.post_pull_request_changes(packages, pull_request)

    def trigger_build_if_branch_changed(self, branches: Sequence[Branch]) -> None:
        for branch in branches:
            pull_request = self.pull_request_by_branch(branch)
            if pull_request is None:
                continue
            overrides = self.overrides_for_pull_request(pull_request)
            if not self.cache.changed(pull_request, overrides):
                continue

            self._logger.info(
                'Updating branch',
                branch=branch.branch_name,
                pull_request=f'{pull_request.full_path}#{pull_request.number}',
            )
            self.commit_and_push_overrides(branch.branch_name, overrides)
            packages = self.packages_affected_by_pull_request(pull_request)
            self.post_pull_request_changes(packages, pull_request)
            self.cache.add(pull_request, overrides)

    def update_cache(self) -> None:
        evicted = self.cache.evict(self.pull_requests + self.pull_requests_stale)
        if evicted:
            self._logger.info('Evicted cached pull requests', count=len(evicted))
        self.cache.dump()

    def clear_and_dump_cache(self) -> None:
        self.cache.clear()
        self.cache.dump()

    def update_package_branches(self) -> List[Branch]:
        repositories = self.unique_packages()
        self._logger.info('Fetching branches', repositories=len(repositories))

        branches = []
        for package in repositories:
            try:
                branches.append(self.client.branch(package.repo_url, package.branch))
            except PRSyncError as error:
                self._logger.warning(
                    'Could not fetch package branch, ignoring package',
                    package=package.package,
                    repository=package.repo_url,
                    branch=package.branch,
                    error=str(error),
                )

        self._logger.info('Tracking branches', count=len(branches))
        self.package_branches = branches
        return branches

    def packages_by_branch(self, branch: Branch) -> List[PackageRepository]:
        return [
            package
            for package in self.packages
            if branch.git_url.same(package.repo_url)
            and package.branch == branch.branch_name
        ]

    def trigger_build_if_packages_changed(self) -> bool:
        changed = False
        for branch in self.package_branches:
            for package in self.packages_by_branch(branch):
                if package.head_sha == branch.sha:
                    continue

                self._logger.info(
                    'Push detected',
                    package=package.package,
                    local=package.head_sha,
                    remote=branch.sha,
                )
                if self.updater.update_failed() is not None:
                    self._logger.info(
                        'Not triggering build, last update failed',
                        package=package.package,
                    )
                else:
                    self.post_mainline_changes(package, branch, self.buildconf.branch)
                changed = True
        return changed

    def trigger_build_if_buildconf_changed(self) -> bool:
        branch = self.client.branch(self.buildconf.repo_url, self.buildconf.branch)
        if self.buildconf.head_sha == branch.sha:
            return False

        self._logger.info(
            'Push detected on the buildconf',
            local=self.buildconf.head_sha,
            remote=branch.sha,
        )
        self.post_mainline_changes(self.buildconf, branch, branch.branch_name)
        return True

    def handle_mainline_changes(self) -> None:
        packages_changed = self.trigger_build_if_packages_changed()
        buildconf_changed = self.trigger_build_if_buildconf_changed()

        if buildconf_changed:
            self.clear_and_dump_cache()
        if packages_changed or buildconf_changed:
            self.updater.restart_and_update()

    def post_pull_request_changes(
        self, packages: Sequence[PackageRepository], pull_request: PullRequest
    ) -> bool:
        change = Change(
            author=pull_request.last_committer or pull_request.author,
            branch=self.branch_name_by_pull_request(pull_request),
            revision=pull_request.head_sha,
            repository=pull_request.repository_url,
            when=pull_request.updated_at,
            project=self.project,
            properties={
                'source_branch': pull_request.head_branch,
                'source_project_id': pull_request.head_repo_id,
                'source_packages': [package.package for package in packages],
                'pull_request_url': pull_request.web_url,
            },
        )
        return self._post(change)

    def post_mainline_changes(
        self, package: PackageRepository, branch: Branch, buildconf_branch: str
    ) -> bool:
        change = Change(
            author=branch.commit_author or '',
            branch=buildconf_branch,
            revision=branch.sha,
            repository=package.repo_url,
            when=branch.commit_date,
            project=self.project,
            properties={
                'source_branch': branch.branch_name,
                'source_packages': [package.package],
            },
        )
        return self._post(change)

    def _post(self, change: Change) -> bool:
        self._logger.info('Triggering build', branch=change.branch, revision=change.revision)
        posted = self.builder.post_change(change)
        if not posted:
            self._logger.error('Build trigger rejected', branch=change.branch)
        return posted
