"""GitLab merge request adapter.

Talks to the GitLab v4 REST API with a project access token and maps merge
requests onto the same ``PullRequest`` shape the GitHub adapter produces.
Works against GitLab.com and self-hosted instances.
"""

import posixpath
import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
from urllib.parse import quote as url_quote

import httpx

from prsync.core.exceptions import (
    ConfigError,
    ConnectionFailed,
    InvalidURL,
    NotFound,
    TooManyRequests,
)
from prsync.core.ports.clock import Clock
from prsync.core.ports.logger import Logger
from prsync.core.ports.service import COMMIT_STRATEGIES, RateLimit, select_test_branch
from prsync.core.schema.git_url import GitURL
from prsync.core.schema.pull_request import Branch, PullRequest

DEFAULT_PER_PAGE = 100
DEFAULT_TIMEOUT = 30.0
# GitLab.com answers without rate limit headers on most endpoints
UNLIMITED = RateLimit(remaining=1000, resets_in=0)

SHORT_REF_RX = re.compile(r'^!(\d+)$')
RELATIVE_REF_RX = re.compile(r'^([A-Za-z0-9\-_.]+)!(\d+)$')
FULL_REF_RX = re.compile(r'^([A-Za-z0-9\-_.]+(?:/[A-Za-z0-9\-_.]+)*)/?!(\d+)$')

MERGEABLE_STATUSES = {'can_be_merged': True, 'cannot_be_merged': False}
# detailed_merge_status values that settle mergeability on their own
DETAILED_MERGEABLE_STATUSES = {
    'mergeable': True,
    'conflict': False,
    'need_rebase': False,
}


def _project_path(git_url: GitURL) -> str:
    """URL-encode the project path for the GitLab API."""
    return url_quote(git_url.path, safe='')


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


class GitLabService:
    kind = 'gitlab'

    def __init__(
        self,
        host: str,
        api_endpoint: Optional[str] = None,
        access_token: Optional[str] = None,
        *,
        clock: Clock,
        logger: Logger,
        commit_strategy: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        per_page: int = DEFAULT_PER_PAGE,
    ) -> None:
        self.host = host
        self.api_endpoint = (api_endpoint or self.default_endpoint(host)).rstrip('/')
        if not access_token and http_client is None:
            raise ConfigError(f'API key configuration missing for {host}')
        if commit_strategy is not None and commit_strategy not in COMMIT_STRATEGIES:
            raise ConfigError(
                f'Invalid commit strategy {commit_strategy!r} for {host}'
            )
        self.commit_strategy = commit_strategy
        self._clock = clock
        self._logger = logger
        self._per_page = per_page
        self._http = http_client or httpx.Client(
            base_url=self.api_endpoint,
            headers={'PRIVATE-TOKEN': access_token},
            timeout=DEFAULT_TIMEOUT,
        )
        # remaining calls and the epoch second at which they reset
        self._last_rate_limit: Optional[Tuple[int, int]] = None

    @staticmethod
    def default_endpoint(host: str) -> str:
        return f'https://{host}/api/v4'

    def close(self) -> None:
        self._http.close()

    @contextmanager
    def exception_adapter(self, resource: str) -> Iterator[None]:
        try:
            yield
        except httpx.TransportError as error:
            raise ConnectionFailed(f'{self.host}: {error}') from error
        except httpx.HTTPStatusError as error:
            status = error.response.status_code
            if status == 404:
                raise NotFound(f'{resource} not found on {self.host}', resource) from error
            if status == 429:
                raise TooManyRequests(f'Too many requests to {self.host}') from error
            raise

    def pull_requests(
        self,
        git_url: GitURL,
        base: Optional[str] = None,
        state: Optional[str] = None,
    ) -> List[PullRequest]:
        params: Dict[str, Any] = {}
        if state:
            params['state'] = 'opened' if state == 'open' else state
        if base:
            params['target_branch'] = base

        with self.exception_adapter(git_url.path):
            return [
                self._to_pull_request(git_url, mr)
                for mr in self._paginate(
                    f'/projects/{_project_path(git_url)}/merge_requests', params
                )
            ]

    def pull_request(self, git_url: GitURL, number: int) -> PullRequest:
        with self.exception_adapter(f'{git_url.path}!{number}'):
            mr = self._get(f'/projects/{_project_path(git_url)}/merge_requests/{number}')
            return self._to_pull_request(git_url, mr)

    def branches(self, git_url: GitURL) -> List[Branch]:
        with self.exception_adapter(git_url.path):
            return [
                self._to_branch(git_url, branch)
                for branch in self._paginate(
                    f'/projects/{_project_path(git_url)}/repository/branches', {}
                )
            ]

    def branch(self, git_url: GitURL, branch_name: str) -> Branch:
        with self.exception_adapter(f'{git_url.path}:{branch_name}'):
            branch = self._get(
                f'/projects/{_project_path(git_url)}/repository/branches/'
                f'{url_quote(branch_name, safe="")}'
            )
            return self._to_branch(git_url, branch)

    def delete_branch(self, git_url: GitURL, branch_name: str) -> None:
        with self.exception_adapter(f'{git_url.path}:{branch_name}'):
            response = self._http.delete(
                f'/projects/{_project_path(git_url)}/repository/branches/'
                f'{url_quote(branch_name, safe="")}'
            )
            self._record_rate_limit(response)
            response.raise_for_status()

    def rate_limit(self) -> RateLimit:
        """Rate limit as reported by the last response, if any reported one."""
        if self._last_rate_limit is None:
            return UNLIMITED
        remaining, reset_at = self._last_rate_limit
        resets_in = max(0, int(reset_at - self._clock.now().timestamp()))
        return RateLimit(remaining=remaining, resets_in=resets_in)

    def test_branch_name(self, pull_request: PullRequest) -> str:
        return select_test_branch(
            self.commit_strategy,
            pull_request,
            merge_ref=f'refs/merge-requests/{pull_request.number}/merge',
            head_ref=f'refs/merge-requests/{pull_request.number}/head',
        )

    def extract_info_from_pull_request_ref(
        self, ref: str, pull_request: PullRequest
    ) -> Optional[Tuple[str, int]]:
        ref = ref.strip()
        info = (
            self._extract_short_ref(ref, pull_request)
            or self._extract_relative_ref(ref, pull_request)
            or self._extract_full_ref(ref)
            or self._extract_url(ref)
        )
        if info is None:
            return None
        path, number = info
        return f'https://{self.host}/{path}', number

    @staticmethod
    def _extract_short_ref(
        ref: str, pull_request: PullRequest
    ) -> Optional[Tuple[str, int]]:
        match = SHORT_REF_RX.match(ref)
        if match is None:
            return None
        return pull_request.git_url.path, int(match.group(1))

    @staticmethod
    def _extract_relative_ref(
        ref: str, pull_request: PullRequest
    ) -> Optional[Tuple[str, int]]:
        match = RELATIVE_REF_RX.match(ref)
        if match is None:
            return None
        namespace = posixpath.dirname(pull_request.git_url.path)
        return f'{namespace}/{match.group(1)}', int(match.group(2))

    @staticmethod
    def _extract_full_ref(ref: str) -> Optional[Tuple[str, int]]:
        match = FULL_REF_RX.match(ref)
        if match is None:
            return None
        return match.group(1), int(match.group(2))

    @staticmethod
    def _extract_url(ref: str) -> Optional[Tuple[str, int]]:
        try:
            git_url = GitURL(ref)
        except InvalidURL:
            return None
        if git_url.scheme not in ('http', 'https'):
            return None

        segments = git_url.path.split('/')
        if not segments or not segments[-1].isdigit():
            return None
        number = int(segments.pop())
        if not segments or segments.pop() != 'merge_requests':
            return None
        if segments and segments[-1] == '-':
            segments.pop()
        return '/'.join(segments), number

    def _get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        response = self._http.get(path, params=params)
        self._record_rate_limit(response)
        response.raise_for_status()
        return response.json()

    def _paginate(self, path: str, params: Mapping[str, Any]) -> Iterator[Dict[str, Any]]:
        page: Optional[str] = '1'
        while page:
            response = self._http.get(
                path, params={**params, 'per_page': self._per_page, 'page': page}
            )
            self._record_rate_limit(response)
            response.raise_for_status()
            yield from response.json()
            page = response.headers.get('X-Next-Page') or None

    def _record_rate_limit(self, response: httpx.Response) -> None:
        remaining = response.headers.get('RateLimit-Remaining')
        reset_at = response.headers.get('RateLimit-Reset')
        if remaining is None or reset_at is None:
            return
        try:
            self._last_rate_limit = (int(remaining), int(reset_at))
        except ValueError:
            self._logger.debug('Ignoring malformed rate limit headers', host=self.host)

    def _to_pull_request(self, git_url: GitURL, mr: Mapping[str, Any]) -> PullRequest:
        diff_refs = mr.get('diff_refs') or {}
        author = mr.get('author') or {}
        mergeable = DETAILED_MERGEABLE_STATUSES.get(mr.get('detailed_merge_status'))
        if mergeable is None:
            mergeable = MERGEABLE_STATUSES.get(mr.get('merge_status'))
        return PullRequest(
            git_url=git_url,
            number=int(mr['iid']),
            is_open=mr.get('state') == 'opened',
            title=mr.get('title') or '',
            base_branch=mr['target_branch'],
            base_sha=diff_refs.get('base_sha'),
            head_branch=mr['source_branch'],
            head_sha=mr['sha'],
            updated_at=_parse_time(mr.get('updated_at')),
            body=mr.get('description') or '',
            web_url=mr.get('web_url') or '',
            repository_url=f'https://{git_url.full_path}',
            author=author.get('username') or '',
            last_committer='',
            head_repo_id=mr.get('source_project_id'),
            draft=bool(mr.get('draft', mr.get('work_in_progress', False))),
            mergeable=mergeable,
        )

    @staticmethod
    def _to_branch(git_url: GitURL, branch: Mapping[str, Any]) -> Branch:
        commit = branch.get('commit') or {}
        return Branch(
            git_url=git_url,
            branch_name=branch['name'],
            sha=commit['id'],
            commit_author=commit.get('committer_name'),
            commit_date=_parse_time(commit.get('committed_date')),
        )
