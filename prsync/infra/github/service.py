import re
from contextlib import contextmanager
from datetime import timedelta
from typing import Dict, Iterator, List, Optional, Tuple

import requests
from github import GithubException, RateLimitExceededException, UnknownObjectException

from prsync.core.exceptions import ConfigError, ConnectionFailed, NotFound, TooManyRequests
from prsync.core.ports.clock import Clock
from prsync.core.ports.logger import Logger
from prsync.core.ports.service import COMMIT_STRATEGIES, RateLimit, select_test_branch
from prsync.core.schema.git_url import GitURL
from prsync.core.schema.pull_request import Branch, PullRequest
from prsync.infra.github.client import GitHubClient

PUBLIC_HOST = 'github.com'
PUBLIC_API_ENDPOINT = 'https://api.github.com'
DEFAULT_MERGEABILITY_TIMEOUT = 60.0
MERGEABILITY_POLL_INTERVAL = 1.0
GATEWAY_ERRORS = (502, 503, 504)

NAME_RX = r'[A-Za-z\d+_\-.]+'
OWNER_NAME_AND_NUMBER_RX = re.compile(rf'^({NAME_RX})/({NAME_RX})#(\d+)$')
NUMBER_RX = re.compile(r'^#(\d+)$')


def pull_request_url_rx(host: str) -> re.Pattern:
    return re.compile(
        rf'^https?://(?:\w+\.)?{re.escape(host)}/+({NAME_RX})/+({NAME_RX})/+pull/+(\d+)/*$'
    )


class GitHubService:
    """GitHub REST v3 adapter built on PyGithub.

    GitHub computes mergeability lazily: listing pull requests never reports
    it, and the detail endpoint may answer ``null`` for a while after a push.
    Open pull requests are therefore polled until the answer is definite or
    ``mergeability_timeout`` elapses. Definite answers are cached until the
    head or base sha moves.
    """

    kind = 'github'

    def __init__(
        self,
        host: str = PUBLIC_HOST,
        api_endpoint: Optional[str] = None,
        access_token: Optional[str] = None,
        *,
        clock: Clock,
        logger: Logger,
        mergeability_timeout: float = DEFAULT_MERGEABILITY_TIMEOUT,
        commit_strategy: Optional[str] = None,
        client: Optional[GitHubClient] = None,
    ) -> None:
        self.host = host
        self.api_endpoint = api_endpoint or self.default_endpoint(host)
        if not access_token and client is None:
            raise ConfigError(f'API key configuration missing for {host}')
        if commit_strategy is not None and commit_strategy not in COMMIT_STRATEGIES:
            raise ConfigError(
                f'Invalid commit strategy {commit_strategy!r} for {host}'
            )
        self.commit_strategy = commit_strategy
        self.mergeability_timeout = mergeability_timeout
        self._clock = clock
        self._logger = logger
        self._client = client or GitHubClient(access_token, base_url=self.api_endpoint)
        self._mergeable_cache: Dict[Tuple[str, int], Tuple[Tuple[str, str], bool]] = {}
        self._pull_request_url_rx = pull_request_url_rx(host)

    @staticmethod
    def default_endpoint(host: str) -> str:
        if host == PUBLIC_HOST:
            return PUBLIC_API_ENDPOINT
        return f'https://{host}/api/v3'

    def close(self) -> None:
        self._client.close()

    @contextmanager
    def exception_adapter(self, resource: str) -> Iterator[None]:
        try:
            yield
        except UnknownObjectException as error:
            raise NotFound(f'{resource} not found on {self.host}', resource) from error
        except RateLimitExceededException as error:
            raise TooManyRequests(f'Rate limit exceeded on {self.host}') from error
        except GithubException as error:
            if error.status == 404:
                raise NotFound(f'{resource} not found on {self.host}', resource) from error
            if error.status == 429:
                raise TooManyRequests(f'Too many requests to {self.host}') from error
            if error.status in GATEWAY_ERRORS:
                raise ConnectionFailed(f'{self.host} answered {error.status}') from error
            raise
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as error:
            raise ConnectionFailed(str(error)) from error

    def pull_requests(
        self,
        git_url: GitURL,
        base: Optional[str] = None,
        state: Optional[str] = None,
    ) -> List[PullRequest]:
        options = {}
        if state:
            options['state'] = state
        if base:
            options['base'] = base

        with self.exception_adapter(git_url.path):
            pulls = [
                self._to_pull_request(git_url, pr)
                for pr in self._repo(git_url).get_pulls(**options)
            ]
        for pull_request in pulls:
            self._resolve_mergeability(pull_request)
        return pulls

    def pull_request(self, git_url: GitURL, number: int) -> PullRequest:
        with self.exception_adapter(f'{git_url.path}#{number}'):
            pull_request = self._to_pull_request(
                git_url, self._repo(git_url).get_pull(number)
            )
        self._resolve_mergeability(pull_request)
        return pull_request

    def branches(self, git_url: GitURL) -> List[Branch]:
        with self.exception_adapter(git_url.path):
            return [
                Branch(git_url=git_url, branch_name=branch.name, sha=branch.commit.sha)
                for branch in self._repo(git_url).get_branches()
            ]

    def branch(self, git_url: GitURL, branch_name: str) -> Branch:
        with self.exception_adapter(f'{git_url.path}:{branch_name}'):
            branch = self._repo(git_url).get_branch(branch_name)
            author = branch.commit.commit.author
            return Branch(
                git_url=git_url,
                branch_name=branch.name,
                sha=branch.commit.sha,
                commit_author=author.name if author else None,
                commit_date=author.date if author else None,
            )

    def delete_branch(self, git_url: GitURL, branch_name: str) -> None:
        with self.exception_adapter(f'{git_url.path}:{branch_name}'):
            self._repo(git_url).get_git_ref(f'heads/{branch_name}').delete()

    def rate_limit(self) -> RateLimit:
        with self.exception_adapter('rate limit'):
            remaining, reset_at = self._client.rate_limit()
        resets_in = max(0, int(reset_at - self._clock.now().timestamp()))
        return RateLimit(remaining=remaining, resets_in=resets_in)

    def test_branch_name(self, pull_request: PullRequest) -> str:
        return select_test_branch(
            self.commit_strategy,
            pull_request,
            merge_ref=f'refs/pull/{pull_request.number}/merge',
            head_ref=f'refs/pull/{pull_request.number}/head',
        )

    def extract_info_from_pull_request_ref(
        self, ref: str, pull_request: PullRequest
    ) -> Optional[Tuple[str, int]]:
        ref = ref.strip()
        match = (
            self._pull_request_url_rx.match(ref)
            or OWNER_NAME_AND_NUMBER_RX.match(ref)
        )
        if match:
            owner, name, number = match.groups()
            path = f'{owner}/{name}'
        elif (match := NUMBER_RX.match(ref)):
            path = pull_request.git_url.path
            number = match.group(1)
        else:
            return None
        return f'https://{self.host}/{path}', int(number)

    def _repo(self, git_url: GitURL):
        return self._client.get_repo(git_url.path)

    def _resolve_mergeability(self, pull_request: PullRequest) -> None:
        if not pull_request.is_open:
            return

        key = (pull_request.git_url.path, pull_request.number)
        shas = (pull_request.head_sha, pull_request.base_sha or '')
        cached = self._mergeable_cache.get(key)
        if cached is not None and cached[0] == shas:
            pull_request.mergeable = cached[1]
            return

        mergeable = self._poll_mergeability(pull_request)
        pull_request.mergeable = mergeable
        if mergeable is None:
            self._mergeable_cache.pop(key, None)
        else:
            self._mergeable_cache[key] = (shas, mergeable)

    def _poll_mergeability(self, pull_request: PullRequest) -> Optional[bool]:
        git_url = pull_request.git_url
        deadline = self._clock.now() + timedelta(seconds=self.mergeability_timeout)
        while True:
            with self.exception_adapter(f'{git_url.path}#{pull_request.number}'):
                mergeable = self._repo(git_url).get_pull(pull_request.number).mergeable
            if mergeable is not None:
                return mergeable
            if self._clock.now() >= deadline:
                self._logger.warning(
                    'Timed out waiting for mergeability',
                    pull_request=f'{pull_request.full_path}#{pull_request.number}',
                    timeout=self.mergeability_timeout,
                )
                return None
            self._clock.sleep(MERGEABILITY_POLL_INTERVAL)

    def _to_pull_request(self, git_url: GitURL, pr) -> PullRequest:
        base_repo = pr.base.repo
        head_repo = pr.head.repo
        return PullRequest(
            git_url=git_url,
            number=pr.number,
            is_open=pr.state == 'open',
            title=pr.title or '',
            base_branch=pr.base.ref,
            base_sha=pr.base.sha,
            head_branch=pr.head.ref,
            head_sha=pr.head.sha,
            updated_at=pr.updated_at,
            body=pr.body or '',
            web_url=pr.html_url or '',
            repository_url=(
                base_repo.html_url if base_repo else f'https://{git_url.full_path}'
            ),
            author=pr.user.login if pr.user else '',
            last_committer=pr.head.user.login if pr.head.user else '',
            head_repo_id=head_repo.id if head_repo else None,
            draft=bool(pr.draft),
        )
