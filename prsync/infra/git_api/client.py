from typing import Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

from prsync.core.exceptions import ConnectionFailed, TooManyRequests, UnsupportedService
from prsync.core.ports.clock import Clock
from prsync.core.ports.logger import Logger
from prsync.core.ports.service import Service
from prsync.core.schema.git_url import GitURL
from prsync.core.schema.pull_request import Branch, PullRequest

T = TypeVar('T')

DEFAULT_MAX_RETRIES = 5
RETRY_DELAY = 1


def humanize_time(seconds: float) -> str:
    """Render a duration as ``2h17m23s``, dropping zero components."""
    parts = []
    remaining = int(seconds)
    for count, unit in ((60, 's'), (60, 'm'), (24, 'h')):
        if remaining <= 0:
            break
        remaining, value = divmod(remaining, count)
        if value:
            parts.append(f'{value}{unit}')
    if remaining > 0:
        parts.append(f'{remaining}d')
    return ''.join(reversed(parts))


class Client:
    """Routes git hosting calls to the service that owns the URL's host.

    Every call goes through :meth:`with_retry`, which waits out an exhausted
    rate limit before calling and retries transient failures.
    """

    def __init__(
        self,
        services: Mapping[str, Service],
        clock: Clock,
        logger: Logger,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._services: Dict[str, Service] = dict(services)
        self._clock = clock
        self._logger = logger
        self._max_retries = max_retries

    @property
    def services(self) -> Dict[str, Service]:
        return dict(self._services)

    def supports(self, url: str | GitURL) -> bool:
        return GitURL(url).host in self._services

    def service_for_host(self, host: str) -> Service:
        try:
            return self._services[host]
        except KeyError:
            raise UnsupportedService(host) from None

    def service(self, url: str | GitURL) -> Service:
        return self.service_for_host(GitURL(url).host)

    def check_rate_limit_and_wait(self, service: Service) -> None:
        rate_limit = service.rate_limit()
        if rate_limit.remaining > 0:
            return

        wait_for = rate_limit.resets_in + 1
        self._logger.warning(
            'API calls rate limit exceeded, waiting',
            host=service.host,
            wait=humanize_time(wait_for),
        )
        self._clock.sleep(wait_for)

    def with_retry(
        self,
        service: Service,
        call: Callable[[], T],
        times: Optional[int] = None,
    ) -> T:
        times = self._max_retries if times is None else times
        failures = 0
        while True:
            try:
                self.check_rate_limit_and_wait(service)
                return call()
            except ConnectionFailed as error:
                failures += 1
                if failures > times:
                    raise
                self._logger.warning(
                    'Connection failed, retrying',
                    host=service.host,
                    attempt=failures,
                    error=str(error),
                )
                self._clock.sleep(RETRY_DELAY)
            except TooManyRequests:
                self._logger.warning('Rate limited by server, retrying', host=service.host)

    def pull_requests(
        self,
        url: str | GitURL,
        base: Optional[str] = None,
        state: Optional[str] = None,
    ) -> List[PullRequest]:
        service = self.service(url)
        git_url = GitURL(url)
        return self.with_retry(
            service, lambda: service.pull_requests(git_url, base=base, state=state)
        )

    def pull_request(self, url: str | GitURL, number: int) -> PullRequest:
        service = self.service(url)
        git_url = GitURL(url)
        return self.with_retry(service, lambda: service.pull_request(git_url, number))

    def branches(self, url: str | GitURL) -> List[Branch]:
        service = self.service(url)
        git_url = GitURL(url)
        return self.with_retry(service, lambda: service.branches(git_url))

    def branch(self, url: str | GitURL, branch_name: str) -> Branch:
        service = self.service(url)
        git_url = GitURL(url)
        return self.with_retry(service, lambda: service.branch(git_url, branch_name))

    def delete_branch(self, branch: Branch) -> None:
        self.delete_branch_by_name(branch.git_url, branch.branch_name)

    def delete_branch_by_name(self, url: str | GitURL, branch_name: str) -> None:
        service = self.service(url)
        git_url = GitURL(url)
        self.with_retry(service, lambda: service.delete_branch(git_url, branch_name))

    def test_branch_name(self, pull_request: PullRequest) -> str:
        return self.service(pull_request.git_url).test_branch_name(pull_request)

    def extract_info_from_pull_request_ref(
        self, ref: str, pull_request: PullRequest
    ) -> Optional[Tuple[str, int]]:
        service = self.service(pull_request.git_url)
        return service.extract_info_from_pull_request_ref(ref, pull_request)

    def close(self) -> None:
        for service in self._services.values():
            service.close()
