import re
from typing import List, Optional, Set, Tuple

from prsync.core.exceptions import NotFound
from prsync.core.ports.git_api import GitAPI
from prsync.core.schema.pull_request import PullRequest

DEPENDS_ON_RX = re.compile(r'.*depends?(?:\s+on)?\s*:?\s*\n(.*)', re.DOTALL | re.IGNORECASE)
OPEN_TASK_RX = re.compile(r'-\s*\[\s*\]\s*([A-Za-z\d+_\-:/#.!]+)')


class OverridesRetriever:
    """Expands a pull request's "Depends on:" task list into the pull
    requests it needs built alongside it.

    Only unchecked items count. The expansion is transitive, each pull
    request shows up at most once, and reference cycles are cut off.
    """

    def __init__(self, client: GitAPI) -> None:
        self.client = client

    @staticmethod
    def parse_task_list(body: Optional[str]) -> List[str]:
        match = DEPENDS_ON_RX.match(body or '')
        if match is None:
            return []

        lines = [line.strip() for line in match.group(1).splitlines()]
        block = []
        for line in filter(None, lines):
            if not line.startswith('-'):
                break
            block.append(line)
        return OPEN_TASK_RX.findall('\n'.join(block))

    def task_to_pull_request(
        self, task: str, pull_request: PullRequest
    ) -> Optional[PullRequest]:
        info = self.client.extract_info_from_pull_request_ref(task, pull_request)
        if info is None:
            return None

        url, number = info
        try:
            candidates = self.client.pull_requests(url, state='open')
        except NotFound:
            return None
        return next((pr for pr in candidates if pr.number == number), None)

    def retrieve_dependencies(self, pull_request: PullRequest) -> List[PullRequest]:
        visited: Set[Tuple[str, str, int]] = {pull_request.identity}
        found: List[PullRequest] = []
        self._expand(pull_request, visited, found)
        return found

    def _expand(
        self,
        pull_request: PullRequest,
        visited: Set[Tuple[str, str, int]],
        found: List[PullRequest],
    ) -> None:
        direct = []
        for task in self.parse_task_list(pull_request.body):
            dependency = self.task_to_pull_request(task, pull_request)
            if dependency is not None:
                direct.append(dependency)
        pull_request.dependencies = direct

        for dependency in direct:
            if dependency.identity in visited:
                continue
            visited.add(dependency.identity)
            found.append(dependency)
            self._expand(dependency, visited, found)
