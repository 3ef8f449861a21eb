from datetime import datetime, timedelta, timezone

import pytest
import requests
from github import GithubException, RateLimitExceededException

from prsync.core.exceptions import ConfigError, ConnectionFailed, NotFound, TooManyRequests
from prsync.core.schema.git_url import GitURL
from prsync.infra.github.service import GitHubService
from tests.builders import make_pull_request
from tests.fakes import (
    FakeBranch,
    FakeClock,
    FakeCommit,
    FakeGitAuthor,
    FakeGitCommit,
    FakeGitHubClient,
    FakeLogger,
    FakePullRequest,
    FakePullRequestPart,
    FakeRepo,
    FakeRepository,
    FakeUser,
)

NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
REPO_URL = GitURL("https://github.com/rock-core/tools-orogen")


def _make_fake_pr(
    number: int = 1,
    state: str = "open",
    base: str = "master",
    head_sha: str = "head-sha",
    base_sha: str = "base-sha",
    draft: bool = False,
) -> FakePullRequest:
    return FakePullRequest(
        number=number,
        state=state,
        title="Add feature",
        body="Depends on:\n- [ ] #2",
        updated_at=NOW - timedelta(hours=1),
        html_url=f"https://github.com/rock-core/tools-orogen/pull/{number}",
        base=FakePullRequestPart(
            ref=base,
            sha=base_sha,
            repo=FakeRepo(id=1, html_url="https://github.com/rock-core/tools-orogen"),
        ),
        head=FakePullRequestPart(
            ref="feature",
            sha=head_sha,
            repo=FakeRepo(id=99, html_url="https://github.com/fork/tools-orogen"),
            user=FakeUser(login="pusher"),
        ),
        user=FakeUser(login="author"),
        draft=draft,
    )


def _service(repo: FakeRepository, clock: FakeClock, **kwargs) -> GitHubService:
    return GitHubService(
        "github.com",
        client=FakeGitHubClient({"rock-core/tools-orogen": repo}),
        clock=clock,
        logger=FakeLogger(),
        **kwargs,
    )


class TestGitHubServiceConfiguration:
    def test_default_endpoints(self) -> None:
        assert GitHubService.default_endpoint("github.com") == "https://api.github.com"
        assert GitHubService.default_endpoint("git.corp") == "https://git.corp/api/v3"

    def test_missing_token_is_a_config_error(self) -> None:
        with pytest.raises(ConfigError):
            GitHubService("github.com", clock=FakeClock(NOW), logger=FakeLogger())

    def test_unknown_commit_strategy_is_a_config_error(self) -> None:
        with pytest.raises(ConfigError):
            _service(FakeRepository(), FakeClock(NOW), commit_strategy="rebase")


class TestGitHubServicePullRequests:
    def test_maps_pull_request_fields(self) -> None:
        repo = FakeRepository([_make_fake_pr()], mergeable={1: [True]})
        service = _service(repo, FakeClock(NOW))

        [pull_request] = service.pull_requests(REPO_URL, base="master", state="open")

        assert pull_request.number == 1
        assert pull_request.is_open
        assert pull_request.base_branch == "master"
        assert pull_request.base_sha == "base-sha"
        assert pull_request.head_sha == "head-sha"
        assert pull_request.head_repo_id == 99
        assert pull_request.author == "author"
        assert pull_request.last_committer == "pusher"
        assert pull_request.repository_url == "https://github.com/rock-core/tools-orogen"
        assert pull_request.full_path == "github.com/rock-core/tools-orogen"
        assert pull_request.body == "Depends on:\n- [ ] #2"
        assert pull_request.mergeable is True
        assert repo.get_pulls_calls == [{"state": "open", "base": "master"}]

    def test_filters_by_base(self) -> None:
        repo = FakeRepository(
            [_make_fake_pr(1, base="master"), _make_fake_pr(2, base="develop")],
            mergeable={1: [True], 2: [True]},
        )
        service = _service(repo, FakeClock(NOW))

        pulls = service.pull_requests(REPO_URL, base="develop", state="open")

        assert [pr.number for pr in pulls] == [2]

    def test_polls_until_mergeability_is_known(self) -> None:
        repo = FakeRepository([_make_fake_pr()], mergeable={1: [None, None, False]})
        clock = FakeClock(NOW)
        service = _service(repo, clock)

        [pull_request] = service.pull_requests(REPO_URL)

        assert pull_request.mergeable is False
        assert clock.slept == [1.0, 1.0]

    def test_gives_up_after_the_timeout(self) -> None:
        repo = FakeRepository([_make_fake_pr()], mergeable={1: [None]})
        clock = FakeClock(NOW)
        service = _service(repo, clock, mergeability_timeout=3)

        [pull_request] = service.pull_requests(REPO_URL)

        assert pull_request.mergeable is None
        assert sum(clock.slept) == 3

    def test_caches_mergeability_per_shas(self) -> None:
        repo = FakeRepository([_make_fake_pr()], mergeable={1: [True]})
        service = _service(repo, FakeClock(NOW))

        service.pull_requests(REPO_URL)
        service.pull_requests(REPO_URL)

        assert repo.get_pull_calls == [1]

    def test_new_head_sha_invalidates_the_cache(self) -> None:
        repo = FakeRepository([_make_fake_pr()], mergeable={1: [True, False]})
        service = _service(repo, FakeClock(NOW))

        service.pull_requests(REPO_URL)
        repo.pulls[0].head.sha = "new-head"
        [pull_request] = service.pull_requests(REPO_URL)

        assert pull_request.mergeable is False
        assert repo.get_pull_calls == [1, 1]

    def test_timed_out_checks_are_retried_next_time(self) -> None:
        repo = FakeRepository([_make_fake_pr()], mergeable={1: [None]})
        service = _service(repo, FakeClock(NOW), mergeability_timeout=0)

        service.pull_requests(REPO_URL)
        repo.mergeable[1] = [True]
        [pull_request] = service.pull_requests(REPO_URL)

        assert pull_request.mergeable is True

    def test_closed_pull_requests_skip_mergeability(self) -> None:
        repo = FakeRepository([_make_fake_pr(state="closed")])
        service = _service(repo, FakeClock(NOW))

        [pull_request] = service.pull_requests(REPO_URL, state="closed")

        assert not pull_request.is_open
        assert repo.get_pull_calls == []

    def test_single_pull_request(self) -> None:
        repo = FakeRepository([_make_fake_pr(7)], mergeable={7: [True]})
        service = _service(repo, FakeClock(NOW))

        assert service.pull_request(REPO_URL, 7).number == 7
        with pytest.raises(NotFound):
            service.pull_request(REPO_URL, 8)

    def test_unknown_repository_is_not_found(self) -> None:
        service = _service(FakeRepository(), FakeClock(NOW))

        with pytest.raises(NotFound):
            service.pull_requests(GitURL("https://github.com/rock-core/missing"))


class TestGitHubServiceBranches:
    def _repo(self) -> FakeRepository:
        return FakeRepository(
            branches=[
                FakeBranch(
                    "master",
                    FakeCommit(
                        "sha-master",
                        FakeGitCommit(FakeGitAuthor("John Smith", NOW)),
                    ),
                ),
                FakeBranch("autoproj/daemon/old", FakeCommit("sha-old")),
            ]
        )

    def test_lists_branches(self) -> None:
        service = _service(self._repo(), FakeClock(NOW))

        branches = service.branches(REPO_URL)

        assert [(b.branch_name, b.sha) for b in branches] == [
            ("master", "sha-master"),
            ("autoproj/daemon/old", "sha-old"),
        ]
        assert branches[0].commit_author is None

    def test_fetches_branch_with_commit_author(self) -> None:
        service = _service(self._repo(), FakeClock(NOW))

        branch = service.branch(REPO_URL, "master")

        assert branch.commit_author == "John Smith"
        assert branch.commit_date == NOW
        assert branch.repository_url == "https://github.com/rock-core/tools-orogen"

    def test_deletes_branch_through_its_ref(self) -> None:
        repo = self._repo()
        service = _service(repo, FakeClock(NOW))

        service.delete_branch(REPO_URL, "autoproj/daemon/old")

        assert repo.deleted_refs == ["heads/autoproj/daemon/old"]
        with pytest.raises(NotFound):
            service.branch(REPO_URL, "autoproj/daemon/old")


class TestGitHubServiceRateLimit:
    def test_reports_seconds_until_reset(self) -> None:
        client = FakeGitHubClient(rate=(0, int(NOW.timestamp()) + 15))
        service = GitHubService(
            "github.com", client=client, clock=FakeClock(NOW), logger=FakeLogger()
        )

        rate_limit = service.rate_limit()

        assert rate_limit.remaining == 0
        assert rate_limit.resets_in == 15

    def test_reset_in_the_past_is_zero(self) -> None:
        client = FakeGitHubClient(rate=(10, int(NOW.timestamp()) - 100))
        service = GitHubService(
            "github.com", client=client, clock=FakeClock(NOW), logger=FakeLogger()
        )

        assert service.rate_limit().resets_in == 0


class TestGitHubServiceExceptionAdapter:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (GithubException(404, {}, {}), NotFound),
            (GithubException(429, {}, {}), TooManyRequests),
            (RateLimitExceededException(403, {}, {}), TooManyRequests),
            (GithubException(502, {}, {}), ConnectionFailed),
            (requests.exceptions.ConnectionError("refused"), ConnectionFailed),
            (requests.exceptions.Timeout("slow"), ConnectionFailed),
        ],
    )
    def test_translates(self, error: Exception, expected: type) -> None:
        service = _service(FakeRepository(), FakeClock(NOW))

        with pytest.raises(expected) as excinfo:
            with service.exception_adapter("rock-core/tools-orogen"):
                raise error
        assert excinfo.value.__cause__ is error

    def test_other_statuses_propagate(self) -> None:
        service = _service(FakeRepository(), FakeClock(NOW))

        with pytest.raises(GithubException):
            with service.exception_adapter("rock-core/tools-orogen"):
                raise GithubException(500, {}, {})


class TestGitHubServiceTestBranch:
    @pytest.mark.parametrize(
        "strategy, draft, mergeable, expected",
        [
            (None, False, True, "refs/pull/5/merge"),
            (None, False, False, "refs/pull/5/head"),
            (None, False, None, "refs/pull/5/head"),
            (None, True, True, "refs/pull/5/head"),
            ("merge", False, False, "refs/pull/5/merge"),
            ("merge", True, True, "refs/pull/5/head"),
            ("head", False, True, "refs/pull/5/head"),
        ],
    )
    def test_selects_ref(self, strategy, draft, mergeable, expected) -> None:
        service = _service(FakeRepository(), FakeClock(NOW), commit_strategy=strategy)
        pull_request = make_pull_request(number=5, draft=draft, mergeable=mergeable)

        assert service.test_branch_name(pull_request) == expected


class TestGitHubServiceReferences:
    @pytest.mark.parametrize(
        "ref, expected",
        [
            ("https://github.com/rock-core/base-types/pull/12", ("https://github.com/rock-core/base-types", 12)),
            ("http://www.github.com//rock-core//base-types//pull//12", ("https://github.com/rock-core/base-types", 12)),
            ("rock-core/base-types#3", ("https://github.com/rock-core/base-types", 3)),
            ("#4", ("https://github.com/rock-core/tools-orogen", 4)),
        ],
    )
    def test_resolves(self, ref: str, expected) -> None:
        service = _service(FakeRepository(), FakeClock(NOW))

        assert service.extract_info_from_pull_request_ref(ref, make_pull_request()) == expected

    @pytest.mark.parametrize(
        "ref",
        [
            "https://gitlab.com/rock-core/base-types/pull/12",
            "https://github.com/rock-core/base-types/issues/12",
            "rock-core/base-types",
            "!4",
            "see #4",
        ],
    )
    def test_rejects(self, ref: str) -> None:
        service = _service(FakeRepository(), FakeClock(NOW))

        assert service.extract_info_from_pull_request_ref(ref, make_pull_request()) is None
