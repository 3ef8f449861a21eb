from pathlib import Path

import pytest

from prsync.config.settings import load_services_file, load_settings, parse_service
from prsync.core.exceptions import ConfigError
from prsync.infra.git_api.factory import build_services
from prsync.infra.github.service import GitHubService
from prsync.infra.gitlab.service import GitLabService
from tests.builders import NOW
from tests.fakes import FakeClock, FakeLogger

ENV_VARS = (
    "GITHUB_TOKEN",
    "PRSYNC_PROJECT",
    "PRSYNC_POLL_INTERVAL",
    "PRSYNC_MAX_AGE_DAYS",
    "PRSYNC_MAX_RETRIES",
    "PRSYNC_STATE_DIR",
    "PRSYNC_SERVICES_FILE",
    "PRSYNC_LOGGER_BACKEND",
    "PRSYNC_LOGGER_NAME",
    "PRSYNC_LOGFIRE_TOKEN",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # keeps load_dotenv from picking up a developer's .env
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestLoadSettings:
    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("GITHUB_TOKEN", "secret")

        settings = load_settings()

        assert settings.daemon.project == "daemon"
        assert settings.daemon.poll_interval == 60.0
        assert settings.daemon.max_age_days == 120
        assert settings.daemon.max_retries == 5
        assert settings.state.base_dir == ".prsync/state"
        assert settings.logging.backend == "console"
        [service] = settings.services
        assert service.host == "github.com"
        assert service.service == "github"
        assert service.access_token == "secret"

    def test_overrides_from_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("PRSYNC_PROJECT", "ci")
        clean_env.setenv("PRSYNC_POLL_INTERVAL", "5")
        clean_env.setenv("PRSYNC_MAX_AGE_DAYS", "30")
        clean_env.setenv("PRSYNC_LOGGER_BACKEND", "LOGFIRE")

        settings = load_settings()

        assert settings.daemon.project == "ci"
        assert settings.daemon.poll_interval == 5.0
        assert settings.daemon.max_age_days == 30
        assert settings.logging.backend == "logfire"

    @pytest.mark.parametrize("project", ["my project", "ci/nightly", "prod!"])
    def test_project_must_fit_in_a_branch_name(
        self, clean_env: pytest.MonkeyPatch, project: str
    ) -> None:
        clean_env.setenv("PRSYNC_PROJECT", project)

        with pytest.raises(ConfigError):
            load_settings()

    def test_services_file(self, clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        services_file = tmp_path / "services.yml"
        services_file.write_text(
            "- host: github.com\n"
            "  service: github\n"
            "  access_token: gh\n"
            "- host: GitLab.com\n"
            "  service: gitlab\n"
            "  access_token: gl\n"
            "  commit_strategy: head\n"
            "  mergeability_timeout: 10\n",
            encoding="utf-8",
        )
        clean_env.setenv("PRSYNC_SERVICES_FILE", str(services_file))

        github, gitlab = load_settings().services

        assert github.service == "github"
        assert gitlab.host == "gitlab.com"
        assert gitlab.commit_strategy == "head"
        assert gitlab.mergeability_timeout == 10.0


class TestParseService:
    def test_unknown_kind(self) -> None:
        with pytest.raises(ConfigError):
            parse_service({"host": "bitbucket.org", "service": "bitbucket"})

    def test_missing_host(self) -> None:
        with pytest.raises(ConfigError):
            parse_service({"service": "github"})

    def test_file_must_hold_a_list(self, tmp_path: Path) -> None:
        services_file = tmp_path / "services.yml"
        services_file.write_text("host: github.com\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_services_file(str(services_file))


class TestBuildServices:
    def test_builds_one_adapter_per_host(self, test_settings) -> None:
        services = build_services(test_settings.services, FakeClock(NOW), FakeLogger())

        assert isinstance(services["github.com"], GitHubService)
        assert isinstance(services["gitlab.com"], GitLabService)
        assert services["github.com"].api_endpoint == "https://api.github.com"
        assert services["gitlab.com"].api_endpoint == "https://gitlab.com/api/v4"
        assert services["gitlab.com"].commit_strategy == "head"

    def test_missing_token_fails_fast(self) -> None:
        entry = parse_service({"host": "github.com", "service": "github"})

        with pytest.raises(ConfigError):
            build_services([entry], FakeClock(NOW), FakeLogger())

    def test_duplicate_host_fails_fast(self, test_settings) -> None:
        entry = test_settings.services[0]

        with pytest.raises(ConfigError):
            build_services([entry, entry], FakeClock(NOW), FakeLogger())
