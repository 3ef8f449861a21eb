import pytest

from tests.builders import NOW
from tests.fakes import FakeClock, FakeGitAPI, FakeLogger
from tests.settings import get_test_settings


@pytest.fixture
def test_settings():
    return get_test_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def logger() -> FakeLogger:
    return FakeLogger()


@pytest.fixture
def git_api() -> FakeGitAPI:
    return FakeGitAPI(NOW)
