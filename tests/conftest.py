"""
Shared pytest fixtures.

Provides fake repositories, a fixed clock, caller identities and a
TestClient whose repository dependencies are overridden with the fakes.
"""
import pytest
from fastapi.testclient import TestClient

from api import deps
from backend.main import create_app
from backend.settings import Settings
from domain.models.identity import CallerIdentity
from tests.fakes import FakeRepositories, create_fake_repositories
from tests.helpers import FIXED_NOW, TEST_API_KEY, TEST_JWT_SECRET


@pytest.fixture
def repos() -> FakeRepositories:
    return create_fake_repositories()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def user_caller() -> CallerIdentity:
    return CallerIdentity(user_id="user-1", is_admin=False)


@pytest.fixture
def other_caller() -> CallerIdentity:
    return CallerIdentity(user_id="user-2", is_admin=False)


@pytest.fixture
def admin_caller() -> CallerIdentity:
    return CallerIdentity(user_id="coach-1", is_admin=True)


def override_repositories(app, repos: FakeRepositories) -> None:
    """Point every repository dependency at the given fakes."""
    app.dependency_overrides[deps.get_position_repo] = lambda: repos.positions
    app.dependency_overrides[deps.get_schedule_repo] = lambda: repos.schedules
    app.dependency_overrides[deps.get_progression_repo] = lambda: repos.progressions
    app.dependency_overrides[deps.get_progression_config_repo] = lambda: repos.configs
    app.dependency_overrides[deps.get_progression_log_repo] = lambda: repos.logs
    app.dependency_overrides[deps.get_lift_repo] = lambda: repos.lifts
    app.dependency_overrides[deps.get_lift_max_repo] = lambda: repos.maxes
    app.dependency_overrides[deps.get_session_repo] = lambda: repos.sessions


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        api_keys=TEST_API_KEY,
        jwt_secret=TEST_JWT_SECRET,
        _env_file=None,
    )


@pytest.fixture
def client(repos, test_settings) -> TestClient:
    """
    TestClient backed by fake repositories.

    Authenticate with tests.helpers.auth_headers() or admin_headers().
    """
    app = create_app(settings=test_settings)
    override_repositories(app, repos)
    return TestClient(app)
