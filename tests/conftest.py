import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.core.dependencies import get_challenge_manager, get_settings
from app.database.supabase_client import Database
from app.main import app
from app.modules.biometrics.assertion import AssertionFlow
from app.modules.biometrics.registration import RegistrationFlow
from app.modules.challenges.service import ChallengeManager
from app.modules.credentials.service import CredentialStore
from app.modules.users.service import UserService

from tests.fakes import FakeClock, FakeSupabase


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        session_secret_key="test-secret",
        bcrypt_rounds=4,
        rp_id=None,
        challenge_ttl_seconds=300,
        environment="development",
    )


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users(supabase, settings):
    return UserService(supabase, bcrypt_rounds=settings.bcrypt_rounds)


@pytest.fixture
def alice(users):
    return users.create_user("Alice", "a@x.com", "correct horse")


@pytest.fixture
def credentials(supabase):
    return CredentialStore(supabase)


@pytest.fixture
def challenges(supabase, settings, clock):
    return ChallengeManager(supabase, ttl_seconds=settings.challenge_ttl_seconds, clock=clock)


@pytest.fixture
def registration(users, credentials, challenges, settings):
    return RegistrationFlow(users, credentials, challenges, settings)


@pytest.fixture
def assertion(users, credentials, challenges, settings):
    return AssertionFlow(users, credentials, challenges, settings)


@pytest.fixture
def client(supabase, settings, challenges):
    app.state.database = Database(settings, client=supabase)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_challenge_manager] = lambda: challenges
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
