"""
Solar Installation Tracker - Test Configuration and Fixtures
"""
import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator, Dict

import pytest
from httpx import AsyncClient, ASGITransport
from faker import Faker

# Set testing environment before the application module builds its default app
os.environ['JWT_SECRET'] = 'test-jwt-secret-for-testing-only'
os.environ['ADMIN_API_KEY'] = 'test-admin-key'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['DATA_DIR'] = tempfile.mkdtemp(prefix='solar-tracker-test-')

from solar_tracker.core.config import Settings
from solar_tracker.main import create_app
from solar_tracker.modules.auth.identity import UserIdentity
from solar_tracker.services.installation_store import InstallationStore

fake = Faker()

TEST_JWT_SECRET = 'test-jwt-secret-for-testing-only'
TEST_ADMIN_KEY = 'test-admin-key'
STATIC_USERNAME = 'fieldcrew'
STATIC_PASSWORD = 'sunny-day-123'


def make_settings(data_dir: Path, **overrides) -> Settings:
    values = {
        'JWT_SECRET': TEST_JWT_SECRET,
        'ADMIN_API_KEY': TEST_ADMIN_KEY,
        'BCRYPT_ROUNDS': 4,
        'DATA_DIR': str(data_dir),
        'INSTALLATIONS_DATA_DIR': str(data_dir / 'installations'),
        'INSTALLATIONS_DATA_FILE': None,
        'USERS_DATA_FILE': None,
        'INSTALLATIONS_PER_USER': True,
        'NODE_ENV': 'development',
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / 'data'


@pytest.fixture
def test_settings(data_dir: Path) -> Settings:
    return make_settings(data_dir)


@pytest.fixture
def static_environ() -> Dict[str, str]:
    return {
        'AUTH_USER_1_USERNAME': STATIC_USERNAME,
        'AUTH_USER_1_PASSWORD': STATIC_PASSWORD,
    }


@pytest.fixture
def app(test_settings: Settings, static_environ: Dict[str, str]):
    return create_app(test_settings, static_user_environ=static_environ)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to a per-test app and data directory"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac


@pytest.fixture
def store(test_settings: Settings) -> InstallationStore:
    return InstallationStore(test_settings)


@pytest.fixture
def identity() -> UserIdentity:
    return UserIdentity(id='user-1', username='Alice.Smith')


@pytest.fixture
def valid_payload() -> Dict[str, object]:
    return {
        'homeownerName': 'Jo',
        'address': '1 Main St',
        'city': 'Springfield',
        'state': 'il',
        'zip': '62701',
        'systemSize': '5.5',
    }


@pytest.fixture
def auth_headers(app) -> Dict[str, str]:
    """Bearer headers for the static test user"""
    gate = app.state.auth_gate
    static_user = gate.static_users.get(STATIC_USERNAME)
    token = gate.issue_token(UserIdentity(id=static_user.id, username=static_user.username))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {'X-Admin-Key': TEST_ADMIN_KEY}


def random_installation() -> Dict[str, object]:
    return {
        'homeownerName': fake.name(),
        'address': fake.street_address(),
        'city': fake.city(),
        'state': fake.state_abbr(),
        'zip': fake.zipcode(),
        'systemSize': round(fake.pyfloat(min_value=1, max_value=20), 2),
        'installDate': fake.date(),
    }
