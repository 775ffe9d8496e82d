"""Shared test fixtures"""
import pytest

from telemetry_gateway.config.gateway_config import GatewayConfig
from telemetry_gateway.main import create_app
from telemetry_gateway.services.memory_store import MemoryStore

TEST_JWT_SECRET = 'test-signing-key-0123456789abcdef0123456789'
TEST_PREFIX = 'test-prefix-'


class FakeClock:
    """Controllable Unix-time source"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return GatewayConfig(
        jwt_secret=TEST_JWT_SECRET,
        device_secret_prefix=TEST_PREFIX,
        store_backend='memory',
        log_level='DEBUG'
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(config, store, clock):
    app = create_app(config, store=store, clock=clock)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create test client"""
    with app.test_client() as client:
        yield client


@pytest.fixture
def token(client):
    """Access token for device esp-1"""
    response = client.post('/auth/token', json={
        'deviceId': 'esp-1',
        'deviceSecret': TEST_PREFIX + 'esp-1'
    })
    assert response.status_code == 200
    return response.json['token']


@pytest.fixture
def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}
