"""Tests for configuration loading"""
from unittest.mock import patch

import pytest

from telemetry_gateway.config.gateway_config import GatewayConfig
from telemetry_gateway.utils.errors import ConfigurationError

ENV_VARS = [
    'PORT', 'ALLOWED_ORIGINS', 'LOG_LEVEL', 'TRUST_PROXY', 'JWT_SECRET', 'JWT_SECRET_NAME',
    'JWT_EXPIRES_IN', 'DEVICE_SECRET_PREFIX', 'RATE_LIMIT_ENABLED', 'RATE_LIMIT_WINDOW_MS',
    'RATE_LIMIT_MAX_REQUESTS', 'INGEST_RATE_LIMIT_WINDOW_MS', 'INGEST_RATE_LIMIT_MAX_REQUESTS',
    'STORE_BACKEND', 'GCP_PROJECT', 'SENSOR_READINGS_COLLECTION', 'STORE_TIMEOUT_SECONDS',
    'BULK_MAX_READINGS', 'BULK_CONCURRENCY',
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return str(tmp_path / 'missing.env')


def test_defaults(clean_env):
    config = GatewayConfig.from_env(clean_env)

    assert config.port == 8080
    assert config.allowed_origins == ['http://localhost:3000']
    assert config.jwt_expires_in == 900
    assert config.rate_limit_window_ms == 900000
    assert config.rate_limit_max_requests == 1000
    assert config.ingest_rate_limit_window_ms == 60000
    assert config.ingest_rate_limit_max_requests == 300
    assert config.store_backend == 'firestore'
    assert config.sensor_readings_collection == 'sensor_readings'
    assert config.bulk_max_readings == 100
    assert config.bulk_concurrency == 1


def test_values_from_environment(clean_env, monkeypatch):
    monkeypatch.setenv('PORT', '3000')
    monkeypatch.setenv('ALLOWED_ORIGINS', 'https://a.example, https://b.example')
    monkeypatch.setenv('JWT_EXPIRES_IN', '1h')
    monkeypatch.setenv('RATE_LIMIT_ENABLED', 'false')
    monkeypatch.setenv('STORE_BACKEND', 'Memory')
    monkeypatch.setenv('BULK_CONCURRENCY', '4')

    config = GatewayConfig.from_env(clean_env)

    assert config.port == 3000
    assert config.allowed_origins == ['https://a.example', 'https://b.example']
    assert config.jwt_expires_in == 3600
    assert config.rate_limit_enabled is False
    assert config.store_backend == 'memory'
    assert config.bulk_concurrency == 4


def test_dotenv_file_does_not_override_environment(clean_env, monkeypatch, tmp_path):
    env_file = tmp_path / '.env'
    env_file.write_text('DEVICE_SECRET_PREFIX=from-file-\nJWT_SECRET=file-secret\n')
    monkeypatch.setenv('JWT_SECRET', 'env-secret')

    config = GatewayConfig.from_env(str(env_file))

    assert config.device_secret_prefix == 'from-file-'
    assert config.jwt_secret == 'env-secret'


def test_invalid_number_raises(clean_env, monkeypatch):
    monkeypatch.setenv('RATE_LIMIT_MAX_REQUESTS', 'lots')

    with pytest.raises(ConfigurationError):
        GatewayConfig.from_env(clean_env)


def test_missing_signing_key_raises():
    with pytest.raises(ConfigurationError):
        GatewayConfig().resolve_jwt_secret()


def test_signing_key_from_secret_manager():
    config = GatewayConfig(jwt_secret_name='gateway-jwt', gcp_project='demo-project')

    with patch('telemetry_gateway.services.secrets.secretmanager.SecretManagerServiceClient') as client_class:
        client = client_class.return_value
        client.access_secret_version.return_value.payload.data = b'sm-signing-key\n'

        assert config.resolve_jwt_secret() == 'sm-signing-key'

    client.access_secret_version.assert_called_once_with(
        request={'name': 'projects/demo-project/secrets/gateway-jwt/versions/latest'}
    )
