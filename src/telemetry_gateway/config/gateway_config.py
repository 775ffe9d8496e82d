"""Gateway configuration"""
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from telemetry_gateway.services.token_service import parse_duration
from telemetry_gateway.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes')


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


@dataclass
class GatewayConfig:
    """Settings loaded once at startup from the environment"""

    port: int = 8080
    allowed_origins: List[str] = field(default_factory=lambda: ['http://localhost:3000'])
    log_level: str = 'INFO'
    trust_proxy: bool = False
    max_content_length_mb: int = 10
    version: str = '1.0.0'

    # Authentication
    jwt_secret: str = ''
    jwt_secret_name: str = ''
    jwt_expires_in: int = 15 * 60
    device_secret_prefix: str = ''

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_window_ms: int = 15 * 60 * 1000
    rate_limit_max_requests: int = 1000
    ingest_rate_limit_window_ms: int = 60 * 1000
    ingest_rate_limit_max_requests: int = 300

    # Store
    store_backend: str = 'firestore'
    gcp_project: str = ''
    firestore_database: str = '(default)'
    sensor_readings_collection: str = 'sensor_readings'
    store_timeout_seconds: float = 10.0

    # Bulk ingestion
    bulk_max_readings: int = 100
    bulk_concurrency: int = 1

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'GatewayConfig':
        """
        Build the configuration from environment variables

        A .env file is read first; variables already set in the
        environment take precedence over it.
        """
        load_dotenv(env_file, override=False)

        try:
            return cls(
                port=int(os.environ.get('PORT', '8080')),
                allowed_origins=_env_list('ALLOWED_ORIGINS', 'http://localhost:3000'),
                log_level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
                trust_proxy=_env_bool('TRUST_PROXY', '0'),
                max_content_length_mb=int(os.environ.get('MAX_CONTENT_LENGTH_MB', '10')),
                version=os.environ.get('APP_VERSION', '1.0.0'),
                jwt_secret=os.environ.get('JWT_SECRET', ''),
                jwt_secret_name=os.environ.get('JWT_SECRET_NAME', ''),
                jwt_expires_in=parse_duration(os.environ.get('JWT_EXPIRES_IN', '15m')),
                device_secret_prefix=os.environ.get('DEVICE_SECRET_PREFIX', ''),
                rate_limit_enabled=_env_bool('RATE_LIMIT_ENABLED', '1'),
                rate_limit_window_ms=int(os.environ.get('RATE_LIMIT_WINDOW_MS', str(15 * 60 * 1000))),
                rate_limit_max_requests=int(os.environ.get('RATE_LIMIT_MAX_REQUESTS', '1000')),
                ingest_rate_limit_window_ms=int(os.environ.get('INGEST_RATE_LIMIT_WINDOW_MS', str(60 * 1000))),
                ingest_rate_limit_max_requests=int(os.environ.get('INGEST_RATE_LIMIT_MAX_REQUESTS', '300')),
                store_backend=os.environ.get('STORE_BACKEND', 'firestore').strip().lower(),
                gcp_project=os.environ.get('GCP_PROJECT', ''),
                firestore_database=os.environ.get('FIRESTORE_DATABASE', '(default)'),
                sensor_readings_collection=os.environ.get('SENSOR_READINGS_COLLECTION', 'sensor_readings'),
                store_timeout_seconds=float(os.environ.get('STORE_TIMEOUT_SECONDS', '10')),
                bulk_max_readings=int(os.environ.get('BULK_MAX_READINGS', '100')),
                bulk_concurrency=int(os.environ.get('BULK_CONCURRENCY', '1')),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

    def resolve_jwt_secret(self) -> str:
        """
        Return the signing key, loading it from Secret Manager when only a
        secret name is configured

        Raises:
            ConfigurationError: If no signing key can be found
        """
        if self.jwt_secret:
            return self.jwt_secret

        if self.jwt_secret_name and self.gcp_project:
            from telemetry_gateway.services.secrets import load_secret
            self.jwt_secret = load_secret(self.gcp_project, self.jwt_secret_name)
            return self.jwt_secret

        raise ConfigurationError("JWT_SECRET (or JWT_SECRET_NAME with GCP_PROJECT) must be set")
