"""Entry point for the sensor telemetry ingestion gateway"""
import logging
from typing import Callable, Optional

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from telemetry_gateway.api.routes.auth import auth_bp
from telemetry_gateway.api.routes.health import health_bp
from telemetry_gateway.api.routes.telemetry import telemetry_bp
from telemetry_gateway.config.gateway_config import GatewayConfig
from telemetry_gateway.middleware.rate_limit import add_rate_limit_headers, check_general_rate_limit
from telemetry_gateway.services.ingestion_service import IngestionService
from telemetry_gateway.services.rate_limiter import FixedWindowRateLimiter
from telemetry_gateway.services.token_service import TokenService
from telemetry_gateway.utils.errors import ConfigurationError, GatewayError, UnhandledError

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    'Content-Security-Policy': "default-src 'self'; style-src 'self' 'unsafe-inline'; "
                               "script-src 'self'; img-src 'self' data: https:",
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'SAMEORIGIN',
    'Referrer-Policy': 'no-referrer',
}

HTTP_ERROR_CODES = {
    404: 'NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
    413: 'PAYLOAD_TOO_LARGE',
    415: 'UNSUPPORTED_MEDIA_TYPE',
}


class GatewayServices:
    """Per-application service instances, kept in app.extensions['telemetry_gateway']"""

    def __init__(self, config, store, token_service, ingestion_service, general_limiter, ingest_limiter):
        self.config = config
        self.store = store
        self.token_service = token_service
        self.ingestion_service = ingestion_service
        self.general_limiter = general_limiter
        self.ingest_limiter = ingest_limiter


def create_store(config: GatewayConfig):
    """Build the store selected by STORE_BACKEND"""
    if config.store_backend == 'memory':
        from telemetry_gateway.services.memory_store import MemoryStore
        logger.warning("Using in-memory store; readings are not persisted")
        return MemoryStore(config.sensor_readings_collection)

    if config.store_backend == 'firestore':
        from telemetry_gateway.services.firestore_service import FirestoreService
        return FirestoreService(
            collection=config.sensor_readings_collection,
            project_id=config.gcp_project,
            database=config.firestore_database,
            timeout=config.store_timeout_seconds
        )

    raise ConfigurationError(f"Unknown STORE_BACKEND: {config.store_backend}")


def register_error_handlers(app: Flask):
    """Render every error as JSON with a stable code"""

    @app.errorhandler(GatewayError)
    def handle_gateway_error(error):
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        code = HTTP_ERROR_CODES.get(error.code, 'HTTP_ERROR')
        message = 'Endpoint not found' if error.code == 404 else error.name
        return jsonify({'error': message, 'code': code}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"Unhandled error: {type(error).__name__}")
        return jsonify(UnhandledError().to_dict()), 500


def create_app(config: Optional[GatewayConfig] = None,
               store=None,
               clock: Optional[Callable[[], float]] = None) -> Flask:
    """
    Build the Flask application

    Args:
        config: Gateway settings, read from the environment when omitted
        store: Telemetry store; built from config when omitted
        clock: Unix-time source shared by token expiry and rate limiting
    """
    config = config or GatewayConfig.from_env()

    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not config.device_secret_prefix:
        logger.warning("DEVICE_SECRET_PREFIX is empty; device secrets equal device ids")

    token_service = TokenService(
        secret_key=config.resolve_jwt_secret(),
        expires_in=config.jwt_expires_in,
        device_secret_prefix=config.device_secret_prefix,
        clock=clock
    )

    store = store if store is not None else create_store(config)

    services = GatewayServices(
        config=config,
        store=store,
        token_service=token_service,
        ingestion_service=IngestionService(
            store,
            max_batch_size=config.bulk_max_readings,
            bulk_concurrency=config.bulk_concurrency
        ),
        general_limiter=FixedWindowRateLimiter(
            'general',
            window_seconds=config.rate_limit_window_ms / 1000,
            max_requests=config.rate_limit_max_requests,
            clock=clock,
            enabled=config.rate_limit_enabled
        ),
        ingest_limiter=FixedWindowRateLimiter(
            'ingest',
            window_seconds=config.ingest_rate_limit_window_ms / 1000,
            max_requests=config.ingest_rate_limit_max_requests,
            clock=clock,
            enabled=config.rate_limit_enabled
        )
    )

    # Initialize Flask app
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = config.max_content_length_mb * 1024 * 1024
    app.extensions['telemetry_gateway'] = services

    if config.trust_proxy:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1)

    CORS(app, origins=config.allowed_origins, supports_credentials=True)

    app.before_request(check_general_rate_limit)
    app.after_request(add_rate_limit_headers)

    @app.after_request
    def add_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    # Register blueprints
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(telemetry_bp)

    register_error_handlers(app)

    logger.info(f"Telemetry gateway configured (store={type(store).__name__}, version={config.version})")
    return app


def run():
    """Run the development server"""
    config = GatewayConfig.from_env()
    app = create_app(config)
    app.run(host='0.0.0.0', port=config.port, debug=False)


if __name__ == '__main__':
    run()
