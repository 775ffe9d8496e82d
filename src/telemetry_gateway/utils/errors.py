"""Gateway error taxonomy

Every error the gateway reports to a caller is a GatewayError carrying a
stable machine-readable code and the HTTP status it maps to.
"""
from typing import Any, Dict, List, Optional


class GatewayError(Exception):
    """Base class for errors rendered as JSON responses"""

    code = 'INTERNAL_ERROR'
    status = 500
    message = 'Internal server error'

    def __init__(self,
                 message: Optional[str] = None,
                 details: Optional[List[Dict[str, Any]]] = None,
                 code: Optional[str] = None):
        self.message = message or self.message
        self.details = details or []
        if code:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to response body"""
        body = {'error': self.message, 'code': self.code}
        if self.details:
            body['details'] = self.details
        return body


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing"""


# Authentication

class AuthError(GatewayError):
    code = 'AUTH_ERROR'
    status = 401
    message = 'Authentication failed'


class MissingToken(AuthError):
    code = 'MISSING_TOKEN'
    message = 'Access token required'


class InvalidOrExpiredToken(AuthError):
    code = 'INVALID_TOKEN'
    status = 403
    message = 'Invalid or expired token'


class MissingCredentials(AuthError):
    code = 'MISSING_CREDENTIALS'
    status = 400
    message = 'Device ID and secret are required'


class InvalidCredentials(AuthError):
    code = 'INVALID_CREDENTIALS'
    message = 'Invalid device credentials'


class DeviceIdMismatch(AuthError):
    code = 'DEVICE_ID_MISMATCH'
    status = 403
    message = 'Device ID mismatch'


# Validation

class ValidationError(GatewayError):
    code = 'VALIDATION_ERROR'
    status = 400
    message = 'Invalid telemetry data'


class InvalidSensorType(ValidationError):
    reason = 'INVALID_SENSOR_TYPE'


class InvalidValue(ValidationError):
    reason = 'INVALID_VALUE'


class InvalidTimestamp(ValidationError):
    reason = 'INVALID_TIMESTAMP'


class InvalidBatchSize(ValidationError):
    reason = 'INVALID_BATCH_SIZE'
    message = 'Invalid bulk telemetry data'


# Admission

class RateLimited(GatewayError):
    code = 'RATE_LIMITED'
    status = 429
    message = 'Too many requests from this IP, please try again later.'


# Store

class BackendError(GatewayError):
    code = 'BACKEND_ERROR'
    message = 'Database error'


class BackendAuthError(BackendError):
    code = 'DB_AUTH_ERROR'
    message = 'Database authentication failed'


class BackendUnavailable(BackendError):
    code = 'DB_UNAVAILABLE'
    message = 'Database or collection not available'


class IngestionError(BackendError):
    code = 'INGESTION_ERROR'
    message = 'Internal server error'


class UnhandledError(GatewayError):
    code = 'UNHANDLED_ERROR'
    message = 'Internal server error'
