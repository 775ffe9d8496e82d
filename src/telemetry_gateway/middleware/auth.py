"""Authentication middleware for device bearer tokens"""
from functools import wraps
from typing import Optional

from flask import current_app, g, request

from telemetry_gateway.utils.errors import MissingToken


def get_bearer_token() -> Optional[str]:
    """Extract the token from an 'Authorization: Bearer <token>' header"""
    header = request.headers.get('Authorization', '')
    parts = header.split()
    if len(parts) == 2 and parts[0].lower() == 'bearer':
        return parts[1]
    return None


def require_device_token(f):
    """
    Decorator to require and verify a device access token

    Expects header: Authorization: Bearer <token>

    On success, passes device_id to the wrapped function and keeps the
    verified claims on flask.g
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            raise MissingToken()

        token_service = current_app.extensions['telemetry_gateway'].token_service
        claims = token_service.verify(token)

        g.device_id = claims.device_id
        return f(device_id=claims.device_id, *args, **kwargs)

    return decorated_function
