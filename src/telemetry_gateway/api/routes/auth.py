"""Device token endpoint"""
import logging

from flask import Blueprint, current_app, jsonify, request

from telemetry_gateway.utils.errors import MissingCredentials
from telemetry_gateway.utils.validators import validate_token_request

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/auth/token', methods=['POST'])
def issue_token():
    """
    Issue an access token to a device

    Request format:
    {
        "deviceId": "esp-1",
        "deviceSecret": "<prefix>esp-1"
    }

    Response format:
    {
        "token": "<jwt>",
        "expiresIn": 900,
        "tokenType": "Bearer"
    }
    """
    data = request.get_json(silent=True)

    is_valid, error_message = validate_token_request(data)
    if not is_valid:
        logger.warning(f"Token request rejected from {request.remote_addr}: {error_message}")
        raise MissingCredentials()

    token_service = current_app.extensions['telemetry_gateway'].token_service
    issued = token_service.issue(data['deviceId'], data['deviceSecret'])

    return jsonify(issued.to_dict()), 200
