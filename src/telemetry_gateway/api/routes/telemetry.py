"""Telemetry data ingestion endpoints"""
import logging

from flask import Blueprint, current_app, jsonify, request

from telemetry_gateway.middleware.auth import require_device_token
from telemetry_gateway.middleware.rate_limit import ingest_rate_limited
from telemetry_gateway.utils.errors import ValidationError

logger = logging.getLogger(__name__)

telemetry_bp = Blueprint('telemetry', __name__)


def _json_object():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError(details=[{'field': 'body', 'message': 'Request body must be a JSON object'}])
    return data


@telemetry_bp.route('/ingest', methods=['POST'])
@ingest_rate_limited
@require_device_token
def ingest_reading(device_id):
    """
    Store one sensor reading

    Request format:
    {
        "deviceId": "esp-1",
        "sensorType": "temperature",
        "value": 21.5,
        "unit": "°C",                       (optional)
        "timestamp": "2025-01-01T00:00:00Z", (optional, ISO or epoch seconds)
        "location": "tank-1",               (optional)
        "metadata": {...}                   (optional)
    }
    """
    logger.info(f"Received telemetry request from device: {device_id}")
    data = _json_object()

    ingestion_service = current_app.extensions['telemetry_gateway'].ingestion_service
    receipt = ingestion_service.ingest_one(device_id, data)

    return jsonify(receipt.to_dict()), 201


@telemetry_bp.route('/ingest/bulk', methods=['POST'])
@ingest_rate_limited
@require_device_token
def ingest_bulk(device_id):
    """
    Store up to 100 sensor readings

    Request format:
    {
        "readings": [
            { "deviceId": "esp-1", "sensorType": "flow", "value": 3.2 },
            { "deviceId": "esp-1", "sensorType": "pressure", "value": 1.1, "location": "pump" }
        ],
        "location": "tank-1"    (optional fallback for readings without one)
    }

    Readings fail individually; the response is 201 as long as the
    request itself was well-formed, with failures listed under "errors".
    """
    data = _json_object()
    readings = data.get('readings')

    if isinstance(readings, list):
        logger.info(f"Device {device_id}: Received batch with {len(readings)} records")

    ingestion_service = current_app.extensions['telemetry_gateway'].ingestion_service
    outcome = ingestion_service.ingest_batch(device_id, readings, data.get('location'))

    return jsonify(outcome.to_dict()), 201
