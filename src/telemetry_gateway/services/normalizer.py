"""Builds canonical telemetry records from raw device readings"""
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from telemetry_gateway.api.models.telemetry import TelemetryRecord
from telemetry_gateway.utils.errors import (
    DeviceIdMismatch,
    GatewayError,
    InvalidSensorType,
    InvalidTimestamp,
    InvalidValue,
    ValidationError,
)
from telemetry_gateway.utils.units import resolve_unit
from telemetry_gateway.utils.validators import (
    MAX_VALUE,
    MIN_VALUE,
    format_timestamp,
    parse_timestamp,
    parse_value,
    validate_device_id,
    validate_optional_fields,
    validate_sensor_type,
)

DEFAULT_LOCATION = 'unknown'


def normalize_reading(raw: Any,
                      bound_device_id: str,
                      request_location: Optional[str] = None,
                      now: Optional[datetime] = None,
                      min_value: float = MIN_VALUE,
                      max_value: float = MAX_VALUE) -> Tuple[Optional[TelemetryRecord], Optional[GatewayError]]:
    """
    Validate a raw reading and build the record to persist

    Rules are applied in order: sensor type, value, device identity,
    timestamp, then the optional fields. All field problems are reported
    together; the error class is that of the first failing rule. A device
    id mismatch is only reported for readings that are otherwise valid
    in type and value.

    Args:
        raw: Reading as decoded from the request body
        bound_device_id: Device id carried by the caller's access token
        request_location: Location given at request level (bulk requests)
        now: Processing time, defaults to the current UTC time

    Returns:
        Tuple of (record, None) on success or (None, error) on failure.
        Errors are returned, not raised, so bulk callers can collect them.
    """
    now = now or datetime.now(timezone.utc)

    if not isinstance(raw, dict):
        return None, ValidationError(details=[
            {'field': 'reading', 'message': 'Reading must be a JSON object'}
        ])

    issues = []

    valid, message = validate_sensor_type(raw.get('sensorType'))
    if not valid:
        issues.append((InvalidSensorType, {'field': 'sensorType', 'message': message}))

    value, message = parse_value(raw.get('value'), min_value, max_value)
    if value is None:
        issues.append((InvalidValue, {'field': 'value', 'message': message}))

    device_id = raw.get('deviceId')
    if device_id is not None:
        valid, message = validate_device_id(device_id)
        if not valid:
            issues.append((ValidationError, {'field': 'deviceId', 'message': message}))
        elif device_id != bound_device_id and not issues:
            return None, DeviceIdMismatch()

    timestamp, message = parse_timestamp(raw.get('timestamp'), now)
    if timestamp is None:
        issues.append((InvalidTimestamp, {'field': 'timestamp', 'message': message}))

    for detail in validate_optional_fields(raw):
        issues.append((ValidationError, detail))

    if issues:
        error_class = issues[0][0]
        return None, error_class(details=[detail for _, detail in issues])

    record = TelemetryRecord(
        device_id=bound_device_id,
        sensor_type=raw['sensorType'],
        value=value,
        unit=raw.get('unit') or resolve_unit(raw['sensorType']),
        timestamp=timestamp,
        ingested_at=format_timestamp(now),
        location=raw.get('location') or request_location or DEFAULT_LOCATION,
        metadata=raw.get('metadata') or {}
    )
    return record, None
