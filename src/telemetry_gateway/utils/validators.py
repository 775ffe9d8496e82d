"""Data validation utilities"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from dateutil.parser import isoparse

from telemetry_gateway.utils.units import SENSOR_TYPES

# Sane bounds for a measured value
MIN_VALUE = -1000
MAX_VALUE = 10000

MAX_DEVICE_ID_LENGTH = 100

Number = Union[int, float]


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as an ISO-8601 UTC instant with millisecond precision"""
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def validate_sensor_type(sensor_type: Any) -> Tuple[bool, str]:
    """
    Validate the sensor type tag

    Valid types: flow, pressure, temperature, humidity, ph, turbidity,
    dissolvedOxygen, conductivity

    Returns:
        Tuple of (is_valid: bool, error_message: str)
    """
    if sensor_type is None:
        return False, "Field 'sensorType' is required"

    if not isinstance(sensor_type, str) or sensor_type not in SENSOR_TYPES:
        return False, f"Field 'sensorType' must be one of: {', '.join(SENSOR_TYPES)}"

    return True, ""


def parse_value(value: Any,
                min_value: Number = MIN_VALUE,
                max_value: Number = MAX_VALUE) -> Tuple[Optional[Number], str]:
    """
    Parse a measured value

    Numbers are accepted as-is and numeric strings are converted. Booleans
    are rejected even though Python treats them as integers.

    Returns:
        Tuple of (value or None, error_message: str)
    """
    if value is None:
        return None, "Field 'value' is required"

    if isinstance(value, bool):
        return None, "Field 'value' must be a number"

    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None, "Field 'value' must be a number"
    else:
        return None, "Field 'value' must be a number"

    # Integers beyond float range cannot be checked by isfinite
    try:
        finite = math.isfinite(float(number))
    except OverflowError:
        finite = False
    if not finite:
        return None, "Field 'value' must be a finite number"

    if not (min_value <= number <= max_value):
        return None, f"Field 'value' must be between {min_value} and {max_value}"

    return number, ""


def parse_timestamp(value: Any, now: datetime) -> Tuple[Optional[str], str]:
    """
    Resolve the measurement timestamp of a reading

    - numbers are Unix epoch seconds and are converted to an ISO instant
    - ISO-8601 strings are kept exactly as sent
    - a missing timestamp defaults to the processing time

    Returns:
        Tuple of (ISO timestamp or None, error_message: str)
    """
    if value is None:
        return format_timestamp(now), ""

    if isinstance(value, bool):
        return None, "Field 'timestamp' must be an ISO-8601 string or Unix epoch seconds"

    if isinstance(value, (int, float)):
        try:
            finite = math.isfinite(float(value))
        except OverflowError:
            return None, "Field 'timestamp' is out of range"
        if not finite or value <= 0:
            return None, "Field 'timestamp' must be a positive number of seconds"
        try:
            dt = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None, "Field 'timestamp' is out of range"
        return format_timestamp(dt), ""

    if isinstance(value, str):
        try:
            isoparse(value)
        except (ValueError, OverflowError):
            return None, "Field 'timestamp' must be a valid ISO-8601 date"
        return value, ""

    return None, "Field 'timestamp' must be an ISO-8601 string or Unix epoch seconds"


def validate_device_id(device_id: Any) -> Tuple[bool, str]:
    """Validate a device identifier supplied by a caller"""
    if not isinstance(device_id, str) or not device_id:
        return False, "Field 'deviceId' must be a non-empty string"

    if len(device_id) > MAX_DEVICE_ID_LENGTH:
        return False, f"Field 'deviceId' must be at most {MAX_DEVICE_ID_LENGTH} characters"

    return True, ""


def validate_optional_fields(data: Dict[str, Any]) -> List[Dict[str, str]]:
    """Check the types of optional reading fields"""
    details = []

    for field in ('unit', 'location'):
        if data.get(field) is not None and not isinstance(data[field], str):
            details.append({'field': field, 'message': f"Field '{field}' must be a string"})

    if data.get('metadata') is not None and not isinstance(data['metadata'], dict):
        details.append({'field': 'metadata', 'message': "Field 'metadata' must be an object"})

    return details


def validate_token_request(data: Any) -> Tuple[bool, str]:
    """
    Validate the body of a token request

    Expected format:
    {
        "deviceId": "esp-1",
        "deviceSecret": "<prefix>esp-1"
    }
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    for field in ('deviceId', 'deviceSecret'):
        if not isinstance(data.get(field), str) or not data[field]:
            return False, f"Missing required field: {field}"

    return True, ""


def validate_bulk_request(data: Any, max_readings: int) -> Tuple[bool, List[Dict[str, str]]]:
    """
    Validate the envelope of a bulk ingestion request

    Only the envelope is checked here; readings are validated one by one
    so that a bad reading does not reject its siblings.

    Returns:
        Tuple of (is_valid: bool, details: list)
    """
    if not isinstance(data, dict):
        return False, [{'field': 'body', 'message': 'Request body must be a JSON object'}]

    details = []
    readings = data.get('readings')

    if not isinstance(readings, list):
        details.append({'field': 'readings', 'message': "Field 'readings' must be an array"})
    elif not 1 <= len(readings) <= max_readings:
        details.append({
            'field': 'readings',
            'message': f"Field 'readings' must contain between 1 and {max_readings} items"
        })

    if data.get('location') is not None and not isinstance(data['location'], str):
        details.append({'field': 'location', 'message': "Field 'location' must be a string"})

    return not details, details
