"""Sensor type to physical unit mapping"""

SENSOR_UNITS = {
    'flow': 'L/min',
    'pressure': 'bar',
    'temperature': '°C',
    'humidity': '%',
    'ph': 'pH',
    'turbidity': 'NTU',
    'dissolvedOxygen': 'mg/L',
    'conductivity': 'μS/cm',
}

SENSOR_TYPES = tuple(SENSOR_UNITS)

# Returned for sensor types outside SENSOR_TYPES
DEFAULT_UNIT = 'unit'


def resolve_unit(sensor_type: str) -> str:
    """Return the default unit for a sensor type"""
    return SENSOR_UNITS.get(sensor_type, DEFAULT_UNIT)
