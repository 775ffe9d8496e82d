"""Telemetry data models"""
from typing import Dict, Any, List, Optional


class TelemetryRecord:
    """Canonical sensor reading as written to the store"""

    def __init__(self,
                 device_id: str,
                 sensor_type: str,
                 value: float,
                 unit: str,
                 timestamp: str,
                 ingested_at: str,
                 location: str = 'unknown',
                 metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize a telemetry record

        Args:
            device_id: Device identifier bound to the access token
            sensor_type: One of the supported sensor types (flow, pressure, ...)
            value: Measured value
            unit: Physical unit of the value (e.g. °C)
            timestamp: ISO-8601 measurement time
            ingested_at: ISO-8601 time the gateway processed the reading
            location: Free-form location label
            metadata: Opaque key-value pairs supplied by the device
        """
        self.device_id = device_id
        self.sensor_type = sensor_type
        self.value = value
        self.unit = unit
        self.timestamp = timestamp
        self.ingested_at = ingested_at
        self.location = location
        self.metadata = metadata or {}
        # Anomaly detection happens downstream
        self.is_anomalous = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            'deviceId': self.device_id,
            'sensorType': self.sensor_type,
            'value': self.value,
            'unit': self.unit,
            'timestamp': self.timestamp,
            'location': self.location,
            'isAnomalous': self.is_anomalous,
            'ingestedAt': self.ingested_at,
            'metadata': self.metadata
        }


class StoreReceipt:
    """Result of a successful single-record write"""

    def __init__(self, document_id: str, record: TelemetryRecord):
        self.document_id = document_id
        self.record = record

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'documentId': self.document_id,
            'timestamp': self.record.timestamp
        }


class ReadingResult:
    """Outcome of one reading inside a bulk request"""

    def __init__(self,
                 index: int,
                 reading: Any,
                 receipt: Optional[StoreReceipt] = None,
                 error: Optional[Exception] = None):
        self.index = index
        self.reading = reading
        self.receipt = receipt
        self.error = error

    @property
    def ok(self) -> bool:
        return self.receipt is not None

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {
                'index': self.index,
                'documentId': self.receipt.document_id,
                'timestamp': self.receipt.record.timestamp,
                'sensorType': self.receipt.record.sensor_type,
                'value': self.receipt.record.value
            }
        return {
            'index': self.index,
            'reading': self.reading,
            'error': getattr(self.error, 'message', 'Internal server error'),
            'code': getattr(self.error, 'reason', None) or getattr(self.error, 'code', 'INGESTION_ERROR')
        }


class BatchOutcome:
    """
    Aggregate of a bulk ingestion request.

    Results are held in input order; successes and failures are
    split out on demand so both lists keep that order.
    """

    def __init__(self, results: List[ReadingResult]):
        self.results = results

    @property
    def successes(self) -> List[ReadingResult]:
        return [r for r in self.results if r.ok]

    @property
    def failures(self) -> List[ReadingResult]:
        return [r for r in self.results if not r.ok]

    @property
    def processed(self) -> int:
        return len(self.successes)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to response body; errors only when something failed"""
        body = {
            'success': True,
            'processed': self.processed,
            'failed': self.failed,
            'results': [r.to_dict() for r in self.successes]
        }
        failures = self.failures
        if failures:
            body['errors'] = [r.to_dict() for r in failures]
        return body
