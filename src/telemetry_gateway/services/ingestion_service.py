"""Telemetry ingestion: normalize readings and write them to the store"""
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from telemetry_gateway.api.models.telemetry import (
    BatchOutcome,
    ReadingResult,
    StoreReceipt,
    TelemetryRecord,
)
from telemetry_gateway.services.normalizer import normalize_reading
from telemetry_gateway.utils.errors import (
    BackendAuthError,
    BackendError,
    BackendUnavailable,
    GatewayError,
    IngestionError,
    InvalidBatchSize,
    ValidationError,
)
from telemetry_gateway.utils.validators import validate_bulk_request

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_SIZE = 100


def classify_store_error(error: Exception) -> BackendError:
    """
    Map a store exception to a gateway error

    Google API errors expose the HTTP status as ``code``:
    - 401/403: the store rejected our credentials
    - 404: database or collection missing
    - 503/504 and timeouts: store unreachable
    - anything else is a generic ingestion failure

    Store messages are never passed through to callers.
    """
    code = getattr(error, 'code', None)

    if code in (401, 403):
        return BackendAuthError()
    if code == 404:
        return BackendUnavailable('Database or collection not found', code='DB_NOT_FOUND')
    if code in (503, 504) or isinstance(error, (TimeoutError, FutureTimeoutError)):
        return BackendUnavailable()
    return IngestionError()


class IngestionService:
    """
    Coordinates validation, normalization and persistence of readings.

    The single-reading path raises on failure. The bulk path never raises
    for an individual reading: each reading yields a ReadingResult and the
    outcome keeps them in input order, whichever order they finished in.
    """

    def __init__(self,
                 store,
                 max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
                 bulk_concurrency: int = 1,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            store: Object with a create_reading(dict) -> str method
            max_batch_size: Largest accepted bulk request
            bulk_concurrency: Worker threads per bulk request, 1 is sequential
            clock: Returns the current aware datetime
        """
        self.store = store
        self.max_batch_size = max_batch_size
        self.bulk_concurrency = max(1, bulk_concurrency)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def ingest_one(self, device_id: str, raw: Any, request_location: Optional[str] = None) -> StoreReceipt:
        """
        Validate, normalize and store a single reading

        Args:
            device_id: Device id bound to the caller's token
            raw: Reading from the request body

        Returns:
            StoreReceipt with the store's document id

        Raises:
            ValidationError: If the reading is invalid
            DeviceIdMismatch: If the reading names another device
            BackendError: If the store write fails
        """
        record, error = normalize_reading(raw, device_id, request_location, now=self._clock())
        if error is not None:
            logger.warning(f"Device {device_id}: reading rejected - {error.code} {error.details or error.message}")
            raise error

        return self._write(record)

    def ingest_batch(self,
                     device_id: str,
                     readings: Any,
                     request_location: Optional[str] = None) -> BatchOutcome:
        """
        Process a bulk request with per-reading failure isolation

        The batch is rejected as a whole only when its size is out of
        bounds. Otherwise every reading goes through the same path as
        ingest_one and its failure is recorded next to the others.

        Args:
            device_id: Device id bound to the caller's token
            readings: List of raw readings
            request_location: Fallback location for readings without one

        Returns:
            BatchOutcome

        Raises:
            InvalidBatchSize: If readings is not a list of 1..max_batch_size items
        """
        valid, details = validate_bulk_request(
            {'readings': readings, 'location': request_location}, self.max_batch_size)
        if not valid:
            if any(d['field'] == 'readings' for d in details):
                raise InvalidBatchSize(details=details)
            raise ValidationError('Invalid bulk telemetry data', details=details)

        def process(item):
            index, raw = item
            return self._process_reading(index, device_id, raw, request_location)

        items = list(enumerate(readings))
        if self.bulk_concurrency == 1 or len(items) == 1:
            results = [process(item) for item in items]
        else:
            workers = min(self.bulk_concurrency, len(items))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                # map yields in submission order
                results = list(pool.map(process, items))

        outcome = BatchOutcome(results)
        logger.info(f"Device {device_id}: Bulk telemetry processed - "
                    f"Stored: {outcome.processed}, Failed: {outcome.failed}")
        return outcome

    def _process_reading(self,
                         index: int,
                         device_id: str,
                         raw: Any,
                         request_location: Optional[str]) -> ReadingResult:
        """Run one bulk reading to completion and capture its result"""
        try:
            record, error = normalize_reading(raw, device_id, request_location, now=self._clock())
        except Exception:
            logger.exception(f"Device {device_id}: Record {index} could not be normalized")
            return ReadingResult(index, raw, error=IngestionError())
        if error is not None:
            logger.warning(f"Device {device_id}: Record {index} rejected - {error.code} {error.details or error.message}")
            return ReadingResult(index, raw, error=error)

        try:
            receipt = self._write(record)
        except GatewayError as e:
            return ReadingResult(index, raw, error=e)
        return ReadingResult(index, raw, receipt=receipt)

    def _write(self, record: TelemetryRecord) -> StoreReceipt:
        """Issue exactly one store write for a record"""
        try:
            document_id = self.store.create_reading(record.to_dict())
        except Exception as e:
            error = classify_store_error(e)
            logger.error(f"Device {record.device_id}: failed to store {record.sensor_type} reading "
                         f"at {record.timestamp} - {error.code} ({type(e).__name__})")
            raise error from e

        logger.info(f"Telemetry stored for device {record.device_id}: "
                    f"{record.sensor_type}, document {document_id}")
        return StoreReceipt(document_id, record)
