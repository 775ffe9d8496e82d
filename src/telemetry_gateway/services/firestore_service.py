"""Firestore storage for telemetry records"""
import logging
from typing import Any, Dict, Optional

from google.cloud import firestore

logger = logging.getLogger(__name__)


class FirestoreService:
    """
    Writes telemetry records to Firestore.

    Firestore structure:
    /{collection}/{auto_id}

    Each reading is one write-once document with the fields
    deviceId, sensorType, value, unit, timestamp, location, isAnomalous,
    ingestedAt and metadata. Document ids are generated by Firestore.

    Writes are made with a bounded timeout and without client-side retries;
    callers decide whether to retry.
    """

    def __init__(self,
                 collection: str = 'sensor_readings',
                 project_id: Optional[str] = None,
                 database: str = '(default)',
                 timeout: float = 10.0,
                 client: Optional[firestore.Client] = None):
        """Initialize Firestore client"""
        self.db = client or firestore.Client(project=project_id or None, database=database)
        self.collection = collection
        self.timeout = timeout
        logger.info(f"FirestoreService initialized for collection {collection}")

    def create_reading(self, data: Dict[str, Any]) -> str:
        """
        Write one telemetry record

        Args:
            data: Record dictionary as produced by TelemetryRecord.to_dict()

        Returns:
            The generated document id

        Raises:
            google.api_core.exceptions.GoogleAPICallError: On any store failure
        """
        doc_ref = self.db.collection(self.collection).document()
        doc_ref.set(data, retry=None, timeout=self.timeout)
        logger.debug(f"Wrote document {self.collection}/{doc_ref.id} for device {data.get('deviceId')}")
        return doc_ref.id

    def ping(self) -> bool:
        """Check that the readings collection can be queried"""
        query = self.db.collection(self.collection).limit(1)
        list(query.stream(retry=None, timeout=self.timeout))
        return True
