"""In-process telemetry store for local runs and tests"""
import threading
import uuid
from typing import Any, Dict


class MemoryStore:
    """Keeps written records in a dictionary; same interface as FirestoreService"""

    def __init__(self, collection: str = 'sensor_readings'):
        self.collection = collection
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.lock = threading.Lock()

    def create_reading(self, data: Dict[str, Any]) -> str:
        document_id = uuid.uuid4().hex
        with self.lock:
            self.documents[document_id] = dict(data)
        return document_id

    def ping(self) -> bool:
        return True
