"""Tests for the Firestore store adapter"""
from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from telemetry_gateway.services.firestore_service import FirestoreService


@pytest.fixture
def client():
    """Mock Firestore client"""
    client = MagicMock()
    client.collection.return_value.document.return_value.id = 'doc-123'
    return client


def test_create_reading_writes_one_document(client):
    service = FirestoreService(collection='sensor_readings', timeout=5, client=client)
    data = {'deviceId': 'esp-1', 'sensorType': 'flow', 'value': 2.5}

    document_id = service.create_reading(data)

    assert document_id == 'doc-123'
    client.collection.assert_called_once_with('sensor_readings')
    doc_ref = client.collection.return_value.document.return_value
    doc_ref.set.assert_called_once_with(data, retry=None, timeout=5)


def test_create_reading_propagates_store_errors(client):
    doc_ref = client.collection.return_value.document.return_value
    doc_ref.set.side_effect = google_exceptions.PermissionDenied('denied')
    service = FirestoreService(client=client)

    with pytest.raises(google_exceptions.PermissionDenied):
        service.create_reading({'deviceId': 'esp-1'})


def test_ping_queries_one_document(client):
    client.collection.return_value.limit.return_value.stream.return_value = iter([])
    service = FirestoreService(collection='readings', timeout=3, client=client)

    assert service.ping() is True
    client.collection.assert_called_once_with('readings')
    client.collection.return_value.limit.assert_called_once_with(1)
    client.collection.return_value.limit.return_value.stream.assert_called_once_with(retry=None, timeout=3)


def test_client_built_from_settings():
    with patch('telemetry_gateway.services.firestore_service.firestore.Client') as client_class:
        FirestoreService(project_id='demo-project', database='telemetry')

    client_class.assert_called_once_with(project='demo-project', database='telemetry')
