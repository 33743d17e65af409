import pytest

from app import create_app
from entity_store import EntityStore
from sample_students import seed_sample_data
from storage import MemorySlotStorage


def student_payload(**overrides):
    payload = {
        'studentId': 'SHS900',
        'firstName': 'Abena',
        'lastName': 'Nyarko',
        'gender': 'Female',
        'class': 'Form 2A',
        'dateOfBirth': '2008-03-04',
        'parentName': 'Grace Nyarko',
        'parentPhone': '+233209998877',
    }
    payload.update(overrides)
    return payload


def placement_payload(**overrides):
    payload = {
        'studentId': '1',
        'schoolId': '1',
        'program': 'Medicine',
        'placementDate': '2025-09-01',
        'status': 'pending',
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def storage():
    return MemorySlotStorage()


@pytest.fixture()
def store(storage):
    return EntityStore(storage)


@pytest.fixture()
def seeded_store(store):
    """Store holding the three sample students, three schools and two placements."""
    seed_sample_data(store)
    return store


@pytest.fixture()
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'STORAGE_BACKEND': 'json',
        'DATA_FOLDER': str(tmp_path / 'data'),
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'EXPORT_FOLDER': str(tmp_path / 'exports'),
        'SEED_SAMPLE_DATA': True,
        'USERS_FILE': None,
        'LOG_LEVEL': 'WARNING',
    })
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_client(client):
    """Test client with an admin session already established."""
    response = client.post('/api/login', json={'username': 'admin', 'password': 'admin123', 'role': 'admin'})
    assert response.status_code == 200
    return client
