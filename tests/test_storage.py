import os

import pytest

from storage import (JsonFileSlotStorage, MemorySlotStorage, SqliteSlotStorage,
                     StorageError, open_storage)


@pytest.fixture(params=['memory', 'json', 'sqlite'])
def backend(request, tmp_path):
    if request.param == 'memory':
        return MemorySlotStorage()
    if request.param == 'json':
        return JsonFileSlotStorage(str(tmp_path / 'data'))
    return SqliteSlotStorage(str(tmp_path / 'school.db'))


def test_unwritten_slot_loads_as_none(backend):
    assert backend.load('students') is None


def test_save_then_load(backend):
    records = [{'id': '1', 'firstName': 'Kwame'}, {'id': '2', 'firstName': 'Ama'}]
    backend.save('students', records)
    backend.save('theme', 'dark')

    assert backend.load('students') == records
    assert backend.load('theme') == 'dark'


def test_save_overwrites_previous_value(backend):
    backend.save('placements', [{'id': '1'}])
    backend.save('placements', [])
    assert backend.load('placements') == []


def test_remove_slot(backend):
    backend.save('currentUser', {'username': 'admin'})
    backend.remove('currentUser')
    backend.remove('currentUser')
    assert backend.load('currentUser') is None


def test_json_slots_survive_a_new_instance(tmp_path):
    folder = str(tmp_path / 'data')
    JsonFileSlotStorage(folder).save('schools', [{'id': '1', 'name': 'KNUST'}])

    assert JsonFileSlotStorage(folder).load('schools') == [{'id': '1', 'name': 'KNUST'}]
    assert sorted(os.listdir(folder)) == ['schools.json']


def test_sqlite_slots_survive_a_new_instance(tmp_path):
    database = str(tmp_path / 'school.db')
    SqliteSlotStorage(database).save('userRole', 'admin')
    assert SqliteSlotStorage(database).load('userRole') == 'admin'


def test_malformed_json_raises_storage_error(tmp_path):
    folder = tmp_path / 'data'
    storage = JsonFileSlotStorage(str(folder))
    (folder / 'students.json').write_text('[{"id": "1"')

    with pytest.raises(StorageError):
        storage.load('students')


def test_open_storage_by_name(tmp_path):
    folder = str(tmp_path / 'data')
    assert isinstance(open_storage('memory', folder), MemorySlotStorage)
    assert isinstance(open_storage('json', folder), JsonFileSlotStorage)
    assert isinstance(open_storage('sqlite', folder), SqliteSlotStorage)
    assert os.path.exists(os.path.join(folder, 'school.db'))

    with pytest.raises(ValueError):
        open_storage('redis', folder)
