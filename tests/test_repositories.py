import json
import os

import pytest

from retail_bms.exceptions import StorageError
from retail_bms.models import Language
from retail_bms.repositories import (
    JsonFileStorage,
    MemoryStorage,
    StateRepository,
    WriteBehindWriter,
    default_state,
)
from retail_bms.repositories.interfaces import IKeyValueStorage, IStateRepository


# =========================================================================
# ALMACENAMIENTOS
# =========================================================================

def test_json_file_storage_round_trip(tmp_path):
    storage = JsonFileStorage(str(tmp_path / 'data'))

    assert storage.get_item('bms_data') is None
    storage.set_item('bms_data', '{"a": 1}')

    assert storage.get_item('bms_data') == '{"a": 1}'
    assert os.path.exists(tmp_path / 'data' / 'bms_data.json')
    assert not os.path.exists(tmp_path / 'data' / 'bms_data.json.tmp')
    assert storage.has_item('bms_data')


def test_json_file_storage_remove(tmp_path):
    storage = JsonFileStorage(str(tmp_path))
    storage.set_item('k', 'v')

    assert storage.remove_item('k') is True
    assert storage.remove_item('k') is False
    assert storage.get_item('k') is None


@pytest.mark.parametrize('key', ['../escape', 'a/b', ''])
def test_json_file_storage_rejects_bad_keys(tmp_path, key):
    storage = JsonFileStorage(str(tmp_path))
    with pytest.raises(StorageError):
        storage.set_item(key, 'x')


def test_storages_match_protocol(tmp_path):
    assert isinstance(MemoryStorage(), IKeyValueStorage)
    assert isinstance(JsonFileStorage(str(tmp_path)), IKeyValueStorage)
    assert isinstance(StateRepository(MemoryStorage()), IStateRepository)


# =========================================================================
# REPOSITORIO DE ESTADO
# =========================================================================

def test_absent_key_loads_seed():
    repo = StateRepository(MemoryStorage())

    assert not repo.exists()
    state = repo.load()
    assert state == default_state()
    assert state.find_product('2').is_low_stock
    assert state.language == Language.EN


def test_corrupt_slot_loads_seed():
    repo = StateRepository(MemoryStorage({'bms_data': '{not json'}))
    assert repo.load() == default_state()


def test_non_object_slot_loads_seed():
    repo = StateRepository(MemoryStorage({'bms_data': '[1, 2, 3]'}))
    assert repo.load() == default_state()


def test_save_and_load_round_trip():
    storage = MemoryStorage()
    repo = StateRepository(storage)
    repo.save(default_state())

    data = json.loads(storage.get_item('bms_data'))
    assert set(data) == {'products', 'customers', 'sales', 'currentUser', 'language', 'invoiceCounter'}
    assert data['products'][0]['sellingPrice'] == 600
    assert repo.load() == default_state()


def test_custom_key():
    storage = MemoryStorage()
    StateRepository(storage, key='tienda_2').save(default_state())
    assert storage.get_item('tienda_2') is not None
    assert storage.get_item('bms_data') is None


def test_clear_removes_slot():
    storage = MemoryStorage()
    repo = StateRepository(storage)
    repo.save(default_state())

    assert repo.clear() is True
    assert not repo.exists()


# =========================================================================
# ESCRITURA DIFERIDA
# =========================================================================

def test_write_behind_keeps_last_version():
    storage = MemoryStorage()
    writer = WriteBehindWriter(storage, poll_interval=0.05)

    for i in range(20):
        writer.submit('k', str(i))
    writer.join()

    assert storage.get_item('k') == '19'
    assert writer.pending_keys == []
    writer.flush()


def test_write_behind_flush_writes_pending():
    storage = MemoryStorage()
    writer = WriteBehindWriter(storage, poll_interval=0.05)
    writer.submit('a', '1')
    writer.submit('b', '2')
    writer.flush()

    assert storage.get_item('a') == '1'
    assert storage.get_item('b') == '2'

    # Tras flush puede seguir recibiendo escrituras
    writer.submit('a', '3')
    writer.flush()
    assert storage.get_item('a') == '3'


def test_write_behind_failure_stays_pending():
    class Flaky(MemoryStorage):
        broken = True

        def set_item(self, key, value):
            if self.broken:
                raise StorageError("sin disco")
            super().set_item(key, value)

    storage = Flaky()
    writer = WriteBehindWriter(storage, poll_interval=0.05)
    writer.submit('k', 'v')
    writer.join()
    assert writer.pending_keys == ['k']

    storage.broken = False
    writer.flush()
    assert storage.get_item('k') == 'v'
    assert writer.pending_keys == []


def test_repository_with_writer():
    storage = MemoryStorage()
    repo = StateRepository(storage, writer=WriteBehindWriter(storage, poll_interval=0.05))
    repo.save(default_state())
    repo.flush()

    assert repo.load() == default_state()
