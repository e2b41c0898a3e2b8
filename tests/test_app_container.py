import json
import os

from retail_bms.app_container import AppContainer, get_container, reset_container
from retail_bms.config import Settings
from retail_bms.repositories import MemoryStorage

from conftest import make_request


def test_services_are_singletons(container):
    assert container.store is container.store
    assert container.cart_service.store is container.store
    assert container.stats_service is container.stats_service
    assert container.writer is None


def test_injected_storage():
    storage = MemoryStorage()
    container = AppContainer(Settings(), storage=storage)
    container.store.toggle_language()

    assert json.loads(storage.get_item('bms_data'))['language'] == 'bn'


def test_async_mode_writes_on_flush(tmp_path):
    settings = Settings(data_dir=str(tmp_path), persist_mode='async')
    container = AppContainer(settings)
    sale = container.store.record_sale(make_request([('1', 'Premium Coffee', 1, 600)]))
    container.store.flush()

    with open(os.path.join(str(tmp_path), 'bms_data.json'), 'r', encoding='utf-8') as f:
        data = json.load(f)
    assert data['sales'][0]['invoiceNumber'] == sale.invoice_number

    container.shutdown()
    reopened = AppContainer(settings)
    assert reopened.store.state.invoice_counter == 1
    reopened.shutdown()


def test_global_container(tmp_path):
    reset_container()
    try:
        first = get_container(Settings(data_dir=str(tmp_path)))
        assert get_container() is first
    finally:
        reset_container()
