import json

import pytest

from retail_bms.exceptions import (
    EmptyCartError,
    InconsistentTotalsError,
    InvalidInputError,
    MutationStatus,
    StorageError,
)
from retail_bms.models import Language, SaleRequest
from retail_bms.repositories import MemoryStorage, StateRepository
from retail_bms.services import StateStore

from conftest import FIXED_NOW, make_request


class FailingStorage(MemoryStorage):
    """Acepta la escritura inicial y luego falla."""

    def __init__(self):
        super().__init__()
        self.fail = False

    def set_item(self, key, value):
        if self.fail:
            raise StorageError("disco lleno")
        super().set_item(key, value)


def _saved(storage):
    return json.loads(storage.get_item('bms_data'))


# =========================================================================
# INICIALIZACIÓN
# =========================================================================

def test_seed_is_persisted_on_first_open(store, storage):
    assert [p.name for p in store.state.products] == ['Premium Coffee', 'Basmati Rice 5kg']
    assert store.state.current_user.username == 'admin'
    data = _saved(storage)
    assert data['invoiceCounter'] == 0
    assert data['customers'][0]['name'] == 'Walk-in Customer'


def test_existing_data_is_loaded(storage, settings):
    storage.set_item('bms_data', json.dumps({
        'products': [{'id': 'p1', 'name': 'Tea', 'sellingPrice': 10, 'stock': 3}],
        'customers': [], 'sales': [], 'currentUser': None, 'language': 'bn',
    }))
    store = StateStore(StateRepository(storage), settings)

    assert [p.id for p in store.state.products] == ['p1']
    assert store.state.language == Language.BN
    assert store.state.current_user is None


# =========================================================================
# PRODUCTOS
# =========================================================================

def test_add_product_assigns_unique_ids(store):
    a = store.add_product({'name': 'Tea', 'sellingPrice': 120, 'stock': 4})
    b = store.add_product({'name': 'Tea', 'sellingPrice': 120, 'stock': 4})

    assert a.id != b.id
    ids = [p.id for p in store.state.products]
    assert len(ids) == len(set(ids)) == 4


def test_add_product_persists(store, storage):
    product = store.add_product({
        'name': 'Green Tea', 'category': 'Beverage', 'purchasePrice': 80,
        'sellingPrice': 120, 'stock': 10, 'minStock': 2, 'sku': 'TEA001',
    })
    saved = _saved(storage)['products'][-1]
    assert saved == product.to_dict()
    assert saved['purchasePrice'] == 80


@pytest.mark.parametrize('data', [
    {'sellingPrice': 10},
    {'name': 'X', 'purchasePrice': -1},
    {'name': 'X', 'stock': 1.5},
    {'name': 'X', 'minStock': 'abc'},
    {'name': 'X', 'color': 'red'},
    {'name': 'X', 'id': 'forced'},
    {'name': 'X', 'purchasePrice': 'inf'},
    {'name': 'X', 'sellingPrice': float('inf')},
    {'name': 'X', 'sellingPrice': float('nan')},
    {'name': 'X', 'stock': float('inf')},
])
def test_add_product_rejects_bad_input(store, data):
    before = store.state
    with pytest.raises(InvalidInputError):
        store.add_product(data)
    assert store.state is before


def test_update_product_merges_fields(store):
    result = store.update_product('1', {'sellingPrice': 650, 'stock': 40})

    assert result.applied
    assert result.status == MutationStatus.APPLIED
    product = store.state.find_product('1')
    assert product.selling_price == 650
    assert product.stock == 40
    assert product.name == 'Premium Coffee'
    assert result.entity == product


def test_update_product_keeps_position(store):
    store.update_product('1', {'name': 'House Coffee'})
    assert [p.id for p in store.state.products] == ['1', '2']


def test_update_missing_product_returns_not_found(store):
    before = store.state
    result = store.update_product('nope', {'stock': 1})

    assert result.not_found
    assert result.target_id == 'nope'
    assert store.state is before


def test_update_cannot_change_id(store):
    with pytest.raises(InvalidInputError):
        store.update_product('1', {'id': '2'})


def test_delete_product(store):
    result = store.delete_product('2')

    assert result.applied
    assert result.entity.name == 'Basmati Rice 5kg'
    assert store.state.find_product('2') is None


def test_delete_missing_product_returns_not_found(store):
    assert store.delete_product('nope').not_found
    assert len(store.state.products) == 2


def test_deleted_product_keeps_history(store):
    sale = store.record_sale(make_request([('2', 'Basmati Rice 5kg', 1, 850)]))
    store.delete_product('2')

    kept = store.state.find_sale(sale.invoice_number)
    assert kept.items[0].name == 'Basmati Rice 5kg'
    assert kept.profit == 150


# =========================================================================
# CLIENTES
# =========================================================================

def test_add_customer_starts_at_zero(store):
    customer = store.add_customer({'name': 'Rahim', 'phone': '01711', 'address': 'Dhaka'})

    assert customer.total_purchase == 0
    assert customer.dues == 0
    assert store.state.customers[-1] == customer


def test_add_customer_requires_name(store):
    with pytest.raises(InvalidInputError):
        store.add_customer({'phone': '123'})


# =========================================================================
# VENTAS
# =========================================================================

def test_record_sale_updates_everything(store, storage):
    sale = store.record_sale(make_request([('1', 'Premium Coffee', 2, 600)], customer_id='1'))

    assert sale.invoice_number == 'INV-1001'
    assert sale.id == 'id-100'
    assert sale.timestamp == FIXED_NOW.isoformat()
    assert store.state.find_product('1').stock == 48
    assert store.state.find_customer('1').total_purchase == 1200

    saved = _saved(storage)
    assert saved['sales'][0]['invoiceNumber'] == 'INV-1001'
    assert saved['invoiceCounter'] == 1


def test_sales_are_independent_when_serialized(store):
    first = store.record_sale(make_request([('1', 'Premium Coffee', 1, 600)]))
    second = store.record_sale(make_request([('1', 'Premium Coffee', 1, 600)]))

    assert first.id != second.id
    assert store.state.find_product('1').stock == 48
    assert [s.invoice_number for s in store.state.sales] == ['INV-1002', 'INV-1001']


def test_rejected_sale_leaves_state_untouched(store):
    before = store.state
    with pytest.raises(EmptyCartError):
        store.record_sale(SaleRequest(items=(), subtotal=0, total=0))
    with pytest.raises(InconsistentTotalsError):
        store.record_sale(SaleRequest(
            items=make_request([('1', 'Premium Coffee', 1, 600)]).items,
            subtotal=1, total=1,
        ))
    assert store.state is before

    sale = store.record_sale(make_request([('1', 'Premium Coffee', 1, 600)]))
    assert sale.invoice_number == 'INV-1001'


def test_sub_cent_sales_keep_ledger_and_customer_in_step(store):
    item = make_request([('1', 'Premium Coffee', 1, 10.004)]).items
    for _ in range(3):
        store.record_sale(SaleRequest(items=item, subtotal=10.004, total=10.004, customer_id='1'))

    sales = store.state.sales
    assert [s.total for s in sales] == [10.0, 10.0, 10.0]
    assert store.state.find_customer('1').total_purchase == sum(s.total for s in sales) == 30.0


def test_invoice_counter_survives_reload(storage, settings, id_factory):
    store = StateStore(StateRepository(storage), settings, id_factory=id_factory)
    store.record_sale(make_request([('1', 'Premium Coffee', 1, 600)]))
    store.record_sale(make_request([('1', 'Premium Coffee', 1, 600)]))

    reopened = StateStore(StateRepository(storage), settings, id_factory=id_factory)
    sale = reopened.record_sale(make_request([('1', 'Premium Coffee', 1, 600)]))
    assert sale.invoice_number == 'INV-1003'


def test_storage_failure_keeps_previous_snapshot(settings):
    storage = FailingStorage()
    store = StateStore(StateRepository(storage), settings)
    before = store.state

    storage.fail = True
    with pytest.raises(StorageError):
        store.record_sale(make_request([('1', 'Premium Coffee', 1, 600)]))
    with pytest.raises(StorageError):
        store.add_product({'name': 'Tea'})

    assert store.state is before


# =========================================================================
# SESIÓN, IDIOMA Y SUSCRIPCIONES
# =========================================================================

def test_toggle_language_round_trip(store, storage):
    assert store.toggle_language() == Language.BN
    assert _saved(storage)['language'] == 'bn'
    assert store.toggle_language() == Language.EN
    assert store.state.language == Language.EN


def test_logout_clears_current_user(store, storage):
    store.logout()
    assert store.state.current_user is None
    assert _saved(storage)['currentUser'] is None


def test_listeners_receive_new_snapshot(store):
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.toggle_language()
    unsubscribe()
    store.toggle_language()

    assert len(seen) == 1
    assert seen[0].language == Language.BN


def test_failing_listener_does_not_break_mutation(store):
    def boom(state):
        raise RuntimeError("listener roto")

    store.subscribe(boom)
    product = store.add_product({'name': 'Tea'})
    assert store.state.find_product(product.id) == product


def test_reload_reads_storage(store, storage):
    data = _saved(storage)
    data['language'] = 'bn'
    storage.set_item('bms_data', json.dumps(data))

    assert store.reload().language == Language.BN
    assert store.state.language == Language.BN
