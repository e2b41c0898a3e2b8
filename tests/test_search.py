from retail_bms.models import Customer
from retail_bms.repositories import default_state
from retail_bms.services.search import search_customers, search_products, search_sales

from conftest import make_request


def test_search_products_by_name_or_sku():
    products = default_state().products

    assert [p.id for p in search_products(products, 'coffee')] == ['1']
    assert [p.id for p in search_products(products, 'ric0')] == ['2']
    assert len(search_products(products, '')) == 2
    assert search_products(products, 'zzz') == []


def test_search_customers_by_name_or_phone():
    customers = (
        Customer(id='1', name='Walk-in Customer', phone='000'),
        Customer(id='2', name='Rahim Uddin', phone='01711-555'),
    )
    assert [c.id for c in search_customers(customers, 'rahim')] == ['2']
    assert [c.id for c in search_customers(customers, '555')] == ['2']
    assert len(search_customers(customers, '  ')) == 2


def test_search_sales_by_invoice_or_customer(store):
    store.record_sale(make_request([('1', 'Premium Coffee', 1, 600)], customer_id='1'))
    store.record_sale(make_request([('1', 'Premium Coffee', 1, 600)]))
    sales = store.state.sales

    assert [s.invoice_number for s in search_sales(sales, 'inv-1001')] == ['INV-1001']
    assert [s.invoice_number for s in search_sales(sales, 'guest')] == ['INV-1002']
    assert [s.invoice_number for s in search_sales(sales, 'walk')] == ['INV-1001']
