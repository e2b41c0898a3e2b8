from dataclasses import replace
from datetime import datetime

import pytest

from retail_bms.config import Settings
from retail_bms.exceptions import EmptyCartError, InconsistentTotalsError, InvalidInputError
from retail_bms.models import Customer, SaleItem, SaleRequest
from retail_bms.repositories import default_state
from retail_bms.services.transaction import apply_sale, compute_profit, format_invoice_number

from conftest import FIXED_NOW, make_request


def _apply(state, request, sale_id='s1', **kwargs):
    return apply_sale(state, request, sale_id=sale_id, now=FIXED_NOW, **kwargs)


def test_first_sale_on_seed():
    state = default_state()
    request = make_request([('1', 'Premium Coffee', 2, 600)], customer_id='1')

    next_state, sale = _apply(state, request)

    assert sale.invoice_number == 'INV-1001'
    assert sale.profit == 300
    assert sale.total == 1200
    assert next_state.find_product('1').stock == 48
    assert next_state.find_customer('1').total_purchase == 1200
    assert next_state.sales[0] == sale
    assert next_state.invoice_counter == 1


def test_apply_sale_does_not_touch_previous_snapshot():
    state = default_state()
    _apply(state, make_request([('1', 'Premium Coffee', 2, 600)], customer_id='1'))

    assert state.find_product('1').stock == 50
    assert state.find_customer('1').total_purchase == 0
    assert state.sales == ()
    assert state.invoice_counter == 0


def test_second_sale_gets_next_invoice_and_is_prepended():
    state, first = _apply(default_state(), make_request([('1', 'Premium Coffee', 1, 600)]))
    state, second = _apply(state, make_request([('2', 'Basmati Rice 5kg', 1, 850)]), sale_id='s2')

    assert second.invoice_number == 'INV-1002'
    assert [s.invoice_number for s in state.sales] == ['INV-1002', 'INV-1001']


def test_sale_leaves_other_products_and_customers_alone():
    seed = default_state()
    regular = Customer(id='2', name='Rahim Uddin', phone='01711', total_purchase=5000.0)
    state = replace(seed, customers=seed.customers + (regular,))

    next_state, _ = _apply(state, make_request([('1', 'Premium Coffee', 3, 600)], customer_id='1'))

    assert next_state.find_product('1').stock == 47
    assert next_state.find_product('2') == state.find_product('2')
    assert next_state.find_customer('1').total_purchase == 1800
    assert next_state.find_customer('2') == regular


def test_stock_can_go_negative():
    state = default_state()
    next_state, sale = _apply(state, make_request([('2', 'Basmati Rice 5kg', 7, 850)]))

    assert next_state.find_product('2').stock == -2
    assert next_state.find_product('2').is_low_stock
    assert sale.profit == 7 * (850 - 700)


def test_unknown_product_counts_zero_cost():
    state = default_state()
    next_state, sale = _apply(state, make_request([('999', 'Ghost', 3, 100)]))

    assert sale.profit == 300
    assert next_state.products == state.products
    assert len(next_state.sales) == 1


def test_unknown_customer_records_sale_without_updating_customers():
    state = default_state()
    next_state, sale = _apply(state, make_request([('1', 'Premium Coffee', 1, 600)], customer_id='nope'))

    assert sale.customer_id == 'nope'
    assert sale.customer_name == 'Guest'
    assert next_state.customers == state.customers


def test_customer_name_taken_from_customer_when_missing():
    _, sale = _apply(default_state(), make_request([('1', 'Premium Coffee', 1, 600)], customer_id='1'))
    assert sale.customer_name == 'Walk-in Customer'


def test_customer_name_from_request_wins():
    request = make_request([('1', 'Premium Coffee', 1, 600)], customer_id='1', customer_name='Front desk')
    _, sale = _apply(default_state(), request)
    assert sale.customer_name == 'Front desk'


def test_duplicate_lines_decrement_summed_quantity():
    request = make_request([
        ('1', 'Premium Coffee', 2, 600),
        ('1', 'Premium Coffee', 3, 600),
    ])
    next_state, sale = _apply(default_state(), request)

    assert next_state.find_product('1').stock == 45
    assert sale.profit == 5 * 150


def test_total_includes_tax_and_discount():
    request = make_request([('1', 'Premium Coffee', 2, 600)], tax=60, discount=100, customer_id='1')
    next_state, sale = _apply(default_state(), request)

    assert sale.total == 1160
    assert next_state.find_customer('1').total_purchase == 1160
    # La ganancia ignora impuesto y descuento
    assert sale.profit == 300


def test_empty_cart_rejected():
    request = SaleRequest(items=(), subtotal=0, total=0)
    with pytest.raises(EmptyCartError):
        _apply(default_state(), request)


@pytest.mark.parametrize('quantity', [0, -1, 1.5, True])
def test_invalid_quantity_rejected(quantity):
    request = SaleRequest(
        items=(SaleItem(product_id='1', name='Premium Coffee', quantity=quantity, price=600),),
        subtotal=600, total=600,
    )
    with pytest.raises(InvalidInputError):
        _apply(default_state(), request, settings=Settings(verify_totals=False))


def test_negative_price_rejected():
    request = make_request([('1', 'Premium Coffee', 1, -5)])
    with pytest.raises(InvalidInputError):
        _apply(default_state(), request)


def test_inconsistent_subtotal_rejected():
    request = SaleRequest(
        items=(SaleItem(product_id='1', name='Premium Coffee', quantity=2, price=600),),
        subtotal=1000, total=1000,
    )
    with pytest.raises(InconsistentTotalsError) as exc:
        _apply(default_state(), request)
    assert exc.value.field == 'subtotal'
    assert exc.value.expected == 1200


def test_inconsistent_total_rejected():
    request = SaleRequest(
        items=(SaleItem(product_id='1', name='Premium Coffee', quantity=2, price=600),),
        subtotal=1200, tax=60, total=1200,
    )
    with pytest.raises(InconsistentTotalsError) as exc:
        _apply(default_state(), request)
    assert exc.value.field == 'total'


def test_totals_within_tolerance_accepted():
    request = SaleRequest(
        items=(SaleItem(product_id='1', name='Premium Coffee', quantity=3, price=0.1),),
        subtotal=0.3, total=0.3,
    )
    _, sale = _apply(default_state(), request)
    assert sale.subtotal == 0.3


def test_verify_totals_disabled_keeps_client_values():
    request = SaleRequest(
        items=(SaleItem(product_id='1', name='Premium Coffee', quantity=2, price=600),),
        subtotal=1000, total=1000,
    )
    _, sale = _apply(default_state(), request, settings=Settings(verify_totals=False))
    assert sale.total == 1000


def test_negative_total_rejected():
    request = make_request([('1', 'Premium Coffee', 1, 600)], discount=700)
    with pytest.raises(InvalidInputError):
        _apply(default_state(), request)


def test_naive_timestamp_treated_as_utc():
    request = make_request([('1', 'Premium Coffee', 1, 600)])
    _, sale = apply_sale(default_state(), request, sale_id='s1', now=datetime(2024, 1, 2, 3, 4, 5))
    assert sale.timestamp == '2024-01-02T03:04:05+00:00'


def test_compute_profit_uses_current_purchase_price():
    items = (
        SaleItem(product_id='1', name='Premium Coffee', quantity=1, price=600),
        SaleItem(product_id='2', name='Basmati Rice 5kg', quantity=2, price=800),
    )
    assert compute_profit(default_state(), items) == 150 + 2 * 100


def test_format_invoice_number_custom_prefix():
    settings = Settings(invoice_prefix='F-', invoice_base=5000)
    assert format_invoice_number(0, settings) == 'F-5001'
    assert format_invoice_number(41, Settings()) == 'INV-1042'
