import itertools
from datetime import datetime, timezone

import pytest

from retail_bms.app_container import AppContainer
from retail_bms.config import Settings
from retail_bms.main import create_app
from retail_bms.models import PaymentMethod, SaleItem, SaleRequest
from retail_bms.repositories import MemoryStorage, StateRepository
from retail_bms.services import StateStore

FIXED_NOW = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


def make_request(items, discount=0.0, tax=0.0, customer_id=None, customer_name='', payment_method='CASH'):
    """Arma un SaleRequest con subtotal y total coherentes con las líneas."""
    sale_items = tuple(
        SaleItem(product_id=pid, name=name, quantity=qty, price=price)
        for pid, name, qty, price in items
    )
    subtotal = round(sum(i.quantity * i.price for i in sale_items), 2)
    return SaleRequest(
        items=sale_items,
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=round(subtotal + tax - discount, 2),
        payment_method=PaymentMethod(payment_method),
        customer_id=customer_id,
        customer_name=customer_name,
    )


@pytest.fixture
def settings():
    return Settings(enable_profiling=False)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def repository(storage, settings):
    return StateRepository(storage, key=settings.storage_key)


@pytest.fixture
def id_factory():
    counter = itertools.count(100)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def store(repository, settings, id_factory):
    return StateStore(repository, settings, id_factory=id_factory, clock=lambda: FIXED_NOW)


@pytest.fixture
def container(tmp_path, settings):
    c = AppContainer(settings.with_overrides(data_dir=str(tmp_path / 'data')))
    yield c
    c.shutdown()


@pytest.fixture
def client(container):
    app = create_app(container=container)
    app.config['TESTING'] = True
    with app.test_client() as c:
        yield c
