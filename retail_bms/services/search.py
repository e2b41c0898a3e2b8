"""Filtros de búsqueda de las pantallas de inventario, clientes y facturas."""

from typing import Iterable, List

from retail_bms.models import Customer, Product, Sale


def search_products(products: Iterable[Product], term: str = '') -> List[Product]:
    """Productos cuyo nombre o SKU contiene el término (sin distinguir mayúsculas)."""
    term = (term or '').strip().lower()
    if not term:
        return list(products)
    return [p for p in products if term in p.name.lower() or term in p.sku.lower()]


def search_customers(customers: Iterable[Customer], term: str = '') -> List[Customer]:
    """Clientes por nombre (sin distinguir mayúsculas) o por teléfono."""
    raw = (term or '').strip()
    if not raw:
        return list(customers)
    term = raw.lower()
    return [c for c in customers if term in c.name.lower() or raw in c.phone]


def search_sales(sales: Iterable[Sale], term: str = '') -> List[Sale]:
    """Ventas por número de factura o nombre del cliente."""
    term = (term or '').strip().lower()
    if not term:
        return list(sales)
    return [
        s for s in sales
        if term in s.invoice_number.lower() or term in (s.customer_name or '').lower()
    ]
