# ==============================================================================
# MOTOR DE VENTAS - Transición de estado de una venta
# ==============================================================================
# Esta es la ÚNICA función que crea ventas.
# Dado el snapshot actual y los datos de la caja, calcula el snapshot
# siguiente completo:
#   1. Valida ítems y montos
#   2. Calcula la ganancia con el costo de compra de cada producto
#   3. Asigna el número de factura desde el contador persistido
#   4. Descuenta stock, suma la compra al cliente y antepone la venta
#
# Es una función pura: no toca el store ni el disco. Si algo falla se lanza
# una excepción y el snapshot anterior queda intacto.
# ==============================================================================

import logging
import math
from collections import OrderedDict
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from retail_bms.config import Settings
from retail_bms.exceptions import EmptyCartError, InconsistentTotalsError, InvalidInputError
from retail_bms.models import AppState, Sale, SaleItem, SaleRequest

logger = logging.getLogger(__name__)

GUEST_NAME = 'Guest'


def format_invoice_number(counter: int, settings: Settings) -> str:
    """
    Número de factura legible para la factura número `counter + 1`.

    Ejemplo con la configuración por defecto: contador 0 → "INV-1001".
    """
    return f"{settings.invoice_prefix}{settings.invoice_base + counter + 1}"


def _validate_item(item: SaleItem, position: int) -> None:
    if not item.product_id:
        raise InvalidInputError(f"Línea {position}: falta productId")
    if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity < 1:
        raise InvalidInputError(f"Línea {position}: la cantidad debe ser un entero >= 1")
    if not math.isfinite(item.price) or item.price < 0:
        raise InvalidInputError(f"Línea {position}: precio inválido")


def _validate_request(request: SaleRequest, settings: Settings) -> None:
    """
    Valida la venta antes de tocar el estado.

    Raises:
        EmptyCartError: Si no hay ítems
        InvalidInputError: Si una línea o un monto es inválido
        InconsistentTotalsError: Si subtotal/total no cuadran (verify_totals)
    """
    if not request.items:
        raise EmptyCartError("La venta no tiene ítems")

    for position, item in enumerate(request.items, start=1):
        _validate_item(item, position)

    for field in ('subtotal', 'discount', 'tax', 'total'):
        value = getattr(request, field)
        if not math.isfinite(value):
            raise InvalidInputError(f"{field} inválido")
    if request.discount < 0:
        raise InvalidInputError("El descuento no puede ser negativo")
    if request.tax < 0:
        raise InvalidInputError("El impuesto no puede ser negativo")
    # totalPurchase del cliente nunca decrece
    if request.total < 0:
        raise InvalidInputError("El total no puede ser negativo")

    if not settings.verify_totals:
        return

    expected_subtotal = round(sum(item.line_total for item in request.items), 2)
    if abs(request.subtotal - expected_subtotal) > settings.money_tolerance:
        raise InconsistentTotalsError('subtotal', expected_subtotal, request.subtotal)

    expected_total = round(expected_subtotal + request.tax - request.discount, 2)
    if abs(request.total - expected_total) > settings.money_tolerance:
        raise InconsistentTotalsError('total', expected_total, request.total)


def compute_profit(state: AppState, items: Tuple[SaleItem, ...]) -> float:
    """
    Ganancia de la venta: suma de quantity * (price - purchasePrice).
    Un producto inexistente cuenta con costo 0, no hace fallar la venta.
    """
    profit = 0.0
    for item in items:
        product = state.find_product(item.product_id)
        cost = product.purchase_price if product else 0.0
        profit += item.quantity * (item.price - cost)
    return round(profit, 2)


def _quantities_by_product(items: Tuple[SaleItem, ...]) -> Dict[str, int]:
    """Cantidad total por producto (una venta puede repetir el producto en varias líneas)."""
    sold: Dict[str, int] = OrderedDict()
    for item in items:
        sold[item.product_id] = sold.get(item.product_id, 0) + item.quantity
    return sold


def apply_sale(
    state: AppState,
    request: SaleRequest,
    *,
    sale_id: str,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None
) -> Tuple[AppState, Sale]:
    """
    Aplica una venta al snapshot y retorna el snapshot siguiente.

    Args:
        state: Snapshot actual
        request: Datos de la caja
        sale_id: ID único para la venta
        now: Instante de la venta (por defecto ahora, UTC)
        settings: Configuración (prefijo de factura, verificación de totales)

    Returns:
        Tupla (snapshot_siguiente, venta_creada)

    Reglas:
    - El stock no tiene piso: puede quedar negativo si la caja no validó
    - Un cliente inexistente no se actualiza, pero la venta se registra
    - El contador de facturas solo avanza con una venta exitosa
    - subtotal, tax, discount y total se guardan redondeados a 2 decimales
    """
    settings = settings or Settings()
    _validate_request(request, settings)

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    customer = state.find_customer(request.customer_id)
    customer_name = request.customer_name or (customer.name if customer else GUEST_NAME)

    # Montos a 2 decimales: la misma cifra entra al libro y a totalPurchase
    sale = Sale(
        id=sale_id,
        invoice_number=format_invoice_number(state.invoice_counter, settings),
        timestamp=now.astimezone(timezone.utc).isoformat(),
        items=tuple(request.items),
        subtotal=round(request.subtotal, 2),
        discount=round(request.discount, 2),
        tax=round(request.tax, 2),
        total=round(request.total, 2),
        profit=compute_profit(state, request.items),
        payment_method=request.payment_method,
        customer_id=request.customer_id,
        customer_name=customer_name,
    )

    sold = _quantities_by_product(request.items)
    products = tuple(
        replace(p, stock=p.stock - sold[p.id]) if p.id in sold else p
        for p in state.products
    )

    customers = state.customers
    if customer is not None:
        customers = tuple(
            replace(c, total_purchase=round(c.total_purchase + sale.total, 2))
            if c.id == customer.id else c
            for c in state.customers
        )
    elif request.customer_id is not None:
        logger.warning(
            "Venta %s con cliente inexistente %s; no se actualiza ningún cliente",
            sale.invoice_number, request.customer_id
        )

    missing = [pid for pid in sold if state.find_product(pid) is None]
    if missing:
        logger.warning(
            "Venta %s con productos inexistentes %s; costo tomado como 0",
            sale.invoice_number, ', '.join(missing)
        )

    next_state = replace(
        state,
        products=products,
        customers=customers,
        sales=(sale,) + state.sales,
        invoice_counter=state.invoice_counter + 1,
    )
    return next_state, sale
