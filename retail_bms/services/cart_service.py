# ==============================================================================
# SERVICIO DE CARRITO - Caja (POS)
# ==============================================================================
# Arma el carrito respetando el stock disponible, calcula subtotal,
# impuesto plano y descuento, y al cobrar entrega la venta al store.
# El carrito no se persiste: vive mientras dura la atención en caja.
# ==============================================================================

import logging
from collections import OrderedDict
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from retail_bms.config import Settings
from retail_bms.exceptions import EmptyCartError, InvalidInputError, OutOfStockError
from retail_bms.models import PaymentMethod, Product, Sale, SaleItem, SaleRequest
from retail_bms.services.store import StateStore
from retail_bms.services.transaction import GUEST_NAME
from retail_bms.services.validators import non_negative_int, non_negative_money

logger = logging.getLogger(__name__)


class Cart:
    """
    Carrito de compras: una línea por producto, en orden de agregado.
    """

    def __init__(self):
        self._lines: 'OrderedDict[str, SaleItem]' = OrderedDict()

    @property
    def items(self) -> List[SaleItem]:
        return list(self._lines.values())

    def get(self, product_id: str) -> Optional[SaleItem]:
        return self._lines.get(product_id)

    def put(self, item: SaleItem) -> None:
        self._lines[item.product_id] = item

    def remove(self, product_id: str) -> bool:
        return self._lines.pop(product_id, None) is not None

    def clear(self) -> None:
        self._lines.clear()

    @property
    def subtotal(self) -> float:
        return round(sum(item.line_total for item in self._lines.values()), 2)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)


class CartService:
    """
    Servicio de caja.

    Responsabilidades:
    - Agregar/quitar productos validando stock
    - Calcular totales (subtotal, impuesto, descuento)
    - Cobrar: construir el SaleRequest y registrarlo en el store
    """

    def __init__(self, store: StateStore, settings: Optional[Settings] = None):
        """
        Args:
            store: Store de la aplicación
            settings: Configuración (tasa de impuesto)
        """
        self.store = store
        self.settings = settings or store.settings

    def _get_product(self, product_id: str) -> Product:
        product = self.store.state.find_product(product_id)
        if product is None:
            raise InvalidInputError(f"Producto {product_id} no encontrado")
        return product

    # =========================================================================
    # ARMADO DEL CARRITO
    # =========================================================================

    def add_item(self, cart: Cart, product_id: str) -> SaleItem:
        """
        Agrega una unidad del producto al precio de venta actual.

        Raises:
            OutOfStockError: Si no hay stock o ya se alcanzó el stock disponible
        """
        product = self._get_product(product_id)
        if product.stock <= 0:
            raise OutOfStockError(f"{product.name} sin stock")

        existing = cart.get(product_id)
        if existing is None:
            item = SaleItem(product_id=product.id, name=product.name,
                            quantity=1, price=product.selling_price)
        else:
            if existing.quantity + 1 > product.stock:
                raise OutOfStockError(f"Límite de stock alcanzado para {product.name}")
            item = replace(existing, quantity=existing.quantity + 1)
        cart.put(item)
        return item

    def remove_item(self, cart: Cart, product_id: str) -> bool:
        return cart.remove(product_id)

    def update_quantity(self, cart: Cart, product_id: str, delta: int) -> Optional[SaleItem]:
        """
        Suma `delta` a la cantidad de una línea.
        La cantidad nunca baja de 1; si supera el stock la línea queda igual.

        Returns:
            Línea resultante o None si el producto no está en el carrito
        """
        item = cart.get(product_id)
        if item is None:
            return None
        new_qty = max(1, item.quantity + delta)
        product = self.store.state.find_product(product_id)
        if product is not None and new_qty > product.stock:
            return item
        item = replace(item, quantity=new_qty)
        cart.put(item)
        return item

    def build_cart(self, lines: Iterable[Mapping[str, Any]]) -> Cart:
        """
        Arma un carrito desde líneas [{productId, quantity, price?}].
        El precio por defecto es el precio de venta actual del producto.

        Raises:
            InvalidInputError: Si una línea es inválida o el producto no existe
            OutOfStockError: Si la cantidad supera el stock
        """
        cart = Cart()
        for line in lines:
            if not isinstance(line, Mapping):
                raise InvalidInputError("Cada línea debe ser un objeto")
            product = self._get_product(str(line.get('productId', '')))
            quantity = non_negative_int(line.get('quantity', 1), 'quantity')
            if quantity < 1:
                raise InvalidInputError("quantity debe ser >= 1")
            price = product.selling_price
            if line.get('price') is not None:
                price = non_negative_money(line['price'], 'price')

            existing = cart.get(product.id)
            total_qty = quantity + (existing.quantity if existing else 0)
            if total_qty > product.stock:
                raise OutOfStockError(
                    f"Stock insuficiente para {product.name}. "
                    f"Solicitado: {total_qty}, Disponible: {product.stock}"
                )
            cart.put(SaleItem(product_id=product.id, name=product.name,
                              quantity=total_qty, price=price))
        return cart

    # =========================================================================
    # TOTALES Y COBRO
    # =========================================================================

    def totals(self, cart: Cart, discount: float = 0.0) -> Dict[str, float]:
        """
        Calcula los totales del carrito.

        Returns:
            Dict con subtotal, tax, discount, total
        """
        discount = non_negative_money(discount, 'discount')
        subtotal = cart.subtotal
        tax = round(subtotal * self.settings.tax_rate, 2)
        return {
            'subtotal': subtotal,
            'tax': tax,
            'discount': discount,
            'total': round(subtotal + tax - discount, 2),
        }

    def checkout(
        self,
        cart: Cart,
        customer_id: Optional[str] = None,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        discount: float = 0.0
    ) -> Sale:
        """
        Cobra el carrito. Si la venta se registra, el carrito queda vacío.

        Args:
            cart: Carrito a cobrar
            customer_id: Cliente (opcional)
            payment_method: Método de pago
            discount: Descuento en monto

        Returns:
            Venta registrada
        """
        if not cart:
            raise EmptyCartError("El carrito está vacío")

        try:
            payment_method = PaymentMethod(payment_method)
        except ValueError:
            raise InvalidInputError(f"Método de pago inválido: {payment_method}")

        totals = self.totals(cart, discount)
        customer = self.store.state.find_customer(customer_id)
        request = SaleRequest(
            items=tuple(cart.items),
            subtotal=totals['subtotal'],
            discount=totals['discount'],
            tax=totals['tax'],
            total=totals['total'],
            payment_method=payment_method,
            customer_id=customer_id,
            customer_name=customer.name if customer else GUEST_NAME,
        )
        sale = self.store.record_sale(request)
        cart.clear()
        logger.debug("Carrito cobrado como %s", sale.invoice_number)
        return sale
