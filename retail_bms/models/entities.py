# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Son inmutables (frozen): un cambio produce una instancia nueva con
# dataclasses.replace, nunca una mutación en sitio.
# Los nombres de campo persistidos (to_dict/from_dict) son camelCase.
# ==============================================================================

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Tuple, Dict, Any
from enum import Enum

logger = logging.getLogger(__name__)


def _stored_count(data: Dict[str, Any], key: str) -> int:
    """
    Lee un conteo guardado (stock, minStock).
    Datos viejos pueden traer fracciones: se truncan y queda un WARNING.
    """
    raw = data.get(key, 0)
    if isinstance(raw, int):
        return int(raw)
    number = float(raw)
    if not math.isfinite(number):
        raise ValueError(f"{key} inválido: {raw!r}")
    if not number.is_integer():
        logger.warning(
            "Producto %s: %s=%r no es entero; se carga como %d",
            data.get('id', '?'), key, raw, int(number)
        )
    return int(number)


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class Role(str, Enum):
    """Roles de usuario disponibles en el sistema."""
    ADMIN = "ADMIN"
    STAFF = "STAFF"


class PaymentMethod(str, Enum):
    """Métodos de pago aceptados."""
    CASH = "CASH"
    CARD = "CARD"
    MOBILE = "MOBILE"


class Language(str, Enum):
    """Idiomas de la interfaz (no afectan los datos guardados)."""
    EN = "en"
    BN = "bn"

    def toggled(self) -> 'Language':
        return Language.BN if self is Language.EN else Language.EN


# ==============================================================================
# ENTIDADES DE USUARIO
# ==============================================================================

@dataclass(frozen=True)
class User:
    """
    Usuario con sesión iniciada.

    Attributes:
        id: Identificador único del usuario
        username: Nombre de acceso
        role: Rol del usuario
        name: Nombre para mostrar
    """
    id: str
    username: str
    role: Role = Role.STAFF
    name: str = ''

    def is_admin(self) -> bool:
        """Verifica si el usuario tiene permisos de administrador."""
        return self.role == Role.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role.value,
            'name': self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        """Crea instancia desde diccionario."""
        try:
            role = Role(data.get('role', 'STAFF'))
        except ValueError:
            role = Role.STAFF
        return cls(
            id=str(data.get('id', '')),
            username=data.get('username', ''),
            role=role,
            name=data.get('name', '')
        )


# ==============================================================================
# ENTIDADES DE INVENTARIO Y CLIENTES
# ==============================================================================

@dataclass(frozen=True)
class Product:
    """
    Producto del catálogo.

    Attributes:
        id: Identificador único y estable
        name: Nombre del producto
        category: Categoría (texto libre)
        purchase_price: Costo de compra
        selling_price: Precio de venta actual
        stock: Cantidad en inventario (puede quedar negativa solo por ventas)
        min_stock: Umbral de reposición
        sku: Código para búsqueda (no necesariamente único)
    """
    id: str
    name: str
    category: str = ''
    purchase_price: float = 0.0
    selling_price: float = 0.0
    stock: int = 0
    min_stock: int = 0
    sku: str = ''

    @property
    def is_low_stock(self) -> bool:
        """Verifica si el stock está en o por debajo del mínimo."""
        return self.stock <= self.min_stock

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'purchasePrice': self.purchase_price,
            'sellingPrice': self.selling_price,
            'stock': self.stock,
            'minStock': self.min_stock,
            'sku': self.sku,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario (formato JSON guardado)."""
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            category=data.get('category', ''),
            purchase_price=float(data.get('purchasePrice', 0.0)),
            selling_price=float(data.get('sellingPrice', 0.0)),
            stock=_stored_count(data, 'stock'),
            min_stock=_stored_count(data, 'minStock'),
            sku=data.get('sku', '')
        )


@dataclass(frozen=True)
class Customer:
    """
    Cliente registrado.

    Attributes:
        id: Identificador único
        name: Nombre del cliente
        phone: Teléfono
        address: Dirección
        total_purchase: Suma acumulada de sus ventas (solo la modifica el motor de ventas)
        dues: Saldo pendiente (ninguna operación del núcleo lo cambia)
    """
    id: str
    name: str
    phone: str = ''
    address: str = ''
    total_purchase: float = 0.0
    dues: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'address': self.address,
            'totalPurchase': self.total_purchase,
            'dues': self.dues,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            phone=data.get('phone', ''),
            address=data.get('address', ''),
            total_purchase=float(data.get('totalPurchase', 0.0)),
            dues=float(data.get('dues', 0.0))
        )


# ==============================================================================
# ENTIDADES DE VENTA
# ==============================================================================

@dataclass(frozen=True)
class SaleItem:
    """
    Ítem individual dentro de una venta.
    Nombre y precio se copian al momento de vender: el registro sigue
    siendo válido aunque el producto se edite o elimine después.

    Attributes:
        product_id: ID del producto referenciado
        name: Nombre del producto al momento de la venta
        quantity: Cantidad vendida
        price: Precio unitario de venta
    """
    product_id: str
    name: str
    quantity: int
    price: float

    @property
    def line_total(self) -> float:
        """Total de la línea (quantity * price)."""
        return self.quantity * self.price

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'productId': self.product_id,
            'name': self.name,
            'quantity': self.quantity,
            'price': self.price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaleItem':
        """Crea instancia desde diccionario."""
        return cls(
            product_id=str(data.get('productId', '')),
            name=data.get('name', ''),
            quantity=int(data.get('quantity', 0)),
            price=float(data.get('price', 0.0))
        )


@dataclass(frozen=True)
class SaleRequest:
    """
    Datos de una venta tal como los envía la caja.
    id, timestamp, invoiceNumber y profit los asigna el motor de ventas.
    """
    items: Tuple[SaleItem, ...]
    subtotal: float
    total: float
    discount: float = 0.0
    tax: float = 0.0
    payment_method: PaymentMethod = PaymentMethod.CASH
    customer_id: Optional[str] = None
    customer_name: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaleRequest':
        """
        Crea instancia desde el JSON de la caja.
        Las cantidades no enteras se conservan para que el motor las rechace.

        Raises:
            ValueError: Si un monto no es numérico o el método de pago no es válido
        """
        customer_id = data.get('customerId')
        items = []
        for raw in data.get('items', []):
            quantity = raw.get('quantity', 0)
            if isinstance(quantity, float) and quantity.is_integer():
                quantity = int(quantity)
            items.append(SaleItem(
                product_id=str(raw.get('productId', '')),
                name=raw.get('name', ''),
                quantity=quantity,
                price=float(raw.get('price', 0.0))
            ))
        return cls(
            items=tuple(items),
            subtotal=float(data.get('subtotal', 0.0)),
            total=float(data.get('total', 0.0)),
            discount=float(data.get('discount', 0.0)),
            tax=float(data.get('tax', 0.0)),
            payment_method=PaymentMethod(data.get('paymentMethod', 'CASH')),
            customer_id=str(customer_id) if customer_id not in (None, '') else None,
            customer_name=data.get('customerName', '') or ''
        )


@dataclass(frozen=True)
class Sale:
    """
    Venta registrada. Se crea una sola vez y nunca se modifica ni elimina.

    Attributes:
        id: Identificador único
        invoice_number: Número de factura secuencial (ej: "INV-1001")
        timestamp: Instante de creación (ISO 8601, UTC)
        items: Ítems vendidos
        subtotal: Suma de líneas
        discount: Descuento aplicado
        tax: Impuesto
        total: subtotal + tax - discount
        profit: Ganancia calculada por el motor
        payment_method: Método de pago
        customer_id: Cliente referenciado (opcional)
        customer_name: Nombre del cliente al momento de la venta
    """
    id: str
    invoice_number: str
    timestamp: str
    items: Tuple[SaleItem, ...] = ()
    subtotal: float = 0.0
    discount: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    profit: float = 0.0
    payment_method: PaymentMethod = PaymentMethod.CASH
    customer_id: Optional[str] = None
    customer_name: str = ''

    @property
    def item_count(self) -> int:
        """Unidades vendidas en esta venta."""
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        d = {
            'id': self.id,
            'customerName': self.customer_name,
            'items': [item.to_dict() for item in self.items],
            'subtotal': self.subtotal,
            'discount': self.discount,
            'tax': self.tax,
            'total': self.total,
            'profit': self.profit,
            'paymentMethod': self.payment_method.value,
            'timestamp': self.timestamp,
            'invoiceNumber': self.invoice_number,
        }
        if self.customer_id is not None:
            d['customerId'] = self.customer_id
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sale':
        """Crea instancia desde diccionario (formato JSON guardado)."""
        customer_id = data.get('customerId')
        try:
            method = PaymentMethod(data.get('paymentMethod', 'CASH'))
        except ValueError:
            method = PaymentMethod.CASH
        return cls(
            id=str(data.get('id', '')),
            invoice_number=data.get('invoiceNumber', ''),
            timestamp=data.get('timestamp', ''),
            items=tuple(SaleItem.from_dict(i) for i in data.get('items', [])),
            subtotal=float(data.get('subtotal', 0.0)),
            discount=float(data.get('discount', 0.0)),
            tax=float(data.get('tax', 0.0)),
            total=float(data.get('total', 0.0)),
            profit=float(data.get('profit', 0.0)),
            payment_method=method,
            customer_id=str(customer_id) if customer_id is not None else None,
            customer_name=data.get('customerName', '') or ''
        )


# ==============================================================================
# ESTADO GLOBAL DE LA APLICACIÓN
# ==============================================================================

@dataclass(frozen=True)
class AppState:
    """
    Snapshot completo del sistema.

    Attributes:
        products: Catálogo de productos
        customers: Clientes registrados
        sales: Libro de ventas (la más reciente primero)
        current_user: Usuario con sesión iniciada o None
        language: Idioma de la interfaz
        invoice_counter: Facturas emitidas hasta ahora (no depende de len(sales))
    """
    products: Tuple[Product, ...] = ()
    customers: Tuple[Customer, ...] = ()
    sales: Tuple[Sale, ...] = ()
    current_user: Optional[User] = None
    language: Language = Language.EN
    invoice_counter: int = 0

    def find_product(self, product_id: str) -> Optional[Product]:
        """Busca un producto por su ID."""
        for p in self.products:
            if p.id == product_id:
                return p
        return None

    def find_customer(self, customer_id: Optional[str]) -> Optional[Customer]:
        """Busca un cliente por su ID."""
        if customer_id is None:
            return None
        for c in self.customers:
            if c.id == customer_id:
                return c
        return None

    def find_sale(self, invoice_number: str) -> Optional[Sale]:
        """Busca una venta por número de factura."""
        for s in self.sales:
            if s.invoice_number == invoice_number:
                return s
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convierte el snapshot completo a diccionario para persistencia."""
        return {
            'products': [p.to_dict() for p in self.products],
            'customers': [c.to_dict() for c in self.customers],
            'sales': [s.to_dict() for s in self.sales],
            'currentUser': self.current_user.to_dict() if self.current_user else None,
            'language': self.language.value,
            'invoiceCounter': self.invoice_counter,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppState':
        """
        Crea instancia desde diccionario.
        Datos guardados sin invoiceCounter toman la cantidad de ventas.
        """
        sales = tuple(Sale.from_dict(s) for s in data.get('sales', []))
        user_data = data.get('currentUser')
        try:
            language = Language(data.get('language', 'en'))
        except ValueError:
            language = Language.EN
        counter = data.get('invoiceCounter')
        return cls(
            products=tuple(Product.from_dict(p) for p in data.get('products', [])),
            customers=tuple(Customer.from_dict(c) for c in data.get('customers', [])),
            sales=sales,
            current_user=User.from_dict(user_data) if user_data else None,
            language=language,
            invoice_counter=int(counter) if counter is not None else len(sales)
        )


# Campos editables de Product y su nombre persistido
PRODUCT_FIELDS: Dict[str, str] = {
    'name': 'name',
    'category': 'category',
    'purchasePrice': 'purchase_price',
    'sellingPrice': 'selling_price',
    'stock': 'stock',
    'minStock': 'min_stock',
    'sku': 'sku',
}

CUSTOMER_FIELDS: Dict[str, str] = {
    'name': 'name',
    'phone': 'phone',
    'address': 'address',
}
