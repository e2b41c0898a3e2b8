# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la aplicación.
#
# PRINCIPIOS:
# 1. El store es el único que modifica el estado
# 2. El motor de ventas calcula ganancia, factura, stock y cliente
# 3. Las rutas (controllers) solo llaman a servicios; nunca calculan
# 4. Los servicios NO conocen el tipo de almacenamiento
#
# ESTRUCTURA:
# ├── store.py         → StateStore: operaciones que mutan el estado
# ├── transaction.py   → apply_sale: transición atómica de una venta
# ├── stats_service.py → Agregados del panel y reportes (funciones puras)
# ├── cart_service.py  → Carrito de caja y cobro
# ├── search.py        → Búsquedas de productos, clientes y facturas
# └── validators.py    → Validación de la entrada de formularios
# ==============================================================================

from retail_bms.services.store import StateStore, new_id
from retail_bms.services.transaction import apply_sale, compute_profit, format_invoice_number
from retail_bms.services.stats_service import StatsService
from retail_bms.services.cart_service import Cart, CartService

__all__ = [
    'StateStore',
    'new_id',
    'apply_sale',
    'compute_profit',
    'format_invoice_number',
    'StatsService',
    'Cart',
    'CartService',
]
