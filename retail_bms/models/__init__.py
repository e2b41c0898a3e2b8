# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
# Beneficios:
#   - Type hints para mejor documentación y autocompletado
#   - Snapshots inmutables: nadie puede modificar el estado por fuera del store
#   - Fácil serialización/deserialización para JSON
#   - Independiente del mecanismo de persistencia
# ==============================================================================

from .entities import (
    # Usuarios
    User,
    Role,

    # Catálogo y clientes
    Product,
    Customer,

    # Ventas
    Sale,
    SaleItem,
    SaleRequest,
    PaymentMethod,

    # Estado
    AppState,
    Language,
    PRODUCT_FIELDS,
    CUSTOMER_FIELDS,
)

__all__ = [
    # Usuarios
    'User',
    'Role',

    # Catálogo y clientes
    'Product',
    'Customer',

    # Ventas
    'Sale',
    'SaleItem',
    'SaleRequest',
    'PaymentMethod',

    # Estado
    'AppState',
    'Language',
    'PRODUCT_FIELDS',
    'CUSTOMER_FIELDS',
]
