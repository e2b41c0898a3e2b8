# ==============================================================================
# STORE DEL ESTADO - Dueño único del AppState
# ==============================================================================
# Centraliza TODAS las mutaciones del sistema.
#
# PRINCIPIOS:
# 1. Hay un solo snapshot actual; se lee con store.state (inmutable)
# 2. Cada operación construye el snapshot siguiente completo y recién
#    entonces lo publica: ningún lector ve un estado a medias
# 3. Cada mutación se persiste (síncrona o write-behind según configuración)
# 4. Un lock re-entrante serializa las mutaciones
# ==============================================================================

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from retail_bms.config import Settings
from retail_bms.exceptions import MutationResult
from retail_bms.models import AppState, Customer, Language, Product, Sale, SaleRequest
from retail_bms.performance_logger import profile_function
from retail_bms.repositories.interfaces import IStateRepository
from retail_bms.services.transaction import apply_sale
from retail_bms.services.validators import validate_customer_data, validate_product_data

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Identificador opaco y único (no depende del reloj)."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StateStore:
    """
    Store de la aplicación.

    Responsabilidades:
    - Mantener el snapshot actual
    - Exponer las únicas operaciones que lo modifican
    - Persistir cada cambio antes de retornar (modo sync)

    Uso:
        store = StateStore(StateRepository(MemoryStorage()))
        product = store.add_product({'name': 'Tea', 'sellingPrice': 120})
        sale = store.record_sale(request)
    """

    def __init__(
        self,
        repository: IStateRepository,
        settings: Optional[Settings] = None,
        id_factory: Callable[[], str] = new_id,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Inicializa el store cargando el estado guardado.

        Args:
            repository: Repositorio del slot de estado
            settings: Configuración
            id_factory: Generador de IDs únicos
            clock: Fuente del instante actual (inyectable en tests)
        """
        self._repository = repository
        self._settings = settings or Settings()
        self._new_id = id_factory
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners = []

        seeded = not repository.exists()
        self._state: AppState = repository.load()
        if seeded:
            # Igual que al abrir la app por primera vez: el estado inicial queda guardado
            repository.save(self._state)

    # =========================================================================
    # LECTURA
    # =========================================================================

    @property
    def state(self) -> AppState:
        """Snapshot actual (inmutable)."""
        return self._state

    @property
    def settings(self) -> Settings:
        return self._settings

    def subscribe(self, listener: Callable[[AppState], None]) -> Callable[[], None]:
        """
        Registra una función que recibe cada snapshot nuevo.

        Returns:
            Función para cancelar la suscripción
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    # =========================================================================
    # PUBLICACIÓN
    # =========================================================================

    def _commit(self, next_state: AppState, action: str) -> None:
        """
        Persiste y publica el snapshot siguiente.
        Si la escritura síncrona falla, el snapshot actual no cambia.
        """
        self._repository.save(next_state)
        self._state = next_state
        logger.debug("Snapshot publicado tras %s", action)
        for listener in list(self._listeners):
            try:
                listener(next_state)
            except Exception:
                logger.exception("Listener falló tras %s", action)

    # =========================================================================
    # PRODUCTOS
    # =========================================================================

    @profile_function(name="Agregar producto")
    def add_product(self, data: Mapping[str, Any]) -> Product:
        """
        Agrega un producto al catálogo.

        Args:
            data: Campos del formulario (name, category, purchasePrice,
                  sellingPrice, stock, minStock, sku)

        Returns:
            Producto creado con su ID nuevo

        Raises:
            InvalidInputError: Si algún campo es inválido
        """
        values = validate_product_data(data)
        with self._lock:
            product = Product(id=self._new_id(), **values)
            next_state = replace(self._state, products=self._state.products + (product,))
            self._commit(next_state, 'add_product')
        logger.info("Producto creado: %s (%s)", product.name, product.id)
        return product

    @profile_function(name="Editar producto")
    def update_product(self, product_id: str, data: Mapping[str, Any]) -> MutationResult:
        """
        Combina los campos recibidos sobre el producto existente.

        Returns:
            MutationResult APPLIED con el producto nuevo, o NOT_FOUND
        """
        values = validate_product_data(data, partial=True)
        with self._lock:
            current = self._state.find_product(product_id)
            if current is None:
                logger.info("Edición ignorada: producto %s no existe", product_id)
                return MutationResult.missing(product_id)
            updated = replace(current, **values)
            next_state = replace(
                self._state,
                products=tuple(updated if p.id == product_id else p for p in self._state.products)
            )
            self._commit(next_state, 'update_product')
        logger.info("Producto editado: %s (%s)", updated.name, product_id)
        return MutationResult.ok(product_id, updated)

    @profile_function(name="Eliminar producto")
    def delete_product(self, product_id: str) -> MutationResult:
        """
        Elimina un producto. Las ventas históricas conservan sus datos.

        Returns:
            MutationResult APPLIED con el producto eliminado, o NOT_FOUND
        """
        with self._lock:
            current = self._state.find_product(product_id)
            if current is None:
                logger.info("Eliminación ignorada: producto %s no existe", product_id)
                return MutationResult.missing(product_id)
            next_state = replace(
                self._state,
                products=tuple(p for p in self._state.products if p.id != product_id)
            )
            self._commit(next_state, 'delete_product')
        logger.info("Producto eliminado: %s (%s)", current.name, product_id)
        return MutationResult.ok(product_id, current)

    # =========================================================================
    # CLIENTES
    # =========================================================================

    @profile_function(name="Agregar cliente")
    def add_customer(self, data: Mapping[str, Any]) -> Customer:
        """
        Registra un cliente nuevo con totalPurchase y dues en 0.

        Args:
            data: name, phone, address

        Returns:
            Cliente creado
        """
        values = validate_customer_data(data)
        with self._lock:
            customer = Customer(id=self._new_id(), total_purchase=0.0, dues=0.0, **values)
            next_state = replace(self._state, customers=self._state.customers + (customer,))
            self._commit(next_state, 'add_customer')
        logger.info("Cliente registrado: %s (%s)", customer.name, customer.id)
        return customer

    # =========================================================================
    # VENTAS
    # =========================================================================

    @profile_function(name="Registrar venta")
    def record_sale(self, request: SaleRequest) -> Sale:
        """
        Registra una venta como una sola transición de estado.

        Args:
            request: Datos de la caja

        Returns:
            Venta creada (con id, factura, timestamp y ganancia)

        Raises:
            EmptyCartError: Si la venta no tiene ítems
            InvalidInputError: Si una línea o monto es inválido
            InconsistentTotalsError: Si los totales no cuadran
        """
        with self._lock:
            next_state, sale = apply_sale(
                self._state,
                request,
                sale_id=self._new_id(),
                now=self._clock(),
                settings=self._settings,
            )
            self._commit(next_state, 'record_sale')
        logger.info(
            "Venta %s registrada: total=%.2f ganancia=%.2f ítems=%d",
            sale.invoice_number, sale.total, sale.profit, len(sale.items)
        )
        return sale

    # =========================================================================
    # SESIÓN E IDIOMA
    # =========================================================================

    def toggle_language(self) -> Language:
        """Alterna el idioma de la interfaz (en ↔ bn)."""
        with self._lock:
            language = self._state.language.toggled()
            self._commit(replace(self._state, language=language), 'toggle_language')
        logger.debug("Idioma cambiado a %s", language.value)
        return language

    def logout(self) -> None:
        """Cierra la sesión del usuario actual."""
        with self._lock:
            user = self._state.current_user
            self._commit(replace(self._state, current_user=None), 'logout')
        if user:
            logger.info("Sesión cerrada: %s", user.username)

    # =========================================================================
    # MANTENIMIENTO
    # =========================================================================

    def reload(self) -> AppState:
        """Recarga el snapshot desde el almacenamiento (descarta lo no guardado)."""
        with self._lock:
            self._repository.flush()
            self._state = self._repository.load()
        return self._state

    def flush(self) -> None:
        """Asegura que las escrituras diferidas lleguen al almacenamiento."""
        self._repository.flush()
