# ==============================================================================
# REPOSITORIO DEL ESTADO
# ==============================================================================
# Encapsula el acceso al slot único donde vive todo el AppState.
# No hay persistencia incremental: cada guardado reescribe el snapshot entero.
# ==============================================================================

import json
import logging
from typing import Optional

from retail_bms.models import AppState, Customer, Language, Product, Role, User
from retail_bms.repositories.base import KeyValueStorage
from retail_bms.repositories.write_behind import WriteBehindWriter

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = 'bms_data'


def default_state() -> AppState:
    """
    Estado inicial cuando no hay nada guardado:
    dos productos de muestra, el cliente de mostrador y el admin logueado.
    """
    return AppState(
        products=(
            Product(
                id='1', name='Premium Coffee', category='Beverage',
                purchase_price=450.0, selling_price=600.0,
                stock=50, min_stock=10, sku='COF001'
            ),
            Product(
                id='2', name='Basmati Rice 5kg', category='Grocery',
                purchase_price=700.0, selling_price=850.0,
                stock=5, min_stock=8, sku='RIC001'
            ),
        ),
        customers=(
            Customer(id='1', name='Walk-in Customer', phone='000', address='N/A'),
        ),
        sales=(),
        current_user=User(id='admin', username='admin', role=Role.ADMIN, name='System Admin'),
        language=Language.EN,
        invoice_counter=0,
    )


class StateRepository:
    """
    Repositorio del snapshot de la aplicación.

    Formato guardado bajo la clave (por defecto "bms_data"):
    {
        "products": [{"id": "1", "name": "...", "purchasePrice": 450, ...}],
        "customers": [...],
        "sales": [{"invoiceNumber": "INV-1001", ...}],   # más reciente primero
        "currentUser": {...} | null,
        "language": "en",
        "invoiceCounter": 1
    }
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = DEFAULT_STORAGE_KEY,
        writer: Optional[WriteBehindWriter] = None
    ):
        """
        Inicializa el repositorio.

        Args:
            storage: Almacenamiento clave-valor
            key: Clave del slot
            writer: Si se indica, las escrituras son diferidas (write-behind)
        """
        self.storage = storage
        self.key = key
        self.writer = writer

    @staticmethod
    def serialize(state: AppState) -> str:
        return json.dumps(state.to_dict(), ensure_ascii=False, indent=2)

    @staticmethod
    def deserialize(raw: str) -> AppState:
        """
        Raises:
            ValueError: Si el texto no es JSON válido o no es un objeto
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("El estado guardado no es un objeto JSON")
        return AppState.from_dict(data)

    def exists(self) -> bool:
        return self.storage.get_item(self.key) is not None

    def load(self) -> AppState:
        """
        Carga el estado guardado.
        Si la clave no existe o está corrupta, retorna el estado inicial.

        Returns:
            AppState cargado
        """
        raw = self.storage.get_item(self.key)
        if raw is None:
            logger.info("No hay datos en '%s'; se usa el estado inicial", self.key)
            return default_state()
        try:
            state = self.deserialize(raw)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Datos corruptos en '%s' (%s); se usa el estado inicial", self.key, e)
            return default_state()
        logger.debug(
            "Estado cargado: %d productos, %d clientes, %d ventas",
            len(state.products), len(state.customers), len(state.sales)
        )
        return state

    def save(self, state: AppState) -> None:
        """
        Guarda el snapshot completo.

        Args:
            state: Snapshot a persistir
        """
        raw = self.serialize(state)
        if self.writer is not None:
            self.writer.submit(self.key, raw)
        else:
            self.storage.set_item(self.key, raw)

    def flush(self) -> None:
        if self.writer is not None:
            self.writer.flush()

    def clear(self) -> bool:
        """Elimina el slot (el próximo load() vuelve al estado inicial)."""
        self.flush()
        return self.storage.remove_item(self.key)
