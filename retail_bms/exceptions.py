"""Excepciones del dominio y tipo de resultado de las mutaciones.

Todas las excepciones heredan de StoreError para poder capturarlas juntas.
Una operación que lanza cualquiera de ellas deja el snapshot sin cambios.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class StoreError(Exception):
    """Error base de todas las operaciones del store."""
    pass


class InvalidInputError(StoreError, ValueError):
    """Datos de entrada malformados.

    Se lanza cuando:
    - Precios, stock o stock mínimo son negativos o no numéricos
    - Una línea de venta tiene cantidad menor a 1 o precio negativo
    - Se intenta editar un campo desconocido o el id
    - El método de pago no es válido
    """
    pass


class EmptyCartError(InvalidInputError):
    """Venta sin ítems. El contador de facturas no avanza."""
    pass


class InconsistentTotalsError(StoreError):
    """subtotal/total enviados no coinciden con las líneas de la venta."""

    def __init__(self, field: str, expected: float, received: float):
        self.field = field
        self.expected = expected
        self.received = received
        super().__init__(
            f"{field} inconsistente: esperado {expected:.2f}, recibido {received:.2f}"
        )


class OutOfStockError(StoreError):
    """El carrito pide más unidades de las que hay en stock."""
    pass


class StorageError(StoreError):
    """Fallo al leer o escribir el almacenamiento local."""
    pass


class MutationStatus(str, Enum):
    APPLIED = "APPLIED"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class MutationResult:
    """
    Resultado de update/delete.
    Distingue "aplicado" de "id inexistente" sin inspeccionar el snapshot.

    Attributes:
        status: APPLIED o NOT_FOUND
        target_id: ID solicitado
        entity: Entidad resultante (update) o eliminada (delete)
    """
    status: MutationStatus
    target_id: str
    entity: Optional[Any] = None

    @property
    def applied(self) -> bool:
        return self.status == MutationStatus.APPLIED

    @property
    def not_found(self) -> bool:
        return self.status == MutationStatus.NOT_FOUND

    @classmethod
    def ok(cls, target_id: str, entity: Any = None) -> 'MutationResult':
        return cls(MutationStatus.APPLIED, target_id, entity)

    @classmethod
    def missing(cls, target_id: str) -> 'MutationResult':
        return cls(MutationStatus.NOT_FOUND, target_id)
