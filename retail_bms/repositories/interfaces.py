# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos que deben cumplir el almacenamiento y el repositorio de estado.
# Permiten:
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - El store depende de estas interfaces, NO de archivos concretos
#    - Cambiar de archivo JSON a otro backend solo requiere otra implementación
#
# 2. TESTING
#    - MemoryStorage o un mock cumplen la interfaz sin tocar disco
#
# ==============================================================================

from typing import Optional, Protocol, runtime_checkable

from retail_bms.models import AppState


@runtime_checkable
class IKeyValueStorage(Protocol):
    """Almacenamiento de textos por clave."""

    def get_item(self, key: str) -> Optional[str]:
        """Lee el texto de una clave (None si no existe)."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Reemplaza el texto de una clave."""
        ...

    def remove_item(self, key: str) -> bool:
        """Elimina una clave."""
        ...


@runtime_checkable
class IStateRepository(Protocol):
    """
    Repositorio del snapshot completo.
    Usado por: StateStore.
    """

    def exists(self) -> bool:
        """Indica si el slot ya tiene datos guardados."""
        ...

    def load(self) -> AppState:
        """Carga el estado (o el estado inicial si no hay nada guardado)."""
        ...

    def save(self, state: AppState) -> None:
        """Guarda el snapshot completo."""
        ...

    def flush(self) -> None:
        """Asegura que las escrituras pendientes lleguen al almacenamiento."""
        ...
