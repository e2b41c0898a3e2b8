# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (slot JSON local).
# Los servicios solo ven AppState; nunca leen ni escriben archivos.
#
# ESTRUCTURA:
# ├── interfaces.py       → Protocolos (contratos de almacenamiento)
# ├── base.py             → Almacenamientos clave-valor (archivo JSON, memoria)
# ├── write_behind.py     → Cola de escritura diferida
# └── state_repository.py → Slot "bms_data" con el AppState completo
# ==============================================================================

from .interfaces import (
    IKeyValueStorage,
    IStateRepository,
)

from .base import KeyValueStorage, JsonFileStorage, MemoryStorage
from .write_behind import WriteBehindWriter
from .state_repository import StateRepository, default_state, DEFAULT_STORAGE_KEY

__all__ = [
    # Interfaces
    'IKeyValueStorage',
    'IStateRepository',

    # Almacenamientos
    'KeyValueStorage',
    'JsonFileStorage',
    'MemoryStorage',
    'WriteBehindWriter',

    # Estado
    'StateRepository',
    'default_state',
    'DEFAULT_STORAGE_KEY',
]
