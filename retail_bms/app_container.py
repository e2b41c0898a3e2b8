# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único donde se arman almacenamiento, repositorio, store y servicios.
# Facilita:
#   - Inyección de dependencias (las rutas solo piden servicios)
#   - Testing (se inyecta un almacenamiento en memoria)
#   - Cambiar de backend sin tocar servicios
#
# Para usar otro almacenamiento (por ejemplo una base de datos):
#   1. Implementar KeyValueStorage (get_item, set_item, remove_item)
#   2. Pasarlo como `storage` al contenedor
#   Los servicios NO requieren cambios: solo conocen AppState.
# ==============================================================================

import atexit
import logging
from typing import Optional

from retail_bms.config import Settings
from retail_bms.repositories import (
    JsonFileStorage,
    KeyValueStorage,
    StateRepository,
    WriteBehindWriter,
)
from retail_bms.services import CartService, StateStore, StatsService

logger = logging.getLogger(__name__)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Cada repositorio y servicio se crea una sola vez, al primer uso.

    Uso:
        container = AppContainer(Settings(data_dir='/path/to/data'))
        store = container.store
        stats = container.stats_service
    """

    def __init__(self, settings: Optional[Settings] = None, storage: Optional[KeyValueStorage] = None):
        """
        Inicializa el contenedor.

        Args:
            settings: Configuración (por defecto Settings.from_env())
            storage: Almacenamiento a usar; por defecto archivos JSON en data_dir
        """
        self.settings = settings or Settings.from_env()

        # Inicialización perezosa
        self._storage: Optional[KeyValueStorage] = storage
        self._writer: Optional[WriteBehindWriter] = None
        self._state_repo: Optional[StateRepository] = None
        self._store: Optional[StateStore] = None
        self._cart_service: Optional[CartService] = None
        self._stats_service: Optional[StatsService] = None

    # =========================================================================
    # PERSISTENCIA
    # =========================================================================

    @property
    def storage(self) -> KeyValueStorage:
        """Almacenamiento clave-valor (singleton)."""
        if self._storage is None:
            self._storage = JsonFileStorage(self.settings.data_dir)
        return self._storage

    @property
    def writer(self) -> Optional[WriteBehindWriter]:
        """Cola write-behind; solo existe en modo 'async'."""
        if self._writer is None and self.settings.persist_mode == 'async':
            self._writer = WriteBehindWriter(self.storage)
            # Al cerrar el proceso, escribir lo pendiente
            atexit.register(self._writer.flush)
            logger.info("Persistencia diferida activada (write-behind)")
        return self._writer

    @property
    def state_repo(self) -> StateRepository:
        """Repositorio del slot de estado (singleton)."""
        if self._state_repo is None:
            self._state_repo = StateRepository(
                self.storage,
                key=self.settings.storage_key,
                writer=self.writer
            )
        return self._state_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def store(self) -> StateStore:
        """Store de la aplicación (singleton)."""
        if self._store is None:
            self._store = StateStore(self.state_repo, self.settings)
        return self._store

    @property
    def cart_service(self) -> CartService:
        """Servicio de caja (singleton)."""
        if self._cart_service is None:
            self._cart_service = CartService(self.store, self.settings)
        return self._cart_service

    @property
    def stats_service(self) -> StatsService:
        """Servicio de estadísticas (singleton)."""
        if self._stats_service is None:
            store = self.store
            self._stats_service = StatsService(lambda: store.state, self.settings)
        return self._stats_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def shutdown(self) -> None:
        """Escribe lo pendiente y libera las instancias."""
        if self._state_repo is not None:
            self._state_repo.flush()
        if self._writer is not None:
            atexit.unregister(self._writer.flush)
        self._writer = None
        self._state_repo = None
        self._store = None
        self._cart_service = None
        self._stats_service = None


_container: Optional[AppContainer] = None


def get_container(settings: Optional[Settings] = None) -> AppContainer:
    """
    Obtiene el contenedor global de la aplicación.

    Args:
        settings: Configuración (solo se usa en la primera llamada)

    Returns:
        Instancia del contenedor
    """
    global _container
    if _container is None:
        _container = AppContainer(settings)
    return _container


def reset_container() -> None:
    """Elimina el contenedor global (útil para tests)."""
    global _container
    if _container is not None:
        _container.shutdown()
        _container = None
