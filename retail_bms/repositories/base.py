# ==============================================================================
# ALMACENAMIENTO BASE - Slots clave-valor de texto
# ==============================================================================
# Equivalente local de un almacenamiento clave-valor del navegador:
# cada clave guarda un texto completo, se reemplaza entero en cada escritura.
#
# IMPLEMENTACIONES:
# ├── JsonFileStorage → un archivo <clave>.json por clave (escritura atómica)
# └── MemoryStorage   → diccionario en memoria (tests, demos)
# ==============================================================================

import logging
import os
import re
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from retail_bms.exceptions import StorageError

logger = logging.getLogger(__name__)

_VALID_KEY = re.compile(r'^[A-Za-z0-9_.-]+$')


class KeyValueStorage(ABC):
    """
    Clase base abstracta para los almacenamientos clave-valor.
    Todas las operaciones están protegidas por un lock re-entrante.
    """

    def __init__(self):
        self._lock = threading.RLock()

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Lee el texto guardado bajo una clave.

        Returns:
            Texto guardado o None si la clave no existe
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Reemplaza el texto guardado bajo una clave."""
        pass

    @abstractmethod
    def remove_item(self, key: str) -> bool:
        """
        Elimina una clave.

        Returns:
            True si la clave existía
        """
        pass

    def has_item(self, key: str) -> bool:
        return self.get_item(key) is not None


class MemoryStorage(KeyValueStorage):
    """Almacenamiento en memoria. Se pierde al terminar el proceso."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove_item(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None


class JsonFileStorage(KeyValueStorage):
    """
    Almacenamiento en disco: cada clave es el archivo <data_dir>/<clave>.json.

    La escritura va primero a un archivo temporal y luego se reemplaza
    el archivo final con os.replace; un corte nunca deja el slot a medias.
    """

    def __init__(self, data_dir: str):
        """
        Inicializa el almacenamiento.

        Args:
            data_dir: Directorio donde se guardan los slots (se crea si no existe)
        """
        super().__init__()
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        if not _VALID_KEY.match(key):
            raise StorageError(f"Clave de almacenamiento inválida: {key!r}")
        return os.path.join(self.data_dir, f"{key}.json")

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        with self._lock:
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    return f.read()
            except FileNotFoundError:
                return None
            except OSError as e:
                raise StorageError(f"No se pudo leer {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            temp_path = path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    f.write(value)
                os.replace(temp_path, path)
            except OSError as e:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise StorageError(f"No se pudo escribir {path}: {e}") from e
        logger.debug("Slot %s escrito (%d bytes)", key, len(value))

    def remove_item(self, key: str) -> bool:
        path = self._path(key)
        with self._lock:
            try:
                os.remove(path)
                return True
            except FileNotFoundError:
                return False
