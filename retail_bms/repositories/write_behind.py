# ==============================================================================
# ESCRITURA DIFERIDA (WRITE-BEHIND)
# ==============================================================================
# - El snapshot en memoria se actualiza de inmediato
# - La escritura a disco se encola y la hace un thread en segundo plano
# - Las escrituras salen en el mismo orden en que se encolaron
# - flush() vacía la cola (se llama al cerrar la aplicación)
# ==============================================================================

import logging
import threading
from queue import Queue, Empty
from typing import Optional, Tuple

from retail_bms.repositories.base import KeyValueStorage

logger = logging.getLogger(__name__)


class WriteBehindWriter:
    """
    Cola de escritura no bloqueante sobre un KeyValueStorage.

    Una escritura que falla se reintenta en el próximo flush(): la última
    versión pendiente de cada clave se conserva hasta escribirse.
    """

    def __init__(self, storage: KeyValueStorage, poll_interval: float = 0.5):
        self._storage = storage
        self._poll_interval = poll_interval
        self._queue: 'Queue[Optional[Tuple[int, str, str]]]' = Queue()
        self._pending = {}        # Última versión no escrita: {key: (seq, value)}
        self._lock = threading.RLock()
        self._seq = 0
        self._writer_thread: Optional[threading.Thread] = None

    def _start_writer(self) -> None:
        """Inicia el thread de escritura si no está corriendo."""
        if self._writer_thread is None or not self._writer_thread.is_alive():
            self._writer_thread = threading.Thread(
                target=self._writer_loop, name='bms-write-behind', daemon=True
            )
            self._writer_thread.start()

    def _writer_loop(self) -> None:
        """Loop de escritura en background. Termina al recibir None."""
        while True:
            try:
                item = self._queue.get(timeout=self._poll_interval)
            except Empty:
                continue
            try:
                if item is None:
                    break
                seq, key, value = item
                self._write(seq, key, value)
            finally:
                self._queue.task_done()

    def _write(self, seq: int, key: str, value: str) -> None:
        with self._lock:
            current = self._pending.get(key)
            # Una versión más nueva ya fue escrita
            if current is None or current[0] > seq:
                return
            try:
                self._storage.set_item(key, value)
            except Exception:
                logger.exception("Fallo la escritura diferida de %s; queda pendiente", key)
                return
            if self._pending.get(key, (None,))[0] == seq:
                del self._pending[key]

    def submit(self, key: str, value: str) -> None:
        """
        Encola una escritura.

        Args:
            key: Clave del slot
            value: Texto completo a guardar
        """
        with self._lock:
            self._seq += 1
            self._pending[key] = (self._seq, value)
            seq = self._seq
        self._start_writer()
        self._queue.put((seq, key, value))

    @property
    def pending_keys(self):
        with self._lock:
            return sorted(self._pending)

    def join(self) -> None:
        """Espera a que el thread procese todo lo encolado."""
        self._queue.join()

    def flush(self) -> None:
        """Escribe de forma síncrona todo lo pendiente y detiene el thread."""
        with self._lock:
            pending = sorted(self._pending.items(), key=lambda kv: kv[1][0])
        for key, (seq, value) in pending:
            self._write(seq, key, value)
        if self._writer_thread and self._writer_thread.is_alive():
            self._queue.put(None)
            self._writer_thread.join(timeout=2)
        self._writer_thread = None
