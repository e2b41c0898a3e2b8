# ==============================================================================
# CONFIGURACIÓN DE LA APLICACIÓN
# ==============================================================================
# Valores por defecto pensados para una tienda local.
# Cualquier valor puede sobrescribirse con variables de entorno BMS_*:
#   export BMS_DATA_DIR="/var/lib/bms"
#   export BMS_PERSIST_MODE="async"
# ==============================================================================

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

ENV_PREFIX = 'BMS_'

PERSIST_MODES = frozenset(['sync', 'async'])


@dataclass(frozen=True)
class Settings:
    """
    Configuración del store y de la caja.

    Attributes:
        data_dir: Directorio del almacenamiento clave-valor
        storage_key: Clave única donde vive todo el AppState
        persist_mode: 'sync' (escribe antes de retornar) o 'async' (write-behind)
        tax_rate: Impuesto plano aplicado por la caja
        invoice_prefix: Prefijo del número de factura
        invoice_base: Base numérica; la primera factura es base + 1
        verify_totals: Recalcular subtotal/total y rechazar inconsistencias
        money_tolerance: Diferencia máxima aceptada al comparar montos
        best_sellers_limit: Cantidad de productos en el ranking de más vendidos
        chart_limit: Ventas recientes mostradas en el gráfico del panel
        log_level: Nivel de logging
        enable_profiling: Activa el registro de tiempos de rutas y funciones
    """
    data_dir: str = 'data'
    storage_key: str = 'bms_data'
    persist_mode: str = 'sync'
    tax_rate: float = 0.05
    invoice_prefix: str = 'INV-'
    invoice_base: int = 1000
    verify_totals: bool = True
    money_tolerance: float = 0.01
    best_sellers_limit: int = 5
    chart_limit: int = 7
    log_level: str = 'INFO'
    enable_profiling: bool = True

    def __post_init__(self):
        if self.persist_mode not in PERSIST_MODES:
            raise ValueError(f"persist_mode inválido: {self.persist_mode}")
        if self.tax_rate < 0:
            raise ValueError("tax_rate no puede ser negativo")

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides: Any) -> 'Settings':
        """
        Construye la configuración desde variables de entorno BMS_*.

        Args:
            environ: Diccionario de entorno (por defecto os.environ)
            overrides: Valores que tienen prioridad sobre el entorno

        Returns:
            Settings con los valores convertidos a su tipo
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _coerce(raw, type(f.default))
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> 'Settings':
        return replace(self, **overrides)


def _coerce(raw: str, kind: type) -> Any:
    """Convierte el texto de una variable de entorno al tipo del campo."""
    if kind is bool:
        return raw.strip().lower() in ('1', 'true', 'yes', 'on')
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"Valor de configuración inválido: {raw!r}")


def configure_logging(level: str = 'INFO') -> None:
    """Configura el logging raíz una sola vez para toda la aplicación."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
