# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide rendimiento de rutas y operaciones del store sin afectar al usuario.
# Los tiempos se envían al logger "retail_bms.performance"; las llamadas
# lentas salen como WARNING y las muy lentas como ERROR.
#
# ACTIVAR/DESACTIVAR: set_profiling(False) o Settings.enable_profiling
# ==============================================================================

import logging
import threading
import time
from collections import defaultdict
from functools import wraps

logger = logging.getLogger('retail_bms.performance')

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

_enabled = True

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

# Nombres legibles de rutas para los logs
ROUTE_NAMES = {
    'GET /api/state': 'Ver estado',
    'GET /api/dashboard': 'Ver panel principal',
    'GET /api/reports': 'Ver reportes',
    'GET /api/products': 'Buscar productos',
    'POST /api/products': 'Crear producto',
    'PATCH /api/products/<product_id>': 'Editar producto',
    'DELETE /api/products/<product_id>': 'Eliminar producto',
    'GET /api/customers': 'Buscar clientes',
    'POST /api/customers': 'Crear cliente',
    'GET /api/sales': 'Buscar facturas',
    'GET /api/sales/<invoice_number>': 'Ver factura',
    'POST /api/sales': 'Registrar venta',
    'POST /api/checkout': 'Cobrar carrito',
    'POST /api/language/toggle': 'Cambiar idioma',
    'POST /api/logout': 'Cerrar sesión',
}


def set_profiling(enabled: bool) -> None:
    global _enabled
    _enabled = bool(enabled)


def is_enabled() -> bool:
    return _enabled


# ═══════════════════════════════════════════════════════════════════════════
# ESTADÍSTICAS DE FUNCIONES (en memoria)
# ═══════════════════════════════════════════════════════════════════════════

# Estructura: {nombre_funcion: {calls: int, total_time: float, max_time: float}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()


def _get_route_name(method, rule):
    key = f"{method} {rule}"
    return ROUTE_NAMES.get(key, key)


def _log_timing(kind, name, time_ms):
    if time_ms >= THRESHOLD_CRITICAL:
        logger.error("%s MUY LENTA: %s (%.0f ms, umbral %d ms)", kind, name, time_ms, THRESHOLD_CRITICAL)
    elif time_ms >= THRESHOLD_WARNING:
        logger.warning("%s LENTA: %s (%.0f ms, umbral %d ms)", kind, name, time_ms, THRESHOLD_WARNING)
    else:
        logger.debug("%s: %s (%.0f ms)", kind, name, time_ms)


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ HOOKS PARA FLASK (before/after request)
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app):
    """
    Inicializa el profiling de rutas en una app Flask.
    Registra hooks before_request y after_request.

    Uso:
        from retail_bms.performance_logger import init_profiling
        init_profiling(app)
    """
    from flask import g, request

    @app.before_request
    def _start_timer():
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        if not _enabled or not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000  # ms
        rule = str(request.url_rule) if request.url_rule else request.path
        _log_timing('Ruta', _get_route_name(request.method, rule), elapsed)
        return response


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Decorador para medir rendimiento de operaciones críticas.

    Uso:
        @profile_function
        def mi_funcion():
            ...

        @profile_function(name="Registrar venta")
        def record_sale(self, request):
            ...

    Registra:
        - Cantidad de llamadas
        - Tiempo promedio
        - Tiempo máximo
    """
    def decorator(fn):
        func_name = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not _enabled:
                return fn(*args, **kwargs)
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000

                with _stats_lock:
                    stats = _function_stats[func_name]
                    stats['calls'] += 1
                    stats['total_time'] += elapsed_ms
                    if elapsed_ms > stats['max_time']:
                        stats['max_time'] = elapsed_ms

                _log_timing('Función', func_name, elapsed_ms)

        return wrapper

    # Permitir uso sin paréntesis: @profile_function
    if func is not None:
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ REPORTE DE ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats():
    """
    Obtiene estadísticas de todas las funciones perfiladas.

    Returns:
        dict: {nombre: {calls, avg_time, max_time}}
    """
    with _stats_lock:
        result = {}
        for func_name, stats in _function_stats.items():
            calls = stats['calls']
            avg = stats['total_time'] / calls if calls > 0 else 0
            result[func_name] = {
                'calls': calls,
                'avg_time': round(avg, 2),
                'max_time': round(stats['max_time'], 2)
            }
        return result


def log_function_stats_report():
    """Escribe en el log un resumen ordenado por tiempo promedio."""
    stats = get_function_stats()
    for func_name, data in sorted(stats.items(), key=lambda x: x[1]['avg_time'], reverse=True):
        logger.info(
            "%s: %d llamadas, promedio %.0f ms, máximo %.0f ms",
            func_name, data['calls'], data['avg_time'], data['max_time']
        )


def reset_stats():
    """Reinicia todas las estadísticas (útil para testing)"""
    with _stats_lock:
        _function_stats.clear()


__all__ = [
    'init_profiling',
    'profile_function',
    'set_profiling',
    'is_enabled',
    'get_function_stats',
    'log_function_stats_report',
    'reset_stats',
]
