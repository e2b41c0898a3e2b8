# ==============================================================================
# SERVICIO DE ESTADÍSTICAS - Panel principal y reportes
# ==============================================================================
# Funciones puras sobre el snapshot actual: nunca modifican el estado y
# devuelven siempre lo mismo para el mismo snapshot.
#
# - Ventas totales y ganancia total
# - Productos con stock bajo (stock <= minStock)
# - Más vendidos (por cantidad)
# - Ticket promedio (0 si no hay ventas)
# - Filtro por período (hoy, semana, mes, personalizado)
# ==============================================================================

from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from datetime import datetime, timedelta, timezone

from retail_bms.config import Settings
from retail_bms.models import AppState, Product, Sale

VALID_PERIODS = frozenset(['all', 'today', 'week', 'month', 'custom'])


# =========================================================================
# AGREGADOS BÁSICOS
# =========================================================================

def total_sales(sales: Iterable[Sale]) -> float:
    """Suma de Sale.total."""
    return round(sum(s.total for s in sales), 2)


def total_profit(sales: Iterable[Sale]) -> float:
    """Suma de Sale.profit."""
    return round(sum(s.profit for s in sales), 2)


def low_stock_products(products: Iterable[Product]) -> Tuple[Product, ...]:
    """Productos con stock en o por debajo del mínimo, en orden de catálogo."""
    return tuple(p for p in products if p.is_low_stock)


def average_order_value(sales: Sequence[Sale]) -> float:
    """Ticket promedio; 0 cuando no hay ventas."""
    if not sales:
        return 0.0
    return round(total_sales(sales) / len(sales), 2)


def best_sellers(sales: Iterable[Sale], limit: int = 5) -> List[Dict[str, Any]]:
    """
    Ranking de productos más vendidos.

    Agrupa por productId todas las líneas de todas las ventas. El nombre es
    el de la primera línea encontrada (la venta más reciente). Ordena por
    cantidad descendente; los empates conservan el orden de aparición.

    Returns:
        Lista [{productId, name, quantity, revenue}] de hasta `limit` elementos
    """
    performance: Dict[str, Dict[str, Any]] = {}
    for sale in sales:
        for item in sale.items:
            entry = performance.get(item.product_id)
            if entry is None:
                entry = performance[item.product_id] = {
                    'productId': item.product_id,
                    'name': item.name,
                    'quantity': 0,
                    'revenue': 0.0,
                }
            entry['quantity'] += item.quantity
            entry['revenue'] += item.quantity * item.price

    ranked = sorted(performance.values(), key=lambda e: e['quantity'], reverse=True)
    return [dict(e, revenue=round(e['revenue'], 2)) for e in ranked[:max(0, limit)]]


def parse_timestamp(ts: str) -> Optional[datetime]:
    """
    Parsea un timestamp ISO guardado.
    Retorna None si no puede parsear; sin zona horaria se asume UTC.
    """
    if not ts:
        return None
    try:
        dt = datetime.fromisoformat(ts.replace('Z', '+00:00'))
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def sales_chart(sales: Sequence[Sale], limit: int = 7) -> List[Dict[str, Any]]:
    """
    Serie para el gráfico del panel: las últimas `limit` ventas,
    de la más antigua a la más reciente.
    """
    points = []
    for sale in reversed(list(sales[:max(0, limit)])):
        dt = parse_timestamp(sale.timestamp)
        points.append({
            'invoiceNumber': sale.invoice_number,
            'date': dt.date().isoformat() if dt else '',
            'sales': sale.total,
            'profit': sale.profit,
        })
    return points


# =========================================================================
# FILTRO POR PERÍODO
# =========================================================================

def get_date_range(
    period: str,
    now: datetime,
    custom_start: str = None,
    custom_end: str = None
) -> Tuple[datetime, datetime]:
    """
    Calcula el rango de fechas según el período solicitado.

    Args:
        period: 'today', 'week', 'month', 'custom'
        now: Instante de referencia (UTC)
        custom_start: Fecha inicio para período custom (YYYY-MM-DD)
        custom_end: Fecha fin para período custom (YYYY-MM-DD)

    Returns:
        Tupla (fecha_inicio, fecha_fin) en UTC
    """
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == 'week':
        # Inicio de la semana (lunes)
        return today_start - timedelta(days=now.weekday()), now

    elif period == 'month':
        return today_start.replace(day=1), now

    elif period == 'custom' and custom_start and custom_end:
        try:
            start = datetime.strptime(custom_start, '%Y-%m-%d').replace(tzinfo=timezone.utc)
            end = datetime.strptime(custom_end, '%Y-%m-%d').replace(
                hour=23, minute=59, second=59, microsecond=999999, tzinfo=timezone.utc
            )
            return start, end
        except ValueError:
            # Fallback a hoy si hay error
            return today_start, now

    # Default: hoy
    return today_start, now


def filter_sales_by_period(
    sales: Iterable[Sale],
    period: str = 'all',
    custom_start: str = None,
    custom_end: str = None,
    now: Optional[datetime] = None
) -> List[Sale]:
    """
    Ventas dentro del período, conservando el orden (más reciente primero).
    Ventas con timestamp ilegible quedan fuera de cualquier período acotado.
    """
    sales = list(sales)
    if period == 'all' or period not in VALID_PERIODS:
        return sales

    now = now or datetime.now(timezone.utc)
    start, end = get_date_range(period, now, custom_start, custom_end)
    filtered = []
    for sale in sales:
        dt = parse_timestamp(sale.timestamp)
        if dt is not None and start <= dt <= end:
            filtered.append(sale)
    return filtered


# =========================================================================
# RESÚMENES PARA LAS PANTALLAS
# =========================================================================

def dashboard_summary(state: AppState, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Datos del panel principal."""
    settings = settings or Settings()
    low_stock = low_stock_products(state.products)
    return {
        'totalSales': total_sales(state.sales),
        'totalProfit': total_profit(state.sales),
        'totalCustomers': len(state.customers),
        'productCount': len(state.products),
        'lowStockCount': len(low_stock),
        'lowStockProducts': [p.to_dict() for p in low_stock],
        'chart': sales_chart(state.sales, settings.chart_limit),
    }


def report_summary(
    state: AppState,
    period: str = 'all',
    custom_start: str = None,
    custom_end: str = None,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None
) -> Dict[str, Any]:
    """Datos de la pantalla de reportes para un período."""
    settings = settings or Settings()
    sales = filter_sales_by_period(state.sales, period, custom_start, custom_end, now)
    return {
        'period': period if period in VALID_PERIODS else 'all',
        'orderCount': len(sales),
        'totalSales': total_sales(sales),
        'totalProfit': total_profit(sales),
        'averageOrderValue': average_order_value(sales),
        'bestSellers': best_sellers(sales, settings.best_sellers_limit),
    }


class StatsService:
    """
    Servicio de estadísticas ligado a un cargador de snapshot.

    Uso:
        stats = StatsService(lambda: store.state, settings)
        stats.dashboard()
    """

    def __init__(self, state_loader: Callable[[], AppState], settings: Optional[Settings] = None):
        """
        Args:
            state_loader: Función que retorna el snapshot actual
            settings: Configuración (límites de ranking y gráfico)
        """
        self._state_loader = state_loader
        self._settings = settings or Settings()

    def dashboard(self) -> Dict[str, Any]:
        return dashboard_summary(self._state_loader(), self._settings)

    def report(self, period: str = 'all', custom_start: str = None, custom_end: str = None,
               now: Optional[datetime] = None) -> Dict[str, Any]:
        return report_summary(
            self._state_loader(), period, custom_start, custom_end, now, self._settings
        )
