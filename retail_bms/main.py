# ==============================================================================
# APLICACIÓN WEB - Rutas JSON sobre el store
# ==============================================================================
# Las rutas NO calculan nada: leen el snapshot o llaman al store/servicios
# y devuelven JSON. Toda respuesta lleva "success".
#
# Errores:
#   StoreError (y subclases)  → 400 {"success": false, "error": "..."}
#   NotFound                  → 404 {"success": false, "error": "..."}
# ==============================================================================

import logging
from typing import Optional

from flask import Flask, request
from werkzeug.exceptions import HTTPException, NotFound

from retail_bms.app_container import AppContainer
from retail_bms.config import Settings, configure_logging
from retail_bms.exceptions import InvalidInputError, StoreError
from retail_bms.performance_logger import init_profiling, set_profiling
from retail_bms.services.search import search_customers, search_products, search_sales
from retail_bms.services.validators import validate_sale_request

logger = logging.getLogger(__name__)


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInputError("El cuerpo debe ser un objeto JSON")
    return data


def create_app(settings: Optional[Settings] = None, container: Optional[AppContainer] = None) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        settings: Configuración (por defecto Settings.from_env())
        container: Contenedor ya armado (tests); si no, se crea uno

    Returns:
        Aplicación lista para servir
    """
    if container is None:
        container = AppContainer(settings or Settings.from_env())
    settings = container.settings

    configure_logging(settings.log_level)
    set_profiling(settings.enable_profiling)

    app = Flask(__name__)
    app.extensions['retail_bms'] = container

    # ═══════════════════════════════════════════════════════════════════════
    # PROFILING DE RUTAS
    # ═══════════════════════════════════════════════════════════════════════
    init_profiling(app)

    # ═══════════════════════════════════════════════════════════════════════
    # MANEJO DE ERRORES
    # ═══════════════════════════════════════════════════════════════════════

    @app.errorhandler(StoreError)
    def handle_store_error(e):
        logger.info("Operación rechazada en %s: %s", request.path, e)
        return {"success": False, "error": str(e)}, 400

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return {"success": False, "error": e.description}, e.code

    # ═══════════════════════════════════════════════════════════════════════
    # ESTADO
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/state", methods=["GET"])
    def api_state():
        """Snapshot completo, con el mismo formato que se guarda."""
        return {"success": True, "state": container.store.state.to_dict()}

    # ═══════════════════════════════════════════════════════════════════════
    # INVENTARIO
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/products", methods=["GET"])
    def api_products():
        products = search_products(container.store.state.products, request.args.get("q", ""))
        return {"success": True, "products": [p.to_dict() for p in products]}

    @app.route("/api/products", methods=["POST"])
    def api_add_product():
        product = container.store.add_product(_json_body())
        return {"success": True, "product": product.to_dict()}, 201

    @app.route("/api/products/<product_id>", methods=["PATCH"])
    def api_update_product(product_id):
        result = container.store.update_product(product_id, _json_body())
        if result.not_found:
            raise NotFound(f"Producto {product_id} no encontrado")
        return {"success": True, "product": result.entity.to_dict()}

    @app.route("/api/products/<product_id>", methods=["DELETE"])
    def api_delete_product(product_id):
        result = container.store.delete_product(product_id)
        if result.not_found:
            raise NotFound(f"Producto {product_id} no encontrado")
        return {"success": True, "deleted": product_id}

    # ═══════════════════════════════════════════════════════════════════════
    # CLIENTES
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/customers", methods=["GET"])
    def api_customers():
        customers = search_customers(container.store.state.customers, request.args.get("q", ""))
        return {"success": True, "customers": [c.to_dict() for c in customers]}

    @app.route("/api/customers", methods=["POST"])
    def api_add_customer():
        customer = container.store.add_customer(_json_body())
        return {"success": True, "customer": customer.to_dict()}, 201

    # ═══════════════════════════════════════════════════════════════════════
    # VENTAS Y FACTURAS
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/sales", methods=["GET"])
    def api_sales():
        sales = search_sales(container.store.state.sales, request.args.get("q", ""))
        return {"success": True, "sales": [s.to_dict() for s in sales]}

    @app.route("/api/sales/<invoice_number>", methods=["GET"])
    def api_sale(invoice_number):
        sale = container.store.state.find_sale(invoice_number)
        if sale is None:
            raise NotFound(f"Factura {invoice_number} no encontrada")
        return {"success": True, "sale": sale.to_dict()}

    @app.route("/api/sales", methods=["POST"])
    def api_record_sale():
        """
        Registra una venta ya calculada por el cliente.

        Body JSON:
        {
            "items": [{"productId": "1", "name": "...", "quantity": 2, "price": 600}],
            "subtotal": 1200, "tax": 60, "discount": 0, "total": 1260,
            "paymentMethod": "CASH", "customerId": "1", "customerName": "..."
        }
        """
        sale = container.store.record_sale(validate_sale_request(_json_body()))
        return {"success": True, "sale": sale.to_dict()}, 201

    @app.route("/api/checkout", methods=["POST"])
    def api_checkout():
        """
        Cobra un carrito: el servidor calcula impuesto y totales.

        Body JSON:
        {
            "items": [{"productId": "1", "quantity": 2}],
            "customerId": "1",          (opcional)
            "paymentMethod": "CARD",    (opcional, CASH por defecto)
            "discount": 50              (opcional)
        }
        """
        data = _json_body()
        lines = data.get("items", [])
        if not isinstance(lines, list):
            raise InvalidInputError("items debe ser una lista")
        cart_service = container.cart_service
        cart = cart_service.build_cart(lines)
        customer_id = data.get("customerId")
        sale = cart_service.checkout(
            cart,
            customer_id=str(customer_id) if customer_id not in (None, "") else None,
            payment_method=data.get("paymentMethod", "CASH"),
            discount=data.get("discount", 0) or 0,
        )
        return {"success": True, "sale": sale.to_dict()}, 201

    # ═══════════════════════════════════════════════════════════════════════
    # PANEL Y REPORTES
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/dashboard", methods=["GET"])
    def api_dashboard():
        return {"success": True, "dashboard": container.stats_service.dashboard()}

    @app.route("/api/reports", methods=["GET"])
    def api_reports():
        report = container.stats_service.report(
            period=request.args.get("period", "all"),
            custom_start=request.args.get("start"),
            custom_end=request.args.get("end"),
        )
        return {"success": True, "report": report}

    # ═══════════════════════════════════════════════════════════════════════
    # SESIÓN E IDIOMA
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/language/toggle", methods=["POST"])
    def api_toggle_language():
        language = container.store.toggle_language()
        return {"success": True, "language": language.value}

    @app.route("/api/logout", methods=["POST"])
    def api_logout():
        container.store.logout()
        return {"success": True}

    return app
