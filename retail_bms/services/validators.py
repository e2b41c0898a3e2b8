"""
Validadores de la entrada cruda de formularios.

Convierten el diccionario recibido (claves camelCase) a los argumentos de
las entidades y lanzan InvalidInputError ante datos malformados.
"""
import math
from typing import Any, Dict, Mapping

from retail_bms.exceptions import InvalidInputError
from retail_bms.models import CUSTOMER_FIELDS, PRODUCT_FIELDS, SaleRequest

_MONEY_FIELDS = frozenset(['purchasePrice', 'sellingPrice'])
_COUNT_FIELDS = frozenset(['stock', 'minStock'])


def non_negative_money(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} debe ser numérico")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} debe ser numérico")
    if not math.isfinite(amount):
        raise InvalidInputError(f"{field} debe ser un número finito")
    if amount < 0:
        raise InvalidInputError(f"{field} no puede ser negativo")
    return amount


def non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} debe ser un entero")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidInputError(f"{field} debe ser un entero")
        value = int(value)
    if isinstance(value, str):
        value = value.strip()
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} debe ser un entero")
    if number < 0:
        raise InvalidInputError(f"{field} no puede ser negativo")
    return number


def text(value: Any, field: str) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        raise InvalidInputError(f"{field} debe ser texto")
    return value.strip()


def _check_keys(data: Mapping[str, Any], allowed: Mapping[str, str], entity: str):
    if not isinstance(data, Mapping):
        raise InvalidInputError(f"Los datos de {entity} deben ser un objeto")
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise InvalidInputError(f"Campos desconocidos en {entity}: {', '.join(unknown)}")


def validate_product_data(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Valida los datos de un producto.

    Args:
        data: Campos del formulario (camelCase)
        partial: True para edición (solo los campos presentes)

    Returns:
        Diccionario {atributo_python: valor}
    """
    _check_keys(data, PRODUCT_FIELDS, 'producto')
    if not partial and not text(data.get('name'), 'name'):
        raise InvalidInputError("El nombre del producto es obligatorio")

    values: Dict[str, Any] = {}
    for key, attr in PRODUCT_FIELDS.items():
        if key not in data:
            continue
        raw = data[key]
        if key in _MONEY_FIELDS:
            values[attr] = non_negative_money(raw, key)
        elif key in _COUNT_FIELDS:
            values[attr] = non_negative_int(raw, key)
        else:
            values[attr] = text(raw, key)

    if partial and 'name' in values and not values['name']:
        raise InvalidInputError("El nombre del producto no puede quedar vacío")
    return values


def validate_customer_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Valida los datos de un cliente nuevo."""
    _check_keys(data, CUSTOMER_FIELDS, 'cliente')
    name = text(data.get('name'), 'name')
    if not name:
        raise InvalidInputError("El nombre del cliente es obligatorio")
    return {
        'name': name,
        'phone': text(data.get('phone'), 'phone'),
        'address': text(data.get('address'), 'address'),
    }


def validate_sale_request(data: Mapping[str, Any]) -> SaleRequest:
    """
    Convierte el JSON de la caja en un SaleRequest.
    Las reglas de la venta (ítems, totales) las aplica el motor.
    """
    if not isinstance(data, Mapping):
        raise InvalidInputError("Los datos de la venta deben ser un objeto")
    items = data.get('items', [])
    if not isinstance(items, list) or not all(isinstance(i, Mapping) for i in items):
        raise InvalidInputError("items debe ser una lista de objetos")
    try:
        return SaleRequest.from_dict(dict(data))
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Venta inválida: {e}") from e
