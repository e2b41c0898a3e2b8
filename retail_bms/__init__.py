"""Núcleo de gestión de tienda: catálogo, caja, clientes, facturas y reportes."""

__version__ = '1.0.0'
