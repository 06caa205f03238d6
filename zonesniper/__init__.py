"""
ZoneSniper – motor de análisis de mercado
===========================================
Zonas de precio (CVA), fingerprint del presente, búsqueda de
coincidencias históricas y replay de sus continuaciones.
"""

__version__ = "0.1.0"
