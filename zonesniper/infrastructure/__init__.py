"""
ZoneSniper – Infrastructure Layer
===================================
Implementaciones concretas de interfaces.

Este módulo contiene:
- external/: fuentes de velas (CSV local)

REGLA DE DEPENDENCIA:
Esta capa implementa interfaces definidas en:
- application/ports/

Puede importar de:
- domain/ (entidades, excepciones)
- application/ (ports)
- shared/ (config, logging)
"""
