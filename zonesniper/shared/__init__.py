"""
ZoneSniper – Shared Module
============================
Utilidades transversales usadas por todas las capas.

Este módulo contiene:
- config/: Settings y configuración
- logging/: Setup de logging
- parallel/: Pool de workers para escaneos CPU-bound

NOTA: Este módulo no contiene lógica de negocio.
"""

from zonesniper.shared.config.settings import Settings, settings
from zonesniper.shared.logging.logger import setup_logging, get_logger

__all__ = [
    "Settings",
    "settings",
    "setup_logging",
    "get_logger",
]
