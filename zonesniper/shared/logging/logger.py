"""
ZoneSniper – Logging configuration
====================================
Logging de texto legible para consola. Todos los loggers del motor
cuelgan del namespace "zonesniper." para poder filtrarlos en bloque.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional


def setup_logging(level: int | str = logging.INFO, stream: Optional[IO[str]] = None) -> None:
    """Configura el root logger una sola vez al arranque (stdout por defecto)."""
    fmt = (
        "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
    )
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    # Evitar handlers duplicados si se llama más de una vez
    if not root.handlers:
        root.addHandler(handler)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root.setLevel(level)

    # pandas/numpy no loguean, pero asyncio sí en modo debug
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Fábrica de loggers con namespace prefijado."""
    return logging.getLogger(f"zonesniper.{name}")
