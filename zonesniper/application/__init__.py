"""
ZoneSniper – Application Layer
================================
Capa de casos de uso y orquestación.

Este módulo contiene:
- use_cases/: Casos de uso (análisis, ingesta, backtest walk-forward)
- ports/: Interfaces hacia infraestructura
- dto/: Data Transfer Objects

REGLA DE DEPENDENCIA:
Esta capa puede importar de:
- domain/ (entidades, servicios, value objects)
- state/ (snapshots de velas)
- ports/ propios (interfaces hacia infra)

NO puede importar de:
- infrastructure/ (implementaciones concretas)
"""

from zonesniper.application.use_cases.run_analysis_usecase import (
    RunAnalysisUseCase,
    RunAnalysisResult,
)
from zonesniper.application.use_cases.ingest_candles_usecase import (
    IngestCandlesUseCase,
    IngestResult,
)

__all__ = [
    "RunAnalysisUseCase",
    "RunAnalysisResult",
    "IngestCandlesUseCase",
    "IngestResult",
]
