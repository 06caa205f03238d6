"""
ZoneSniper – Domain Layer
===========================
Núcleo puro del motor de análisis. Sin I/O.

Este módulo contiene:
- entities/: Candle, CandleSeries, Zone, Match
- value_objects/: Fingerprint, ZoneSet, SimulationResult, AnalysisSnapshot...
- services/: ZoneDetector, FingerprintGenerator, Pathfinder, GhostRunner
- exceptions/: Excepciones de dominio

REGLA DE DEPENDENCIA:
Este módulo NO puede importar de:
- application/
- infrastructure/
- state/
La única librería externa permitida es numpy (cálculo vectorizado).
"""

from zonesniper.domain.entities.candle import Candle
from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.domain.entities.zone import Zone, ZoneKind
from zonesniper.domain.entities.match import Match, MatchOutcome, OutcomeKind
from zonesniper.domain.value_objects.fingerprint import Fingerprint
from zonesniper.domain.value_objects.simulation_result import SimulationResult
from zonesniper.domain.value_objects.analysis_snapshot import AnalysisSnapshot

__all__ = [
    "Candle",
    "CandleSeries",
    "Zone",
    "ZoneKind",
    "Match",
    "MatchOutcome",
    "OutcomeKind",
    "Fingerprint",
    "SimulationResult",
    "AnalysisSnapshot",
]
