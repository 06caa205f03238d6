"""
ZoneSniper – Value Object: AnalysisSnapshot
=============================================
Resultado completo e inmutable de UNA pasada de análisis.

Zonas, fingerprint, matches y simulación se calcularon sobre el
mismo snapshot de velas (as_of_time / present_index lo identifican).
Un trigger nuevo (vela nueva, re-run manual, cambio de config)
produce un AnalysisSnapshot NUEVO que reemplaza entero al anterior.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from zonesniper.domain.value_objects.fingerprint import Fingerprint
from zonesniper.domain.value_objects.simulation_result import SimulationResult
from zonesniper.domain.value_objects.stop_tournament import TargetCandidate
from zonesniper.domain.value_objects.target_band import TargetBand
from zonesniper.domain.value_objects.zone_set import ZoneSet


@dataclass(frozen=True)
class AnalysisSnapshot:
    symbol: str
    as_of_time: Optional[int]
    present_index: int
    current_price: Optional[float]
    zones: ZoneSet
    fingerprint: Optional[Fingerprint]
    simulation: SimulationResult
    target: Optional[TargetBand] = None
    candidates: Tuple[TargetCandidate, ...] = ()
    warnings: Tuple[dict, ...] = field(default_factory=tuple)

    @property
    def best_candidate(self) -> Optional[TargetCandidate]:
        """Zona cuyo mejor stop puntúa más alto; None si ninguna tiene variante válida."""
        scored = [c for c in self.candidates if c.best is not None]
        return max(scored, key=lambda c: c.best.score, default=None)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "as_of_time": self.as_of_time,
            "present_index": self.present_index,
            "current_price": self.current_price,
            "zones": self.zones.to_dict(),
            "fingerprint": self.fingerprint.to_dict() if self.fingerprint else None,
            "target": self.target.to_dict() if self.target else None,
            "simulation": self.simulation.to_dict(),
            "candidates": [c.to_dict() for c in self.candidates],
            "warnings": [dict(w) for w in self.warnings],
        }
