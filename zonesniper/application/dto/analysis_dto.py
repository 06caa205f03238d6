"""
ZoneSniper – Application DTO: Analysis
========================================
Registro plano de un AnalysisSnapshot para presentación (CLI, UI).
Los valores numéricos salen con la precisión completa del snapshot;
redondear es tarea de quien los muestra.

Los DTOs sirven como contratos entre capas.
Son estructuras simples sin lógica de negocio.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from zonesniper.domain.value_objects.analysis_snapshot import AnalysisSnapshot


@dataclass
class AnalysisResponseDTO:
    """DTO de respuesta con el resumen del análisis."""

    symbol: str
    as_of_time: Optional[int]
    current_price: Optional[float]
    fingerprint: Optional[str]

    # Zonas
    sticky_zones: List[Dict[str, Any]]
    rejection_zones: List[Dict[str, Any]]

    # Objetivo
    direction: Optional[str]
    target_distance_pct: Optional[float]

    # Simulación
    win_rate: Optional[float]
    expected_roi: Optional[float]
    suggested_stop: Optional[float]
    sample_size: int
    requested_k: int
    wins: int
    losses: int
    timeouts: int
    is_partial: bool

    warnings: List[Dict[str, Any]] = field(default_factory=list)
    best_candidate: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "as_of_time": self.as_of_time,
            "current_price": self.current_price,
            "fingerprint": self.fingerprint,
            "sticky_zones": self.sticky_zones,
            "rejection_zones": self.rejection_zones,
            "direction": self.direction,
            "target_distance_pct": self.target_distance_pct,
            "win_rate": self.win_rate,
            "expected_roi": self.expected_roi,
            "suggested_stop": self.suggested_stop,
            "sample_size": self.sample_size,
            "requested_k": self.requested_k,
            "wins": self.wins,
            "losses": self.losses,
            "timeouts": self.timeouts,
            "is_partial": self.is_partial,
            "warnings": self.warnings,
            "best_candidate": self.best_candidate,
        }

    @classmethod
    def from_snapshot(cls, snapshot: AnalysisSnapshot) -> "AnalysisResponseDTO":
        sim = snapshot.simulation
        target = snapshot.target
        best = snapshot.best_candidate
        return cls(
            symbol=snapshot.symbol,
            as_of_time=snapshot.as_of_time,
            current_price=snapshot.current_price,
            fingerprint=snapshot.fingerprint.label if snapshot.fingerprint else None,
            sticky_zones=[z.to_dict() for z in snapshot.zones.sticky_zones],
            rejection_zones=[z.to_dict() for z in snapshot.zones.rejection_zones],
            direction=target.direction.value if target else None,
            target_distance_pct=target.distance_pct if target else None,
            win_rate=sim.win_rate,
            expected_roi=sim.expected_roi,
            suggested_stop=sim.suggested_stop,
            sample_size=sim.sample_size,
            requested_k=sim.requested_k,
            wins=sim.wins,
            losses=sim.losses,
            timeouts=sim.timeouts,
            is_partial=sim.is_partial,
            warnings=[dict(w) for w in snapshot.warnings],
            best_candidate=best.to_dict() if best else None,
        )
