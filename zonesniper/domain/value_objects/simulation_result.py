"""
ZoneSniper - Simulation Result (Value Object)
=====================================================
Estructura inmutable con las estadísticas que el Ghost Runner
agrega sobre los matches del Pathfinder.

PRINCIPIO DE DISENO:
  Es un VALUE OBJECT puro: una foto del análisis. Si llega una vela
  nueva o cambia la configuración se genera un SimulationResult NUEVO;
  nunca se actualiza uno existente.

CONVENCION DE TIMEOUTS:
  Los timeouts se cuentan APARTE de ganadores y perdedores:

      win_rate     = wins / (wins + losses)
      expected_roi = media de realized_return de wins + losses
      timeout_rate = timeouts / sample_size

  Un timeout no entra al denominador del win rate; se reporta aparte.

SENTINELAS:
  Cuando un ratio no está definido (0 resueltos, 0 muestras) el campo
  vale None. Nunca se propaga NaN.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from zonesniper.domain.entities.match import Match
from zonesniper.domain.value_objects.trade_direction import TradeDirection


@dataclass(frozen=True)
class SimulationResult:
    """
    Estadísticas agregadas del replay histórico.

    Atributos:
    ----------
    win_rate : float | None
        wins / (wins + losses). None si no hubo outcomes resueltos.

    expected_roi : float | None
        Retorno medio (fracción) de los outcomes resueltos.

    suggested_stop : float | None
        Distancia de stop (fracción del precio) más ajustada que, en la
        historia de estos matches, no habría cortado más de la fracción
        configurada de los trades que llegaron al objetivo.

    sample_size : int
        Matches evaluados. Nunca supera requested_k ni eligible_windows.

    is_partial : bool
        True si sample_size < requested_k (menos historia de la pedida).
    """

    win_rate: Optional[float] = None
    expected_roi: Optional[float] = None
    suggested_stop: Optional[float] = None
    sample_size: int = 0
    matches: Tuple[Match, ...] = ()
    wins: int = 0
    losses: int = 0
    timeouts: int = 0
    requested_k: int = 0
    eligible_windows: int = 0
    direction: Optional[TradeDirection] = None
    target_distance_pct: Optional[float] = None
    stop_distance_pct: Optional[float] = None
    avg_candles_to_target: Optional[float] = None
    notes: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls, requested_k: int = 0, note: Optional[str] = None) -> "SimulationResult":
        return cls(requested_k=requested_k, notes=(note,) if note else ())

    @property
    def is_partial(self) -> bool:
        return self.sample_size < self.requested_k

    @property
    def resolved(self) -> int:
        return self.wins + self.losses

    @property
    def timeout_rate(self) -> Optional[float]:
        if self.sample_size == 0:
            return None
        return self.timeouts / self.sample_size

    def to_dict(self) -> dict:
        return {
            "win_rate": self.win_rate,
            "expected_roi": self.expected_roi,
            "suggested_stop": self.suggested_stop,
            "sample_size": self.sample_size,
            "requested_k": self.requested_k,
            "eligible_windows": self.eligible_windows,
            "is_partial": self.is_partial,
            "wins": self.wins,
            "losses": self.losses,
            "timeouts": self.timeouts,
            "timeout_rate": self.timeout_rate,
            "direction": self.direction.value if self.direction else None,
            "target_distance_pct": self.target_distance_pct,
            "stop_distance_pct": self.stop_distance_pct,
            "avg_candles_to_target": self.avg_candles_to_target,
            "matches": [m.to_dict() for m in self.matches],
            "notes": list(self.notes),
        }
