"""
ZoneSniper – Value Objects: Stop Tournament
=============================================
Variantes de stop evaluadas contra UNA zona objetivo.

Para cada ratio riesgo/beneficio del grid se simula el stop
target / rr sobre los mismos matches y se mide:

    roi   = media de realized_return de TODOS los matches (timeouts incluidos)
    aroi  = roi × (ms en un año / duración media del trade)

El objetivo de optimización decide qué variante gana:

    MAX_ROI   → roi
    MAX_AROI  → aroi
    BALANCED  → √(roi × aroi)   (roi ≤ 0 → roi)

Solo compiten las variantes que superan min_roi y min_aroi.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from zonesniper.domain.value_objects.target_band import TargetBand

MS_IN_YEAR = 365 * 24 * 60 * 60 * 1000


def annualized_roi(roi: float, duration_ms: float) -> float:
    """ROI por trade escalado a un año; 0 si la duración es menor a 1 s."""
    if duration_ms < 1000:
        return 0.0
    return roi * MS_IN_YEAR / duration_ms


class OptimizationGoal(str, Enum):
    MAX_ROI = "max_roi"
    MAX_AROI = "max_aroi"
    BALANCED = "balanced"

    def score(self, roi: float, aroi: float) -> float:
        if self is OptimizationGoal.MAX_ROI:
            return roi
        if self is OptimizationGoal.MAX_AROI:
            return aroi
        if roi <= 0 or aroi <= 0:
            return roi
        return math.sqrt(roi * aroi)


@dataclass(frozen=True)
class StopVariant:
    risk_reward: float
    stop_pct: float
    wins: int
    losses: int
    timeouts: int
    roi: float
    aroi: float
    avg_candles: float
    score: float
    is_worthwhile: bool

    @property
    def win_rate(self) -> Optional[float]:
        resolved = self.wins + self.losses
        return self.wins / resolved if resolved else None

    def to_dict(self) -> dict:
        return {
            "risk_reward": self.risk_reward,
            "stop_pct": self.stop_pct,
            "wins": self.wins,
            "losses": self.losses,
            "timeouts": self.timeouts,
            "win_rate": self.win_rate,
            "roi": self.roi,
            "aroi": self.aroi,
            "avg_candles": self.avg_candles,
            "score": self.score,
            "is_worthwhile": self.is_worthwhile,
        }


@dataclass(frozen=True)
class TargetCandidate:
    """Una zona objetivo con todas sus variantes de stop y la ganadora."""

    target: TargetBand
    variants: Tuple[StopVariant, ...] = ()
    best: Optional[StopVariant] = None

    def to_dict(self) -> dict:
        return {
            "target": self.target.to_dict(),
            "variants": [v.to_dict() for v in self.variants],
            "best": self.best.to_dict() if self.best else None,
        }
