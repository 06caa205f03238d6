"""
ZoneSniper – Domain Entity: Match
===================================
Ventana histórica cuyo fingerprint se parece al actual.

Un Match NO posee velas: apunta a una posición de la serie
(source_index / source_time) del snapshot sobre el que se calculó.
Es inmutable; el Ghost Runner no lo modifica sino que devuelve una
copia con el outcome adjunto (with_outcome).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from zonesniper.domain.value_objects.fingerprint import Fingerprint


class OutcomeKind(str, Enum):
    WIN = "win"
    LOSS = "loss"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class MatchOutcome:
    """Resultado del replay hacia delante de un Match."""

    kind: OutcomeKind
    exit_index: int
    exit_time: int
    candles_elapsed: int
    realized_return: float   # fracción con signo (0.02 = +2%)

    @property
    def is_resolved(self) -> bool:
        return self.kind is not OutcomeKind.TIMEOUT

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "exit_index": self.exit_index,
            "exit_time": self.exit_time,
            "candles_elapsed": self.candles_elapsed,
            "realized_return": self.realized_return,
        }


@dataclass(frozen=True, slots=True)
class Match:
    source_index: int          # índice de la última vela de la ventana
    source_time: int           # open_time de esa vela
    similarity_score: float
    fingerprint: Fingerprint
    outcome: Optional[MatchOutcome] = None

    def with_outcome(self, outcome: MatchOutcome) -> "Match":
        return replace(self, outcome=outcome)

    def to_dict(self) -> dict:
        return {
            "source_index": self.source_index,
            "source_time": self.source_time,
            "similarity_score": self.similarity_score,
            "fingerprint": self.fingerprint.to_dict(),
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }
