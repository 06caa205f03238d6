"""
ZoneSniper – Value Object: Fingerprint
========================================
"ADN" categórico del estado del mercado en una ventana de velas.

Tres dimensiones, cada una con cardinalidad fija 3:

    volatility : LOW | MEDIUM | HIGH
    momentum   : DOWN | FLAT | UP
    volume     : LOW | MEDIUM | HIGH

Los códigos enteros (0, 1, 2) siguen el orden de declaración y son
lo que el Pathfinder compara en bloque con numpy.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class VolatilityBucket(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MomentumBucket(str, Enum):
    DOWN = "down"
    FLAT = "flat"
    UP = "up"


class VolumeBucket(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


VOLATILITY_ORDER: Tuple[VolatilityBucket, ...] = tuple(VolatilityBucket)
MOMENTUM_ORDER: Tuple[MomentumBucket, ...] = tuple(MomentumBucket)
VOLUME_ORDER: Tuple[VolumeBucket, ...] = tuple(VolumeBucket)


@dataclass(frozen=True, slots=True)
class Fingerprint:
    volatility: VolatilityBucket
    momentum: MomentumBucket
    volume: VolumeBucket

    @classmethod
    def from_codes(cls, codes) -> "Fingerprint":
        vol, mom, vlm = (int(c) for c in codes)
        return cls(VOLATILITY_ORDER[vol], MOMENTUM_ORDER[mom], VOLUME_ORDER[vlm])

    @property
    def codes(self) -> Tuple[int, int, int]:
        return (
            VOLATILITY_ORDER.index(self.volatility),
            MOMENTUM_ORDER.index(self.momentum),
            VOLUME_ORDER.index(self.volume),
        )

    @property
    def label(self) -> str:
        return "(" + ", ".join(b.value.capitalize() for b in (self.volatility, self.momentum, self.volume)) + ")"

    def to_dict(self) -> dict:
        return {
            "volatility": self.volatility.value,
            "momentum": self.momentum.value,
            "volume": self.volume.value,
        }
