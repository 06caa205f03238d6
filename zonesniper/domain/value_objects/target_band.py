"""
ZoneSniper – Value Object: TargetBand
=======================================
Objetivo del Ghost Runner expresado como DISTANCIA RELATIVA.

La zona objetivo se mide desde el precio vivo hasta su borde cercano
(borde inferior si LONG, superior si SHORT). Esa misma distancia en %
se aplica al close de entrada de cada match histórico: el precio
absoluto de hace dos años no importa, sí el recorrido relativo.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from zonesniper.domain.entities.zone import Zone
from zonesniper.domain.exceptions.domain_errors import ValidationError
from zonesniper.domain.value_objects.trade_direction import TradeDirection


@dataclass(frozen=True)
class TargetBand:
    direction: TradeDirection
    distance_pct: float
    reference_price: float
    zone: Optional[Zone] = None

    def __post_init__(self) -> None:
        if self.distance_pct <= 0:
            raise ValidationError(
                "La distancia al objetivo debe ser positiva", field="distance_pct", value=self.distance_pct,
            )

    @classmethod
    def from_zone(cls, zone: Zone, direction: TradeDirection, reference_price: float) -> "TargetBand":
        near_edge = zone.price_low if direction is TradeDirection.LONG else zone.price_high
        return cls(
            direction=direction,
            distance_pct=abs(near_edge - reference_price) / reference_price,
            reference_price=reference_price,
            zone=zone,
        )

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "distance_pct": self.distance_pct,
            "reference_price": self.reference_price,
            "zone": self.zone.to_dict() if self.zone else None,
        }
