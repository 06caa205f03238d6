"""
ZoneSniper – Domain Entity: Zone
==================================
Banda de precio estructural derivada de una ventana de velas.

TIPOS:
  STICKY    → High Volume Node: banda donde se negoció un volumen
              desproporcionado. strength = masa de volumen (ponderada).
  REJECTION → banda donde se agrupan mechas de varias velas.
              strength = número de velas cuya mecha termina en la banda.
              wick indica el lado: LOW (mechas inferiores, soporte) o
              HIGH (mechas superiores, resistencia).

Las zonas son derivadas, nunca datos de entrada: se recalculan
cuando cambia la ventana o su configuración.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from zonesniper.domain.exceptions.domain_errors import ValidationError


class ZoneKind(str, Enum):
    STICKY = "sticky"
    REJECTION = "rejection"


class WickSide(str, Enum):
    LOW = "low"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class Zone:
    """Zona de precio con su tipo y fuerza."""

    price_low: float
    price_high: float
    kind: ZoneKind
    strength: float
    formed_from: int     # open_time de la primera vela de la ventana
    formed_to: int       # open_time de la última vela de la ventana
    wick: Optional[WickSide] = None

    def __post_init__(self) -> None:
        if self.price_low > self.price_high:
            raise ValidationError(
                f"Zona invertida: {self.price_low} > {self.price_high}",
                field="price_low",
                value=self.price_low,
            )
        if self.strength < 0:
            raise ValidationError("Fuerza de zona negativa", field="strength", value=self.strength)

    @property
    def center(self) -> float:
        return (self.price_low + self.price_high) / 2.0

    @property
    def width(self) -> float:
        return self.price_high - self.price_low

    def contains(self, price: float) -> bool:
        return self.price_low <= price <= self.price_high

    def to_dict(self) -> dict:
        return {
            "price_low": self.price_low,
            "price_high": self.price_high,
            "kind": self.kind.value,
            "strength": self.strength,
            "formed_from": self.formed_from,
            "formed_to": self.formed_to,
            "wick": self.wick.value if self.wick else None,
        }
