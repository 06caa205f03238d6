"""
ZoneSniper – Value Object: ZoneSet
====================================
Conjunto inmutable de zonas de una ventana, ordenado por precio.

Además de transportar las zonas responde las preguntas que hace el
resto del motor:
  - ¿cuál es la zona más cercana por encima / por debajo del precio?
  - ¿hacia qué zona viajaría el precio en una dirección dada?
  - ¿qué zonas quedan en esa dirección, de la más cercana a la más lejana?
  - ¿qué porcentaje del rango observado cubre cada tipo de zona?
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from zonesniper.domain.entities.zone import Zone, ZoneKind
from zonesniper.domain.value_objects.trade_direction import TradeDirection


@dataclass(frozen=True)
class ZoneSet:
    zones: Tuple[Zone, ...] = ()
    range_low: Optional[float] = None
    range_high: Optional[float] = None
    reference_price: Optional[float] = None

    @classmethod
    def empty(cls, reference_price: Optional[float] = None) -> "ZoneSet":
        return cls(reference_price=reference_price)

    def __len__(self) -> int:
        return len(self.zones)

    def __iter__(self) -> Iterator[Zone]:
        return iter(self.zones)

    @property
    def is_empty(self) -> bool:
        return not self.zones

    @property
    def sticky_zones(self) -> Tuple[Zone, ...]:
        return tuple(z for z in self.zones if z.kind is ZoneKind.STICKY)

    @property
    def rejection_zones(self) -> Tuple[Zone, ...]:
        return tuple(z for z in self.zones if z.kind is ZoneKind.REJECTION)

    # ── Búsquedas relativas al precio ───────────────────────────────

    def nearest_above(self, price: float, kind: Optional[ZoneKind] = None) -> Optional[Zone]:
        """Zona cuyo borde inferior está estrictamente por encima del precio."""
        candidates = [z for z in self.zones if z.price_low > price and (kind is None or z.kind is kind)]
        return min(candidates, key=lambda z: (z.price_low, z.price_high), default=None)

    def nearest_below(self, price: float, kind: Optional[ZoneKind] = None) -> Optional[Zone]:
        """Zona cuyo borde superior está estrictamente por debajo del precio."""
        candidates = [z for z in self.zones if z.price_high < price and (kind is None or z.kind is kind)]
        return max(candidates, key=lambda z: (z.price_high, z.price_low), default=None)

    def nearest_support(self, price: float) -> Optional[Zone]:
        return self.nearest_below(price, ZoneKind.STICKY)

    def nearest_resistance(self, price: float) -> Optional[Zone]:
        return self.nearest_above(price, ZoneKind.STICKY)

    def target_for(self, direction: TradeDirection, price: float) -> Optional[Zone]:
        """Zona objetivo en la dirección dada: sticky primero, rejection como respaldo."""
        lookup = self.nearest_above if direction is TradeDirection.LONG else self.nearest_below
        return lookup(price, ZoneKind.STICKY) or lookup(price, ZoneKind.REJECTION)

    def targets_for(self, direction: TradeDirection, price: float) -> Tuple[Zone, ...]:
        """Todas las zonas en la dirección dada, de la más cercana a la más lejana."""
        if direction is TradeDirection.LONG:
            above = [z for z in self.zones if z.price_low > price]
            return tuple(sorted(above, key=lambda z: (z.price_low, z.price_high, z.kind.value)))
        below = [z for z in self.zones if z.price_high < price]
        return tuple(sorted(below, key=lambda z: (-z.price_high, -z.price_low, z.kind.value)))

    def coverage_pct(self, kind: ZoneKind) -> float:
        """Porcentaje del rango observado cubierto por zonas del tipo dado."""
        if self.range_low is None or self.range_high is None or self.range_high <= self.range_low:
            return 0.0
        covered = sum(z.width for z in self.zones if z.kind is kind)
        return covered / (self.range_high - self.range_low) * 100.0

    def to_dict(self) -> dict:
        return {
            "zones": [z.to_dict() for z in self.zones],
            "range_low": self.range_low,
            "range_high": self.range_high,
            "reference_price": self.reference_price,
            "sticky_coverage_pct": self.coverage_pct(ZoneKind.STICKY),
            "rejection_coverage_pct": self.coverage_pct(ZoneKind.REJECTION),
        }
