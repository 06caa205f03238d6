"""
ZoneSniper – Domain Entity: Candle
====================================
Vela OHLCV inmutable de una serie histórica.

Decisiones de diseño:
- frozen=True → una vela cerrada no cambia. La única excepción es la vela
  "en formación" del final de la serie, que se reemplaza entera por una
  vela nueva con el mismo open_time (ver CandleSeries.appended).
- Se usa dataclass por rendimiento (más ligera que Pydantic para hot-path).
- open_time en milisegundos epoch, igual que los exchanges.
"""

from __future__ import annotations

from dataclasses import dataclass

from zonesniper.domain.exceptions.domain_errors import ValidationError


@dataclass(frozen=True, slots=True)
class Candle:
    """Vela OHLCV con timestamp de apertura."""

    open_time: int       # epoch ms de apertura
    open: float
    high: float
    low: float
    close: float
    volume: float

    def __post_init__(self) -> None:
        if self.low > min(self.open, self.close) or self.high < max(self.open, self.close):
            raise ValidationError(
                f"Vela {self.open_time} con OHLC incoherente "
                f"(o={self.open} h={self.high} l={self.low} c={self.close})",
                field="ohlc",
                value=self.open_time,
            )
        if self.volume < 0:
            raise ValidationError(
                f"Vela {self.open_time} con volumen negativo",
                field="volume",
                value=self.volume,
            )

    @property
    def body_top(self) -> float:
        return max(self.open, self.close)

    @property
    def body_bottom(self) -> float:
        return min(self.open, self.close)

    @property
    def range(self) -> float:
        return self.high - self.low

    def to_dict(self) -> dict:
        """Serialización para persistencia / presentación."""
        return {
            "open_time": self.open_time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }
