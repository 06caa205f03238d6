"""
ZoneSniper – Value Object: DataGap
====================================
Discontinuidad detectada en los timestamps de una serie de velas.

Un gap NO es un error: el análisis continúa y el gap viaja como
advertencia en el resultado. La política del motor es EXCLUSIÓN:
ninguna ventana histórica (ni su continuación) puede cruzar un gap,
porque la aritmética de lookback asume velas contiguas.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DataGap:
    """Hueco entre la vela index-1 y la vela index."""

    index: int             # índice de la primera vela tras el hueco
    start_time: int        # open_time de la última vela antes del hueco
    end_time: int          # open_time de la primera vela tras el hueco
    missing_candles: int   # velas esperadas que faltan

    def shifted(self, offset: int) -> "DataGap":
        return DataGap(self.index - offset, self.start_time, self.end_time, self.missing_candles)

    def to_warning(self) -> dict:
        return {
            "code": "DATA_GAP",
            "message": f"{self.missing_candles} velas ausentes antes del índice {self.index}",
            **self.to_dict(),
        }

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "missing_candles": self.missing_candles,
        }
