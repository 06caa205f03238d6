"""
ZoneSniper – Domain Entity: CandleSeries
==========================================
Serie temporal de velas ordenada, consciente de gaps e INMUTABLE.

═══════════════════════════════════════════════════════════════
            SNAPSHOTS EN LUGAR DE ESTADO MUTABLE
═══════════════════════════════════════════════════════════════

  ingest(velas nuevas)
        │
        ▼
  serie_actual.appended(velas) ──▸ serie NUEVA (arrays nuevos)
        │
        └── la serie anterior sigue intacta para cualquier análisis
            que la esté leyendo en ese momento

  Un análisis recibe UNA referencia a un snapshot y todos sus
  resultados (zonas, fingerprint, matches, simulación) se calculan
  sobre ese mismo snapshot. Los workers del Pathfinder leen los
  arrays en paralelo sin locks porque nadie puede escribirlos
  (flags.writeable = False).

ALMACENAMIENTO COLUMNAR:
  Las velas se guardan como 6 arrays numpy (open_time, open, high,
  low, close, volume). Esto da:
    - slice(start, stop)     → O(1), vistas sobre los mismos buffers
    - index_of(open_time)    → O(log n), búsqueda binaria
    - spans_gap(first, last) → O(1), conteo prefijo de marcas de gap

GAPS:
  Un salto open_time[i] - open_time[i-1] > gap_tolerance × interval
  marca un gap en i. El intervalo se infiere como la mediana de los
  saltos si no se indica.
"""

from __future__ import annotations

import bisect
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np

from zonesniper.domain.entities.candle import Candle
from zonesniper.domain.exceptions.domain_errors import ValidationError
from zonesniper.domain.value_objects.data_gap import DataGap

YEAR_MS = 365.25 * 24 * 3600 * 1000


def _frozen(values, dtype) -> np.ndarray:
    arr = np.array(values, dtype=dtype)
    arr.setflags(write=False)
    return arr


class CandleSeries:
    """Snapshot inmutable de velas de un activo/intervalo."""

    __slots__ = (
        "symbol", "interval_ms", "gap_tolerance",
        "_open_times", "_opens", "_highs", "_lows", "_closes", "_volumes",
        "_gap_prefix", "_gaps",
    )

    def __init__(
        self,
        symbol: str,
        interval_ms: int,
        gap_tolerance: float,
        open_times: np.ndarray,
        opens: np.ndarray,
        highs: np.ndarray,
        lows: np.ndarray,
        closes: np.ndarray,
        volumes: np.ndarray,
        gap_prefix: np.ndarray,
        gaps: Tuple[DataGap, ...],
    ) -> None:
        # Constructor interno: usar from_candles / from_arrays
        self.symbol = symbol
        self.interval_ms = interval_ms
        self.gap_tolerance = gap_tolerance
        self._open_times = open_times
        self._opens = opens
        self._highs = highs
        self._lows = lows
        self._closes = closes
        self._volumes = volumes
        self._gap_prefix = gap_prefix
        self._gaps = gaps

    # ════════════════════════════════════════════════════════════════
    #  CONSTRUCCIÓN
    # ════════════════════════════════════════════════════════════════

    @classmethod
    def from_candles(
        cls,
        candles: Sequence[Candle],
        symbol: str = "",
        interval_ms: Optional[int] = None,
        gap_tolerance: float = 1.1,
    ) -> "CandleSeries":
        """Construye un snapshot a partir de velas ordenadas por open_time."""
        return cls.from_arrays(
            open_times=[c.open_time for c in candles],
            opens=[c.open for c in candles],
            highs=[c.high for c in candles],
            lows=[c.low for c in candles],
            closes=[c.close for c in candles],
            volumes=[c.volume for c in candles],
            symbol=symbol,
            interval_ms=interval_ms,
            gap_tolerance=gap_tolerance,
        )

    @classmethod
    def from_arrays(
        cls,
        open_times,
        opens,
        highs,
        lows,
        closes,
        volumes,
        symbol: str = "",
        interval_ms: Optional[int] = None,
        gap_tolerance: float = 1.1,
    ) -> "CandleSeries":
        """
        Construye y valida un snapshot a partir de columnas.

        Raises:
            ValidationError: columnas de distinto largo, timestamps no
                estrictamente crecientes, OHLC incoherente o valores no finitos.
        """
        t = _frozen(open_times, np.int64)
        o = _frozen(opens, np.float64)
        h = _frozen(highs, np.float64)
        lo = _frozen(lows, np.float64)
        c = _frozen(closes, np.float64)
        v = _frozen(volumes, np.float64)

        n = len(t)
        if any(len(col) != n for col in (o, h, lo, c, v)):
            raise ValidationError("Columnas de velas con distinto largo", field="columns")
        for name, col in (("open", o), ("high", h), ("low", lo), ("close", c), ("volume", v)):
            if not np.isfinite(col).all():
                raise ValidationError(f"Valores no finitos en '{name}'", field=name)

        diffs = np.diff(t)
        if n > 1 and (diffs <= 0).any():
            bad = int(np.argmax(diffs <= 0)) + 1
            raise ValidationError(
                f"open_time no estrictamente creciente en índice {bad}",
                field="open_time",
                value=int(t[bad]),
            )
        if (lo > np.minimum(o, c)).any() or (h < np.maximum(o, c)).any():
            bad = int(np.argmax((lo > np.minimum(o, c)) | (h < np.maximum(o, c))))
            raise ValidationError(
                f"OHLC incoherente en índice {bad}", field="ohlc", value=int(t[bad]),
            )
        if (v < 0).any():
            raise ValidationError("Volumen negativo en la serie", field="volume")

        if interval_ms is None:
            interval_ms = int(np.median(diffs)) if n > 1 else 0
        if interval_ms < 0:
            raise ValidationError("interval_ms negativo", field="interval_ms", value=interval_ms)

        markers = np.zeros(n, dtype=np.int64)
        gaps: Tuple[DataGap, ...] = ()
        if interval_ms > 0 and n > 1:
            gap_idx = np.flatnonzero(diffs > interval_ms * gap_tolerance) + 1
            markers[gap_idx] = 1
            gaps = tuple(
                DataGap(
                    index=int(i),
                    start_time=int(t[i - 1]),
                    end_time=int(t[i]),
                    missing_candles=max(1, int(round((t[i] - t[i - 1]) / interval_ms)) - 1),
                )
                for i in gap_idx
            )
        prefix = np.cumsum(markers)
        prefix.setflags(write=False)

        return cls(symbol, int(interval_ms), gap_tolerance, t, o, h, lo, c, v, prefix, gaps)

    # ════════════════════════════════════════════════════════════════
    #  ACCESO
    # ════════════════════════════════════════════════════════════════

    def __len__(self) -> int:
        return len(self._open_times)

    def __getitem__(self, index):
        if isinstance(index, slice):
            if index.step not in (None, 1):
                raise ValueError("CandleSeries solo admite slices contiguos")
            return self.slice(index.start, index.stop)
        i = int(index)
        return Candle(
            open_time=int(self._open_times[i]),
            open=float(self._opens[i]),
            high=float(self._highs[i]),
            low=float(self._lows[i]),
            close=float(self._closes[i]),
            volume=float(self._volumes[i]),
        )

    def __iter__(self) -> Iterator[Candle]:
        for i in range(len(self)):
            yield self[i]

    def __repr__(self) -> str:
        return (
            f"CandleSeries(symbol={self.symbol!r}, candles={len(self)}, "
            f"interval_ms={self.interval_ms}, gaps={len(self._gaps)})"
        )

    @property
    def open_times(self) -> np.ndarray:
        return self._open_times

    @property
    def opens(self) -> np.ndarray:
        return self._opens

    @property
    def highs(self) -> np.ndarray:
        return self._highs

    @property
    def lows(self) -> np.ndarray:
        return self._lows

    @property
    def closes(self) -> np.ndarray:
        return self._closes

    @property
    def volumes(self) -> np.ndarray:
        return self._volumes

    @property
    def gaps(self) -> Tuple[DataGap, ...]:
        return self._gaps

    @property
    def first_time(self) -> Optional[int]:
        return int(self._open_times[0]) if len(self) else None

    @property
    def last_time(self) -> Optional[int]:
        return int(self._open_times[-1]) if len(self) else None

    @property
    def last_close(self) -> Optional[float]:
        return float(self._closes[-1]) if len(self) else None

    @property
    def duration_years(self) -> float:
        if len(self) < 2:
            return 0.0
        return float(self._open_times[-1] - self._open_times[0]) / YEAR_MS

    def index_of(self, open_time: int) -> Optional[int]:
        """Índice exacto de una vela por open_time (búsqueda binaria)."""
        pos = int(np.searchsorted(self._open_times, open_time))
        if pos < len(self) and self._open_times[pos] == open_time:
            return pos
        return None

    def index_at_or_before(self, timestamp: int) -> Optional[int]:
        """Última vela con open_time <= timestamp."""
        pos = int(np.searchsorted(self._open_times, timestamp, side="right")) - 1
        return pos if pos >= 0 else None

    # ════════════════════════════════════════════════════════════════
    #  VENTANAS
    # ════════════════════════════════════════════════════════════════

    def slice(self, start: Optional[int] = None, stop: Optional[int] = None) -> "CandleSeries":
        """Vista O(1) de [start, stop) sobre los mismos arrays."""
        start, stop, _ = slice(start, stop).indices(len(self))
        stop = max(start, stop)

        positions = [g.index for g in self._gaps]
        lo = bisect.bisect_right(positions, start)
        hi = bisect.bisect_left(positions, stop)
        gaps = tuple(g.shifted(start) for g in self._gaps[lo:hi])

        return CandleSeries(
            self.symbol,
            self.interval_ms,
            self.gap_tolerance,
            self._open_times[start:stop],
            self._opens[start:stop],
            self._highs[start:stop],
            self._lows[start:stop],
            self._closes[start:stop],
            self._volumes[start:stop],
            self._gap_prefix[start:stop],
            gaps,
        )

    def tail(self, count: int) -> "CandleSeries":
        return self.slice(max(0, len(self) - count), len(self))

    def truncated(self, stop: int) -> "CandleSeries":
        """Serie tal como se veía con `stop` velas (para walk-forward)."""
        return self.slice(0, stop)

    def spans_gap(self, first: int, last: int) -> bool:
        """True si hay algún gap entre las velas first..last (inclusive)."""
        if last <= first:
            return False
        return bool(self._gap_prefix[last] - self._gap_prefix[first] > 0)

    def spans_gap_many(self, firsts: np.ndarray, lasts: np.ndarray) -> np.ndarray:
        """Versión vectorizada de spans_gap para rangos de ventanas."""
        return (self._gap_prefix[lasts] - self._gap_prefix[firsts]) > 0

    # ════════════════════════════════════════════════════════════════
    #  INGESTA → SNAPSHOT NUEVO
    # ════════════════════════════════════════════════════════════════

    def appended(self, candles: Sequence[Candle]) -> "CandleSeries":
        """
        Devuelve una serie NUEVA con las velas añadidas.

        Si la primera vela nueva tiene el mismo open_time que la última
        de la serie, la reemplaza (actualización en vivo de la vela en
        formación). Velas más antiguas se rechazan con ValidationError.
        """
        if not candles:
            return self

        keep = len(self)
        if keep and candles[0].open_time == self.last_time:
            keep -= 1

        return CandleSeries.from_arrays(
            open_times=np.concatenate([self._open_times[:keep], [c.open_time for c in candles]]),
            opens=np.concatenate([self._opens[:keep], [c.open for c in candles]]),
            highs=np.concatenate([self._highs[:keep], [c.high for c in candles]]),
            lows=np.concatenate([self._lows[:keep], [c.low for c in candles]]),
            closes=np.concatenate([self._closes[:keep], [c.close for c in candles]]),
            volumes=np.concatenate([self._volumes[:keep], [c.volume for c in candles]]),
            symbol=self.symbol,
            interval_ms=self.interval_ms or None,
            gap_tolerance=self.gap_tolerance,
        )

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "interval_ms": self.interval_ms,
            "candles": len(self),
            "first_time": self.first_time,
            "last_time": self.last_time,
            "gaps": [g.to_dict() for g in self._gaps],
        }
