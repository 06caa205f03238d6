"""
ZoneSniper – Series Store
==========================
Estado en memoria: el snapshot de velas VIGENTE por (símbolo, intervalo).

SERIALIZACIÓN INGESTA / ANÁLISIS:
- ingest() construye un CandleSeries NUEVO y reemplaza la referencia
  bajo un lock. Nunca se modifica un snapshot existente.
- snapshot() devuelve la referencia vigente. Un análisis que la tome
  ve siempre una serie consistente (antes o después de un append,
  nunca a medias), aunque llegue otra ingesta mientras escanea.

CONTADORES:
- version se incrementa en cada ingesta que cambia la serie; sirve como
  token para detectar que un análisis en curso quedó obsoleto (is_stale).
  Reenviar la última vela idéntica no publica snapshot nuevo.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from zonesniper.domain.entities.candle import Candle
from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.shared.logging.logger import get_logger

logger = get_logger("series_store")

SeriesKey = Tuple[str, int]


@dataclass
class _SeriesState:
    """Estado de UN par (símbolo, intervalo)."""

    series: CandleSeries
    version: int = 0
    total_ingested: int = 0


class SeriesStore:
    """
    Gestor centralizado de snapshots de velas.

    Acceso: store.snapshot(symbol, interval_ms) → CandleSeries | None
    """

    def __init__(self, gap_tolerance: float = 1.1) -> None:
        self._gap_tolerance = gap_tolerance
        self._states: Dict[SeriesKey, _SeriesState] = {}
        self._lock = threading.Lock()

    def ingest(self, symbol: str, interval_ms: int, candles: Sequence[Candle]) -> CandleSeries:
        """
        Añade velas y publica un snapshot nuevo.

        Raises:
            ValidationError: velas desordenadas o anteriores a la última
        """
        key = (symbol, interval_ms)
        with self._lock:
            state = self._states.get(key)
            if state is None:
                series = CandleSeries.from_candles(
                    candles, symbol=symbol, interval_ms=interval_ms, gap_tolerance=self._gap_tolerance,
                )
                state = _SeriesState(series=series)
                self._states[key] = state
                logger.info(
                    "Serie creada %s/%dms | velas=%d gaps=%d",
                    symbol, interval_ms, len(series), len(series.gaps),
                )
            else:
                updated = state.series.appended(candles)
                if self._unchanged(state.series, updated):
                    logger.debug("Sin cambios en %s/%dms | version=%d", symbol, interval_ms, state.version)
                    return state.series
                before = len(state.series.gaps)
                state.series = updated
                if len(state.series.gaps) > before:
                    logger.warning(
                        "Gap nuevo en %s/%dms | gaps=%d",
                        symbol, interval_ms, len(state.series.gaps),
                    )
            state.version += 1
            state.total_ingested += len(candles)
            return state.series

    @staticmethod
    def _unchanged(current: CandleSeries, updated: CandleSeries) -> bool:
        """True si el append solo reenvió la última vela sin cambios."""
        n = len(current)
        return n > 0 and len(updated) == n and updated[n - 1] == current[n - 1]

    def snapshot(self, symbol: str, interval_ms: int) -> Optional[CandleSeries]:
        with self._lock:
            state = self._states.get((symbol, interval_ms))
            return state.series if state else None

    def version(self, symbol: str, interval_ms: int) -> int:
        with self._lock:
            state = self._states.get((symbol, interval_ms))
            return state.version if state else 0

    def is_stale(self, symbol: str, interval_ms: int, version: int) -> Callable[[], bool]:
        """Callback para is_superseded: True si hubo ingestas después de `version`."""
        return lambda: self.version(symbol, interval_ms) != version

    def keys(self) -> List[SeriesKey]:
        with self._lock:
            return list(self._states.keys())

    def stats(self) -> dict:
        """Snapshot de diagnóstico."""
        with self._lock:
            return {
                f"{symbol}/{interval}": {
                    "candles": len(s.series),
                    "version": s.version,
                    "total_ingested": s.total_ingested,
                    "gaps": len(s.series.gaps),
                    "last_time": s.series.last_time,
                }
                for (symbol, interval), s in self._states.items()
            }
