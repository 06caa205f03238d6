"""
Ingest Candles Use Case.

Paso explícito de ingesta ENTRE análisis: trae velas nuevas del
puerto ICandleSource y publica un snapshot nuevo en el SeriesStore.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from zonesniper.application.ports.candle_source import ICandleSource
from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.shared.logging.logger import get_logger
from zonesniper.state.series_store import SeriesStore

logger = get_logger("ingest")


@dataclass
class IngestResult:
    """Resultado de una ingesta."""
    series: Optional[CandleSeries] = None
    received: int = 0
    new_gaps: int = 0


class IngestCandlesUseCase:
    """
    Caso de uso: sincronizar la serie en memoria con la fuente.

    Primera llamada → carga histórica (con `limit` opcional).
    Siguientes → solo velas desde la última conocida; la vela en
    formación se reemplaza si vuelve con el mismo open_time.
    """

    def __init__(self, candle_source: ICandleSource, series_store: SeriesStore):
        self._source = candle_source
        self._store = series_store

    async def execute(self, symbol: str, interval_ms: int, limit: Optional[int] = None) -> IngestResult:
        current = self._store.snapshot(symbol, interval_ms)
        since = current.last_time if current is not None and len(current) else None

        candles = await self._source.get_candles(
            symbol, interval_ms, since=since, limit=limit if since is None else None,
        )
        if not candles:
            logger.debug("Sin velas nuevas para %s/%dms", symbol, interval_ms)
            return IngestResult(series=current)

        gaps_before = len(current.gaps) if current is not None else 0
        series = self._store.ingest(symbol, interval_ms, candles)
        if series is current:
            logger.debug("Sin cambios para %s/%dms", symbol, interval_ms)
            return IngestResult(series=current)
        new_gaps = len(series.gaps) - gaps_before

        logger.info(
            "Ingesta %s/%dms | recibidas=%d total=%d gaps_nuevos=%d",
            symbol, interval_ms, len(candles), len(series), new_gaps,
        )
        return IngestResult(series=series, received=len(candles), new_gaps=new_gaps)
