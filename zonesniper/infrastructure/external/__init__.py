"""External systems - fuentes de velas."""

from zonesniper.infrastructure.external.csv_candle_source import (
    CsvCandleSource,
    candles_from_frame,
    normalize_frame,
)

__all__ = [
    "CsvCandleSource",
    "candles_from_frame",
    "normalize_frame",
]
