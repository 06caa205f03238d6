"""Application ports - Interfaces to infrastructure."""
from zonesniper.application.ports.candle_source import ICandleSource

__all__ = [
    "ICandleSource",
]
