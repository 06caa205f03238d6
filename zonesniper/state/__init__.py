"""Estado en memoria: snapshots de velas por símbolo."""
from zonesniper.state.series_store import SeriesStore

__all__ = ["SeriesStore"]
