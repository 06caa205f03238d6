"""Application use cases - Business logic orchestration."""

from zonesniper.application.use_cases.run_analysis_usecase import (
    RunAnalysisUseCase,
    RunAnalysisResult,
)
from zonesniper.application.use_cases.ingest_candles_usecase import (
    IngestCandlesUseCase,
    IngestResult,
)
from zonesniper.application.use_cases.backtest_usecase import (
    WalkForwardBacktestUseCase,
    BacktestResult,
    BacktestReport,
    BacktestTrade,
)

__all__ = [
    "RunAnalysisUseCase",
    "RunAnalysisResult",
    "IngestCandlesUseCase",
    "IngestResult",
    "WalkForwardBacktestUseCase",
    "BacktestResult",
    "BacktestReport",
    "BacktestTrade",
]
