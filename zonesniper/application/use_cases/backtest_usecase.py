"""
Walk-Forward Backtest Use Case.

Evalúa al motor contra sí mismo sin mirar el futuro:

    for present in start, start+step, …:
        visible = series[:present + 1]        ← lo que se sabía entonces
        snapshot = RunAnalysis(visible)
        si hay objetivo y win_rate ≥ min_win_rate:
            replay(series, present, …)        ← velas posteriores (hold-out)

El análisis de cada paso solo ve el prefijo truncado; las velas
posteriores únicamente se usan para resolver el trade sugerido.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from zonesniper.application.use_cases.run_analysis_usecase import RunAnalysisUseCase
from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.domain.entities.match import MatchOutcome, OutcomeKind
from zonesniper.domain.exceptions.domain_errors import InvalidConfigurationError
from zonesniper.domain.services.ghost_runner import GhostRunner
from zonesniper.domain.value_objects.trade_direction import TradeDirection
from zonesniper.shared.logging.logger import get_logger

logger = get_logger("backtest")


@dataclass(frozen=True)
class BacktestTrade:
    """Un trade simulado del walk-forward."""

    entry_index: int
    entry_time: int
    direction: TradeDirection
    target_distance_pct: float
    stop_distance_pct: float
    predicted_win_rate: Optional[float]
    sample_size: int
    outcome: MatchOutcome

    def to_dict(self) -> dict:
        return {
            "entry_index": self.entry_index,
            "entry_time": self.entry_time,
            "direction": self.direction.value,
            "target_distance_pct": self.target_distance_pct,
            "stop_distance_pct": self.stop_distance_pct,
            "predicted_win_rate": self.predicted_win_rate,
            "sample_size": self.sample_size,
            "outcome": self.outcome.to_dict(),
        }


@dataclass(frozen=True)
class BacktestReport:
    trades: Tuple[BacktestTrade, ...] = ()
    evaluated_steps: int = 0
    skipped_steps: int = 0

    def _count(self, kind: OutcomeKind) -> int:
        return sum(1 for t in self.trades if t.outcome.kind is kind)

    @property
    def wins(self) -> int:
        return self._count(OutcomeKind.WIN)

    @property
    def losses(self) -> int:
        return self._count(OutcomeKind.LOSS)

    @property
    def timeouts(self) -> int:
        return self._count(OutcomeKind.TIMEOUT)

    @property
    def win_rate(self) -> Optional[float]:
        resolved = self.wins + self.losses
        return self.wins / resolved if resolved else None

    @property
    def avg_return(self) -> Optional[float]:
        """Retorno medio de TODOS los trades (timeouts incluidos, a su cierre)."""
        if not self.trades:
            return None
        return sum(t.outcome.realized_return for t in self.trades) / len(self.trades)

    def to_dict(self) -> dict:
        return {
            "evaluated_steps": self.evaluated_steps,
            "skipped_steps": self.skipped_steps,
            "trades": len(self.trades),
            "wins": self.wins,
            "losses": self.losses,
            "timeouts": self.timeouts,
            "win_rate": self.win_rate,
            "avg_return": self.avg_return,
            "detail": [t.to_dict() for t in self.trades],
        }


@dataclass
class BacktestResult:
    report: BacktestReport = field(default_factory=BacktestReport)
    elapsed_ms: float = 0.0


class WalkForwardBacktestUseCase:
    """
    Caso de uso: backtest walk-forward del trade sugerido.

    Args:
        analysis: el mismo RunAnalysisUseCase que se usa en vivo
        ghost_runner: resuelve cada trade sobre el hold-out
        min_win_rate: umbral de win rate histórico para tomar el trade
        use_suggested_stop: usa el stop sugerido cuando existe
    """

    def __init__(
        self,
        analysis: RunAnalysisUseCase,
        ghost_runner: GhostRunner,
        min_win_rate: float = 0.0,
        use_suggested_stop: bool = True,
    ):
        if not 0.0 <= min_win_rate <= 1.0:
            raise InvalidConfigurationError(
                "min_win_rate debe estar en [0, 1]", field="min_win_rate", value=min_win_rate,
            )
        self._analysis = analysis
        self._ghost_runner = ghost_runner
        self._min_win_rate = min_win_rate
        self._use_suggested_stop = use_suggested_stop

    def execute(
        self,
        series: CandleSeries,
        start_index: Optional[int] = None,
        step: Optional[int] = None,
    ) -> BacktestResult:
        started = time.perf_counter()
        horizon = self._ghost_runner.config.max_horizon
        start = start_index if start_index is not None else self._analysis.config.min_candles - 1
        step = step or horizon
        if step < 1:
            raise InvalidConfigurationError("step debe ser >= 1", field="step", value=step)

        trades: List[BacktestTrade] = []
        evaluated = skipped = 0

        for present in range(max(start, 0), len(series) - horizon, step):
            evaluated += 1
            result = self._analysis.execute(series.truncated(present + 1))
            snapshot = result.snapshot
            if snapshot is None or snapshot.target is None:
                skipped += 1
                continue

            sim = snapshot.simulation
            if sim.win_rate is None or sim.win_rate < self._min_win_rate:
                skipped += 1
                continue

            stop = sim.stop_distance_pct or self._ghost_runner.config.stop_distance_pct
            if self._use_suggested_stop and sim.suggested_stop is not None:
                stop = sim.suggested_stop

            target = snapshot.target
            outcome = self._ghost_runner.replay(
                series, present, target.direction, target.distance_pct, stop,
            )
            trades.append(BacktestTrade(
                entry_index=present,
                entry_time=int(series.open_times[present]),
                direction=target.direction,
                target_distance_pct=target.distance_pct,
                stop_distance_pct=stop,
                predicted_win_rate=sim.win_rate,
                sample_size=sim.sample_size,
                outcome=outcome,
            ))

        report = BacktestReport(trades=tuple(trades), evaluated_steps=evaluated, skipped_steps=skipped)
        elapsed = (time.perf_counter() - started) * 1000
        logger.info(
            "Backtest %s | pasos=%d trades=%d W=%d L=%d T=%d win_rate=%s (%.1f ms)",
            series.symbol, evaluated, len(trades), report.wins, report.losses, report.timeouts,
            f"{report.win_rate:.3f}" if report.win_rate is not None else "-", elapsed,
        )
        return BacktestResult(report=report, elapsed_ms=elapsed)
