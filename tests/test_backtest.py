"""
Tests: Walk-Forward Backtest

- Pasos evaluados = trades + saltados
- Cada trade se resuelve con velas POSTERIORES a su entrada
- Agregados del reporte
"""

import pytest

from zonesniper.application.use_cases.backtest_usecase import (
    BacktestReport,
    BacktestTrade,
    WalkForwardBacktestUseCase,
)
from zonesniper.domain.entities.match import MatchOutcome, OutcomeKind
from zonesniper.domain.exceptions.domain_errors import InvalidConfigurationError
from zonesniper.domain.value_objects.trade_direction import TradeDirection


def trade(kind: OutcomeKind, realized: float, index: int = 0) -> BacktestTrade:
    return BacktestTrade(
        entry_index=index,
        entry_time=index,
        direction=TradeDirection.LONG,
        target_distance_pct=0.02,
        stop_distance_pct=0.01,
        predicted_win_rate=0.6,
        sample_size=5,
        outcome=MatchOutcome(kind, index + 3, index + 3, 3, realized),
    )


@pytest.fixture
def backtest(run_analysis, ghost_runner):
    return WalkForwardBacktestUseCase(run_analysis, ghost_runner)


class TestWalkForward:
    def test_step_accounting(self, backtest, walk_series):
        report = backtest.execute(walk_series).report
        assert report.evaluated_steps == len(range(99, len(walk_series) - 50, 50))
        assert len(report.trades) + report.skipped_steps == report.evaluated_steps
        assert report.wins + report.losses + report.timeouts == len(report.trades)

    def test_trades_resolve_after_entry(self, backtest, walk_series):
        for t in backtest.execute(walk_series, step=25).report.trades:
            assert t.outcome.exit_index > t.entry_index
            assert t.outcome.candles_elapsed <= 50
            assert t.entry_time == walk_series.open_times[t.entry_index]

    def test_custom_start(self, backtest, walk_series):
        report = backtest.execute(walk_series, start_index=400, step=10).report
        assert report.evaluated_steps == len(range(400, 550, 10))

    def test_strict_threshold_skips_everything_below(self, run_analysis, ghost_runner, walk_series):
        strict = WalkForwardBacktestUseCase(run_analysis, ghost_runner, min_win_rate=1.0)
        for t in strict.execute(walk_series).report.trades:
            assert t.predicted_win_rate == 1.0

    def test_fixed_stop(self, run_analysis, ghost_runner, walk_series):
        fixed = WalkForwardBacktestUseCase(run_analysis, ghost_runner, use_suggested_stop=False)
        for t in fixed.execute(walk_series).report.trades:
            assert t.stop_distance_pct == pytest.approx(0.01)

    def test_series_shorter_than_horizon(self, backtest, walk_series):
        report = backtest.execute(walk_series.truncated(150)).report
        assert report.evaluated_steps == 1
        assert report.trades == () or report.trades[0].entry_index == 99


class TestReport:
    def test_aggregates(self):
        report = BacktestReport(
            trades=(
                trade(OutcomeKind.WIN, 0.02),
                trade(OutcomeKind.LOSS, -0.01),
                trade(OutcomeKind.WIN, 0.02),
                trade(OutcomeKind.TIMEOUT, 0.003),
            ),
            evaluated_steps=6,
            skipped_steps=2,
        )
        assert report.win_rate == pytest.approx(2 / 3)
        assert report.avg_return == pytest.approx((0.02 - 0.01 + 0.02 + 0.003) / 4)
        data = report.to_dict()
        assert data["trades"] == 4
        assert data["timeouts"] == 1
        assert len(data["detail"]) == 4

    def test_empty_report(self):
        report = BacktestReport()
        assert report.win_rate is None
        assert report.avg_return is None


class TestValidation:
    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_invalid_min_win_rate(self, run_analysis, ghost_runner, value):
        with pytest.raises(InvalidConfigurationError):
            WalkForwardBacktestUseCase(run_analysis, ghost_runner, min_win_rate=value)

    def test_invalid_step(self, backtest, walk_series):
        with pytest.raises(InvalidConfigurationError):
            backtest.execute(walk_series, step=-5)
