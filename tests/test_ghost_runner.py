"""
Unit Tests: Ghost Runner

- Un match que toca el objetivo antes que el stop → 1 Win
- Stop evaluado antes que el objetivo en la misma vela
- Timeouts fuera del win rate
- El replay nunca lee la vela viva ni posteriores
- Stop sugerido
- Torneo de stops (ROI, ROI anualizado, filtros mínimos)
"""

import numpy as np
import pytest

from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.domain.entities.match import Match, OutcomeKind
from zonesniper.domain.exceptions.domain_errors import InvalidConfigurationError, ValidationError
from zonesniper.domain.services.ghost_runner import GhostRunner, GhostRunnerConfig
from zonesniper.domain.value_objects.fingerprint import Fingerprint
from zonesniper.domain.value_objects.stop_tournament import MS_IN_YEAR, OptimizationGoal, annualized_roi
from zonesniper.domain.value_objects.target_band import TargetBand
from zonesniper.domain.value_objects.trade_direction import TradeDirection

from tests.synthetic import HOUR_MS, START_MS, build_series

FP = Fingerprint.from_codes((0, 1, 0))


def match_at(series: CandleSeries, index: int) -> Match:
    return Match(index, int(series.open_times[index]), 3.0, FP)


def long_target(pct: float = 0.02) -> TargetBand:
    return TargetBand(TradeDirection.LONG, pct, 100.0)


@pytest.fixture
def runner():
    return GhostRunner(GhostRunnerConfig(max_horizon=50, stop_distance_pct=0.01))


@pytest.fixture
def mixed_series():
    """Win tras 50, loss tras 120, timeout tras 200 (LONG, objetivo 2%, stop 1%)."""
    closes = np.full(300, 100.0)
    closes[51:61] = 100.0 * 1.005 ** np.arange(1, 11)
    closes[121:131] = 100.0 * 0.995 ** np.arange(1, 11)
    return build_series(closes)


class TestSingleMatch:
    def test_target_before_stop_is_one_win(self, runner):
        closes = np.concatenate((np.full(60, 100.0), 100.0 * 1.005 ** np.arange(1, 61)))
        series = build_series(closes)
        result = runner.run(series, [match_at(series, 59)], long_target())

        assert result.wins == 1
        assert result.losses == 0
        assert result.timeouts == 0
        assert result.win_rate == 1.0
        outcome = result.matches[0].outcome
        assert outcome.kind is OutcomeKind.WIN
        assert outcome.realized_return > 0
        assert outcome.exit_index == 63
        assert outcome.candles_elapsed == 4
        assert result.avg_candles_to_target == 4

    def test_short_win(self, runner):
        closes = np.concatenate((np.full(60, 100.0), 100.0 * 0.995 ** np.arange(1, 61)))
        series = build_series(closes)
        target = TargetBand(TradeDirection.SHORT, 0.02, 100.0)
        outcome = runner.replay(series, 59, TradeDirection.SHORT, target.distance_pct, 0.01)
        assert outcome.kind is OutcomeKind.WIN
        assert outcome.realized_return == pytest.approx(0.02)

    def test_stop_checked_before_target_in_same_candle(self, runner):
        n = 30
        times = START_MS + np.arange(n) * HOUR_MS
        opens = np.full(n, 100.0)
        closes = np.full(n, 100.0)
        highs = np.full(n, 100.1)
        lows = np.full(n, 99.9)
        highs[11], lows[11] = 103.0, 98.0
        series = CandleSeries.from_arrays(times, opens, highs, lows, closes, np.full(n, 1.0))

        outcome = runner.replay(series, 10, TradeDirection.LONG, 0.02, 0.01)
        assert outcome.kind is OutcomeKind.LOSS
        assert outcome.realized_return == pytest.approx(-0.01)
        assert outcome.exit_index == 11


class TestAggregation:
    def test_timeouts_excluded_from_win_rate(self, runner, mixed_series):
        matches = [match_at(mixed_series, i) for i in (50, 120, 200)]
        result = runner.run(mixed_series, matches, long_target())

        kinds = [m.outcome.kind for m in result.matches]
        assert kinds == [OutcomeKind.WIN, OutcomeKind.LOSS, OutcomeKind.TIMEOUT]
        assert result.win_rate == pytest.approx(0.5)
        assert result.expected_roi == pytest.approx((0.02 - 0.01) / 2)
        assert result.timeout_rate == pytest.approx(1 / 3)
        assert result.sample_size == 3
        assert result.direction is TradeDirection.LONG

    def test_timeout_measures_close_move(self, runner, mixed_series):
        outcome = runner.replay(mixed_series, 200, TradeDirection.LONG, 0.02, 0.01)
        assert outcome.kind is OutcomeKind.TIMEOUT
        assert outcome.candles_elapsed == 50
        assert outcome.exit_index == 250
        assert outcome.realized_return == pytest.approx(0.0)

    def test_matches_keep_ranking_order(self, runner, mixed_series):
        matches = [match_at(mixed_series, i) for i in (200, 50, 120)]
        result = runner.run(mixed_series, matches, long_target())
        assert [m.source_index for m in result.matches] == [200, 50, 120]

    def test_only_timeouts_gives_undefined_rates(self, runner, mixed_series):
        result = runner.run(mixed_series, [match_at(mixed_series, 200)], long_target())
        assert result.win_rate is None
        assert result.expected_roi is None
        assert result.timeouts == 1

    def test_no_matches(self, runner, mixed_series):
        result = runner.run(mixed_series, [], long_target(), requested_k=5)
        assert result.sample_size == 0
        assert result.win_rate is None
        assert result.is_partial

    def test_without_target_keeps_matches(self, runner, mixed_series):
        matches = [match_at(mixed_series, 50)]
        result = runner.run(mixed_series, matches, None)
        assert result.sample_size == 1
        assert result.matches[0].outcome is None
        assert result.win_rate is None
        assert result.notes

    def test_to_dict_has_no_nan(self, runner, mixed_series):
        data = runner.run(mixed_series, [match_at(mixed_series, 200)], long_target()).to_dict()
        assert data["win_rate"] is None
        assert data["timeouts"] == 1


class TestNoLookahead:
    def test_end_index_hides_future_spike(self, runner):
        closes = np.full(100, 100.0)
        closes[40] = 110.0
        series = build_series(closes)
        hidden = runner.replay(series, 20, TradeDirection.LONG, 0.05, 0.05, end_index=39)
        visible = runner.replay(series, 20, TradeDirection.LONG, 0.05, 0.05)
        assert hidden.kind is OutcomeKind.TIMEOUT
        assert hidden.exit_index == 39
        assert visible.kind is OutcomeKind.WIN

    def test_present_candle_never_read(self, runner, mixed_series):
        matches = [match_at(mixed_series, i) for i in (50, 120, 200)]
        present = 230
        full = runner.run(mixed_series, matches, long_target(), present_index=present)
        truncated = runner.run(mixed_series.truncated(present + 1), matches, long_target())
        assert full == truncated
        assert all(m.outcome.exit_index < present for m in full.matches)


class TestSuggestedStop:
    def test_tightest_stop_within_tolerance(self):
        runner = GhostRunner(GhostRunnerConfig(max_stopped_win_pct=0.25))
        assert runner.suggest_stop([0.001, 0.002, 0.004, 0.02], 0.03) == pytest.approx(0.005)

    def test_volatility_floor(self):
        runner = GhostRunner(GhostRunnerConfig(max_stopped_win_pct=0.25, stop_volatility_mult=2.0))
        stop = runner.suggest_stop([0.001, 0.002, 0.004, 0.02], 0.03, current_volatility=0.004)
        assert stop == pytest.approx(0.01)

    def test_no_winners_no_stop(self, runner):
        assert runner.suggest_stop([], 0.02) is None

    def test_adverse_excursion_of_winner(self, runner, mixed_series):
        mae = runner.adverse_excursion(mixed_series, 50, TradeDirection.LONG, 0.02, 298)
        assert mae == pytest.approx(0.001)
        assert runner.adverse_excursion(mixed_series, 200, TradeDirection.LONG, 0.02, 298) is None

    def test_run_reports_suggested_stop(self, runner, mixed_series):
        result = runner.run(mixed_series, [match_at(mixed_series, 50)], long_target())
        assert result.suggested_stop is not None
        assert result.suggested_stop <= 0.02


class TestValidation:
    @pytest.mark.parametrize("kwargs", [
        {"max_horizon": 0},
        {"stop_distance_pct": 0.0},
        {"stop_distance_pct": 1.5},
        {"max_stopped_win_pct": 1.5},
        {"stop_volatility_mult": -1.0},
        {"risk_reward_grid": ()},
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(InvalidConfigurationError):
            GhostRunnerConfig(**kwargs)

    def test_target_distance_must_be_positive(self):
        with pytest.raises(ValidationError):
            TargetBand(TradeDirection.LONG, 0.0, 100.0)


class TestStopTournament:
    """mixed_series con objetivo 2%: win tras 50, caída tras 120, plano tras 200."""

    def matches(self, series):
        return [match_at(series, i) for i in (50, 120, 200)]

    def test_every_ratio_simulated(self, runner, mixed_series):
        candidate = runner.stop_tournament(mixed_series, self.matches(mixed_series), long_target())

        assert [v.risk_reward for v in candidate.variants] == [1.0, 1.5, 2.0, 3.0, 4.0, 6.0, 10.0]
        for variant in candidate.variants:
            assert variant.stop_pct == pytest.approx(0.02 / variant.risk_reward)
            assert variant.wins + variant.losses + variant.timeouts == 3
            assert variant.wins == 1
            assert variant.losses == 1

        loose = candidate.variants[0]
        assert loose.roi == pytest.approx(0.0)
        tight = candidate.variants[-1]
        assert tight.roi == pytest.approx((0.02 - 0.002) / 3)

    def test_max_roi_picks_highest_roi(self, runner, mixed_series):
        candidate = runner.stop_tournament(mixed_series, self.matches(mixed_series), long_target())
        assert candidate.best.risk_reward == 10.0
        assert candidate.best.score == candidate.best.roi
        assert candidate.best.roi == max(v.roi for v in candidate.variants)

    def test_aroi_uses_average_trade_duration(self, runner, mixed_series):
        candidate = runner.stop_tournament(mixed_series, self.matches(mixed_series), long_target())
        for variant in candidate.variants:
            expected = annualized_roi(variant.roi, variant.avg_candles * HOUR_MS)
            assert variant.aroi == pytest.approx(expected)

    def test_max_aroi_goal(self, mixed_series):
        runner = GhostRunner(GhostRunnerConfig(
            max_horizon=50, stop_distance_pct=0.01, optimization_goal=OptimizationGoal.MAX_AROI,
        ))
        candidate = runner.stop_tournament(mixed_series, self.matches(mixed_series), long_target())
        assert candidate.best.score == candidate.best.aroi
        assert candidate.best.aroi == max(v.aroi for v in candidate.variants if v.is_worthwhile)

    def test_volatility_floor_drops_tight_stops(self, runner, mixed_series):
        candidate = runner.stop_tournament(
            mixed_series, self.matches(mixed_series), long_target(), current_volatility=0.004,
        )
        assert [v.risk_reward for v in candidate.variants] == [1.0, 1.5, 2.0]
        assert candidate.best.risk_reward == 2.0

    def test_min_roi_gate(self, mixed_series):
        runner = GhostRunner(GhostRunnerConfig(max_horizon=50, stop_distance_pct=0.01, min_roi=0.01))
        candidate = runner.stop_tournament(mixed_series, self.matches(mixed_series), long_target())
        assert len(candidate.variants) == 7
        assert not any(v.is_worthwhile for v in candidate.variants)
        assert candidate.best is None

    def test_no_matches(self, runner, mixed_series):
        candidate = runner.stop_tournament(mixed_series, [], long_target())
        assert candidate.variants == ()
        assert candidate.best is None
        assert candidate.to_dict()["best"] is None

    def test_present_candle_never_read(self, runner, mixed_series):
        matches = self.matches(mixed_series)
        present = 230
        full = runner.stop_tournament(mixed_series, matches, long_target(), present_index=present)
        truncated = runner.stop_tournament(mixed_series.truncated(present + 1), matches, long_target())
        assert full == truncated


class TestOptimizationGoal:
    def test_balanced_is_geometric_mean(self):
        assert OptimizationGoal.BALANCED.score(0.01, 4.0) == pytest.approx(0.2)

    def test_balanced_losers_fall_back_to_roi(self):
        assert OptimizationGoal.BALANCED.score(-0.01, -3.0) == -0.01

    def test_short_duration_has_no_aroi(self):
        assert annualized_roi(0.05, 500) == 0.0
        assert annualized_roi(0.01, MS_IN_YEAR / 12) == pytest.approx(0.12)

    def test_invalid_goal(self):
        with pytest.raises(InvalidConfigurationError):
            GhostRunnerConfig(optimization_goal="fastest")
