"""
Unit Tests: Pathfinder

- Escenario del patrón repetido (K=5 → las 5 apariciones previas)
- Top-K idéntico a una búsqueda por fuerza bruta
- Determinismo con distinto número de workers y tamaños de partición
- Sin lookahead, exclusión de gaps, límites de sample_size
- Cancelación cooperativa
"""

import itertools

import numpy as np
import pytest

from zonesniper.domain.entities.candle_series import YEAR_MS, CandleSeries
from zonesniper.domain.exceptions.domain_errors import (
    AnalysisSupersededError,
    InvalidConfigurationError,
    ValidationError,
)
from zonesniper.domain.services.fingerprint_generator import FingerprintConfig, FingerprintGenerator
from zonesniper.domain.services.pathfinder import (
    Pathfinder,
    PathfinderConfig,
    SimilarityWeights,
    prune_buffer,
    rank_order,
    select_greedy,
)
from zonesniper.domain.value_objects.fingerprint import (
    Fingerprint,
    MomentumBucket,
    VolatilityBucket,
    VolumeBucket,
)
from zonesniper.shared.parallel.executor import ParallelExecutor

from tests.synthetic import HOUR_MS, pattern_end_indices, random_walk


def make_pathfinder(window=20, **overrides) -> Pathfinder:
    params = dict(top_k=10, forward_horizon=50, partition_size=64, max_workers=1)
    params.update(overrides)
    generator = FingerprintGenerator(FingerprintConfig(window=window))
    config = PathfinderConfig(**params)
    return Pathfinder(generator, config, ParallelExecutor(config.max_workers))


def scan_last(pathfinder: Pathfinder, series: CandleSeries, **kwargs):
    generator = pathfinder._generator
    profile = generator.profile(series)
    current = generator.fingerprint_at(profile, len(series) - 1)
    return pathfinder.scan(series, profile, current, **kwargs)


def naive_top_k(pathfinder: Pathfinder, series: CandleSeries):
    """Búsqueda exhaustiva sin particiones ni poda."""
    generator = pathfinder._generator
    cfg = pathfinder.config
    profile = generator.profile(series)
    present = len(series) - 1
    current = generator.fingerprint_at(profile, present)
    weights = cfg.weights.as_array()
    window = generator.config.window

    candidates = []
    for i in range(window - 1, present - window + 1):
        if i + cfg.forward_horizon >= present:
            continue
        if series.spans_gap(i - window + 1, i + cfg.forward_horizon):
            continue
        codes = generator.fingerprint_at(profile, i).codes
        score = float(sum(w for w, a, b in zip(weights, codes, current.codes) if a == b))
        candidates.append((-score, -i, i))
    candidates.sort()

    chosen = []
    gap = max(1, pathfinder.separation)
    for _, _, i in candidates:
        if all(abs(i - j) >= gap for j in chosen):
            chosen.append(i)
            if len(chosen) == cfg.top_k:
                break
    return chosen


def with_gap(series: CandleSeries, at: int, hours: int) -> CandleSeries:
    times = series.open_times.copy()
    times[at:] += hours * HOUR_MS
    return CandleSeries.from_arrays(
        times, series.opens, series.highs, series.lows, series.closes, series.volumes,
        symbol=series.symbol, interval_ms=series.interval_ms,
    )


class TestRepeatingPattern:
    def test_returns_five_prior_occurrences(self, pathfinder, generator, pattern_series):
        profile = generator.profile(pattern_series)
        current = generator.fingerprint_at(profile, len(pattern_series) - 1)
        result = pathfinder.scan(pattern_series, profile, current)

        expected = sorted(pattern_end_indices()[:-1], reverse=True)[:5]
        assert [m.source_index for m in result.matches] == expected
        assert all(m.similarity_score == pytest.approx(3.0) for m in result.matches)
        assert all(m.fingerprint == current for m in result.matches)

    def test_pattern_fingerprint(self, generator, pattern_series):
        assert generator.generate(pattern_series) == Fingerprint(
            VolatilityBucket.HIGH, MomentumBucket.UP, VolumeBucket.HIGH,
        )

    def test_match_metadata(self, pathfinder, generator, pattern_series):
        profile = generator.profile(pattern_series)
        current = generator.fingerprint_at(profile, len(pattern_series) - 1)
        result = pathfinder.scan(pattern_series, profile, current)
        for match in result.matches:
            assert match.source_time == pattern_series.open_times[match.source_index]
            assert match.outcome is None
        assert result.requested_k == 5
        assert not result.is_partial


class TestTopK:
    @pytest.mark.parametrize("seed", [7, 8, 9])
    def test_matches_brute_force(self, seed):
        series = random_walk(900, seed=seed)
        pathfinder = make_pathfinder(top_k=12, partition_size=37, max_workers=3, min_separation=5)
        result = scan_last(pathfinder, series)
        assert [m.source_index for m in result.matches] == naive_top_k(pathfinder, series)

    def test_ranking_order(self, walk_series):
        result = scan_last(make_pathfinder(top_k=15), walk_series)
        keys = [(-m.similarity_score, -m.source_index) for m in result.matches]
        assert keys == sorted(keys)

    def test_separation_respected(self, walk_series):
        pathfinder = make_pathfinder(top_k=20, min_separation=8)
        indices = sorted(m.source_index for m in scan_last(pathfinder, walk_series).matches)
        assert all(b - a >= 8 for a, b in zip(indices, indices[1:]))

    def test_default_separation_is_window(self):
        assert make_pathfinder(window=15).separation == 15
        assert make_pathfinder(min_separation=0).separation == 0

    def test_weights_change_scores(self, walk_series):
        heavy = make_pathfinder(weights=SimilarityWeights(volatility=0.0, momentum=5.0, volume=0.0))
        for match in scan_last(heavy, walk_series).matches:
            assert match.similarity_score in (0.0, 5.0)


class TestDeterminism:
    @pytest.mark.parametrize("workers,partition", [(1, 10_000), (2, 50), (4, 17), (8, 3)])
    def test_same_result_any_workers_or_partitions(self, walk_series, workers, partition):
        reference = scan_last(make_pathfinder(top_k=10, max_workers=1, partition_size=10_000), walk_series)
        result = scan_last(make_pathfinder(top_k=10, max_workers=workers, partition_size=partition), walk_series)
        assert result.matches == reference.matches
        assert result.eligible_windows == reference.eligible_windows

    def test_repeated_runs_identical(self, walk_series):
        pathfinder = make_pathfinder(max_workers=4, partition_size=25)
        assert scan_last(pathfinder, walk_series) == scan_last(pathfinder, walk_series)


class TestEligibility:
    def test_no_lookahead(self, walk_series):
        pathfinder = make_pathfinder(top_k=30)
        present = len(walk_series) - 1
        for match in scan_last(pathfinder, walk_series).matches:
            assert match.source_index + 50 < present
            assert match.source_index <= present - 20
            assert match.source_index >= 19

    def test_explicit_present_index(self, walk_series):
        pathfinder = make_pathfinder(top_k=30)
        generator = pathfinder._generator
        profile = generator.profile(walk_series)
        current = generator.fingerprint_at(profile, 300)
        result = pathfinder.scan(walk_series, profile, current, present_index=300)
        assert all(m.source_index + 50 < 300 for m in result.matches)
        assert result.eligible_windows == 249 - 19 + 1

    def test_gap_windows_excluded(self, walk_series):
        gapped = with_gap(walk_series, at=300, hours=5)
        pathfinder = make_pathfinder(top_k=40, min_separation=1)
        clean = scan_last(pathfinder, walk_series)
        result = scan_last(pathfinder, gapped)

        for match in result.matches:
            assert not gapped.spans_gap(match.source_index - 19, match.source_index + 50)
        # ventanas que terminan en [250, 318] cruzan el gap
        assert result.eligible_windows == clean.eligible_windows - 69

    def test_sample_size_bounds(self):
        series = random_walk(150)
        result = scan_last(make_pathfinder(top_k=50), series)
        assert result.eligible_windows == 98 - 19 + 1
        assert result.sample_size <= result.eligible_windows
        assert result.sample_size <= result.requested_k
        assert result.is_partial

    def test_no_eligible_windows(self):
        result = scan_last(make_pathfinder(), random_walk(60))
        assert result.matches == ()
        assert result.eligible_windows == 0
        assert result.partitions == 0

    def test_profile_must_match_series(self, walk_series):
        pathfinder = make_pathfinder()
        generator = pathfinder._generator
        profile = generator.profile(walk_series.truncated(300))
        current = generator.fingerprint_at(profile, 299)
        with pytest.raises(ValidationError):
            pathfinder.scan(walk_series, profile, current)


class TestTimeDecay:
    def test_scores_scaled_by_age(self, walk_series):
        pathfinder = make_pathfinder(time_decay_factor=2.0)
        generator = pathfinder._generator
        profile = generator.profile(walk_series)
        present = len(walk_series) - 1
        current = generator.fingerprint_at(profile, present)

        indices, scores = pathfinder.score_windows(walk_series, profile, current, 19, 500, present)
        codes = generator.bucket_codes(profile, 19, 500)
        base = (codes == np.array(current.codes)).sum(axis=1)
        ages = (walk_series.open_times[present] - walk_series.open_times[19:500]) / YEAR_MS
        np.testing.assert_allclose(scores, base * 2.0 ** (-ages))
        assert indices.tolist() == list(range(19, 500))


class TestCancellation:
    def test_superseded_before_start(self, walk_series):
        with pytest.raises(AnalysisSupersededError) as exc:
            scan_last(make_pathfinder(partition_size=50), walk_series, is_superseded=lambda: True)
        assert exc.value.partitions_done == 0
        assert exc.value.code == "ANALYSIS_SUPERSEDED"

    def test_superseded_between_partitions(self, walk_series):
        calls = itertools.count()
        with pytest.raises(AnalysisSupersededError) as exc:
            scan_last(
                make_pathfinder(partition_size=50, max_workers=1),
                walk_series,
                is_superseded=lambda: next(calls) >= 1,
            )
        assert exc.value.partitions_done == 1

    def test_not_superseded_completes(self, walk_series):
        result = scan_last(make_pathfinder(), walk_series, is_superseded=lambda: False)
        assert result.sample_size > 0


class TestSelectionHelpers:
    def test_rank_order_breaks_ties_by_recency(self):
        indices = np.array([10, 30, 20, 40])
        scores = np.array([2.0, 2.0, 3.0, 1.0])
        assert indices[rank_order(indices, scores)].tolist() == [20, 30, 10, 40]

    @pytest.mark.parametrize("seed,separation,k", [(0, 0, 5), (1, 3, 7), (2, 10, 4), (3, 25, 12)])
    def test_pruned_partitions_preserve_selection(self, seed, separation, k):
        rng = np.random.default_rng(seed)
        indices = np.arange(500, dtype=np.int64)
        scores = rng.integers(0, 4, 500).astype(np.float64)
        expected = indices[select_greedy(indices, scores, k, separation)].tolist()

        kept_idx, kept_scores = [], []
        for lo in range(0, 500, 33):
            part_idx, part_scores = indices[lo:lo + 33], scores[lo:lo + 33]
            keep = prune_buffer(part_idx, part_scores, k, separation)
            kept_idx.append(part_idx[keep])
            kept_scores.append(part_scores[keep])
        merged_idx = np.concatenate(kept_idx)
        merged_scores = np.concatenate(kept_scores)
        assert merged_idx[select_greedy(merged_idx, merged_scores, k, separation)].tolist() == expected


class TestConfig:
    @pytest.mark.parametrize("kwargs", [
        {"top_k": 0},
        {"forward_horizon": 0},
        {"min_separation": -1},
        {"weights": SimilarityWeights(0.0, 0.0, 0.0)},
        {"weights": SimilarityWeights(-1.0, 1.0, 1.0)},
        {"time_decay_factor": 0.0},
        {"partition_size": 0},
        {"max_workers": 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(InvalidConfigurationError):
            PathfinderConfig(**kwargs)
