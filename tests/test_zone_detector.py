"""
Unit Tests: Zone Detector

- Ventanas cortas / degeneradas → set vacío
- Sticky Zone sobre un nodo de alto volumen
- Rejection Zone sobre un cluster de mechas inferiores
- Validez y determinismo del ZoneSet
"""

import numpy as np
import pytest

from zonesniper.domain.entities.candle_series import YEAR_MS, CandleSeries
from zonesniper.domain.entities.zone import WickSide, Zone, ZoneKind
from zonesniper.domain.exceptions.domain_errors import InvalidConfigurationError
from zonesniper.domain.services.zone_detector import (
    ZoneClassifierParams,
    ZoneDetector,
    ZoneDetectorConfig,
    temporal_weights,
)
from zonesniper.domain.value_objects.trade_direction import TradeDirection
from zonesniper.domain.value_objects.zone_set import ZoneSet

from tests.synthetic import HOUR_MS, START_MS, build_series, flat_series, random_walk


@pytest.fixture
def detector():
    return ZoneDetector(ZoneDetectorConfig(price_buckets=128, min_candles=20))


def high_volume_node_series() -> CandleSeries:
    """250 velas pesadas oscilando en 100 y 50 velas livianas subiendo a 110."""
    i = np.arange(250)
    base = 100.0 + 0.4 * np.sin(i * 0.7)
    trend = np.linspace(100.2, 110.0, 50)
    volumes = np.concatenate((np.full(250, 5000.0), np.full(50, 100.0)))
    return build_series(np.concatenate((base, trend)), volumes=volumes, wick=0.001)


def lower_wick_series() -> CandleSeries:
    """Cuerpos alrededor de 100 sin mechas, salvo una de cada cinco velas que pincha a 95."""
    n = 200
    i = np.arange(n)
    opens = 100.0 + 0.3 * np.sin(i * 0.9)
    closes = 100.0 + 0.3 * np.sin((i + 1) * 0.9)
    highs = np.maximum(opens, closes)
    lows = np.minimum(opens, closes)
    lows[::5] = 95.0
    times = START_MS + i * HOUR_MS
    return CandleSeries.from_arrays(times, opens, highs, lows, closes, np.full(n, 1000.0))


class TestEmptyResults:
    def test_flat_window_yields_empty_set(self, detector):
        zones = detector.detect(flat_series(50))
        assert zones.is_empty
        assert zones.range_low == zones.range_high == 100.0

    def test_window_shorter_than_minimum(self, detector):
        zones = detector.detect(random_walk(10))
        assert zones.is_empty
        assert zones.range_low is None

    def test_zero_volume_has_no_sticky_zones(self, detector):
        series = build_series(np.linspace(100, 105, 60), volumes=np.zeros(60))
        assert detector.detect(series).sticky_zones == ()


class TestStickyZones:
    def test_high_volume_node_becomes_sticky_zone(self, detector):
        zones = detector.detect(high_volume_node_series())
        assert any(z.contains(100.0) for z in zones.sticky_zones)
        assert not any(z.contains(108.0) for z in zones.sticky_zones)

    def test_support_below_price(self, detector):
        series = high_volume_node_series()
        zones = detector.detect(series)
        support = zones.nearest_support(series.last_close)
        assert support is not None
        assert support.price_high < series.last_close
        assert zones.target_for(TradeDirection.SHORT, series.last_close) == support

    def test_strength_is_volume_mass(self, detector):
        zones = detector.detect(high_volume_node_series())
        total = 250 * 5000.0 + 50 * 100.0
        for zone in zones.sticky_zones:
            assert 0 < zone.strength <= total + 1e-6


class TestRejectionZones:
    def test_lower_wick_cluster(self, detector):
        series = lower_wick_series()
        zones = detector.detect(series)
        lows = [z for z in zones.rejection_zones if z.wick is WickSide.LOW]
        assert lows
        zone = min(lows, key=lambda z: z.price_low)
        assert zone.price_low <= 95.5
        assert zone.center < series.last_close
        assert zone.strength >= 3

    def test_min_wick_cluster_filters_zones(self):
        strict = ZoneDetector(ZoneDetectorConfig(price_buckets=128, min_wick_cluster=1000))
        assert strict.detect(lower_wick_series()).rejection_zones == ()

    def test_wick_side_relative_to_reference_price(self, detector):
        series = lower_wick_series()
        below = detector.detect(series, reference_price=90.0)
        assert not any(z.wick is WickSide.LOW for z in below.rejection_zones)


class TestZoneSetValidity:
    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_zones_inside_range_and_sorted(self, detector, seed):
        series = random_walk(400, seed=seed)
        zones = detector.detect(series)
        for zone in zones:
            assert zones.range_low <= zone.price_low <= zone.price_high <= zones.range_high
            assert zone.strength >= 0
            assert zone.formed_from == series.first_time
            assert zone.formed_to == series.last_time
            if zone.kind is ZoneKind.REJECTION:
                if zone.wick is WickSide.LOW:
                    assert zone.center <= zones.reference_price
                else:
                    assert zone.center >= zones.reference_price
        lows = [z.price_low for z in zones]
        assert lows == sorted(lows)

    def test_deterministic(self, detector, walk_series):
        assert detector.detect(walk_series) == detector.detect(walk_series)

    def test_coverage_pct_bounds(self, detector, walk_series):
        zones = detector.detect(walk_series)
        assert 0.0 <= zones.coverage_pct(ZoneKind.STICKY) <= 100.0

    def test_targets_for_lists_every_zone_in_direction(self):
        zones = ZoneSet(zones=(
            Zone(90.0, 92.0, ZoneKind.STICKY, 1.0, START_MS, START_MS),
            Zone(95.0, 96.0, ZoneKind.REJECTION, 1.0, START_MS, START_MS, WickSide.LOW),
            Zone(104.0, 105.0, ZoneKind.REJECTION, 1.0, START_MS, START_MS, WickSide.HIGH),
            Zone(110.0, 112.0, ZoneKind.STICKY, 1.0, START_MS, START_MS),
        ))
        above = zones.targets_for(TradeDirection.LONG, 100.0)
        below = zones.targets_for(TradeDirection.SHORT, 100.0)
        assert [z.price_low for z in above] == [104.0, 110.0]
        assert [z.price_high for z in below] == [96.0, 92.0]
        # target_for prefiere sticky aunque haya una rejection más cerca
        assert zones.target_for(TradeDirection.LONG, 100.0) == above[1]


class TestTemporalDecay:
    def test_no_decay_means_uniform_weights(self):
        times = START_MS + np.arange(10) * HOUR_MS
        assert np.all(temporal_weights(times, 1.0) == 1.0)

    def test_annualized_growth(self):
        times = START_MS + np.linspace(0, 2 * YEAR_MS, 50).astype(np.int64)
        weights = temporal_weights(times, 2.0)
        assert weights[0] == pytest.approx(1.0)
        assert weights[-1] == pytest.approx(4.0)
        assert np.all(np.diff(weights) > 0)

    def test_decay_keeps_zones_valid(self):
        series = random_walk(400, seed=5)
        zones = ZoneDetector(ZoneDetectorConfig(time_decay_factor=3.0)).detect(series)
        for zone in zones:
            assert zones.range_low <= zone.price_low <= zone.price_high <= zones.range_high


class TestConfig:
    @pytest.mark.parametrize("kwargs", [
        {"price_buckets": 1},
        {"min_candles": 0},
        {"min_wick_cluster": 0},
        {"time_decay_factor": 0.0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(InvalidConfigurationError):
            ZoneDetectorConfig(**kwargs)

    def test_invalid_classifier_params(self):
        with pytest.raises(InvalidConfigurationError):
            ZoneDetectorConfig(sticky=ZoneClassifierParams(smooth_pct=-0.1, gap_pct=0.0, viability_pct=0.0, sigma=0.2))
