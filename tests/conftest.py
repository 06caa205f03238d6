# tests/conftest.py
from __future__ import annotations

import pytest

from zonesniper.container import reset_container
from zonesniper.domain.services.analysis_config import AnalysisConfig
from zonesniper.domain.services.fingerprint_generator import FingerprintConfig, FingerprintGenerator
from zonesniper.domain.services.ghost_runner import GhostRunner, GhostRunnerConfig
from zonesniper.domain.services.pathfinder import Pathfinder, PathfinderConfig
from zonesniper.domain.services.zone_detector import ZoneDetector, ZoneDetectorConfig
from zonesniper.application.use_cases.run_analysis_usecase import RunAnalysisUseCase

from tests import synthetic


@pytest.fixture(autouse=True)
def clean_container():
    reset_container()
    yield
    reset_container()


@pytest.fixture
def small_config() -> AnalysisConfig:
    """Ventana 20, horizonte 50, K=5: suficiente para series de ~1000 velas."""
    return AnalysisConfig(
        zones=ZoneDetectorConfig(price_buckets=128, min_candles=20),
        fingerprint=FingerprintConfig(window=20),
        pathfinder=PathfinderConfig(top_k=5, forward_horizon=50, partition_size=64, max_workers=1),
        ghost=GhostRunnerConfig(max_horizon=50, stop_distance_pct=0.01),
        zone_lookback=200,
        min_candles=100,
    )


@pytest.fixture
def generator(small_config) -> FingerprintGenerator:
    return FingerprintGenerator(small_config.fingerprint)


@pytest.fixture
def pathfinder(generator, small_config) -> Pathfinder:
    return Pathfinder(generator, small_config.pathfinder)


@pytest.fixture
def ghost_runner(small_config) -> GhostRunner:
    return GhostRunner(small_config.ghost)


@pytest.fixture
def run_analysis(small_config, generator, pathfinder, ghost_runner) -> RunAnalysisUseCase:
    return RunAnalysisUseCase(
        config=small_config,
        zone_detector=ZoneDetector(small_config.zones),
        fingerprint_generator=generator,
        pathfinder=pathfinder,
        ghost_runner=ghost_runner,
    )


@pytest.fixture(scope="session")
def pattern_series():
    return synthetic.repeating_pattern_series()


@pytest.fixture(scope="session")
def walk_series():
    return synthetic.random_walk()
