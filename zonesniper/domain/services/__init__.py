"""Domain services - Pure numerical logic over immutable candle snapshots."""
from zonesniper.domain.services.zone_detector import (
    ZoneDetector,
    ZoneDetectorConfig,
    ZoneClassifierParams,
)
from zonesniper.domain.services.fingerprint_generator import (
    FingerprintGenerator,
    FingerprintConfig,
    SeriesProfile,
)
from zonesniper.domain.services.pathfinder import (
    Pathfinder,
    PathfinderConfig,
    PathfinderResult,
    SimilarityWeights,
)
from zonesniper.domain.services.ghost_runner import GhostRunner, GhostRunnerConfig
from zonesniper.domain.services.analysis_config import AnalysisConfig

__all__ = [
    "ZoneDetector",
    "ZoneDetectorConfig",
    "ZoneClassifierParams",
    "FingerprintGenerator",
    "FingerprintConfig",
    "SeriesProfile",
    "Pathfinder",
    "PathfinderConfig",
    "PathfinderResult",
    "SimilarityWeights",
    "GhostRunner",
    "GhostRunnerConfig",
    "AnalysisConfig",
]
