"""Domain value objects."""
from zonesniper.domain.value_objects.data_gap import DataGap
from zonesniper.domain.value_objects.fingerprint import (
    Fingerprint,
    VolatilityBucket,
    MomentumBucket,
    VolumeBucket,
)
from zonesniper.domain.value_objects.trade_direction import TradeDirection
from zonesniper.domain.value_objects.zone_set import ZoneSet
from zonesniper.domain.value_objects.target_band import TargetBand
from zonesniper.domain.value_objects.simulation_result import SimulationResult
from zonesniper.domain.value_objects.stop_tournament import OptimizationGoal, StopVariant, TargetCandidate
from zonesniper.domain.value_objects.analysis_snapshot import AnalysisSnapshot

__all__ = [
    "DataGap",
    "Fingerprint",
    "VolatilityBucket",
    "MomentumBucket",
    "VolumeBucket",
    "TradeDirection",
    "ZoneSet",
    "TargetBand",
    "SimulationResult",
    "OptimizationGoal",
    "StopVariant",
    "TargetCandidate",
    "AnalysisSnapshot",
]
