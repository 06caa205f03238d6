"""
ZoneSniper – Domain: Analysis Config
======================================
Agregado de las configuraciones de los cuatro servicios del motor.

Cada sub-config valida sus propios campos en __post_init__; aquí solo
se validan las reglas que cruzan servicios. Todo se rechaza con
InvalidConfigurationError ANTES de empezar cualquier escaneo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from zonesniper.domain.exceptions.domain_errors import InvalidConfigurationError
from zonesniper.domain.services.fingerprint_generator import FingerprintConfig
from zonesniper.domain.services.ghost_runner import GhostRunnerConfig
from zonesniper.domain.services.pathfinder import PathfinderConfig
from zonesniper.domain.services.zone_detector import ZoneDetectorConfig
from zonesniper.domain.value_objects.trade_direction import TradeDirection


@dataclass
class AnalysisConfig:
    zones: ZoneDetectorConfig = field(default_factory=ZoneDetectorConfig)
    fingerprint: FingerprintConfig = field(default_factory=FingerprintConfig)
    pathfinder: PathfinderConfig = field(default_factory=PathfinderConfig)
    ghost: GhostRunnerConfig = field(default_factory=GhostRunnerConfig)
    zone_lookback: int = 500
    min_candles: int = 250
    direction: Optional[TradeDirection] = None

    def __post_init__(self) -> None:
        if self.zone_lookback < self.zones.min_candles:
            raise InvalidConfigurationError(
                "zone_lookback menor que el mínimo del detector de zonas",
                field="zone_lookback",
                value=self.zone_lookback,
            )
        if self.ghost.max_horizon > self.pathfinder.forward_horizon:
            raise InvalidConfigurationError(
                "El horizonte del Ghost Runner supera el horizonte garantizado por el Pathfinder",
                field="max_horizon",
                value=self.ghost.max_horizon,
            )
        if self.min_candles < self.required_candles:
            raise InvalidConfigurationError(
                f"min_candles debe cubrir al menos {self.required_candles} velas",
                field="min_candles",
                value=self.min_candles,
            )

    @property
    def required_candles(self) -> int:
        """Velas mínimas para que exista al menos una ventana elegible."""
        return 2 * self.fingerprint.window + self.pathfinder.forward_horizon + 1
