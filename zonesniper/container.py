"""
Dependency Injection Container.

Este módulo proporciona el contenedor de inyección de dependencias
que gestiona los servicios del motor, el estado y los casos de uso.

Clean Architecture: Este contenedor vive en la capa más externa y es el único
lugar donde se crean dependencias concretas y donde Settings (entorno) se
traduce a la configuración validada del dominio.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# Domain
from zonesniper.domain.exceptions.domain_errors import InvalidConfigurationError
from zonesniper.domain.services.analysis_config import AnalysisConfig
from zonesniper.domain.services.fingerprint_generator import FingerprintConfig, FingerprintGenerator
from zonesniper.domain.services.ghost_runner import GhostRunner, GhostRunnerConfig
from zonesniper.domain.services.pathfinder import Pathfinder, PathfinderConfig, SimilarityWeights
from zonesniper.domain.services.zone_detector import ZoneDetector, ZoneDetectorConfig
from zonesniper.domain.value_objects.stop_tournament import OptimizationGoal
from zonesniper.domain.value_objects.trade_direction import TradeDirection

# Application Ports
from zonesniper.application.ports.candle_source import ICandleSource

# Shared / State
from zonesniper.shared.config.settings import Settings
from zonesniper.shared.parallel.executor import ParallelExecutor
from zonesniper.state.series_store import SeriesStore


def build_analysis_config(settings: Settings) -> AnalysisConfig:
    """
    Traduce Settings a AnalysisConfig.

    Raises:
        InvalidConfigurationError: cualquier regla de negocio violada
    """
    direction = None
    if settings.direction:
        try:
            direction = TradeDirection(settings.direction.strip().lower())
        except ValueError:
            raise InvalidConfigurationError(
                "direction debe ser 'long' o 'short'", field="direction", value=settings.direction,
            ) from None

    try:
        goal = OptimizationGoal(settings.optimization_goal.strip().lower())
    except ValueError:
        raise InvalidConfigurationError(
            "optimization_goal debe ser max_roi, max_aroi o balanced",
            field="optimization_goal",
            value=settings.optimization_goal,
        ) from None

    return AnalysisConfig(
        zones=ZoneDetectorConfig(
            price_buckets=settings.zone_price_buckets,
            min_candles=settings.zone_min_candles,
            min_wick_cluster=settings.zone_min_wick_cluster,
            time_decay_factor=settings.time_decay_factor,
        ),
        fingerprint=FingerprintConfig(
            window=settings.fingerprint_window,
            volatility_low_pct=settings.volatility_low_pct,
            volatility_high_pct=settings.volatility_high_pct,
            momentum_flat_band=settings.momentum_flat_band,
            volume_low_ratio=settings.volume_low_ratio,
            volume_high_ratio=settings.volume_high_ratio,
        ),
        pathfinder=PathfinderConfig(
            top_k=settings.top_k,
            forward_horizon=settings.forward_horizon,
            min_separation=settings.min_separation,
            weights=SimilarityWeights(
                volatility=settings.weight_volatility,
                momentum=settings.weight_momentum,
                volume=settings.weight_volume,
            ),
            time_decay_factor=settings.time_decay_factor,
            partition_size=settings.partition_size,
            max_workers=settings.max_workers,
        ),
        ghost=GhostRunnerConfig(
            max_horizon=settings.max_horizon,
            stop_distance_pct=settings.stop_distance_pct,
            max_stopped_win_pct=settings.max_stopped_win_pct,
            stop_volatility_mult=settings.stop_volatility_mult,
            optimization_goal=goal,
            min_roi=settings.min_roi,
            min_aroi=settings.min_aroi,
        ),
        zone_lookback=settings.zone_lookback,
        min_candles=settings.min_candles_for_analysis,
        direction=direction,
    )


@dataclass
class Container:
    """
    Contenedor de Inyección de Dependencias.

    Gestiona el ciclo de vida de las dependencias. Los servicios del
    dominio son stateless y se comparten; los casos de uso se crean
    en cada llamada.
    """

    # Configuración
    settings: Settings = field(default_factory=Settings)

    # Configuración validada del dominio
    _analysis_config: Optional[AnalysisConfig] = None

    # Ports (implementaciones concretas)
    _candle_source: Optional[ICandleSource] = None

    # Estado
    _series_store: Optional[SeriesStore] = None

    # Domain Services (stateless, se pueden compartir)
    _executor: Optional[ParallelExecutor] = None
    _zone_detector: Optional[ZoneDetector] = None
    _fingerprint_generator: Optional[FingerprintGenerator] = None
    _pathfinder: Optional[Pathfinder] = None
    _ghost_runner: Optional[GhostRunner] = None

    # Cache de instancias
    _instances: Dict[str, Any] = field(default_factory=dict)

    # ==================== Configuración ====================

    @property
    def analysis_config(self) -> AnalysisConfig:
        """Configuración del dominio (falla al primer acceso si es inválida)."""
        if self._analysis_config is None:
            self._analysis_config = build_analysis_config(self.settings)
        return self._analysis_config

    # ==================== Domain Services ====================

    @property
    def executor(self) -> ParallelExecutor:
        if self._executor is None:
            self._executor = ParallelExecutor(self.analysis_config.pathfinder.max_workers)
        return self._executor

    @property
    def zone_detector(self) -> ZoneDetector:
        if self._zone_detector is None:
            self._zone_detector = ZoneDetector(self.analysis_config.zones)
        return self._zone_detector

    @property
    def fingerprint_generator(self) -> FingerprintGenerator:
        if self._fingerprint_generator is None:
            self._fingerprint_generator = FingerprintGenerator(self.analysis_config.fingerprint)
        return self._fingerprint_generator

    @property
    def pathfinder(self) -> Pathfinder:
        if self._pathfinder is None:
            self._pathfinder = Pathfinder(
                self.fingerprint_generator, self.analysis_config.pathfinder, self.executor,
            )
        return self._pathfinder

    @property
    def ghost_runner(self) -> GhostRunner:
        if self._ghost_runner is None:
            self._ghost_runner = GhostRunner(self.analysis_config.ghost)
        return self._ghost_runner

    # ==================== Estado ====================

    @property
    def series_store(self) -> SeriesStore:
        if self._series_store is None:
            self._series_store = SeriesStore(gap_tolerance=self.settings.gap_tolerance)
        return self._series_store

    # ==================== Ports ====================

    @property
    def candle_source(self) -> ICandleSource:
        """Obtiene la fuente de velas (CSV local por defecto)."""
        if self._candle_source is None:
            from zonesniper.infrastructure.external.csv_candle_source import CsvCandleSource
            self._candle_source = CsvCandleSource(self.settings.candles_csv_dir)
        return self._candle_source

    # ==================== Use Cases ====================

    def get_run_analysis_usecase(self):
        """
        Factory para RunAnalysisUseCase.

        Cada llamada crea una nueva instancia para evitar estado compartido.
        """
        from zonesniper.application.use_cases.run_analysis_usecase import RunAnalysisUseCase
        return RunAnalysisUseCase(
            config=self.analysis_config,
            zone_detector=self.zone_detector,
            fingerprint_generator=self.fingerprint_generator,
            pathfinder=self.pathfinder,
            ghost_runner=self.ghost_runner,
        )

    def get_ingest_candles_usecase(self):
        """Factory para IngestCandlesUseCase."""
        from zonesniper.application.use_cases.ingest_candles_usecase import IngestCandlesUseCase
        return IngestCandlesUseCase(
            candle_source=self.candle_source,
            series_store=self.series_store,
        )

    def get_backtest_usecase(self, min_win_rate: float = 0.0, use_suggested_stop: bool = True):
        """Factory para WalkForwardBacktestUseCase."""
        from zonesniper.application.use_cases.backtest_usecase import WalkForwardBacktestUseCase
        return WalkForwardBacktestUseCase(
            analysis=self.get_run_analysis_usecase(),
            ghost_runner=self.ghost_runner,
            min_win_rate=min_win_rate,
            use_suggested_stop=use_suggested_stop,
        )

    # ==================== Lifecycle ====================

    def reset(self) -> None:
        """Resetea todas las instancias (útil para tests)."""
        self._analysis_config = None
        self._candle_source = None
        self._series_store = None
        self._executor = None
        self._zone_detector = None
        self._fingerprint_generator = None
        self._pathfinder = None
        self._ghost_runner = None
        self._instances.clear()

    def override(self, name: str, instance: Any) -> None:
        """
        Override una dependencia (útil para tests con mocks).

        Args:
            name: Nombre de la dependencia (ej: 'candle_source')
            instance: Instancia a usar
        """
        attr_name = f"_{name}"
        if hasattr(self, attr_name):
            setattr(self, attr_name, instance)
        else:
            raise ValueError(f"Unknown dependency: {name}")


# ==================== Global Container ====================

_container: Optional[Container] = None


def get_container() -> Container:
    """
    Obtiene la instancia global del contenedor.

    Patrón Singleton para asegurar una única instancia
    compartida en toda la aplicación.
    """
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Resetea el contenedor global."""
    global _container
    if _container is not None:
        _container.reset()
    _container = None


def init_container(settings: Optional[Settings] = None) -> Container:
    """
    Inicializa el contenedor con configuración específica.

    Args:
        settings: Configuración opcional. Si es None, usa valores por defecto.

    Returns:
        Container inicializado
    """
    global _container
    if settings is None:
        settings = Settings()
    _container = Container(settings=settings)
    return _container
