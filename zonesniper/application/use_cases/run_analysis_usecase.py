"""
Run Analysis Use Case.

Orquesta una pasada completa del motor sobre UN snapshot de velas:

    CandleSeries ──▸ ZoneDetector ──────────────▸ zonas
                 └─▸ FingerprintGenerator ──▸ ADN de hoy
                                  │
                                  ▼
                             Pathfinder ──▸ top-K matches
                                  │
                                  ▼
                             GhostRunner ──▸ SimulationResult
                                  │   └─▸ torneo de stops por zona
                                  │
                                  ▼
                           AnalysisSnapshot (inmutable)

Errores recuperables:
- Serie corta → snapshot vacío con sample_size=0 y advertencia.
- Gaps → advertencias DATA_GAP; las ventanas que los cruzan se excluyen.
- Análisis reemplazado → superseded=True, sin snapshot.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.domain.exceptions.domain_errors import (
    AnalysisSupersededError,
    InsufficientDataError,
)
from zonesniper.domain.services.analysis_config import AnalysisConfig
from zonesniper.domain.services.fingerprint_generator import FingerprintGenerator
from zonesniper.domain.services.ghost_runner import GhostRunner
from zonesniper.domain.services.pathfinder import Pathfinder
from zonesniper.domain.services.zone_detector import ZoneDetector
from zonesniper.domain.value_objects.analysis_snapshot import AnalysisSnapshot
from zonesniper.domain.value_objects.fingerprint import Fingerprint, MomentumBucket
from zonesniper.domain.value_objects.simulation_result import SimulationResult
from zonesniper.domain.value_objects.target_band import TargetBand
from zonesniper.domain.value_objects.trade_direction import TradeDirection
from zonesniper.domain.value_objects.zone_set import ZoneSet
from zonesniper.shared.logging.logger import get_logger

logger = get_logger("run_analysis")


@dataclass
class RunAnalysisResult:
    """Resultado del caso de uso."""
    snapshot: Optional[AnalysisSnapshot] = None
    superseded: bool = False
    elapsed_ms: float = 0.0


class RunAnalysisUseCase:
    """
    Caso de uso: analizar el estado actual del mercado contra su historia.

    Puede invocarse de forma síncrona: todo es cálculo CPU-bound.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        zone_detector: ZoneDetector,
        fingerprint_generator: FingerprintGenerator,
        pathfinder: Pathfinder,
        ghost_runner: GhostRunner,
    ):
        self._config = config
        self._zone_detector = zone_detector
        self._generator = fingerprint_generator
        self._pathfinder = pathfinder
        self._ghost_runner = ghost_runner

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    def execute(
        self,
        series: CandleSeries,
        current_price: Optional[float] = None,
        is_superseded: Optional[Callable[[], bool]] = None,
    ) -> RunAnalysisResult:
        """
        Ejecuta el análisis.

        Args:
            series: snapshot de velas; no se modifica
            current_price: precio vivo; por defecto el último close
            is_superseded: chequeo cooperativo (nuevo precio / nueva config)

        Returns:
            RunAnalysisResult con el snapshot, o superseded=True
        """
        started = time.perf_counter()
        try:
            snapshot = self._analyze(series, current_price, is_superseded)
        except AnalysisSupersededError as exc:
            logger.warning(
                "Análisis %s reemplazado tras %d particiones", series.symbol, exc.partitions_done,
            )
            return RunAnalysisResult(superseded=True, elapsed_ms=(time.perf_counter() - started) * 1000)

        elapsed = (time.perf_counter() - started) * 1000
        sim = snapshot.simulation
        logger.info(
            "Análisis %s | velas=%d zonas=%d fp=%s muestras=%d/%d W=%d L=%d T=%d (%.1f ms)",
            series.symbol, len(series), len(snapshot.zones),
            snapshot.fingerprint.label if snapshot.fingerprint else "-",
            sim.sample_size, sim.requested_k, sim.wins, sim.losses, sim.timeouts, elapsed,
        )
        return RunAnalysisResult(snapshot=snapshot, elapsed_ms=elapsed)

    # ════════════════════════════════════════════════════════════════
    #  Pipeline
    # ════════════════════════════════════════════════════════════════

    def _analyze(
        self,
        series: CandleSeries,
        current_price: Optional[float],
        is_superseded: Optional[Callable[[], bool]],
    ) -> AnalysisSnapshot:
        cfg = self._config
        present = len(series) - 1
        price = current_price if current_price is not None else series.last_close

        warnings: List[dict] = [gap.to_warning() for gap in series.gaps]
        if series.gaps:
            logger.warning(
                "%s tiene %d gaps; se excluyen las ventanas que los cruzan",
                series.symbol, len(series.gaps),
            )

        zones = self._detect_zones(series, price)

        if len(series) < cfg.min_candles:
            error = InsufficientDataError(
                f"Se requieren {cfg.min_candles} velas para el análisis, hay {len(series)}",
                required=cfg.min_candles,
                available=len(series),
            )
            logger.warning("%s: %s", series.symbol, error.message)
            warnings.append(error.to_warning())
            return AnalysisSnapshot(
                symbol=series.symbol,
                as_of_time=series.last_time,
                present_index=present,
                current_price=price,
                zones=zones,
                fingerprint=None,
                simulation=SimulationResult.empty(cfg.pathfinder.top_k, error.message),
                warnings=tuple(warnings),
            )

        profile = self._generator.profile(series)
        current = self._generator.fingerprint_at(profile, present)

        scan = self._pathfinder.scan(series, profile, current, present, is_superseded)
        if scan.is_partial:
            logger.warning(
                "%s: solo %d de %d matches (ventanas elegibles=%d)",
                series.symbol, scan.sample_size, scan.requested_k, scan.eligible_windows,
            )
            warnings.append({
                "code": "PARTIAL_SAMPLE",
                "message": f"{scan.sample_size} de {scan.requested_k} matches solicitados",
                "sample_size": scan.sample_size,
                "requested_k": scan.requested_k,
            })

        direction = self._direction(current, zones, price)
        zone = zones.target_for(direction, price)
        target = TargetBand.from_zone(zone, direction, price) if zone else None

        volatility = profile.metrics_at(present)["volatility"]
        simulation = self._ghost_runner.run(
            series,
            scan.matches,
            target,
            present_index=present,
            current_volatility=volatility,
            requested_k=scan.requested_k,
            eligible_windows=scan.eligible_windows,
        )
        candidates = tuple(
            self._ghost_runner.stop_tournament(
                series,
                scan.matches,
                TargetBand.from_zone(candidate, direction, price),
                present_index=present,
                current_volatility=volatility,
            )
            for candidate in zones.targets_for(direction, price)
        )

        return AnalysisSnapshot(
            symbol=series.symbol,
            as_of_time=series.last_time,
            present_index=present,
            current_price=price,
            zones=zones,
            fingerprint=current,
            simulation=simulation,
            target=target,
            candidates=candidates,
            warnings=tuple(warnings),
        )

    def _detect_zones(self, series: CandleSeries, price: Optional[float]) -> ZoneSet:
        if not len(series):
            return ZoneSet.empty(price)
        return self._zone_detector.detect(series.tail(self._config.zone_lookback), price)

    def _direction(self, current: Fingerprint, zones: ZoneSet, price: float) -> TradeDirection:
        """Dirección configurada, o la que indica el momentum; plano → zona más cercana."""
        if self._config.direction is not None:
            return self._config.direction
        if current.momentum is MomentumBucket.UP:
            return TradeDirection.LONG
        if current.momentum is MomentumBucket.DOWN:
            return TradeDirection.SHORT

        above = zones.target_for(TradeDirection.LONG, price)
        below = zones.target_for(TradeDirection.SHORT, price)
        if above and below:
            return TradeDirection.LONG if above.price_low - price <= price - below.price_high else TradeDirection.SHORT
        return TradeDirection.SHORT if below else TradeDirection.LONG
