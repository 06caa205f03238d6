"""
ZoneSniper – Domain Service: Ghost Runner
===========================================
Replay hacia delante de la continuación REAL de cada match.

═══════════════════════════════════════════════════════════════
            FLUJO DE UN REPLAY
═══════════════════════════════════════════════════════════════

    entry = close[i]   (última vela de la ventana histórica)
        │
        ▼
    para j = i+1 … min(i + horizonte, presente - 1):
        │
        ├── LONG:  low[j]  ≤ entry × (1 - stop)   → LOSS
        ├── LONG:  high[j] ≥ entry × (1 + target) → WIN
        ├── SHORT: high[j] ≥ entry × (1 + stop)   → LOSS
        └── SHORT: low[j]  ≤ entry × (1 - target) → WIN
        │
        ▼
    sin toque → TIMEOUT (retorno = movimiento close a close)

  El stop se evalúa ANTES que el objetivo: si ambos caben en la
  misma vela no sabemos cuál llegó primero y asumimos lo peor.

ANTI-LOOKAHEAD:
  El replay nunca lee la vela viva ni nada posterior (end_index),
  y se detiene en la vela que resuelve el match: dos series que
  coinciden hasta ese punto producen el mismo outcome.

STOP SUGERIDO:
  Para cada match que llega al objetivo (ignorando stops) se mide la
  máxima excursión adversa (MAE) hasta el toque. Candidatos:

      stop_r = target / rr     rr ∈ (1, 1.5, 2, 3, 4, 6, 10)
      descartando stops < volatilidad_actual × stop_volatility_mult

  Se elige el candidato MÁS AJUSTADO que no corta más de
  max_stopped_win_pct de esos ganadores (MAE ≥ stop).

TORNEO DE STOPS:
  stop_tournament() simula cada stop target / rr del grid contra una
  zona objetivo y puntúa las variantes por ROI, ROI anualizado o ambos
  (optimization_goal). El caso de uso lo corre para cada zona en la
  dirección de la operación.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.domain.entities.match import Match, MatchOutcome, OutcomeKind
from zonesniper.domain.exceptions.domain_errors import InvalidConfigurationError
from zonesniper.domain.value_objects.simulation_result import SimulationResult
from zonesniper.domain.value_objects.stop_tournament import (
    OptimizationGoal,
    StopVariant,
    TargetCandidate,
    annualized_roi,
)
from zonesniper.domain.value_objects.target_band import TargetBand
from zonesniper.domain.value_objects.trade_direction import TradeDirection


@dataclass
class GhostRunnerConfig:
    """Configuración del simulador de outcomes."""

    max_horizon: int = 100
    stop_distance_pct: float = 0.01
    max_stopped_win_pct: float = 0.2
    stop_volatility_mult: float = 2.0
    risk_reward_grid: Tuple[float, ...] = (1.0, 1.5, 2.0, 3.0, 4.0, 6.0, 10.0)
    optimization_goal: OptimizationGoal = OptimizationGoal.MAX_ROI
    min_roi: float = 0.0
    min_aroi: float = 0.0

    def __post_init__(self) -> None:
        if self.max_horizon < 1:
            raise InvalidConfigurationError(
                "max_horizon debe ser >= 1", field="max_horizon", value=self.max_horizon,
            )
        if not 0.0 < self.stop_distance_pct < 1.0:
            raise InvalidConfigurationError(
                "stop_distance_pct debe estar en (0, 1)", field="stop_distance_pct", value=self.stop_distance_pct,
            )
        if not 0.0 <= self.max_stopped_win_pct <= 1.0:
            raise InvalidConfigurationError(
                "max_stopped_win_pct debe estar en [0, 1]",
                field="max_stopped_win_pct",
                value=self.max_stopped_win_pct,
            )
        if self.stop_volatility_mult < 0:
            raise InvalidConfigurationError(
                "stop_volatility_mult no puede ser negativo",
                field="stop_volatility_mult",
                value=self.stop_volatility_mult,
            )
        if not self.risk_reward_grid or min(self.risk_reward_grid) <= 0:
            raise InvalidConfigurationError(
                "risk_reward_grid vacío o con ratios no positivos",
                field="risk_reward_grid",
                value=self.risk_reward_grid,
            )
        if not isinstance(self.optimization_goal, OptimizationGoal):
            raise InvalidConfigurationError(
                "optimization_goal desconocido", field="optimization_goal", value=self.optimization_goal,
            )


def _first_hit(hits: np.ndarray) -> Optional[int]:
    if not hits.any():
        return None
    return int(np.argmax(hits))


class GhostRunner:
    """
    Simulador de outcomes sobre la historia real.

    Side effects: ninguno. run() construye un SimulationResult nuevo
    a partir de sus entradas.
    """

    def __init__(self, config: Optional[GhostRunnerConfig] = None):
        self._config = config or GhostRunnerConfig()

    @property
    def config(self) -> GhostRunnerConfig:
        return self._config

    # ════════════════════════════════════════════════════════════════
    #  1. REPLAY DE UNA ENTRADA
    # ════════════════════════════════════════════════════════════════

    def replay(
        self,
        series: CandleSeries,
        entry_index: int,
        direction: TradeDirection,
        target_pct: float,
        stop_pct: float,
        end_index: Optional[int] = None,
        horizon: Optional[int] = None,
    ) -> MatchOutcome:
        """
        Reproduce la entrada en close[entry_index] hasta resolverla.

        Args:
            end_index: última vela utilizable (inclusive); por defecto la última
            horizon: velas máximas; por defecto config.max_horizon
        """
        horizon = horizon or self._config.max_horizon
        if end_index is None:
            end_index = len(series) - 1

        entry = float(series.closes[entry_index])
        last = min(entry_index + horizon, end_index)
        if last <= entry_index or entry <= 0:
            return MatchOutcome(OutcomeKind.TIMEOUT, entry_index, int(series.open_times[entry_index]), 0, 0.0)

        lows = series.lows[entry_index + 1:last + 1]
        highs = series.highs[entry_index + 1:last + 1]

        if direction is TradeDirection.LONG:
            stop_hit = _first_hit(lows <= entry * (1.0 - stop_pct))
            target_hit = _first_hit(highs >= entry * (1.0 + target_pct))
        else:
            stop_hit = _first_hit(highs >= entry * (1.0 + stop_pct))
            target_hit = _first_hit(lows <= entry * (1.0 - target_pct))

        if stop_hit is not None and (target_hit is None or stop_hit <= target_hit):
            kind, offset, realized = OutcomeKind.LOSS, stop_hit, -stop_pct
        elif target_hit is not None:
            kind, offset, realized = OutcomeKind.WIN, target_hit, target_pct
        else:
            offset = last - entry_index - 1
            exit_close = float(series.closes[last])
            kind, realized = OutcomeKind.TIMEOUT, direction.sign * (exit_close - entry) / entry

        exit_index = entry_index + 1 + offset
        return MatchOutcome(
            kind=kind,
            exit_index=exit_index,
            exit_time=int(series.open_times[exit_index]),
            candles_elapsed=offset + 1,
            realized_return=realized,
        )

    def adverse_excursion(
        self,
        series: CandleSeries,
        entry_index: int,
        direction: TradeDirection,
        target_pct: float,
        end_index: int,
    ) -> Optional[float]:
        """MAE (fracción) hasta el primer toque del objetivo; None si no lo toca."""
        entry = float(series.closes[entry_index])
        last = min(entry_index + self._config.max_horizon, end_index)
        if last <= entry_index or entry <= 0:
            return None

        lows = series.lows[entry_index + 1:last + 1]
        highs = series.highs[entry_index + 1:last + 1]
        if direction is TradeDirection.LONG:
            hit = _first_hit(highs >= entry * (1.0 + target_pct))
            if hit is None:
                return None
            worst = (entry - float(lows[:hit + 1].min())) / entry
        else:
            hit = _first_hit(lows <= entry * (1.0 - target_pct))
            if hit is None:
                return None
            worst = (float(highs[:hit + 1].max()) - entry) / entry
        return max(worst, 0.0)

    def suggest_stop(
        self,
        excursions: Sequence[float],
        target_pct: float,
        current_volatility: float = 0.0,
    ) -> Optional[float]:
        """Stop más ajustado que respeta max_stopped_win_pct (ver docstring del módulo)."""
        if not excursions:
            return None
        cfg = self._config
        floor = current_volatility * cfg.stop_volatility_mult
        candidates = sorted({target_pct / rr for rr in cfg.risk_reward_grid if target_pct / rr >= floor})
        total = len(excursions)
        for stop in candidates:
            stopped = sum(1 for mae in excursions if mae >= stop)
            if stopped / total <= cfg.max_stopped_win_pct:
                return stop
        return None

    # ════════════════════════════════════════════════════════════════
    #  2. AGREGADO SOBRE LOS MATCHES
    # ════════════════════════════════════════════════════════════════

    def run(
        self,
        series: CandleSeries,
        matches: Sequence[Match],
        target: Optional[TargetBand],
        present_index: Optional[int] = None,
        current_volatility: float = 0.0,
        requested_k: int = 0,
        eligible_windows: int = 0,
    ) -> SimulationResult:
        """
        Simula cada match y agrega win rate, ROI esperado y stop sugerido.

        Args:
            series: el mismo snapshot sobre el que se calcularon los matches
            matches: salida del Pathfinder (orden de ranking)
            target: objetivo relativo; None si no hay zona en la dirección
            present_index: vela viva (el replay se detiene antes); por defecto la última
            current_volatility: volatilidad cruda actual (suelo del stop sugerido)
        """
        if present_index is None:
            present_index = len(series) - 1
        end_index = present_index - 1
        stop_pct = self._config.stop_distance_pct

        if target is None:
            return SimulationResult(
                sample_size=len(matches),
                matches=tuple(matches),
                requested_k=requested_k,
                eligible_windows=eligible_windows,
                stop_distance_pct=stop_pct,
                notes=("Sin zona objetivo en la dirección esperada",),
            )

        replayed: List[Match] = []
        excursions: List[float] = []
        for match in matches:
            outcome = self.replay(
                series, match.source_index, target.direction, target.distance_pct, stop_pct, end_index,
            )
            replayed.append(match.with_outcome(outcome))
            mae = self.adverse_excursion(
                series, match.source_index, target.direction, target.distance_pct, end_index,
            )
            if mae is not None:
                excursions.append(mae)

        outcomes = [m.outcome for m in replayed]
        wins = [o for o in outcomes if o.kind is OutcomeKind.WIN]
        losses = [o for o in outcomes if o.kind is OutcomeKind.LOSS]
        resolved = wins + losses

        return SimulationResult(
            win_rate=len(wins) / len(resolved) if resolved else None,
            expected_roi=sum(o.realized_return for o in resolved) / len(resolved) if resolved else None,
            suggested_stop=self.suggest_stop(excursions, target.distance_pct, current_volatility),
            sample_size=len(replayed),
            matches=tuple(replayed),
            wins=len(wins),
            losses=len(losses),
            timeouts=len(outcomes) - len(resolved),
            requested_k=requested_k,
            eligible_windows=eligible_windows,
            direction=target.direction,
            target_distance_pct=target.distance_pct,
            stop_distance_pct=stop_pct,
            avg_candles_to_target=sum(o.candles_elapsed for o in wins) / len(wins) if wins else None,
        )

    # ════════════════════════════════════════════════════════════════
    #  3. TORNEO DE STOPS POR ZONA
    # ════════════════════════════════════════════════════════════════

    def stop_tournament(
        self,
        series: CandleSeries,
        matches: Sequence[Match],
        target: TargetBand,
        present_index: Optional[int] = None,
        current_volatility: float = 0.0,
    ) -> TargetCandidate:
        """
        Simula cada stop del grid contra el mismo objetivo y elige el mejor.

        Cada variante usa los mismos matches y el mismo end_index que run().
        best es la variante con mayor score entre las que superan
        min_roi / min_aroi; None si ninguna las supera.
        """
        cfg = self._config
        if present_index is None:
            present_index = len(series) - 1
        end_index = present_index - 1
        if not matches:
            return TargetCandidate(target=target)

        floor = current_volatility * cfg.stop_volatility_mult
        variants: List[StopVariant] = []
        for rr in sorted(set(cfg.risk_reward_grid)):
            stop_pct = target.distance_pct / rr
            if stop_pct < floor or stop_pct >= 1.0:
                continue
            outcomes = [
                self.replay(series, m.source_index, target.direction, target.distance_pct, stop_pct, end_index)
                for m in matches
            ]
            variants.append(self._score_variant(rr, stop_pct, outcomes, series.interval_ms))

        worthwhile = [v for v in variants if v.is_worthwhile]
        best = max(worthwhile, key=lambda v: (v.score, v.risk_reward), default=None)
        return TargetCandidate(target=target, variants=tuple(variants), best=best)

    def _score_variant(
        self,
        risk_reward: float,
        stop_pct: float,
        outcomes: Sequence[MatchOutcome],
        interval_ms: int,
    ) -> StopVariant:
        cfg = self._config
        roi = sum(o.realized_return for o in outcomes) / len(outcomes)
        avg_candles = sum(o.candles_elapsed for o in outcomes) / len(outcomes)
        aroi = annualized_roi(roi, avg_candles * (interval_ms or 0))
        return StopVariant(
            risk_reward=risk_reward,
            stop_pct=stop_pct,
            wins=sum(1 for o in outcomes if o.kind is OutcomeKind.WIN),
            losses=sum(1 for o in outcomes if o.kind is OutcomeKind.LOSS),
            timeouts=sum(1 for o in outcomes if o.kind is OutcomeKind.TIMEOUT),
            roi=roi,
            aroi=aroi,
            avg_candles=avg_candles,
            score=cfg.optimization_goal.score(roi, aroi),
            is_worthwhile=roi >= cfg.min_roi and aroi >= cfg.min_aroi,
        )
