"""
ZoneSniper – Domain Service: Pathfinder
=========================================
Escaneo de TODAS las ventanas históricas de la serie para encontrar
las top-K cuyo fingerprint más se parece al actual.

═══════════════════════════════════════════════════════════════
            VENTANAS ELEGIBLES
═══════════════════════════════════════════════════════════════

  Una ventana de N velas que termina en i es elegible si:

    N-1 ≤ i                       (ventana completa)
    i ≤ presente - N              (no solapa la ventana viva)
    i + horizonte < presente      (la continuación existe ANTES de la
                                   vela viva → sin lookahead)
    [i-N+1, i+horizonte] sin gaps (política de exclusión)

═══════════════════════════════════════════════════════════════
            SCORE Y RANKING
═══════════════════════════════════════════════════════════════

  score = Σ peso_d × [bucket_d(i) == bucket_d(hoy)]     d ∈ {vol, mom, vlm}
  (× decay^(-edad_en_años) si el decaimiento está activo)

  Orden: score DESC → recencia DESC (índice mayor primero).
  Selección voraz en ese orden saltando ventanas a menos de
  `min_separation` velas de una ya elegida, hasta K.

═══════════════════════════════════════════════════════════════
            PARALELISMO DETERMINISTA
═══════════════════════════════════════════════════════════════

  Rango elegible ──▸ particiones de tamaño FIJO (no dependen del
  número de workers)

  Cada worker devuelve un buffer local podado de forma EXACTA:

    "anclas" = candidatos elegidos en orden de ranking con separación
               ≥ 2·sep - 1 entre sí.

    Cada ancla tiene un testigo seleccionado globalmente (ella misma o
    una ventana mejor a < sep de ella), y dos anclas no comparten
    testigo. Con K anclas ya hay K selecciones por delante: todo lo
    que rankea detrás de la K-ésima ancla es descartable.

  Merge: concatenar buffers → mismo orden → misma selección voraz.
  El resultado es idéntico con 1 o N workers y con cualquier tamaño
  de partición. No hay acumulador compartido mutable.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from zonesniper.domain.entities.candle_series import YEAR_MS, CandleSeries
from zonesniper.domain.entities.match import Match
from zonesniper.domain.exceptions.domain_errors import (
    AnalysisSupersededError,
    InvalidConfigurationError,
    ValidationError,
)
from zonesniper.domain.services.fingerprint_generator import FingerprintGenerator, SeriesProfile
from zonesniper.domain.value_objects.fingerprint import Fingerprint
from zonesniper.shared.parallel.executor import ParallelExecutor


@dataclass
class SimilarityWeights:
    """Peso de cada dimensión del fingerprint en el score."""

    volatility: float = 1.0
    momentum: float = 1.0
    volume: float = 1.0

    def as_array(self) -> np.ndarray:
        return np.array([self.volatility, self.momentum, self.volume], dtype=np.float64)


@dataclass
class PathfinderConfig:
    """Configuración del escaneo histórico."""

    top_k: int = 50
    forward_horizon: int = 100
    min_separation: Optional[int] = None    # None → ventana del fingerprint
    weights: SimilarityWeights = field(default_factory=SimilarityWeights)
    time_decay_factor: float = 1.0
    partition_size: int = 50_000
    max_workers: Optional[int] = None
    exclude_gaps: bool = True

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise InvalidConfigurationError("top_k debe ser >= 1", field="top_k", value=self.top_k)
        if self.forward_horizon < 1:
            raise InvalidConfigurationError(
                "forward_horizon debe ser >= 1", field="forward_horizon", value=self.forward_horizon,
            )
        if self.min_separation is not None and self.min_separation < 0:
            raise InvalidConfigurationError(
                "min_separation no puede ser negativa", field="min_separation", value=self.min_separation,
            )
        w = self.weights.as_array()
        if (w < 0).any() or w.sum() <= 0:
            raise InvalidConfigurationError(
                "Pesos de similitud negativos o todos cero", field="weights", value=tuple(w),
            )
        if self.time_decay_factor <= 0:
            raise InvalidConfigurationError(
                "time_decay_factor debe ser > 0", field="time_decay_factor", value=self.time_decay_factor,
            )
        if self.partition_size < 1:
            raise InvalidConfigurationError(
                "partition_size debe ser >= 1", field="partition_size", value=self.partition_size,
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidConfigurationError(
                "max_workers debe ser >= 1", field="max_workers", value=self.max_workers,
            )


@dataclass(frozen=True)
class PathfinderResult:
    matches: Tuple[Match, ...]
    requested_k: int
    eligible_windows: int
    partitions: int

    @property
    def sample_size(self) -> int:
        return len(self.matches)

    @property
    def is_partial(self) -> bool:
        return self.sample_size < self.requested_k


@dataclass(frozen=True, eq=False)
class _PartitionBuffer:
    indices: np.ndarray
    scores: np.ndarray
    eligible: int


def _is_clear(selected: List[int], index: int, gap: int) -> bool:
    """True si `index` está a >= gap de todos los elegidos (lista ordenada)."""
    pos = bisect.bisect_left(selected, index)
    if pos < len(selected) and selected[pos] - index < gap:
        return False
    if pos > 0 and index - selected[pos - 1] < gap:
        return False
    return True


def rank_order(indices: np.ndarray, scores: np.ndarray) -> np.ndarray:
    """Permutación: score DESC, luego índice DESC (más reciente primero)."""
    return np.lexsort((-indices, -scores))


def select_greedy(indices: np.ndarray, scores: np.ndarray, k: int, separation: int) -> List[int]:
    """Posiciones (en orden de ranking) de la selección voraz con separación."""
    gap = max(1, separation)
    chosen: List[int] = []
    taken: List[int] = []
    for pos in rank_order(indices, scores):
        i = int(indices[pos])
        if _is_clear(taken, i, gap):
            bisect.insort(taken, i)
            chosen.append(int(pos))
            if len(chosen) == k:
                break
    return chosen


def prune_buffer(indices: np.ndarray, scores: np.ndarray, k: int, separation: int) -> np.ndarray:
    """Posiciones que pueden acabar en la selección global (ver docstring del módulo)."""
    order = rank_order(indices, scores)
    anchor_gap = max(1, 2 * separation - 1)
    anchors: List[int] = []
    for rank, pos in enumerate(order):
        i = int(indices[pos])
        if _is_clear(anchors, i, anchor_gap):
            bisect.insort(anchors, i)
            if len(anchors) == k:
                return order[:rank + 1]
    return order


class Pathfinder:
    """
    Escáner histórico de ventanas similares.

    RESPONSABILIDAD:
    Puntuar cada ventana elegible contra el fingerprint actual y
    devolver las top-K de forma reproducible.

    NO muta la serie ni el profile: ambos se comparten en solo
    lectura entre todos los workers.
    """

    def __init__(
        self,
        generator: FingerprintGenerator,
        config: Optional[PathfinderConfig] = None,
        executor: Optional[ParallelExecutor] = None,
    ):
        self._generator = generator
        self._config = config or PathfinderConfig()
        self._executor = executor or ParallelExecutor(self._config.max_workers)

    @property
    def config(self) -> PathfinderConfig:
        return self._config

    @property
    def separation(self) -> int:
        if self._config.min_separation is None:
            return self._generator.config.window
        return self._config.min_separation

    def eligible_range(self, profile: SeriesProfile, present_index: int) -> Tuple[int, int]:
        """Rango [start, stop) de índices finales candidatos (antes del filtro de gaps)."""
        size = profile.window
        start = size - 1
        stop = min(present_index - size, present_index - self._config.forward_horizon - 1) + 1
        return start, max(start, stop)

    def score_windows(
        self,
        series: CandleSeries,
        profile: SeriesProfile,
        current: Fingerprint,
        start: int,
        stop: int,
        present_index: int,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Índices elegibles de [start, stop) y su score.

        Es el trabajo de un worker antes de podar; también sirve para
        verificar la selección por fuerza bruta.
        """
        cfg = self._config
        indices = np.arange(start, stop, dtype=np.int64)
        if len(indices) == 0:
            return indices, np.zeros(0)

        codes = self._generator.bucket_codes(profile, start, stop)
        target = np.array(current.codes, dtype=np.int8)
        scores = (codes == target).astype(np.float64) @ cfg.weights.as_array()

        if cfg.time_decay_factor != 1.0:
            ages = (series.open_times[present_index] - series.open_times[start:stop]) / YEAR_MS
            scores = scores * cfg.time_decay_factor ** (-ages)

        if cfg.exclude_gaps and series.gaps:
            spans = series.spans_gap_many(indices - (profile.window - 1), indices + cfg.forward_horizon)
            indices, scores = indices[~spans], scores[~spans]

        return indices, scores

    def scan(
        self,
        series: CandleSeries,
        profile: SeriesProfile,
        current: Fingerprint,
        present_index: Optional[int] = None,
        is_superseded: Optional[Callable[[], bool]] = None,
    ) -> PathfinderResult:
        """
        Busca las top-K ventanas históricas más parecidas a `current`.

        Args:
            series: snapshot de velas (solo lectura)
            profile: métricas de la misma serie (FingerprintGenerator.profile)
            current: fingerprint de la ventana viva
            present_index: vela viva; por defecto la última
            is_superseded: chequeo cooperativo entre particiones

        Returns:
            PathfinderResult con los matches en orden de ranking.
            Si hay menos de K ventanas elegibles devuelve todas
            (is_partial = True), nunca rellena.

        Raises:
            AnalysisSupersededError: si is_superseded() se activa
        """
        if len(profile) != len(series):
            raise ValidationError("El profile no corresponde a la serie", field="profile")
        if present_index is None:
            present_index = len(series) - 1

        cfg = self._config
        start, stop = self.eligible_range(profile, present_index)
        partitions = [
            (lo, min(lo + cfg.partition_size, stop))
            for lo in range(start, stop, cfg.partition_size)
        ]
        separation = self.separation

        def scan_partition(bounds: Tuple[int, int]) -> _PartitionBuffer:
            indices, scores = self.score_windows(series, profile, current, bounds[0], bounds[1], present_index)
            keep = prune_buffer(indices, scores, cfg.top_k, separation)
            return _PartitionBuffer(indices[keep], scores[keep], len(indices))

        buffers: Sequence[_PartitionBuffer] = self._executor.run(
            partitions,
            scan_partition,
            should_stop=is_superseded,
            on_stop=lambda done: AnalysisSupersededError(partitions_done=done),
        )
        if is_superseded is not None and is_superseded():
            raise AnalysisSupersededError(partitions_done=len(partitions))

        if buffers:
            indices = np.concatenate([b.indices for b in buffers])
            scores = np.concatenate([b.scores for b in buffers])
        else:
            indices, scores = np.zeros(0, dtype=np.int64), np.zeros(0)

        matches = tuple(
            Match(
                source_index=int(indices[pos]),
                source_time=int(series.open_times[indices[pos]]),
                similarity_score=float(scores[pos]),
                fingerprint=self._generator.fingerprint_at(profile, int(indices[pos])),
            )
            for pos in select_greedy(indices, scores, cfg.top_k, separation)
        )

        return PathfinderResult(
            matches=matches,
            requested_k=cfg.top_k,
            eligible_windows=sum(b.eligible for b in buffers),
            partitions=len(partitions),
        )
