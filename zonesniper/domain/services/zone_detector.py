"""
ZoneSniper – Domain Service: Zone Detector
============================================
Detección de Sticky Zones y Rejection Zones por Cumulative Volume
Analysis (CVA) sobre una ventana de velas.

═══════════════════════════════════════════════════════════════
         HISTOGRAMAS DE PRECIO
═══════════════════════════════════════════════════════════════

El rango observado [min(low), max(high)] se divide en `price_buckets`
bandas de igual ancho.

STICKY (volumen):
  Cada vela reparte volumen × peso_temporal A PARTES IGUALES entre
  todas las bandas que toca su rango [low, high]. El volumen se
  conserva: la suma del histograma es el volumen (ponderado) de la
  ventana. Una vela sin rango pone todo su volumen en una banda.

REJECTION (mechas):
  Mecha inferior: low → min(open, close)
  Mecha superior: max(open, close) → high
  Cada mecha suma su peso temporal COMPLETO a cada banda que toca
  (no se reparte): se cuenta presencia, no masa.

═══════════════════════════════════════════════════════════════
         CLASIFICACIÓN
═══════════════════════════════════════════════════════════════

  1. Viabilidad: bandas < viability_pct × total se ponen a 0
  2. Media móvil centrada, ventana impar ceil(B × smooth_pct) | 1
  3. Normalizar por el máximo → scores en [0, 1]
  4. Umbral = clamp(media + sigma × std, 0.05, 0.95)
  5. Agrupar bandas ≥ umbral tolerando huecos de ceil(B × gap_pct)

Una Rejection Zone además necesita al menos `min_wick_cluster` velas
cuya mecha TERMINE dentro de la banda. Las zonas de mechas inferiores
solo se conservan por debajo del precio de referencia y las de mechas
superiores por encima: al moverse el precio, las zonas cercanas pueden
aparecer o desaparecer.

DECAIMIENTO TEMPORAL:
  peso = decay ** (progreso × max(años_de_ventana, 1))
  progreso = 0 en la vela más antigua, 1 en la más reciente.
  decay = 1.0 (por defecto) desactiva el decaimiento.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from zonesniper.domain.entities.candle_series import YEAR_MS, CandleSeries
from zonesniper.domain.entities.zone import WickSide, Zone, ZoneKind
from zonesniper.domain.exceptions.domain_errors import InvalidConfigurationError
from zonesniper.domain.value_objects.zone_set import ZoneSet


@dataclass
class ZoneClassifierParams:
    """Parámetros del pipeline de clasificación de un histograma."""

    smooth_pct: float
    gap_pct: float
    viability_pct: float
    sigma: float

    def validate(self, name: str) -> None:
        for attr in ("smooth_pct", "gap_pct", "viability_pct"):
            value = getattr(self, attr)
            if not 0.0 <= value <= 1.0:
                raise InvalidConfigurationError(
                    f"{name}.{attr} debe estar en [0, 1]", field=f"{name}.{attr}", value=value,
                )
        if self.sigma < 0:
            raise InvalidConfigurationError(
                f"{name}.sigma no puede ser negativo", field=f"{name}.sigma", value=self.sigma,
            )


@dataclass
class ZoneDetectorConfig:
    """Configuración del detector de zonas."""

    price_buckets: int = 256
    min_candles: int = 20
    min_wick_cluster: int = 3
    time_decay_factor: float = 1.0
    sticky: ZoneClassifierParams = field(
        default_factory=lambda: ZoneClassifierParams(smooth_pct=0.02, gap_pct=0.01, viability_pct=0.001, sigma=0.2)
    )
    rejection: ZoneClassifierParams = field(
        default_factory=lambda: ZoneClassifierParams(smooth_pct=0.005, gap_pct=0.0, viability_pct=0.0005, sigma=1.5)
    )

    def __post_init__(self) -> None:
        if self.price_buckets < 2:
            raise InvalidConfigurationError(
                "price_buckets debe ser >= 2", field="price_buckets", value=self.price_buckets,
            )
        if self.min_candles < 1:
            raise InvalidConfigurationError(
                "min_candles debe ser positivo", field="min_candles", value=self.min_candles,
            )
        if self.min_wick_cluster < 1:
            raise InvalidConfigurationError(
                "min_wick_cluster debe ser positivo", field="min_wick_cluster", value=self.min_wick_cluster,
            )
        if self.time_decay_factor <= 0:
            raise InvalidConfigurationError(
                "time_decay_factor debe ser > 0", field="time_decay_factor", value=self.time_decay_factor,
            )
        self.sticky.validate("sticky")
        self.rejection.validate("rejection")


# ════════════════════════════════════════════════════════════════
#  Helpers numéricos (puros)
# ════════════════════════════════════════════════════════════════

def temporal_weights(open_times: np.ndarray, decay_factor: float) -> np.ndarray:
    """Peso por vela; 1.0 constante si no hay decaimiento."""
    n = len(open_times)
    if decay_factor == 1.0 or n < 2:
        return np.ones(n)
    span = float(open_times[-1] - open_times[0])
    if span <= 0:
        return np.ones(n)
    years = max(span / YEAR_MS, 1.0)
    progress = (open_times - open_times[0]) / span
    return decay_factor ** (progress * years)


def _band_index(prices: np.ndarray, low: float, span: float, buckets: int) -> np.ndarray:
    idx = np.floor((prices - low) / span * buckets).astype(np.int64)
    return np.clip(idx, 0, buckets - 1)


def _accumulate(starts, ends, amounts, low: float, span: float, buckets: int, conserve: bool) -> np.ndarray:
    """Suma `amounts` sobre las bandas [start, end] con un array de diferencias."""
    first = _band_index(starts, low, span, buckets)
    last = _band_index(ends, low, span, buckets)
    share = amounts / (last - first + 1) if conserve else amounts
    diff = np.zeros(buckets + 1)
    np.add.at(diff, first, share)
    np.add.at(diff, last + 1, -share)
    # cumsum deja residuos ~1e-17 en bandas vacías
    return np.maximum(np.cumsum(diff[:-1]), 0.0)


def _smooth(values: np.ndarray, window: int) -> np.ndarray:
    """Media móvil centrada; en los bordes promedia solo vecinos existentes."""
    if window <= 1:
        return values.copy()
    kernel = np.ones(window)
    total = np.convolve(values, kernel, mode="same")
    count = np.convolve(np.ones_like(values), kernel, mode="same")
    return total / count


def _cluster(indices: np.ndarray, max_gap: int) -> List[Tuple[int, int]]:
    clusters: List[Tuple[int, int]] = []
    if len(indices) == 0:
        return clusters
    start = prev = int(indices[0])
    for idx in indices[1:]:
        idx = int(idx)
        if idx - prev > max_gap + 1:
            clusters.append((start, prev))
            start = idx
        prev = idx
    clusters.append((start, prev))
    return clusters


def classify_bands(hist: np.ndarray, resource_total: float, params: ZoneClassifierParams) -> List[Tuple[int, int]]:
    """Pipeline viabilidad → suavizado → normalización → umbral → clusters."""
    buckets = len(hist)
    if resource_total <= 0:
        return []

    gated = np.where(hist >= params.viability_pct * resource_total, hist, 0.0)

    window = max(1, math.ceil(buckets * params.smooth_pct)) | 1
    window = min(window, buckets if buckets % 2 else buckets - 1)
    smoothed = _smooth(gated, window)

    peak = float(smoothed.max())
    if peak <= 0:
        return []
    scores = smoothed / peak
    threshold = float(np.clip(scores.mean() + params.sigma * scores.std(), 0.05, 0.95))

    max_gap = math.ceil(buckets * params.gap_pct)
    return _cluster(np.flatnonzero(scores >= threshold), max_gap)


class ZoneDetector:
    """
    Detector de zonas estructurales.

    Stateless: detect() es una función pura de (ventana, config,
    precio de referencia). El mismo input produce siempre el mismo
    ZoneSet, en el mismo orden.
    """

    def __init__(self, config: Optional[ZoneDetectorConfig] = None):
        self._config = config or ZoneDetectorConfig()

    @property
    def config(self) -> ZoneDetectorConfig:
        return self._config

    def detect(self, window: CandleSeries, reference_price: Optional[float] = None) -> ZoneSet:
        """
        Detecta zonas en la ventana.

        Args:
            window: velas de lookback (la serie ya recortada)
            reference_price: precio vivo; por defecto el último close

        Returns:
            ZoneSet ordenado por precio. Vacío si la ventana es más corta
            que min_candles o si el rango de precio es degenerado.
        """
        cfg = self._config
        if reference_price is None:
            reference_price = window.last_close

        if len(window) < cfg.min_candles:
            return ZoneSet.empty(reference_price)

        low = float(window.lows.min())
        high = float(window.highs.max())
        span = high - low
        if not span > 0:
            return ZoneSet(range_low=low, range_high=high, reference_price=reference_price)

        weights = temporal_weights(window.open_times, cfg.time_decay_factor)

        zones = self._sticky_zones(window, weights, low, high)
        zones += self._rejection_zones(window, weights, low, high, reference_price)
        zones.sort(key=lambda z: (z.price_low, z.price_high, z.kind.value))

        return ZoneSet(tuple(zones), low, high, reference_price)

    # ── Sticky ──────────────────────────────────────────────────────

    def _sticky_zones(self, window: CandleSeries, weights: np.ndarray, low: float, high: float) -> List[Zone]:
        buckets = self._config.price_buckets
        mass = window.volumes * weights
        hist = _accumulate(window.lows, window.highs, mass, low, high - low, buckets, conserve=True)

        zones = []
        for first, last in classify_bands(hist, float(mass.sum()), self._config.sticky):
            band_low, band_high = self._band_bounds(first, last, low, high)
            zones.append(Zone(
                price_low=band_low,
                price_high=band_high,
                kind=ZoneKind.STICKY,
                strength=float(hist[first:last + 1].sum()),
                formed_from=window.first_time,
                formed_to=window.last_time,
            ))
        return zones

    # ── Rejection ───────────────────────────────────────────────────

    def _rejection_zones(
        self,
        window: CandleSeries,
        weights: np.ndarray,
        low: float,
        high: float,
        reference_price: float,
    ) -> List[Zone]:
        cfg = self._config
        body_bottom = np.minimum(window.opens, window.closes)
        body_top = np.maximum(window.opens, window.closes)

        sides = (
            (WickSide.LOW, window.lows < body_bottom, window.lows, body_bottom, window.lows),
            (WickSide.HIGH, window.highs > body_top, body_top, window.highs, window.highs),
        )

        zones = []
        for side, has_wick, starts, ends, tips in sides:
            if not has_wick.any():
                continue
            hist = _accumulate(
                starts[has_wick], ends[has_wick], weights[has_wick],
                low, high - low, cfg.price_buckets, conserve=False,
            )
            tips = tips[has_wick]
            for first, last in classify_bands(hist, float(len(window)), cfg.rejection):
                band_low, band_high = self._band_bounds(first, last, low, high)
                count = int(((tips >= band_low) & (tips <= band_high)).sum())
                if count < cfg.min_wick_cluster:
                    continue
                center = (band_low + band_high) / 2.0
                if side is WickSide.LOW and center > reference_price:
                    continue
                if side is WickSide.HIGH and center < reference_price:
                    continue
                zones.append(Zone(
                    price_low=band_low,
                    price_high=band_high,
                    kind=ZoneKind.REJECTION,
                    strength=float(count),
                    formed_from=window.first_time,
                    formed_to=window.last_time,
                    wick=side,
                ))
        return zones

    def _band_bounds(self, first: int, last: int, low: float, high: float) -> Tuple[float, float]:
        buckets = self._config.price_buckets
        width = (high - low) / buckets
        band_low = low + first * width
        band_high = high if last == buckets - 1 else min(high, low + (last + 1) * width)
        return band_low, band_high
