"""
ZoneSniper – Domain Service: Fingerprint Generator
====================================================
Reduce una ventana de N velas a un Fingerprint categórico.

MÉTRICAS CRUDAS (ventana de N velas que termina en i):

    volatility   = media(True Range) / close[i]
    momentum     = (close[i] - open[i-N+1]) / open[i-N+1]
    volume_ratio = media(volumen ventana) / media(volumen serie)

    True Range[j] = max(high[j], close[j-1]) - min(low[j], close[j-1])

UMBRALES:

    volatility : percentiles de TODAS las ventanas de la serie
                 (33.3 / 66.7 por defecto) → LOW ≤ p_low < MEDIUM ≤ p_high < HIGH
    momentum   : banda fija ±0.5% → DOWN < -banda ≤ FLAT ≤ +banda < UP
    volume     : ratios fijos 0.8 / 1.25 → LOW ≤ 0.8 < MEDIUM ≤ 1.25 < HIGH

    Divisores cero (close 0, volumen de serie 0) valen 0: una ventana
    plana sin volumen es siempre (LOW, FLAT, LOW).

RENDIMIENTO:
  profile() calcula las tres métricas de TODAS las ventanas de una vez
  con numpy (sliding_window_view). El Pathfinder luego solo cuantiza
  rangos de índices en paralelo con bucket_codes(). El fingerprint
  "de hoy" y los históricos salen del mismo profile, así que son
  comparables bit a bit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.domain.exceptions.domain_errors import (
    InsufficientDataError,
    InvalidConfigurationError,
)
from zonesniper.domain.value_objects.fingerprint import Fingerprint


@dataclass
class FingerprintConfig:
    """Configuración del generador de fingerprints."""

    window: int = 20
    volatility_low_pct: float = 33.3
    volatility_high_pct: float = 66.7
    momentum_flat_band: float = 0.005
    volume_low_ratio: float = 0.8
    volume_high_ratio: float = 1.25

    def __post_init__(self) -> None:
        if self.window < 2:
            raise InvalidConfigurationError("window debe ser >= 2", field="window", value=self.window)
        if not 0.0 <= self.volatility_low_pct <= self.volatility_high_pct <= 100.0:
            raise InvalidConfigurationError(
                "Percentiles de volatilidad invertidos o fuera de [0, 100]",
                field="volatility_low_pct",
                value=(self.volatility_low_pct, self.volatility_high_pct),
            )
        if self.momentum_flat_band < 0:
            raise InvalidConfigurationError(
                "momentum_flat_band no puede ser negativa",
                field="momentum_flat_band",
                value=self.momentum_flat_band,
            )
        if not 0.0 <= self.volume_low_ratio <= self.volume_high_ratio:
            raise InvalidConfigurationError(
                "Ratios de volumen invertidos",
                field="volume_low_ratio",
                value=(self.volume_low_ratio, self.volume_high_ratio),
            )


@dataclass(frozen=True, eq=False)
class SeriesProfile:
    """
    Métricas crudas por ventana + umbrales de la serie.

    Los arrays tienen el largo de la serie; las posiciones < window-1
    (sin ventana completa) valen NaN.
    """

    window: int
    volatility: np.ndarray
    momentum: np.ndarray
    volume_ratio: np.ndarray
    volatility_low: float
    volatility_high: float
    volume_baseline: float

    def __len__(self) -> int:
        return len(self.volatility)

    @property
    def first_valid_index(self) -> int:
        return self.window - 1

    def metrics_at(self, index: int) -> dict:
        return {
            "volatility": float(self.volatility[index]),
            "momentum": float(self.momentum[index]),
            "volume_ratio": float(self.volume_ratio[index]),
        }


def _safe_ratio(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    return np.divide(num, den, out=np.zeros_like(num, dtype=np.float64), where=den > 0)


class FingerprintGenerator:
    """
    Generador de fingerprints puro y determinista.

    NO mantiene estado: el mismo (serie, config) produce siempre el
    mismo SeriesProfile y por tanto los mismos fingerprints.
    """

    def __init__(self, config: Optional[FingerprintConfig] = None):
        self._config = config or FingerprintConfig()

    @property
    def config(self) -> FingerprintConfig:
        return self._config

    def profile(self, series: CandleSeries) -> SeriesProfile:
        """
        Calcula las métricas de todas las ventanas de la serie.

        Raises:
            InsufficientDataError: si la serie tiene menos de `window` velas
        """
        cfg = self._config
        n, size = len(series), cfg.window
        if n < size:
            raise InsufficientDataError(
                f"Fingerprint requiere {size} velas, hay {n}", required=size, available=n,
            )

        opens, highs, lows, closes = series.opens, series.highs, series.lows, series.closes
        volumes = series.volumes

        prev_close = np.concatenate(([closes[0]], closes[:-1]))
        true_range = np.maximum(highs, prev_close) - np.minimum(lows, prev_close)

        end_close = closes[size - 1:]
        start_open = opens[:n - size + 1]

        volatility = _safe_ratio(sliding_window_view(true_range, size).mean(axis=1), end_close)
        momentum = _safe_ratio(end_close - start_open, start_open)

        baseline = float(volumes.mean())
        mean_volume = sliding_window_view(volumes, size).mean(axis=1)
        if baseline > 0:
            volume_ratio = mean_volume / baseline
        else:
            volume_ratio = np.zeros_like(mean_volume)

        vol_low, vol_high = np.percentile(volatility, [cfg.volatility_low_pct, cfg.volatility_high_pct])

        pad = np.full(size - 1, np.nan)
        profile = SeriesProfile(
            window=size,
            volatility=np.concatenate((pad, volatility)),
            momentum=np.concatenate((pad, momentum)),
            volume_ratio=np.concatenate((pad, volume_ratio)),
            volatility_low=float(vol_low),
            volatility_high=float(vol_high),
            volume_baseline=baseline,
        )
        for arr in (profile.volatility, profile.momentum, profile.volume_ratio):
            arr.setflags(write=False)
        return profile

    def bucket_codes(self, profile: SeriesProfile, start: int, stop: int) -> np.ndarray:
        """
        Cuantiza las ventanas que terminan en [start, stop).

        Returns:
            Array (stop - start, 3) int8 con códigos (volatility, momentum, volume)
        """
        cfg = self._config
        vol = profile.volatility[start:stop]
        mom = profile.momentum[start:stop]
        ratio = profile.volume_ratio[start:stop]

        codes = np.empty((len(vol), 3), dtype=np.int8)
        codes[:, 0] = np.where(vol <= profile.volatility_low, 0, np.where(vol > profile.volatility_high, 2, 1))
        codes[:, 1] = np.where(mom < -cfg.momentum_flat_band, 0, np.where(mom > cfg.momentum_flat_band, 2, 1))
        codes[:, 2] = np.where(ratio <= cfg.volume_low_ratio, 0, np.where(ratio > cfg.volume_high_ratio, 2, 1))
        return codes

    def fingerprint_at(self, profile: SeriesProfile, index: int) -> Fingerprint:
        """Fingerprint de la ventana que termina en `index`."""
        if index < 0:
            index += len(profile)
        if not profile.first_valid_index <= index < len(profile):
            raise InsufficientDataError(
                f"No hay ventana completa que termine en {index}",
                required=profile.window,
                available=index + 1,
            )
        return Fingerprint.from_codes(self.bucket_codes(profile, index, index + 1)[0])

    def generate(self, series: CandleSeries, end_index: Optional[int] = None) -> Fingerprint:
        """Atajo: profile completo + fingerprint de la ventana final (o de end_index)."""
        profile = self.profile(series)
        return self.fingerprint_at(profile, len(series) - 1 if end_index is None else end_index)
