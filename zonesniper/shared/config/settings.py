"""
ZoneSniper – Settings (Pydantic BaseSettings)
=============================================
Configuración centralizada cargada desde variables de entorno / .env.
Se usa pydantic-settings para validación estricta al arranque.

Estos valores son solo la fuente externa. El motor trabaja con los
dataclasses de configuración del dominio (ver container.build_analysis_config),
que vuelven a validar las reglas de negocio (K > 0, umbrales no invertidos...).
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ─── Datos ──────────────────────────────────────────────────────────
    candles_csv_dir: str = Field(
        default="data", description="Directorio con los CSV de velas (<SYMBOL>.csv)",
    )
    default_interval_ms: int = Field(
        default=3_600_000, description="Intervalo de vela por defecto (1h)",
    )
    gap_tolerance: float = Field(
        default=1.1, description="Salto temporal > tolerancia × intervalo se reporta como gap",
    )
    min_candles_for_analysis: int = Field(
        default=250, description="Velas mínimas para lanzar un análisis completo",
    )

    # ─── Zone Detector (CVA) ────────────────────────────────────────────
    zone_price_buckets: int = Field(
        default=256, description="Bandas de precio en que se divide el rango observado",
    )
    zone_lookback: int = Field(
        default=500, description="Velas de la ventana usada para detectar zonas",
    )
    zone_min_candles: int = Field(
        default=20, description="Ventana mínima; por debajo se devuelve un set vacío",
    )
    zone_min_wick_cluster: int = Field(
        default=3, description="Mechas mínimas para aceptar una Rejection Zone",
    )
    time_decay_factor: float = Field(
        default=1.0, description="1.0 = sin decaimiento; > 1.0 = decaimiento anualizado",
    )

    # ─── Fingerprint ────────────────────────────────────────────────────
    fingerprint_window: int = Field(
        default=20, description="Velas que componen el ADN del mercado",
    )
    volatility_low_pct: float = Field(
        default=33.3, description="Percentil histórico que separa volatilidad baja/media",
    )
    volatility_high_pct: float = Field(
        default=66.7, description="Percentil histórico que separa volatilidad media/alta",
    )
    momentum_flat_band: float = Field(
        default=0.005, description="Banda ± (fracción) considerada momentum plano",
    )
    volume_low_ratio: float = Field(
        default=0.8, description="Ratio volumen/baseline por debajo del cual es bajo",
    )
    volume_high_ratio: float = Field(
        default=1.25, description="Ratio volumen/baseline por encima del cual es alto",
    )

    # ─── Pathfinder ─────────────────────────────────────────────────────
    top_k: int = Field(default=50, description="Número de coincidencias históricas")
    forward_horizon: int = Field(
        default=100, description="Velas de continuación que deben existir tras cada ventana",
    )
    min_separation: Optional[int] = Field(
        default=None, description="Separación mínima entre matches (None = fingerprint_window)",
    )
    weight_volatility: float = Field(default=1.0, description="Peso del bucket de volatilidad")
    weight_momentum: float = Field(default=1.0, description="Peso del bucket de momentum")
    weight_volume: float = Field(default=1.0, description="Peso del bucket de volumen")
    partition_size: int = Field(
        default=50_000, description="Ventanas por partición del escaneo paralelo",
    )
    max_workers: Optional[int] = Field(
        default=None, description="Hilos del pool (None = CPUs disponibles)",
    )

    # ─── Ghost Runner ───────────────────────────────────────────────────
    max_horizon: int = Field(
        default=100, description="Velas máximas de replay antes de declarar Timeout",
    )
    stop_distance_pct: float = Field(
        default=0.01, description="Distancia del stop simulado como fracción del precio",
    )
    max_stopped_win_pct: float = Field(
        default=0.2, description="Fracción máxima de ganadores que el stop sugerido puede cortar",
    )
    stop_volatility_mult: float = Field(
        default=2.0, description="Stop sugerido nunca más cerca que volatilidad × mult",
    )
    optimization_goal: str = Field(
        default="max_roi", description="Criterio del torneo de stops: max_roi, max_aroi o balanced",
    )
    min_roi: float = Field(default=0.0, description="ROI mínimo por trade para que una variante compita")
    min_aroi: float = Field(default=0.0, description="ROI anualizado mínimo para que una variante compita")
    direction: Optional[str] = Field(
        default=None, description="Forzar dirección ('long' / 'short'); None = según momentum",
    )

    # ─── Runtime ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Nivel de logging")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "ZONESNIPER_",
        "case_sensitive": False,
    }


# Singleton global – se importa donde se necesite
settings = Settings()
