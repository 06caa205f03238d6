"""
CSV Candle Source.

Adapta archivos CSV locales a la interfaz ICandleSource.
Un archivo por símbolo: <data_dir>/<SYMBOL>.csv

Columnas aceptadas (sin distinguir mayúsculas):
- tiempo: open_time | timestamp | time | date
  (epoch en ms o s, o fecha ISO; se normaliza a epoch ms UTC)
- open, high, low, close
- volume (opcional; 0 si falta)
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from zonesniper.application.ports.candle_source import ICandleSource
from zonesniper.domain.entities.candle import Candle
from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.domain.exceptions.domain_errors import ValidationError
from zonesniper.shared.logging.logger import get_logger

logger = get_logger("csv_source")

TIME_COLUMNS = ("open_time", "timestamp", "time", "date")
PRICE_COLUMNS = ("open", "high", "low", "close")

# Epochs por debajo de este valor se interpretan en segundos
_SECONDS_THRESHOLD = 100_000_000_000


def _to_epoch_ms(column: pd.Series) -> pd.Series:
    if pd.api.types.is_numeric_dtype(column):
        values = column.astype("int64")
        if len(values) and values.abs().max() < _SECONDS_THRESHOLD:
            values = values * 1000
        return values
    parsed = pd.to_datetime(column, utc=True)
    return (parsed - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(milliseconds=1)


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normaliza un DataFrame de velas: columnas estándar, orden ASC,
    sin duplicados de open_time (gana la última fila) y sin filas vacías.

    Raises:
        ValidationError: falta la columna de tiempo o alguna de precio
    """
    df = df.rename(columns={c: str(c).strip().lower() for c in df.columns})

    time_col = next((c for c in TIME_COLUMNS if c in df.columns), None)
    if time_col is None:
        raise ValidationError(
            f"CSV sin columna de tiempo (se esperaba una de {', '.join(TIME_COLUMNS)})",
            field="open_time",
        )
    missing = [c for c in PRICE_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError(f"CSV sin columnas {missing}", field="columns", value=missing)

    df = df.dropna(subset=[time_col, *PRICE_COLUMNS])
    out = pd.DataFrame({
        "open_time": _to_epoch_ms(df[time_col]),
        **{c: df[c].astype("float64") for c in PRICE_COLUMNS},
        "volume": df["volume"].fillna(0.0).astype("float64") if "volume" in df.columns else 0.0,
    })
    out = out.sort_values("open_time", kind="mergesort")
    out = out.drop_duplicates(subset="open_time", keep="last")
    return out.reset_index(drop=True)


def candles_from_frame(df: pd.DataFrame) -> List[Candle]:
    """Convierte un DataFrame normalizado en velas del dominio."""
    return [
        Candle(int(t), float(o), float(h), float(lo), float(c), float(v))
        for t, o, h, lo, c, v in zip(
            df["open_time"], df["open"], df["high"], df["low"], df["close"], df["volume"],
        )
    ]


class CsvCandleSource(ICandleSource):
    """
    Implementación de ICandleSource sobre archivos CSV.

    Pensada para backtesting y para el CLI. La lectura (bloqueante)
    corre en un thread para no frenar el event loop.

    Args:
        data_dir: directorio con un <SYMBOL>.csv por activo
        files: rutas explícitas por símbolo (tienen prioridad)
    """

    def __init__(
        self,
        data_dir: Union[str, Path] = "data",
        files: Optional[Dict[str, Union[str, Path]]] = None,
    ):
        self._data_dir = Path(data_dir)
        self._files = {symbol: Path(p) for symbol, p in (files or {}).items()}

    def path_for(self, symbol: str) -> Path:
        return self._files.get(symbol, self._data_dir / f"{symbol}.csv")

    def load_frame(self, symbol: str) -> pd.DataFrame:
        """
        Lee y normaliza el CSV del símbolo.

        Raises:
            FileNotFoundError: no hay archivo para el símbolo
        """
        path = self.path_for(symbol)
        if not path.exists():
            raise FileNotFoundError(f"Archivo de velas no encontrado: {path}")
        df = normalize_frame(pd.read_csv(path))
        logger.debug("CSV %s leído | filas=%d", path, len(df))
        return df

    def load_series(self, symbol: str, interval_ms: Optional[int] = None, gap_tolerance: float = 1.1) -> CandleSeries:
        """Atajo síncrono: el CSV completo como CandleSeries (sin pasar por Candle)."""
        df = self.load_frame(symbol)
        return CandleSeries.from_arrays(
            df["open_time"].to_numpy(),
            df["open"].to_numpy(),
            df["high"].to_numpy(),
            df["low"].to_numpy(),
            df["close"].to_numpy(),
            df["volume"].to_numpy(),
            symbol=symbol,
            interval_ms=interval_ms,
            gap_tolerance=gap_tolerance,
        )

    # ════════════════════════════════════════════════════════════════
    #  ICandleSource Implementation
    # ════════════════════════════════════════════════════════════════

    async def get_candles(
        self,
        symbol: str,
        interval_ms: int,
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Candle]:
        df = await asyncio.to_thread(self.load_frame, symbol)
        if since is not None:
            df = df[df["open_time"] >= since]
        if limit is not None:
            df = df.tail(limit)
        return candles_from_frame(df)

    async def list_symbols(self) -> List[str]:
        symbols = set(self._files)
        if self._data_dir.is_dir():
            symbols.update(p.stem for p in self._data_dir.glob("*.csv"))
        return sorted(symbols)
