"""
ZoneSniper – Application Port: Candle Source
==============================================
Interfaz hacia el proveedor de velas (REST, streaming, caché en disco).

El motor NO hace I/O: los use cases piden velas por este puerto y la
infraestructura decide CÓMO obtenerlas.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from zonesniper.domain.entities.candle import Candle


class ICandleSource(ABC):
    """
    Interfaz para proveer velas históricas e incrementales.

    IMPLEMENTACIONES POSIBLES:
    - CsvCandleSource (archivos locales, backtesting)
    - Cliente REST / WebSocket de un exchange
    - Mock en memoria (testing)
    """

    @abstractmethod
    async def get_candles(
        self,
        symbol: str,
        interval_ms: int,
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Candle]:
        """
        Obtiene velas ordenadas por open_time ASC.

        Args:
            symbol: Activo (e.g. "BTCUSDT")
            interval_ms: Intervalo de vela en milisegundos
            since: Solo velas con open_time >= since (incluye la vela en
                formación para poder actualizarla)
            limit: Máximo de velas (las más recientes)

        Returns:
            Lista de velas sin duplicados de open_time
        """
        pass

    @abstractmethod
    async def list_symbols(self) -> List[str]:
        """Activos disponibles en la fuente."""
        pass
