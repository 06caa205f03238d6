"""
ZoneSniper – CLI Entry Point
==============================
Ejecuta el motor sobre velas de un CSV y emite el resultado en JSON.

ARRANQUE:
  1. Configurar logging (stderr; stdout queda para el JSON)
  2. Crear el contenedor con Settings (.env / ZONESNIPER_*)
  3. Ingesta: CsvCandleSource → SeriesStore
  4. analyze  → RunAnalysisUseCase → AnalysisResponseDTO
     backtest → WalkForwardBacktestUseCase → BacktestReport

  python -m zonesniper.main analyze --csv data/BTCUSDT.csv --symbol BTCUSDT
  python -m zonesniper.main backtest --symbol BTCUSDT --step 24
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from zonesniper.application.dto.analysis_dto import AnalysisResponseDTO
from zonesniper.container import init_container
from zonesniper.domain.entities.candle_series import CandleSeries
from zonesniper.domain.exceptions.domain_errors import DomainError
from zonesniper.infrastructure.external.csv_candle_source import CsvCandleSource
from zonesniper.shared.config.settings import Settings
from zonesniper.shared.logging.logger import get_logger, setup_logging

logger = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zonesniper", description="Motor de análisis ZoneSniper")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--symbol", required=True, help="Activo a analizar")
    common.add_argument("--csv", help="Ruta del CSV (por defecto <candles_csv_dir>/<SYMBOL>.csv)")
    common.add_argument("--interval-ms", type=int, help="Intervalo de vela en ms")
    common.add_argument("--limit", type=int, help="Solo las últimas N velas del CSV")
    common.add_argument("--log-level", help="Nivel de logging (sobrescribe ZONESNIPER_LOG_LEVEL)")

    analyze = sub.add_parser("analyze", parents=[common], help="Análisis del presente")
    analyze.add_argument("--price", type=float, help="Precio vivo (por defecto el último close)")
    analyze.add_argument("--full", action="store_true", help="Snapshot completo con matches")

    backtest = sub.add_parser("backtest", parents=[common], help="Backtest walk-forward")
    backtest.add_argument("--start", type=int, help="Índice de la primera vela evaluada")
    backtest.add_argument("--step", type=int, help="Velas entre evaluaciones")
    backtest.add_argument("--min-win-rate", type=float, default=0.0)
    backtest.add_argument("--fixed-stop", action="store_true", help="No usar el stop sugerido")
    backtest.add_argument("--detail", action="store_true", help="Incluir cada trade")
    return parser


async def _load_series(container, symbol: str, interval_ms: int, limit: Optional[int]) -> CandleSeries:
    result = await container.get_ingest_candles_usecase().execute(symbol, interval_ms, limit=limit)
    if result.series is None:
        raise DomainError(f"Sin velas para {symbol}", code="NO_DATA")
    return result.series


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    app_settings = Settings()
    setup_logging(args.log_level or app_settings.log_level, stream=sys.stderr)

    try:
        container = init_container(app_settings)
        if args.csv:
            container.override(
                "candle_source",
                CsvCandleSource(app_settings.candles_csv_dir, files={args.symbol: args.csv}),
            )
        interval_ms = args.interval_ms or app_settings.default_interval_ms
        series = asyncio.run(_load_series(container, args.symbol, interval_ms, args.limit))

        if args.command == "analyze":
            result = container.get_run_analysis_usecase().execute(series, current_price=args.price)
            snapshot = result.snapshot
            payload = snapshot.to_dict() if args.full else AnalysisResponseDTO.from_snapshot(snapshot).to_dict()
        else:
            usecase = container.get_backtest_usecase(
                min_win_rate=args.min_win_rate, use_suggested_stop=not args.fixed_stop,
            )
            report = usecase.execute(series, start_index=args.start, step=args.step).report.to_dict()
            if not args.detail:
                report.pop("detail")
            payload = report
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return 1
    except DomainError as exc:
        logger.error("%s", exc.message)
        print(json.dumps({"error": exc.to_dict()}, indent=2, default=str))
        return 2

    print(json.dumps(payload, indent=2, default=str))
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
