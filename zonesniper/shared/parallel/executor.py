"""
ZoneSniper – Parallel Executor
================================
Envoltorio único sobre ThreadPoolExecutor para escaneos CPU-bound
sobre datos compartidos de solo lectura.

HILOS:
  Los workers leen los mismos arrays numpy del snapshot, sin copias.

CONTRATO:
  - run() devuelve los resultados EN EL ORDEN DE LOS ITEMS, sea cual
    sea el orden en que terminen los workers.
  - should_stop() se consulta antes de empezar cada item (cancelación
    cooperativa): un item en curso nunca se interrumpe.
  - Si un handler lanza, se cancelan los items pendientes y la
    excepción se propaga al llamador.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from zonesniper.shared.logging.logger import get_logger

logger = get_logger("parallel")

T = TypeVar("T")


class ParallelExecutor:
    """Pool de workers de tamaño fijo con ruta secuencial para 1 worker."""

    def __init__(self, max_workers: Optional[int] = None):
        self._max_workers = max_workers

    def run(
        self,
        items: Sequence[T],
        handler: Callable[[T], Any],
        should_stop: Optional[Callable[[], bool]] = None,
        on_stop: Optional[Callable[[int], BaseException]] = None,
    ) -> List[Any]:
        """
        Ejecuta handler(item) para cada item.

        Args:
            items: unidades de trabajo independientes
            handler: función pura sobre un item
            should_stop: chequeo cooperativo entre items
            on_stop: fábrica de la excepción a lanzar al detenerse
                (recibe el número de items completados)
        """
        items = list(items)
        if not items:
            return []

        workers = self._resolve_workers(len(items))
        logger.debug("start | items=%d workers=%d", len(items), workers)

        guarded = self._guard(handler, should_stop, on_stop)
        if workers == 1:
            return self._run_sequential(items, guarded)
        return self._run_parallel(items, guarded, workers)

    # ---------------- internal ----------------

    def _resolve_workers(self, total: int) -> int:
        cpu = os.cpu_count() or 1
        if self._max_workers is None:
            return max(1, min(cpu, total))
        return max(1, min(self._max_workers, total))

    @staticmethod
    def _guard(
        handler: Callable[[T], Any],
        should_stop: Optional[Callable[[], bool]],
        on_stop: Optional[Callable[[int], BaseException]],
    ) -> Callable[[T], Any]:
        lock = threading.Lock()
        done = [0]

        def wrapped(item: T) -> Any:
            if should_stop is not None and should_stop():
                with lock:
                    completed = done[0]
                if on_stop is not None:
                    raise on_stop(completed)
                raise RuntimeError("parallel run stopped")
            result = handler(item)
            with lock:
                done[0] += 1
            return result

        return wrapped

    @staticmethod
    def _run_sequential(items: List[T], handler: Callable[[T], Any]) -> List[Any]:
        return [handler(item) for item in items]

    @staticmethod
    def _run_parallel(items: List[T], handler: Callable[[T], Any], workers: int) -> List[Any]:
        results: List[Any] = [None] * len(items)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="zonesniper") as pool:
            futures = {pool.submit(handler, item): pos for pos, item in enumerate(items)}
            try:
                for fut in as_completed(futures):
                    results[futures[fut]] = fut.result()
            except BaseException:
                pool.shutdown(wait=False, cancel_futures=True)
                raise
        return results
