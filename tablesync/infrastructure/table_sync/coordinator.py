"""
Coordinador de workers de sincronizacion.

Mantiene un worker por tabla destino, enruta los disparos manuales y recibe
los resultados de cada corrida en una cola propia. Una tarea colectora los
loguea y los reparte a los listeners suscritos.
"""

from __future__ import annotations

import asyncio
import inspect
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from loguru import logger

from tablesync.infrastructure.table_sync.sync_config import DefaultPolicy, TableStatus, TableSyncSpec
from tablesync.infrastructure.table_sync.sync_engine import SyncEngine
from tablesync.infrastructure.table_sync.types import SyncOutcome
from tablesync.infrastructure.table_sync.worker import SyncWorker
from tablesync.shared.constants.sync_constants import DEFAULT_RUN_TIMEOUT_SECONDS
from tablesync.shared.exceptions.sync import ConfigurationError, TableLookupError


OutcomeListener = Callable[[SyncOutcome], Any]


class SyncCoordinator:
    """Registro de workers por tabla destino."""

    def __init__(
        self,
        engine: SyncEngine,
        defaults: Optional[DefaultPolicy] = None,
        *,
        run_timeout: float = DEFAULT_RUN_TIMEOUT_SECONDS,
    ) -> None:
        self._engine = engine
        self.defaults = defaults or DefaultPolicy()
        self._run_timeout = run_timeout
        self._workers: Dict[str, SyncWorker] = {}
        self._listeners: List[OutcomeListener] = []
        self._outcomes: Optional[asyncio.Queue[SyncOutcome]] = None
        self._collector: Optional[asyncio.Task] = None

    # ------------------------ Ciclo de vida ------------------------

    def start_all(self, specs: Iterable[TableSyncSpec]) -> int:
        """
        Crea e inicia un worker por cada tabla.

        Una tabla destino repetida se reporta como ConfigurationError en el
        log y se ignora; las demas tablas arrancan igual.

        Returns:
            Cantidad de workers registrados
        """
        loop = asyncio.get_running_loop()
        if self._outcomes is None:
            self._outcomes = asyncio.Queue()
        if self._collector is None:
            self._collector = loop.create_task(self._collect(), name="sync-outcome-collector")

        for spec in specs:
            key = spec.target_table
            if key in self._workers:
                error = ConfigurationError(
                    f"tabla destino duplicada, se ignora la entrada con origen '{spec.source_table}'",
                    table=key,
                )
                logger.error(str(error))
                continue

            worker = SyncWorker(
                spec,
                self.defaults,
                self._engine,
                self._outcomes.put_nowait,
                run_timeout=self._run_timeout,
            )
            self._workers[key] = worker
            worker.start()

        logger.info(f"Sincronizador iniciado con {len(self._workers)} tabla(s)")
        return len(self._workers)

    async def stop_all(self) -> None:
        """
        Detiene todos los workers y luego la tarea colectora.

        Los resultados que ya estaban en cola se entregan antes de salir.
        """
        if self._workers:
            logger.info(f"Deteniendo {len(self._workers)} worker(s)...")
            await asyncio.gather(*(worker.stop() for worker in self._workers.values()))

        collector = self._collector
        if collector is not None:
            collector.cancel()
            try:
                await collector
            except asyncio.CancelledError:
                pass
            self._collector = None

        if self._outcomes is not None:
            while not self._outcomes.empty():
                await self._dispatch(self._outcomes.get_nowait())
            self._outcomes = None

    # ------------------------ Disparos ------------------------

    def trigger_one(self, target_table: str) -> bool:
        """
        Solicita una corrida manual de una tabla.

        Siempre retorna True: significa "enviado", no "sincronizado". Una
        tabla desconocida solo queda registrada en el log.
        """
        worker = self._workers.get(target_table)
        if worker is None:
            error = TableLookupError(f"no hay worker registrado para '{target_table}'", table=target_table)
            logger.error(str(error))
            return True

        if not worker.trigger_manual():
            logger.warning(f"Worker de {target_table} detenido, disparo descartado")
        return True

    def trigger_all(self) -> int:
        """Encola una corrida manual en cada worker. Retorna cuantas se encolaron."""
        count = sum(1 for worker in self._workers.values() if worker.trigger_manual())
        logger.info(f"Disparo manual de todas las tablas: {count} encolada(s)")
        return count

    def set_auto_trigger(self, target_table: str, enabled: bool) -> bool:
        worker = self._workers.get(target_table)
        if worker is None:
            logger.error(str(TableLookupError(f"no hay worker registrado para '{target_table}'", table=target_table)))
            return False
        return worker.set_auto_trigger(enabled)

    # ------------------------ Consultas ------------------------

    def status(self) -> List[TableStatus]:
        return [TableStatus.from_spec(worker.spec, self.defaults) for worker in self._workers.values()]

    def get_spec(self, target_table: str) -> Optional[TableSyncSpec]:
        worker = self._workers.get(target_table)
        return worker.spec if worker else None

    @property
    def workers(self) -> Mapping[str, SyncWorker]:
        return MappingProxyType(self._workers)

    # ------------------------ Resultados ------------------------

    def subscribe(self, listener: OutcomeListener) -> None:
        """Registra un listener (sync o async) que recibe cada SyncOutcome."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: OutcomeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _collect(self) -> None:
        assert self._outcomes is not None
        queue = self._outcomes
        while True:
            outcome = await queue.get()
            await self._dispatch(outcome)

    async def _dispatch(self, outcome: SyncOutcome) -> None:
        log = logger.bind(target_table=outcome.target_table)
        if outcome.success:
            log.info(
                f"Sync OK {outcome.target_table} ({outcome.trigger.value}): "
                f"{outcome.rows_synced} filas en {outcome.duration_ms:.1f}ms"
            )
        else:
            log.error(
                f"Sync FALLIDO {outcome.target_table} ({outcome.trigger.value}) "
                f"[{outcome.error_type} en {outcome.error_step}]: {outcome.error}"
            )

        for listener in list(self._listeners):
            try:
                result = listener(outcome)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error en listener de resultados de sync: {type(e).__name__}: {e}")
