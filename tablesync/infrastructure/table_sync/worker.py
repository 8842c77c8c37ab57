"""
Worker por tabla.

Cada tabla configurada tiene un worker propio: una tarea asyncio que consume
una cola de mensajes y ejecuta las corridas de a una.

Caracteristicas:
- Las corridas se ejecutan en un ThreadPoolExecutor dedicado de 1 thread, para
  no bloquear el event loop. Con un solo thread por tabla, una corrida que se
  quedo colgada despues de su timeout no se solapa con la siguiente.
- Timeout a nivel asyncio (asyncio.wait_for) mas un RunContext que el motor
  consulta entre pasos, para que el thread abandone la corrida.
- Timer con loop.call_later: el callback solo encola el disparo. Nunca hay
  mas de un timer armado.
- Un fallo de corrida se reporta como SyncOutcome y el worker sigue vivo.

Estados: idle -> scheduled -> syncing -> (scheduled | idle) ... -> stopping -> stopped
"""

from __future__ import annotations

import asyncio
import re
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from loguru import logger

from tablesync.infrastructure.table_sync.run_context import RunContext
from tablesync.infrastructure.table_sync.sync_config import DefaultPolicy, TableSyncSpec
from tablesync.infrastructure.table_sync.sync_engine import SyncEngine
from tablesync.infrastructure.table_sync.types import SyncOutcome, utc_now
from tablesync.shared.constants.sync_constants import (
    DEFAULT_RUN_TIMEOUT_SECONDS,
    TriggerKind,
    WorkerState,
)
from tablesync.shared.exceptions.sync import SyncError, SyncTimeoutError


OutcomeCallback = Callable[[SyncOutcome], None]


class _Message(str, Enum):
    SCHEDULED_FIRE = "scheduled_fire"
    MANUAL_TRIGGER = "manual_trigger"
    SET_AUTO_TRIGGER = "set_auto_trigger"


def _thread_suffix(table: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]+", "_", table)


class SyncWorker:
    """
    Ejecuta las corridas de una tabla, una a la vez.

    Se debe iniciar con start() dentro de un event loop en ejecucion.
    """

    def __init__(
        self,
        spec: TableSyncSpec,
        defaults: DefaultPolicy,
        engine: SyncEngine,
        on_outcome: OutcomeCallback,
        *,
        run_timeout: float = DEFAULT_RUN_TIMEOUT_SECONDS,
    ) -> None:
        self.spec = spec
        self.defaults = defaults
        self._resolved = spec.resolve(defaults)
        self._engine = engine
        self._on_outcome = on_outcome
        self._run_timeout = run_timeout

        self._auto_trigger = self._resolved.auto_trigger
        self.state = WorkerState.IDLE
        self.runs_completed = 0

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue[Tuple[_Message, Any]]] = None
        self._task: Optional[asyncio.Task] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._fire_pending = False
        self._context: Optional[RunContext] = None

        self._log = logger.bind(source_table=spec.source_table, target_table=spec.target_table)

    # ------------------------ Propiedades ------------------------

    @property
    def target_table(self) -> str:
        return self.spec.target_table

    @property
    def refresh_rate(self) -> int:
        return self._resolved.refresh_rate

    @property
    def auto_trigger(self) -> bool:
        return self._auto_trigger

    @property
    def manual_trigger(self) -> bool:
        return self._resolved.manual_trigger

    # ------------------------ Ciclo de vida ------------------------

    def start(self) -> None:
        """
        Inicia la tarea consumidora.

        Con auto-trigger habilitado el primer disparo se encola de inmediato.
        """
        if self._task is not None:
            return

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"sync-{_thread_suffix(self.target_table)}",
        )
        self._task = self._loop.create_task(
            self._consume(), name=f"sync-worker-{self.target_table}"
        )

        if self._auto_trigger:
            self.state = WorkerState.SCHEDULED
            self._fire_pending = True
            self._queue.put_nowait((_Message.SCHEDULED_FIRE, None))
        else:
            self.state = WorkerState.IDLE

        self._log.info(
            f"Worker iniciado para {self.target_table} "
            f"(auto={self._auto_trigger}, cada {self.refresh_rate}s)"
        )

    async def stop(self) -> None:
        """
        Detiene el worker sin esperar a la llamada bloqueante en curso.

        La corrida en vuelo se cancela via RunContext; su thread termina solo
        en el siguiente punto de control. Llamarlo mas de una vez no hace nada.
        """
        if self.state == WorkerState.STOPPED:
            return

        self.state = WorkerState.STOPPING
        if self._context is not None:
            self._context.cancel("stopped")
        self._cancel_timer()

        task = self._task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

        self._queue = None
        self.state = WorkerState.STOPPED
        self._log.info(f"Worker detenido para {self.target_table} ({self.runs_completed} corridas)")

    # ------------------------ Mensajes ------------------------

    def trigger_manual(self) -> bool:
        """Encola una corrida manual. Retorna False si el worker ya no acepta mensajes."""
        return self._enqueue(_Message.MANUAL_TRIGGER)

    def set_auto_trigger(self, enabled: bool) -> bool:
        return self._enqueue(_Message.SET_AUTO_TRIGGER, bool(enabled))

    def _enqueue(self, message: _Message, payload: Any = None) -> bool:
        if self._queue is None or self.state in (WorkerState.STOPPING, WorkerState.STOPPED):
            return False
        self._queue.put_nowait((message, payload))
        return True

    async def _consume(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            message, payload = await queue.get()

            if message is _Message.SET_AUTO_TRIGGER:
                self._apply_auto_trigger(payload)
                continue

            if message is _Message.SCHEDULED_FIRE:
                self._fire_pending = False
                # Disparo que quedo en cola antes de deshabilitar el auto-trigger
                if not self._auto_trigger:
                    continue
                trigger = TriggerKind.SCHEDULED
            else:
                trigger = TriggerKind.MANUAL

            await self._run_once(trigger)
            self._after_run(trigger)

    def _apply_auto_trigger(self, enabled: bool) -> None:
        if enabled == self._auto_trigger:
            return
        self._auto_trigger = enabled
        self._log.info(f"Auto-trigger de {self.target_table}: {'habilitado' if enabled else 'deshabilitado'}")
        if enabled:
            self._arm_timer()
            self.state = WorkerState.SCHEDULED
        else:
            self._cancel_timer()
            if self.state == WorkerState.SCHEDULED and not self._fire_pending:
                self.state = WorkerState.IDLE

    def _after_run(self, trigger: TriggerKind) -> None:
        if self.state in (WorkerState.STOPPING, WorkerState.STOPPED):
            return
        if trigger is TriggerKind.SCHEDULED:
            if self._auto_trigger:
                self._arm_timer()
                self.state = WorkerState.SCHEDULED
            else:
                self.state = WorkerState.IDLE
            return
        # Una corrida manual no altera la cadencia
        if self._timer is not None or self._fire_pending:
            self.state = WorkerState.SCHEDULED
        else:
            self.state = WorkerState.IDLE

    # ------------------------ Timer ------------------------

    def _arm_timer(self) -> None:
        self._cancel_timer()
        if self._loop is None:
            return
        self._timer = self._loop.call_later(self.refresh_rate, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if self._queue is None or self.state in (WorkerState.STOPPING, WorkerState.STOPPED):
            return
        self._fire_pending = True
        self._queue.put_nowait((_Message.SCHEDULED_FIRE, None))

    # ------------------------ Corrida ------------------------

    async def _run_once(self, trigger: TriggerKind) -> SyncOutcome:
        self.state = WorkerState.SYNCING
        context = RunContext(self._run_timeout)
        self._context = context
        loop = asyncio.get_running_loop()
        t0 = time.perf_counter()
        self._log.info(f"Corrida {trigger.value} iniciada para {self.target_table}")

        try:
            report = await asyncio.wait_for(
                loop.run_in_executor(self._executor, self._engine.sync_table, self._resolved, context),
                timeout=self._run_timeout,
            )
            outcome = SyncOutcome(
                target_table=self.target_table,
                success=True,
                duration_ms=(time.perf_counter() - t0) * 1000,
                timestamp=utc_now(),
                trigger=trigger,
                rows_synced=report.rows_loaded,
            )
        except asyncio.TimeoutError:
            context.cancel("timeout")
            error = SyncTimeoutError(
                f"corrida excedio {self._run_timeout:g}s", table=self.target_table
            )
            outcome = self._failure(error, trigger, t0)
        except asyncio.CancelledError:
            context.cancel("stopped")
            raise
        except SyncError as e:
            outcome = self._failure(e, trigger, t0)
        except Exception as e:
            outcome = self._failure(SyncError.wrap(e, table=self.target_table), trigger, t0)
        finally:
            self._context = None

        self.runs_completed += 1
        self._emit(outcome)
        return outcome

    def _failure(self, error: SyncError, trigger: TriggerKind, t0: float) -> SyncOutcome:
        return SyncOutcome(
            target_table=self.target_table,
            success=False,
            duration_ms=(time.perf_counter() - t0) * 1000,
            timestamp=utc_now(),
            trigger=trigger,
            error=str(error),
            error_type=type(error).__name__,
            error_step=error.step,
        )

    def _emit(self, outcome: SyncOutcome) -> None:
        try:
            self._on_outcome(outcome)
        except Exception as e:
            self._log.error(f"No se pudo publicar el resultado de {self.target_table}: {e}")
