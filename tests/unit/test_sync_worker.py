"""
Tests unitarios para worker.py.

Verifica la maquina de estados del SyncWorker, el timer de corridas
programadas, el timeout por corrida, la detencion sin esperar al thread
bloqueado y que las corridas de una misma tabla nunca se solapan.
"""
from __future__ import annotations

import asyncio
import threading
import time
from typing import List, Optional

import pytest

from tablesync.infrastructure.table_sync.run_context import RunContext
from tablesync.infrastructure.table_sync.sync_config import DefaultPolicy, ResolvedTableSync, TableSyncSpec
from tablesync.infrastructure.table_sync.types import SyncOutcome, SyncReport
from tablesync.infrastructure.table_sync.worker import SyncWorker
from tablesync.shared.constants.sync_constants import TriggerKind, WorkerState
from tablesync.shared.exceptions.sync import FetchError


class FakeEngine:
    """
    Motor de prueba: registra concurrencia y permite bloquear o fallar.
    """

    def __init__(self, delay: float = 0.0, fail: bool = False, block: bool = False, honor_context: bool = True):
        self.delay = delay
        self.fail = fail
        self.block = block
        self.honor_context = honor_context
        self.release = threading.Event()
        self.started = threading.Event()
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.contexts: List[RunContext] = []
        self._lock = threading.Lock()

    def sync_table(self, table: ResolvedTableSync, context: Optional[RunContext] = None) -> SyncReport:
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.contexts.append(context)
        self.started.set()
        try:
            if self.block:
                # Espera hasta que el test libere o el contexto se cancele
                deadline = time.monotonic() + 5
                while not self.release.is_set() and time.monotonic() < deadline:
                    if self.honor_context and context is not None and context.cancelled:
                        context.check(table.target_table, "load")
                    time.sleep(0.01)
            elif self.delay:
                time.sleep(self.delay)
            if self.fail:
                raise FetchError("origen no disponible", table=table.target_table)
            return SyncReport(
                table=table.target_table,
                rows_fetched=3,
                rows_loaded=3,
                created_table=False,
                load_skipped=False,
                duration_ms=1.0,
            )
        finally:
            with self._lock:
                self.active -= 1


def _spec(auto: Optional[bool] = None, refresh_rate: Optional[int] = 3600) -> TableSyncSpec:
    return TableSyncSpec(
        source_table="dbo.Users",
        target_table="public.users",
        refresh_rate=refresh_rate,
        auto_trigger=auto,
    )


def _worker(engine: FakeEngine, outcomes: asyncio.Queue, auto: bool = False, refresh_rate: int = 3600, run_timeout: float = 5.0) -> SyncWorker:
    return SyncWorker(
        _spec(auto=auto, refresh_rate=refresh_rate),
        DefaultPolicy(),
        engine,
        outcomes.put_nowait,
        run_timeout=run_timeout,
    )


async def _next(outcomes: asyncio.Queue, timeout: float = 3.0) -> SyncOutcome:
    return await asyncio.wait_for(outcomes.get(), timeout=timeout)


async def _wait_for_state(worker: SyncWorker, state: WorkerState, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while worker.state != state:
        if time.monotonic() > deadline:
            raise AssertionError(f"estado esperado {state}, actual {worker.state}")
        await asyncio.sleep(0.01)


class TestSyncWorkerStates:
    """Transiciones de estado del worker."""

    @pytest.mark.asyncio
    async def test_new_worker_is_idle(self) -> None:
        worker = _worker(FakeEngine(), asyncio.Queue())

        assert worker.state == WorkerState.IDLE

    @pytest.mark.asyncio
    async def test_start_with_auto_trigger_runs_immediately(self) -> None:
        """Con auto-trigger el primer disparo programado es inmediato."""
        engine = FakeEngine()
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, auto=True)

        worker.start()
        assert worker.state == WorkerState.SCHEDULED

        outcome = await _next(outcomes)
        await _wait_for_state(worker, WorkerState.SCHEDULED)

        assert outcome.success is True
        assert outcome.trigger == TriggerKind.SCHEDULED
        assert outcome.rows_synced == 3
        assert worker._timer is not None
        await worker.stop()

    @pytest.mark.asyncio
    async def test_start_without_auto_trigger_stays_idle(self) -> None:
        engine = FakeEngine()
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, auto=False)

        worker.start()
        await asyncio.sleep(0.05)

        assert worker.state == WorkerState.IDLE
        assert engine.calls == 0
        await worker.stop()

    @pytest.mark.asyncio
    async def test_manual_run_returns_to_idle(self) -> None:
        engine = FakeEngine()
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, auto=False)
        worker.start()

        assert worker.trigger_manual() is True
        outcome = await _next(outcomes)
        await _wait_for_state(worker, WorkerState.IDLE)

        assert outcome.trigger == TriggerKind.MANUAL
        assert outcome.target_table == "public.users"
        assert worker.runs_completed == 1
        await worker.stop()

    @pytest.mark.asyncio
    async def test_state_is_syncing_during_run(self) -> None:
        engine = FakeEngine(block=True)
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes)
        worker.start()

        worker.trigger_manual()
        await _wait_for_state(worker, WorkerState.SYNCING)

        engine.release.set()
        await _next(outcomes)
        await worker.stop()

    @pytest.mark.asyncio
    async def test_manual_run_keeps_schedule(self) -> None:
        """Una corrida manual con auto-trigger activo vuelve a scheduled."""
        engine = FakeEngine()
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, auto=True)
        worker.start()
        await _next(outcomes)
        timer = worker._timer

        worker.trigger_manual()
        outcome = await _next(outcomes)
        await _wait_for_state(worker, WorkerState.SCHEDULED)

        assert outcome.trigger == TriggerKind.MANUAL
        assert worker._timer is timer
        await worker.stop()

    @pytest.mark.asyncio
    async def test_failed_run_reports_outcome_and_worker_survives(self) -> None:
        engine = FakeEngine(fail=True)
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes)
        worker.start()

        worker.trigger_manual()
        failed = await _next(outcomes)

        assert failed.success is False
        assert failed.error_type == "FetchError"
        assert failed.error_step == "fetch"
        assert "origen no disponible" in failed.error

        engine.fail = False
        worker.trigger_manual()
        recovered = await _next(outcomes)

        assert recovered.success is True
        await worker.stop()


class TestSyncWorkerTimer:
    """Timer de corridas programadas."""

    @pytest.mark.asyncio
    async def test_scheduled_runs_repeat_at_refresh_rate(self) -> None:
        engine = FakeEngine()
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, auto=True, refresh_rate=1)
        worker.start()

        first = await _next(outcomes)
        second = await _next(outcomes, timeout=3.0)

        assert first.trigger == TriggerKind.SCHEDULED
        assert second.trigger == TriggerKind.SCHEDULED
        assert (second.timestamp - first.timestamp).total_seconds() >= 0.9
        await worker.stop()

    @pytest.mark.asyncio
    async def test_arming_replaces_previous_timer(self) -> None:
        engine = FakeEngine()
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, auto=True)
        worker.start()
        await _next(outcomes)

        old = worker._timer
        worker._arm_timer()

        assert old is not None and old.cancelled()
        assert worker._timer is not old
        await worker.stop()

    @pytest.mark.asyncio
    async def test_disabling_auto_trigger_cancels_timer(self) -> None:
        engine = FakeEngine()
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, auto=True)
        worker.start()
        await _next(outcomes)
        await _wait_for_state(worker, WorkerState.SCHEDULED)

        assert worker.set_auto_trigger(False) is True
        await _wait_for_state(worker, WorkerState.IDLE)

        assert worker._timer is None
        assert worker.auto_trigger is False
        await worker.stop()

    @pytest.mark.asyncio
    async def test_enabling_auto_trigger_arms_timer(self) -> None:
        engine = FakeEngine()
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, auto=False)
        worker.start()

        worker.set_auto_trigger(True)
        await _wait_for_state(worker, WorkerState.SCHEDULED)

        assert worker._timer is not None
        await worker.stop()


class TestSyncWorkerTimeout:
    """Timeout por corrida."""

    @pytest.mark.asyncio
    async def test_run_exceeding_timeout_reports_timeout(self) -> None:
        engine = FakeEngine(block=True)
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, run_timeout=0.2)
        worker.start()

        worker.trigger_manual()
        outcome = await _next(outcomes)

        assert outcome.success is False
        assert outcome.error_type == "SyncTimeoutError"
        assert outcome.error_step == "timeout"
        assert engine.contexts[0].cancelled is True
        assert engine.contexts[0].reason == "timeout"
        await _wait_for_state(worker, WorkerState.IDLE)
        await worker.stop()

    @pytest.mark.asyncio
    async def test_timed_out_run_does_not_overlap_next_run(self) -> None:
        """Aunque el thread siga bloqueado, la siguiente corrida espera su turno."""
        engine = FakeEngine(block=True, honor_context=False)
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, run_timeout=0.2)
        worker.start()

        worker.trigger_manual()
        await _next(outcomes)
        engine.block = False
        worker.trigger_manual()
        await asyncio.sleep(0.1)
        engine.release.set()
        await _next(outcomes)

        assert engine.max_active == 1
        await worker.stop()


class TestSyncWorkerStop:
    """Detencion del worker."""

    @pytest.mark.asyncio
    async def test_stop_does_not_wait_for_blocked_run(self) -> None:
        engine = FakeEngine(block=True, honor_context=False)
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes)
        worker.start()
        worker.trigger_manual()
        await asyncio.get_running_loop().run_in_executor(None, engine.started.wait, 2)

        t0 = time.monotonic()
        await worker.stop()
        elapsed = time.monotonic() - t0

        assert elapsed < 1.0
        assert worker.state == WorkerState.STOPPED
        assert engine.contexts[0].cancelled is True
        assert engine.contexts[0].reason == "stopped"
        assert outcomes.empty()
        engine.release.set()

    @pytest.mark.asyncio
    async def test_stop_cancels_timer_and_rejects_triggers(self) -> None:
        engine = FakeEngine()
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes, auto=True)
        worker.start()
        await _next(outcomes)

        await worker.stop()

        assert worker._timer is None
        assert worker.trigger_manual() is False
        assert worker.set_auto_trigger(True) is False

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self) -> None:
        worker = _worker(FakeEngine(), asyncio.Queue())
        worker.start()

        await worker.stop()
        await worker.stop()

        assert worker.state == WorkerState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_without_start(self) -> None:
        worker = _worker(FakeEngine(), asyncio.Queue())

        await worker.stop()

        assert worker.state == WorkerState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_logs_completed_runs(self, log_messages: List[str]) -> None:
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(FakeEngine(), outcomes)
        worker.start()
        worker.trigger_manual()
        await _next(outcomes)

        await worker.stop()

        assert "Worker detenido para public.users (1 corridas)" in log_messages


class TestSyncWorkerSerialization:
    """Las corridas de una tabla nunca se ejecutan en paralelo."""

    @pytest.mark.asyncio
    async def test_burst_of_triggers_runs_one_at_a_time(self) -> None:
        engine = FakeEngine(delay=0.05)
        outcomes: asyncio.Queue = asyncio.Queue()
        worker = _worker(engine, outcomes)
        worker.start()

        for _ in range(5):
            worker.trigger_manual()
        results = [await _next(outcomes) for _ in range(5)]

        assert all(r.success for r in results)
        assert engine.calls == 5
        assert engine.max_active == 1
        await worker.stop()
