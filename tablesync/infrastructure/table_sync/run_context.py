"""
Contexto cancelable de una corrida.

Se crea al inicio de cada corrida y se libera al final. El motor lo consulta
entre pasos y antes de cada INSERT; el worker lo cancela al detenerse o
cuando vence el timeout, sin esperar a que la llamada bloqueante retorne.
"""
from __future__ import annotations

import threading
import time
from typing import Optional

from tablesync.shared.constants.sync_constants import DEFAULT_RUN_TIMEOUT_SECONDS
from tablesync.shared.exceptions.sync import SyncCancelledError, SyncTimeoutError


class RunContext:
    """Deadline + bandera de cancelacion, seguro entre threads."""

    def __init__(self, timeout_seconds: float = DEFAULT_RUN_TIMEOUT_SECONDS) -> None:
        self.timeout_seconds = timeout_seconds
        self._deadline = time.monotonic() + timeout_seconds
        self._cancelled = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._cancelled.is_set():
            self._reason = reason
            self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._deadline

    def check(self, table: str, step: str) -> None:
        """
        Lanza si la corrida ya no debe continuar.

        Raises:
            SyncCancelledError: el worker pidio detenerse
            SyncTimeoutError: se excedio el deadline
        """
        if self._cancelled.is_set():
            if self.reason == "timeout":
                raise SyncTimeoutError(
                    f"corrida excedio {self.timeout_seconds:g}s (en paso {step})", table=table
                )
            raise SyncCancelledError(f"corrida cancelada en paso {step} ({self.reason})", table=table)
        if self.expired:
            raise SyncTimeoutError(
                f"corrida excedio {self.timeout_seconds:g}s (en paso {step})", table=table
            )
