"""
Errores del motor de sincronizacion.

Cada error de una corrida lleva la tabla y el paso donde ocurrio. Ninguno es
fatal para el proceso ni para el worker: abortan solo la corrida actual y se
reportan como un SyncOutcome fallido.
"""
from __future__ import annotations

from typing import Optional


class SyncError(RuntimeError):
    """Error base de sincronizacion."""

    step: str = "sync"

    def __init__(
        self,
        message: str,
        *,
        table: Optional[str] = None,
        step: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.table = table
        if step is not None:
            self.step = step
        self.cause = cause
        self.message = message
        super().__init__(self._format())

    def _format(self) -> str:
        prefix = f"[{self.table}] " if self.table else ""
        return f"{prefix}{self.step}: {self.message}"

    @classmethod
    def wrap(cls, exc: BaseException, *, table: str) -> "SyncError":
        """Envuelve una excepcion del driver con la identidad de la tabla."""
        return cls(f"{type(exc).__name__}: {exc}", table=table, cause=exc)


class ConfigurationError(SyncError):
    """Especificacion de tabla invalida, duplicada o archivo de config roto."""

    step = "configuration"


class IntrospectionError(SyncError):
    """Fallo consultando el catalogo de la base origen."""

    step = "introspect"


class DDLError(SyncError):
    """Fallo creando la tabla destino."""

    step = "create_target"


class FetchError(SyncError):
    """Fallo leyendo filas de la tabla origen."""

    step = "fetch"


class LoadError(SyncError):
    """Fallo en el truncate/insert transaccional del destino."""

    step = "load"


class SyncTimeoutError(SyncError):
    """La corrida excedio el tiempo maximo permitido."""

    step = "timeout"


class SyncCancelledError(SyncError):
    """La corrida fue cancelada porque el worker se esta deteniendo."""

    step = "cancelled"


class TableLookupError(SyncError):
    """Se disparo una tabla que no tiene worker registrado."""

    step = "lookup"
