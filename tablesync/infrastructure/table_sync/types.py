"""
Tipos y utilidades puras para el pipeline de replicacion.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from tablesync.shared.constants.sync_constants import TriggerKind


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    Columna de la tabla origen, tal como la reporta el catalogo.

    El orden de la lista que produce la introspeccion manda: se usa igual
    para el SELECT, el CREATE TABLE y el empaquetado de cada fila.
    """

    name: str
    data_type: str
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    nullable: bool = True


# Una fila leida del origen: valores posicionales alineados con las columnas.
Row = Sequence[Any]


@dataclass(frozen=True)
class SyncReport:
    """Resultado de una corrida exitosa del motor."""

    table: str
    rows_fetched: int
    rows_loaded: int
    created_table: bool
    load_skipped: bool
    duration_ms: float


@dataclass(frozen=True)
class SyncOutcome:
    """
    Evento que emite un worker al terminar cada corrida.

    No se persiste: el coordinador lo loguea y lo reparte a los listeners.
    """

    target_table: str
    success: bool
    duration_ms: float
    timestamp: datetime
    trigger: TriggerKind
    rows_synced: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_step: Optional[str] = None
