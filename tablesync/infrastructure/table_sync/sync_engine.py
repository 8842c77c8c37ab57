"""
Motor de sincronizacion full-refresh de una tabla.

Diseño (resumen):
- Introspecciona columnas de la tabla origen (orden ordinal) y aplica la
  allow-list de campos (case-insensitive, sin reordenar).
- Crea la tabla destino si no existe y la politica lo permite. Si ya existe
  no se toca: no hay reconciliacion de esquema.
- Lee todas las filas del origen (filtro opcional, agregado tal cual).
- Carga el destino en una transaccion: TRUNCATE + INSERT por fila. Una fila
  que falla revierte todo.

Regla a tener en cuenta:
- Si el origen devuelve 0 filas NO se vacia el destino: la carga se omite y
  el contenido anterior queda intacto.

El motor no tiene estado por corrida; un mismo objeto lo comparten todos los
workers. Las conexiones salen de los pools de SQLAlchemy de cada engine.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, List, Optional, Sequence, Type, TypeVar

from loguru import logger
from sqlalchemy import column as sa_column
from sqlalchemy import insert
from sqlalchemy import table as sa_table
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.sql import quoted_name

from tablesync.infrastructure.table_sync.dialects import SqlDialect, dialect_for
from tablesync.infrastructure.table_sync.run_context import RunContext
from tablesync.infrastructure.table_sync.sync_config import ResolvedTableSync
from tablesync.infrastructure.table_sync.type_mapper import column_definition
from tablesync.infrastructure.table_sync.types import ColumnDescriptor, Row, SyncReport
from tablesync.shared.exceptions.sync import (
    DDLError,
    FetchError,
    IntrospectionError,
    LoadError,
    SyncError,
)

T = TypeVar("T")


def filter_columns(columns: Sequence[ColumnDescriptor], allowed: Iterable[str]) -> List[ColumnDescriptor]:
    """
    Aplica la allow-list de campos.

    Sin allow-list se devuelven todas las columnas. Con allow-list se
    conservan solo las columnas cuyo nombre coincide (case-insensitive),
    en el orden del origen. Cero coincidencias es un resultado valido.
    """
    allowed = list(allowed or ())
    if not allowed:
        return list(columns)
    wanted = {name.strip().lower() for name in allowed if name and name.strip()}
    return [col for col in columns if col.name.lower() in wanted]


def _execute_raw(conn: Connection, sql: str):
    # Sin procesamiento de parametros del driver: '%' y ':' en literales del
    # filtro llegan tal cual al motor.
    return conn.exec_driver_sql(sql, execution_options={"no_parameters": True})


class SyncEngine:
    """Sincroniza una tabla origen contra su tabla destino."""

    def __init__(
        self,
        source: Engine,
        target: Engine,
        *,
        source_dialect: Optional[SqlDialect] = None,
        target_dialect: Optional[SqlDialect] = None,
    ) -> None:
        self._source = source
        self._target = target
        self.source_dialect = source_dialect or dialect_for(source)
        self.target_dialect = target_dialect or dialect_for(target)

    # ------------------------ Corrida completa ------------------------

    def sync_table(self, table: ResolvedTableSync, context: Optional[RunContext] = None) -> SyncReport:
        """
        Ejecuta una corrida completa para la tabla configurada.

        Args:
            table: Spec de la tabla ya resuelta contra la politica por defecto
            context: Contexto cancelable de la corrida (deadline + cancelacion)

        Returns:
            SyncReport con conteos y duracion

        Raises:
            SyncError: subclase del paso que fallo, con tabla y paso
        """
        context = context or RunContext()
        t0 = time.perf_counter()
        log = logger.bind(source_table=table.source_table, target_table=table.target_table)
        log.info(f"Iniciando sync {table.source_table} -> {table.target_table}")

        columns = self._step(IntrospectionError, table, context, self.introspect, table)
        log.info(f"Columnas origen resueltas: {len(columns)}")

        if not columns:
            log.warning(
                f"La allow-list de {table.target_table} no coincide con ninguna columna origen; "
                "no hay nada que proyectar, destino sin cambios"
            )
            return SyncReport(
                table=table.target_table,
                rows_fetched=0,
                rows_loaded=0,
                created_table=False,
                load_skipped=True,
                duration_ms=(time.perf_counter() - t0) * 1000,
            )

        created = False
        if table.create_target_table:
            created = self._step(DDLError, table, context, self.ensure_target_table, table, columns)

        rows = self._step(FetchError, table, context, self.fetch_rows, table, columns)
        log.info(f"Filas leidas del origen: {len(rows)}")

        loaded = self._step(LoadError, table, context, self.load_target, table, columns, rows, context)

        duration_ms = (time.perf_counter() - t0) * 1000
        log.info(f"Sync completado {table.target_table}: filas={loaded} ({duration_ms:.1f}ms)")
        return SyncReport(
            table=table.target_table,
            rows_fetched=len(rows),
            rows_loaded=loaded,
            created_table=created,
            load_skipped=not rows,
            duration_ms=duration_ms,
        )

    def _step(
        self,
        error_cls: Type[SyncError],
        table: ResolvedTableSync,
        context: RunContext,
        func: Callable[..., T],
        *args: Any,
    ) -> T:
        context.check(table.target_table, error_cls.step)
        try:
            return func(*args)
        except SyncError:
            raise
        except Exception as exc:
            raise error_cls.wrap(exc, table=table.target_table) from exc

    # ------------------------ Paso 1: introspeccion ------------------------

    def introspect(self, table: ResolvedTableSync) -> List[ColumnDescriptor]:
        schema, name = self.source_dialect.split_identifier(table.source_table)
        with self._source.connect() as conn:
            columns = self.source_dialect.fetch_columns(conn, schema, name)
        if not columns:
            raise IntrospectionError(
                f"la tabla origen {schema}.{name} no existe o no tiene columnas",
                table=table.target_table,
            )
        return filter_columns(columns, table.fields)

    # ------------------------ Paso 2: tabla destino ------------------------

    def ensure_target_table(self, table: ResolvedTableSync, columns: Sequence[ColumnDescriptor]) -> bool:
        """
        Crea la tabla destino si no existe.

        Returns:
            True si se creo, False si ya existia (no se altera)
        """
        dialect = self.target_dialect
        schema, name = dialect.split_identifier(table.target_table)
        with self._target.begin() as conn:
            if dialect.table_exists(conn, schema, name):
                logger.info(f"Tabla destino {table.target_table} ya existe")
                return False

            definitions = [column_definition(col, dialect.quote(col.name)) for col in columns]
            ddl = dialect.create_table_statement(table.target_table, definitions)
            logger.info(f"Creando tabla destino {table.target_table}")
            logger.debug(f"CREATE TABLE SQL: {ddl}")
            _execute_raw(conn, ddl)

        logger.info(f"Tabla destino {table.target_table} creada")
        return True

    # ------------------------ Paso 3: lectura ------------------------

    def fetch_rows(self, table: ResolvedTableSync, columns: Sequence[ColumnDescriptor]) -> List[Row]:
        sql = self.source_dialect.select_statement(
            table.source_table, [col.name for col in columns], table.filter
        )
        logger.info(f"Consultando origen: {sql}")
        with self._source.connect() as conn:
            result = _execute_raw(conn, sql)
            return [tuple(row) for row in result]

    # ------------------------ Paso 4: carga ------------------------

    def load_target(
        self,
        table: ResolvedTableSync,
        columns: Sequence[ColumnDescriptor],
        rows: Sequence[Row],
        context: RunContext,
    ) -> int:
        """
        Reemplaza el contenido destino en una sola transaccion.

        Sin filas no se abre transaccion ni se trunca: el destino queda igual.
        """
        if not rows:
            logger.info(f"Origen sin filas para {table.target_table}; destino sin cambios")
            return 0

        dialect = self.target_dialect
        schema, name = dialect.split_identifier(table.target_table)
        names = [col.name for col in columns]
        target = sa_table(
            quoted_name(name, True),
            *[sa_column(quoted_name(col, True)) for col in names],
            schema=quoted_name(schema, True),
        )
        stmt = insert(target)

        with self._target.begin() as conn:
            logger.info(f"Vaciando tabla destino {table.target_table}")
            _execute_raw(conn, dialect.truncate_statement(table.target_table))

            for index, row in enumerate(rows):
                context.check(table.target_table, LoadError.step)
                try:
                    conn.execute(stmt, dict(zip(names, row)))
                except Exception as exc:
                    logger.error(f"Error insertando fila {index} en {table.target_table}: {exc}")
                    raise LoadError(
                        f"fila {index}: {type(exc).__name__}: {exc}",
                        table=table.target_table,
                        cause=exc,
                    ) from exc

        return len(rows)
