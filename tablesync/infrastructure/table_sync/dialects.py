"""
Diferencias entre motores SQL que afectan al sync.

Resuelve:
- schema por defecto ("dbo" en SQL Server, "public" en PostgreSQL, "main" en SQLite)
- quoting de identificadores (siempre se quotea, cada segmento por separado)
- acceso al catalogo (INFORMATION_SCHEMA o PRAGMA en SQLite)
- sentencia de vaciado (TRUNCATE; SQLite no lo tiene y usa DELETE)
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from tablesync.infrastructure.table_sync.types import ColumnDescriptor


DEFAULT_SCHEMAS = {
    "mssql": "dbo",
    "postgresql": "public",
    "sqlite": "main",
}

# "VARCHAR(50)", "NUMERIC(10, 2)", "INTEGER", "DOUBLE PRECISION"
_TYPE_DECL_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_ ]*?)\s*(?:\(\s*(-?\d+)\s*(?:,\s*(\d+)\s*)?\))?\s*$")

_CHAR_FAMILY = {"char", "nchar", "character", "varchar", "nvarchar", "character varying"}


def _strip_quotes(segment: str) -> str:
    segment = segment.strip()
    if len(segment) >= 2 and (
        (segment[0] == "[" and segment[-1] == "]") or (segment[0] == '"' and segment[-1] == '"')
    ):
        return segment[1:-1]
    return segment


class SqlDialect:
    """
    Operaciones dependientes del motor.

    La instancia envuelve el dialecto de SQLAlchemy del engine, que ya sabe
    quotear identificadores segun el motor (corchetes o comillas dobles).
    """

    def __init__(self, engine: Engine) -> None:
        self._dialect = engine.dialect
        self._preparer = engine.dialect.identifier_preparer

    @property
    def name(self) -> str:
        return self._dialect.name

    @property
    def default_schema(self) -> str:
        return DEFAULT_SCHEMAS.get(self.name) or self._dialect.default_schema_name or "public"

    def split_identifier(self, identifier: str) -> Tuple[str, str]:
        """
        Separa "schema.tabla" en (schema, tabla).

        Un nombre sin schema (o con una forma no reconocida) usa el schema
        por defecto del motor con el identificador completo como tabla.
        """
        parts = identifier.strip().split(".")
        if len(parts) == 2 and parts[0].strip() and parts[1].strip():
            return _strip_quotes(parts[0]), _strip_quotes(parts[1])
        return self.default_schema, _strip_quotes(identifier)

    def quote(self, name: str) -> str:
        return self._preparer.quote_identifier(name)

    def qualified(self, identifier: str) -> str:
        schema, table = self.split_identifier(identifier)
        return f"{self.quote(schema)}.{self.quote(table)}"

    def select_statement(self, identifier: str, columns: Iterable[str], where: Optional[str] = None) -> str:
        column_list = ", ".join(self.quote(c) for c in columns)
        sql = f"SELECT {column_list} FROM {self.qualified(identifier)}"
        if where and where.strip():
            sql += f" WHERE {where}"
        return sql

    def truncate_statement(self, identifier: str) -> str:
        return f"TRUNCATE TABLE {self.qualified(identifier)}"

    def create_table_statement(self, identifier: str, column_definitions: List[str]) -> str:
        return f"CREATE TABLE {self.qualified(identifier)} (\n  " + ",\n  ".join(column_definitions) + "\n)"

    def fetch_columns(self, conn: Connection, schema: str, table: str) -> List[ColumnDescriptor]:
        raise NotImplementedError

    def table_exists(self, conn: Connection, schema: str, table: str) -> bool:
        raise NotImplementedError


class InformationSchemaDialect(SqlDialect):
    """Motores con INFORMATION_SCHEMA estandar (SQL Server, PostgreSQL, ...)."""

    COLUMNS_QUERY = text(
        """
        SELECT COLUMN_NAME, DATA_TYPE, CHARACTER_MAXIMUM_LENGTH,
               NUMERIC_PRECISION, NUMERIC_SCALE, IS_NULLABLE
        FROM INFORMATION_SCHEMA.COLUMNS
        WHERE TABLE_SCHEMA = :schema AND TABLE_NAME = :table
        ORDER BY ORDINAL_POSITION
        """
    )

    EXISTS_QUERY = text(
        """
        SELECT COUNT(*)
        FROM INFORMATION_SCHEMA.TABLES
        WHERE TABLE_SCHEMA = :schema AND TABLE_NAME = :table
        """
    )

    def fetch_columns(self, conn: Connection, schema: str, table: str) -> List[ColumnDescriptor]:
        rows = conn.execute(self.COLUMNS_QUERY, {"schema": schema, "table": table}).all()
        return [
            ColumnDescriptor(
                name=row[0],
                data_type=row[1],
                length=row[2],
                precision=row[3],
                scale=row[4],
                nullable=str(row[5]).upper() == "YES",
            )
            for row in rows
        ]

    def table_exists(self, conn: Connection, schema: str, table: str) -> bool:
        count = conn.execute(self.EXISTS_QUERY, {"schema": schema, "table": table}).scalar()
        return bool(count)


class SQLiteDialect(SqlDialect):
    """
    SQLite: sin INFORMATION_SCHEMA ni TRUNCATE.

    Los schemas son bases adjuntas (ATTACH DATABASE ... AS schema).
    """

    def fetch_columns(self, conn: Connection, schema: str, table: str) -> List[ColumnDescriptor]:
        rows = conn.exec_driver_sql(f"PRAGMA {self.quote(schema)}.table_info({self.quote(table)})").all()
        columns: List[ColumnDescriptor] = []
        # (cid, name, type, notnull, dflt_value, pk)
        for row in sorted(rows, key=lambda r: r[0]):
            data_type, first, second = parse_type_declaration(row[2])
            is_char = data_type.lower() in _CHAR_FAMILY
            columns.append(
                ColumnDescriptor(
                    name=row[1],
                    data_type=data_type,
                    length=first if is_char else None,
                    precision=None if is_char else first,
                    scale=None if is_char else second,
                    nullable=not bool(row[3]),
                )
            )
        return columns

    def table_exists(self, conn: Connection, schema: str, table: str) -> bool:
        query = text(
            f"SELECT COUNT(*) FROM {self.quote(schema)}.sqlite_master "
            "WHERE type = 'table' AND name = :table"
        )
        return bool(conn.execute(query, {"table": table}).scalar())

    def truncate_statement(self, identifier: str) -> str:
        return f"DELETE FROM {self.qualified(identifier)}"


def parse_type_declaration(declaration: Optional[str]) -> Tuple[str, Optional[int], Optional[int]]:
    """
    Separa una declaracion de tipo en (nombre, parametro1, parametro2).

    "VARCHAR(50)" -> ("VARCHAR", 50, None); "NUMERIC(10,2)" -> ("NUMERIC", 10, 2).
    Una declaracion vacia o no reconocida se devuelve tal cual, sin parametros.
    """
    if not declaration:
        return "", None, None
    match = _TYPE_DECL_RE.match(declaration)
    if not match:
        return declaration.strip(), None, None
    name, first, second = match.groups()
    return (
        " ".join(name.split()),
        int(first) if first is not None else None,
        int(second) if second is not None else None,
    )


def dialect_for(engine: Engine) -> SqlDialect:
    """Retorna el dialecto de sync adecuado para el engine."""
    if engine.dialect.name == "sqlite":
        return SQLiteDialect(engine)
    return InformationSchemaDialect(engine)
