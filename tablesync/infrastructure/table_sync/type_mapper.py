"""
Mapeo de tipos de columna origen -> tipo SQL destino.

Funcion pura y total: cualquier tipo que no este en la tabla termina como
TEXT, nunca lanza error.
"""
from __future__ import annotations

from typing import Callable, Dict

from tablesync.infrastructure.table_sync.types import ColumnDescriptor


# Limite de longitud de VARCHAR en PostgreSQL
MAX_VARCHAR_LENGTH = 10485760

FALLBACK_TYPE = "TEXT"


def _numeric(col: ColumnDescriptor) -> str:
    if col.precision and col.precision > 0:
        return f"NUMERIC({col.precision},{col.scale or 0})"
    return "NUMERIC"


def _char(col: ColumnDescriptor) -> str:
    if col.length and col.length > 0:
        return f"CHAR({col.length})"
    return "CHAR(1)"


def _varchar(col: ColumnDescriptor) -> str:
    # SQL Server reporta -1 para (n)varchar(max)
    if col.length and 0 < col.length <= MAX_VARCHAR_LENGTH:
        return f"VARCHAR({col.length})"
    return FALLBACK_TYPE


def _fixed(target: str) -> Callable[[ColumnDescriptor], str]:
    return lambda _col: target


TYPE_MAP: Dict[str, Callable[[ColumnDescriptor], str]] = {
    # Enteros
    "int": _fixed("INTEGER"),
    "integer": _fixed("INTEGER"),
    "bigint": _fixed("BIGINT"),
    "smallint": _fixed("SMALLINT"),
    "tinyint": _fixed("SMALLINT"),
    "bit": _fixed("BOOLEAN"),
    "boolean": _fixed("BOOLEAN"),
    # Numericos
    "decimal": _numeric,
    "numeric": _numeric,
    "money": _fixed("NUMERIC(19,4)"),
    "smallmoney": _fixed("NUMERIC(19,4)"),
    "float": _fixed("DOUBLE PRECISION"),
    "double precision": _fixed("DOUBLE PRECISION"),
    "real": _fixed("REAL"),
    # Temporales
    "date": _fixed("DATE"),
    "datetime": _fixed("TIMESTAMP"),
    "datetime2": _fixed("TIMESTAMP"),
    "smalldatetime": _fixed("TIMESTAMP"),
    "timestamp without time zone": _fixed("TIMESTAMP"),
    "datetimeoffset": _fixed("TIMESTAMPTZ"),
    "timestamp with time zone": _fixed("TIMESTAMPTZ"),
    "time": _fixed("TIME"),
    # Texto
    "char": _char,
    "nchar": _char,
    "character": _char,
    "varchar": _varchar,
    "nvarchar": _varchar,
    "character varying": _varchar,
    "text": _fixed("TEXT"),
    "ntext": _fixed("TEXT"),
    # Identificadores, binarios, xml
    "uniqueidentifier": _fixed("UUID"),
    "uuid": _fixed("UUID"),
    "binary": _fixed("BYTEA"),
    "varbinary": _fixed("BYTEA"),
    "image": _fixed("BYTEA"),
    "rowversion": _fixed("BYTEA"),
    "blob": _fixed("BYTEA"),
    "bytea": _fixed("BYTEA"),
    "xml": _fixed("XML"),
}


def map_column_type(col: ColumnDescriptor) -> str:
    """
    Retorna el tipo destino para una columna origen.

    Args:
        col: Descriptor producido por la introspeccion

    Returns:
        Nombre de tipo SQL para el CREATE TABLE destino
    """
    mapper = TYPE_MAP.get((col.data_type or "").strip().lower())
    if mapper is None:
        return FALLBACK_TYPE
    return mapper(col)


def column_definition(col: ColumnDescriptor, quoted_name: str) -> str:
    """Definicion de columna para el CREATE TABLE (tipo + nulabilidad)."""
    definition = f"{quoted_name} {map_column_type(col)}"
    if not col.nullable:
        definition += " NOT NULL"
    return definition
