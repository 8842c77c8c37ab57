"""
Configuración de fixtures para pytest.

Las bases origen y destino se simulan con archivos SQLite. Los schemas
("dbo" en origen, "public" en destino) son bases adjuntas con ATTACH, asi
los identificadores calificados se resuelven igual que en produccion.
"""
from pathlib import Path
from typing import Dict, Iterator, List

import pytest
from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _sqlite_engine(main_path: Path, schemas: Dict[str, Path]) -> Engine:
    engine = create_engine(f"sqlite:///{main_path}")

    @event.listens_for(engine, "connect")
    def _attach_schemas(dbapi_connection, _connection_record) -> None:
        for schema, path in schemas.items():
            dbapi_connection.execute(f"ATTACH DATABASE '{path}' AS \"{schema}\"")

    return engine


@pytest.fixture
def source_engine(tmp_path: Path) -> Iterator[Engine]:
    """Base origen con schema `dbo`."""
    engine = _sqlite_engine(tmp_path / "source.db", {"dbo": tmp_path / "source_dbo.db"})
    yield engine
    engine.dispose()


@pytest.fixture
def target_engine(tmp_path: Path) -> Iterator[Engine]:
    """Base destino con schema `public`."""
    engine = _sqlite_engine(tmp_path / "target.db", {"public": tmp_path / "target_public.db"})
    yield engine
    engine.dispose()


@pytest.fixture
def users_source(source_engine: Engine) -> Engine:
    """Crea dbo.Users con tres filas (una inactiva)."""
    with source_engine.begin() as conn:
        conn.exec_driver_sql(
            'CREATE TABLE "dbo"."Users" ('
            '"Id" INT NOT NULL, '
            '"Name" NVARCHAR(100), '
            '"Email" VARCHAR(255), '
            '"Active" BIT, '
            '"Balance" DECIMAL(10,2), '
            '"CreatedAt" DATETIME)'
        )
        conn.exec_driver_sql(
            'INSERT INTO "dbo"."Users" VALUES '
            "(1, 'Ana', 'ana@example.com', 1, 10.5, '2024-01-01 10:00:00'), "
            "(2, 'Bruno', 'bruno@example.com', 0, 0, '2024-02-01 11:00:00'), "
            "(3, 'Carla', 'carla@example.com', 1, 99.99, '2024-03-01 12:00:00')"
        )
    return source_engine


@pytest.fixture
def log_messages() -> Iterator[List[str]]:
    """Captura los mensajes de loguru emitidos durante el test."""
    messages: List[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
